from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Optional, Sequence

from . import cgen
from .binfmt import DEFAULT_DELIMITER, DEFAULT_PREFIX, WIDTHS, format_binary
from .dispatch import check_call_sites
from .errors import SpecError


def parse_int(s: str) -> int:
    s = s.strip().lower()
    sign = 1
    if s[:1] in ("+", "-"):
        sign = -1 if s[0] == "-" else 1
        s = s[1:]
    if not s[:1].isalnum():
        raise ValueError(f"invalid integer literal: {s!r}")
    if s.startswith("0x"):
        return sign * int(s, 16)
    if s.startswith("0b"):
        return sign * int(s, 2)
    return sign * int(s, 10)


def _cmd_generate(args: argparse.Namespace) -> int:
    spec_path = Path(args.spec)
    out_dir = Path(args.out_dir) if args.out_dir else spec_path.parent
    if args.check:
        problems = cgen.check(spec_path, out_dir)
        for status, path in problems:
            print(f"{status}: {path.as_posix()}", file=sys.stderr)
        return 1 if problems else 0
    for path in cgen.generate(spec_path, out_dir):
        print(path.as_posix())
    return 0


def _cmd_binary(args: argparse.Namespace) -> int:
    print(format_binary(args.value, args.width, prefix=args.prefix, delimiter=args.delimiter))
    return 0


def _cmd_check_calls(args: argparse.Namespace) -> int:
    spec = cgen.load_spec(Path(args.spec))
    families = spec.family_arities()
    ok = True
    for name in args.files:
        path = Path(name)
        if not path.exists():
            raise SpecError(f"source file not found: {path.as_posix()}")
        source = path.read_text(encoding="utf-8")
        for diag in check_call_sites(source, families, filename=path.as_posix()):
            print(diag, file=sys.stderr)
            ok = False
    return 0 if ok else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="preamblegen",
        description="Generate enum name tables, arity dispatchers and binary format patterns.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    gen = sub.add_parser("generate", help="Generate the C header and Markdown reference from a spec.")
    gen.add_argument("--spec", required=True, help="Path to the spec file (YAML subset).")
    gen.add_argument("--out-dir", default=None, help="Output directory (defaults to the spec's directory).")
    gen.add_argument("--check", action="store_true", help="Verify outputs are up to date instead of writing.")
    gen.set_defaults(func=_cmd_generate)

    binary = sub.add_parser("binary", help="Print a value as a binary literal.")
    binary.add_argument("value", type=parse_int, help="Value (decimal, 0x.. or 0b..)")
    binary.add_argument("--width", type=int, default=64, choices=WIDTHS, help="Width in bits (default 64)")
    binary.add_argument("--prefix", default=DEFAULT_PREFIX, help=f"Literal prefix (default {DEFAULT_PREFIX!r})")
    binary.add_argument(
        "--delimiter", default=DEFAULT_DELIMITER, help=f"Byte delimiter (default {DEFAULT_DELIMITER!r})"
    )
    binary.set_defaults(func=_cmd_binary)

    calls = sub.add_parser("check-calls", help="Check dispatch call sites in Python sources.")
    calls.add_argument("--spec", required=True, help="Spec file declaring the dispatch families.")
    calls.add_argument("files", nargs="+", help="Python source files to check.")
    calls.set_defaults(func=_cmd_check_calls)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return args.func(args)
    except SpecError as e:
        print(f"preamblegen: ERROR: {e}", file=sys.stderr)
        return 2
