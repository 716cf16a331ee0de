"""
Generate a C preamble header (and a Markdown reference) from a spec file.

The spec lists canonical enum names, dispatch families with their defined
arities and the binary format literals. Every enum is emitted together with its
index-aligned string table from the same records, so the two cannot drift.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Sequence, Tuple

from .binfmt import BYTE_BITS, DEFAULT_DELIMITER, DEFAULT_PREFIX, WIDTHS, binary_pattern
from .dispatch import MAX_ARITY, MIN_ARITY
from .enums import EnumTable, build_enum_table, canonical_list
from .errors import SpecError
from .yamlsub import parse_yaml_subset

SPEC_VERSION = "1.0"
GENERATOR = "preamblegen"

_RE_IDENT = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_VOLATILE_PREFIXES = ("/* Generated: ", "_Generated: ")

# Argument slots the counting macro can see; more arguments than this cannot be detected.
ARG_SLOTS = 64
ARITY_EXCEEDED = "_ARITY_EXCEEDED"


@dataclass(frozen=True)
class EnumSpec:
    typename: str
    prefix: str
    table: EnumTable

    @property
    def array_name(self) -> str:
        return f"{_upper_snake(self.typename)}_STRINGS"

    @property
    def count_name(self) -> str:
        return f"{_upper_snake(self.typename)}_COUNT"


@dataclass(frozen=True)
class FamilySpec:
    name: str
    arities: Tuple[int, ...]


@dataclass
class HeaderSpec:
    name: str
    description: str
    revision: Any
    header_guard: str
    enums: List[EnumSpec] = field(default_factory=list)
    families: List[FamilySpec] = field(default_factory=list)
    binary_prefix: str = DEFAULT_PREFIX
    binary_delimiter: str = DEFAULT_DELIMITER

    def family_arities(self) -> Dict[str, Tuple[int, ...]]:
        return {f.name: f.arities for f in self.families}


def _upper_snake(name: str) -> str:
    s = re.sub(r"(?<=[a-z0-9])([A-Z])", r"_\1", name)
    return s.upper()


def _c_string(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")
    return f'"{escaped}"'


def _md_escape(text: str) -> str:
    return str(text).replace("|", "\\|")


def _require_keys(obj: Dict[str, Any], keys: Sequence[str], *, where: str) -> None:
    missing = [k for k in keys if k not in obj]
    if missing:
        raise SpecError(f"{where}: missing required keys: {', '.join(missing)}")


def _expect_type(value: Any, expected: type, *, where: str) -> None:
    if not isinstance(value, expected):
        raise SpecError(f"{where}: expected {expected.__name__}, got {type(value).__name__}")


def _expect_ident(value: Any, *, where: str) -> str:
    if not isinstance(value, str) or not _RE_IDENT.fullmatch(value):
        raise SpecError(f"{where}: expected C identifier, got {value!r}")
    return value


def _write_text_unix(path: Path, text: str) -> None:
    path.write_bytes(text.encode("utf-8"))


def generation_timestamp() -> str:
    env = os.getenv("SOURCE_DATE_EPOCH")
    if env is not None:
        try:
            ts = datetime.fromtimestamp(int(env), tz=timezone.utc)
        except (ValueError, OverflowError):
            ts = datetime.now(timezone.utc)
    else:
        ts = datetime.now(timezone.utc)
    return ts.strftime("%Y-%m-%dT%H:%M:%SZ")


def build_gen_info(spec: HeaderSpec) -> Dict[str, str]:
    return {
        "timestamp": generation_timestamp(),
        "spec_summary": f"{spec.name}:{spec.revision}",
    }


def _validate_enums(raw: Any, *, where: str) -> List[EnumSpec]:
    _expect_type(raw, list, where=f"{where}:enums")
    out: List[EnumSpec] = []
    seen_types = set()
    seen_constants: Dict[str, str] = {}
    for entry in raw:
        _expect_type(entry, dict, where=f"{where}:enums[]")
        _require_keys(entry, ["name", "members"], where=f"{where}:enums[]")
        typename = _expect_ident(entry["name"], where=f"{where}:enums[].name")
        ewhere = f"{where}:{typename}"
        if typename in seen_types:
            raise SpecError(f"{where}: duplicate enum {typename}")
        seen_types.add(typename)

        prefix = entry.get("prefix", "")
        _expect_type(prefix, str, where=f"{ewhere}:prefix")
        members = entry["members"]
        _expect_type(members, list, where=f"{ewhere}:members")
        # Names are checked as authored, before prefixing.
        lst = canonical_list(members, where=ewhere)
        table = build_enum_table(typename, lst.expand(lambda n: prefix + n.text))

        for rec in table.records:
            owner = seen_constants.get(rec.symbol)
            if owner is not None:
                raise SpecError(f"{ewhere}: constant {rec.symbol} already defined by enum {owner}")
            seen_constants[rec.symbol] = typename
        out.append(EnumSpec(typename, prefix, table))
    return out


def _validate_dispatch(raw: Any, *, where: str) -> List[FamilySpec]:
    _expect_type(raw, list, where=f"{where}:dispatch")
    out: List[FamilySpec] = []
    seen = set()
    for entry in raw:
        _expect_type(entry, dict, where=f"{where}:dispatch[]")
        _require_keys(entry, ["name", "arities"], where=f"{where}:dispatch[]")
        name = _expect_ident(entry["name"], where=f"{where}:dispatch[].name")
        if name in seen:
            raise SpecError(f"{where}: duplicate dispatch family {name}")
        seen.add(name)
        arities = entry["arities"]
        if isinstance(arities, int):
            arities = [arities]
        _expect_type(arities, list, where=f"{where}:{name}:arities")
        if not arities:
            raise SpecError(f"{where}:{name}: at least one arity is required")
        used = set()
        for k in arities:
            if not isinstance(k, int) or isinstance(k, bool) or k < MIN_ARITY or k > MAX_ARITY:
                raise SpecError(f"{where}:{name}: arity must be {MIN_ARITY}..{MAX_ARITY}, got {k!r}")
            if k in used:
                raise SpecError(f"{where}:{name}: duplicate arity {k}")
            used.add(k)
        out.append(FamilySpec(name, tuple(sorted(used))))
    return out


def validate_spec(data: Dict[str, Any], *, source: str = "<spec>") -> HeaderSpec:
    _require_keys(data, ["spec_version", "name", "description", "revision"], where=source)
    if str(data["spec_version"]) != SPEC_VERSION:
        raise SpecError(f"{source}: spec_version must be {SPEC_VERSION}")
    name = _expect_ident(data["name"], where=f"{source}:name")
    guard = data.get("header_guard", f"{_upper_snake(name)}_HEADER_INCLUDE_GUARD")
    _expect_ident(guard, where=f"{source}:header_guard")

    spec = HeaderSpec(
        name=name,
        description=str(data["description"]),
        revision=data["revision"],
        header_guard=guard,
    )
    if "enums" in data:
        spec.enums = _validate_enums(data["enums"], where=source)
    if "dispatch" in data:
        spec.families = _validate_dispatch(data["dispatch"], where=source)

    enum_names = {e.typename for e in spec.enums}
    for fam in spec.families:
        if fam.name in enum_names:
            raise SpecError(f"{source}: {fam.name} is both an enum and a dispatch family")

    fmt = data.get("binary_format", {})
    _expect_type(fmt, dict, where=f"{source}:binary_format")
    spec.binary_prefix = fmt.get("prefix", DEFAULT_PREFIX)
    spec.binary_delimiter = fmt.get("delimiter", DEFAULT_DELIMITER)
    # Rejects non-string or '%'-bearing literals.
    binary_pattern(WIDTHS[0], spec.binary_prefix, spec.binary_delimiter)
    return spec


def load_spec(path: Path) -> HeaderSpec:
    if not path.exists():
        raise SpecError(f"Missing spec file: {path.as_posix()}")
    source = path.as_posix()
    data = parse_yaml_subset(path.read_text(encoding="utf-8"), source=source)
    return validate_spec(data, source=source)


def _emit_enum(out: List[str], e: EnumSpec) -> None:
    out.append(f"/* {e.typename}: {len(e.table)} entries */")
    out.append("typedef enum {")
    for rec in e.table.records:
        out.append(f"    {rec.symbol} = {rec.ordinal},")
    out.append(f"}} {e.typename};")
    out.append(f"#define {e.count_name} ({len(e.table)}u)")
    out.append(f"static const String {e.array_name}[] = {{")
    for rec in e.table.records:
        lit = _c_string(rec.entry.text)
        out.append(f"    {{ {lit}, sizeof({lit}) }},")
    out.append("};")
    out.append(
        f"extern int {e.array_name}_ALIGNED"
        f"[(sizeof({e.array_name}) / sizeof(*({e.array_name}))) == {e.count_name} ? 1 : -1];"
    )
    out.append("")


def _emit_arg_count(out: List[str]) -> None:
    params = ", ".join(f"_{i}" for i in range(1, ARG_SLOTS + 1))
    sentinels = [ARITY_EXCEEDED] * (ARG_SLOTS - MAX_ARITY) + [str(i) for i in range(MAX_ARITY, -1, -1)]
    numbers = ", ".join(sentinels)
    out.append(f"/* Argument counting, {MIN_ARITY}..{MAX_ARITY} arguments. */")
    out.append(
        f"/* {MAX_ARITY + 1}..{ARG_SLOTS} arguments paste to f{ARITY_EXCEEDED}, which is never defined. */"
    )
    out.append(f"#define PREAMBLE_ARG_N({params}, N, ...) N")
    out.append(f"#define PREAMBLE_ARG_COUNT(...) PREAMBLE_ARG_N(__VA_ARGS__, {numbers})")
    out.append("#define PREAMBLE_CONCAT_HELP(x, y) x ## y")
    out.append("#define PREAMBLE_CONCAT(x, y) PREAMBLE_CONCAT_HELP(x, y)")
    out.append(
        "#define PREAMBLE_WITH_DEFAULTS(f, ...) "
        "PREAMBLE_CONCAT(f, PREAMBLE_ARG_COUNT(__VA_ARGS__))(__VA_ARGS__)"
    )
    out.append("")


def _bit_chars_macro(width: int) -> str:
    parts = [
        f"((((uint{width}_t)(x) >> {bit}) & 1u) ? '1' : '0')" for bit in range(width - 1, -1, -1)
    ]
    return f"#define BYTE_TO_BINARY_CHARS_{width}(x) " + ", ".join(parts)


def emit_c_header(spec: HeaderSpec, gen_info: Dict[str, str]) -> str:
    out: List[str] = []
    out.append("/* GENERATED FILE - DO NOT EDIT. */")
    out.append(f"/* Spec: {gen_info['spec_summary']} */")
    out.append(f"/* Generated: {gen_info['timestamp']} */")
    out.append(f"/* Source: {GENERATOR} */")
    out.append(f"#ifndef {spec.header_guard}")
    out.append(f"#define {spec.header_guard}")
    out.append("")
    out.append("#include <stddef.h>  /* size_t */")
    out.append("#include <stdint.h>  /* uint8_t..uint64_t */")
    out.append("")

    if spec.enums:
        out.append("#ifndef PREAMBLE_STRING_DEFINED")
        out.append("#define PREAMBLE_STRING_DEFINED")
        out.append("typedef struct String { const char *data; size_t length; } String;")
        out.append("#endif")
        out.append("")
        for e in spec.enums:
            _emit_enum(out, e)

    _emit_arg_count(out)
    for fam in spec.families:
        impls = ", ".join(f"{fam.name}{k}" for k in fam.arities)
        out.append(f"/* {fam.name}: defined arities {', '.join(str(k) for k in fam.arities)} ({impls}) */")
        out.append(f"#define {fam.name}(...) PREAMBLE_WITH_DEFAULTS({fam.name}, __VA_ARGS__)")
    if spec.families:
        out.append("")

    out.append("/* Binary formatting: printf(BINARY_FORMAT_PATTERN_N, BYTE_TO_BINARY_CHARS_N(x)) */")
    for width in WIDTHS:
        pattern = binary_pattern(width, spec.binary_prefix, spec.binary_delimiter)
        out.append(f"#define BINARY_FORMAT_PATTERN_{width} {_c_string(pattern)}")
    for width in WIDTHS:
        out.append(_bit_chars_macro(width))
    out.append("")
    out.append(f"#endif  /* {spec.header_guard} */")
    return "\n".join(out)


def emit_markdown(spec: HeaderSpec, gen_info: Dict[str, str]) -> str:
    out: List[str] = []
    out.append(f"# {spec.name}")
    out.append("")
    out.append(_md_escape(spec.description))
    out.append("")
    out.append(f"_Spec: {gen_info['spec_summary']}_")
    out.append("")
    out.append(f"_Generated: {gen_info['timestamp']}_")
    out.append("")

    for e in spec.enums:
        out.append(f"## Enum `{e.typename}`")
        out.append("")
        out.append("| Ordinal | Constant | Name | Length |")
        out.append("|---:|---|---|---:|")
        for rec in e.table.records:
            out.append(f"| {rec.ordinal} | `{rec.symbol}` | {_md_escape(rec.entry.text)} | {rec.entry.length} |")
        out.append("")

    if spec.families:
        out.append("## Dispatch families")
        out.append("")
        out.append("| Family | Arities | Implementations |")
        out.append("|---|---|---|")
        for fam in spec.families:
            impls = ", ".join(f"`{fam.name}{k}`" for k in fam.arities)
            out.append(f"| `{fam.name}` | {', '.join(str(k) for k in fam.arities)} | {impls} |")
        out.append("")

    out.append("## Binary format patterns")
    out.append("")
    out.append("| Width | Pattern |")
    out.append("|---:|---|")
    for width in WIDTHS:
        pattern = binary_pattern(width, spec.binary_prefix, spec.binary_delimiter)
        out.append(f"| {width} | `{_md_escape(pattern)}` |")
    out.append("")
    out.append(f"Each pattern holds {BYTE_BITS} placeholders per byte, most-significant byte first.")
    return "\n".join(out)


def render_outputs(spec: HeaderSpec, gen_info: Dict[str, str]) -> Dict[str, str]:
    return {
        f"{spec.name}.h": emit_c_header(spec, gen_info) + "\n",
        f"{spec.name}.md": emit_markdown(spec, gen_info) + "\n",
    }


def generate(spec_path: Path, out_dir: Path) -> List[Path]:
    spec = load_spec(spec_path)
    outputs = render_outputs(spec, build_gen_info(spec))
    out_dir.mkdir(parents=True, exist_ok=True)
    written = []
    for filename, text in outputs.items():
        path = out_dir / filename
        _write_text_unix(path, text)
        written.append(path)
    return written


def _stable_lines(text: str) -> List[str]:
    return [line for line in text.splitlines() if not line.startswith(_VOLATILE_PREFIXES)]


def check(spec_path: Path, out_dir: Path) -> List[Tuple[str, Path]]:
    """Compare generated outputs with ``out_dir``; returns (status, path) for each mismatch."""
    spec = load_spec(spec_path)
    outputs = render_outputs(spec, build_gen_info(spec))
    problems: List[Tuple[str, Path]] = []
    for filename, text in outputs.items():
        path = out_dir / filename
        if not path.exists():
            problems.append(("missing", path))
            continue
        if _stable_lines(path.read_text(encoding="utf-8")) != _stable_lines(text):
            problems.append(("stale", path))
    return problems
