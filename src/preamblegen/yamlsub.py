from __future__ import annotations

import re
from typing import Any, Dict, List, Optional, Tuple, Union

from .errors import SpecError

Container = Union[Dict[str, Any], List[Any]]

_RE_INT = re.compile(r"^-?\d+$")
_RE_HEX = re.compile(r"^0x[0-9a-fA-F]+$")
_RE_BIN = re.compile(r"^0b[01]+$")


def _significant_lines(text: str, source: str) -> List[Tuple[int, int, str]]:
    out: List[Tuple[int, int, str]] = []
    for lineno, raw in enumerate(text.splitlines(), start=1):
        line = raw.rstrip("\r\n")
        stripped = line.strip()
        if stripped == "" or stripped.startswith("#"):
            continue
        if "\t" in line[: len(line) - len(line.lstrip())]:
            raise SpecError(f"{source}:{lineno}: tabs are not allowed in indentation")
        indent = len(line) - len(line.lstrip(" "))
        if indent % 2 != 0:
            raise SpecError(f"{source}:{lineno}: indentation must be multiple of 2 spaces")
        out.append((lineno, indent, stripped))
    return out


def _split_flow(inner: str) -> List[str]:
    parts: List[str] = []
    buf: List[str] = []
    quote: Optional[str] = None
    for ch in inner:
        if quote is not None:
            buf.append(ch)
            if ch == quote:
                quote = None
        elif ch in "'\"":
            quote = ch
            buf.append(ch)
        elif ch == ",":
            parts.append("".join(buf).strip())
            buf = []
        else:
            buf.append(ch)
    parts.append("".join(buf).strip())
    return [p for p in parts if p != ""]


def parse_scalar(text: str) -> Any:
    s = text.strip()
    if s == "":
        return ""
    if len(s) >= 2 and s[0] == s[-1] and s[0] in "'\"":
        return s[1:-1]
    lower = s.lower()
    if lower == "true":
        return True
    if lower == "false":
        return False
    if s.startswith("[") and s.endswith("]"):
        return [parse_scalar(p) for p in _split_flow(s[1:-1])]
    if _RE_HEX.match(s):
        return int(s, 16)
    if _RE_BIN.match(s):
        return int(s, 2)
    if _RE_INT.match(s):
        return int(s, 10)
    return s


def _split_key(content: str, where: str) -> Tuple[str, Optional[str]]:
    if ":" not in content:
        raise SpecError(f"{where}: invalid mapping line (missing ':'): {content!r}")
    key, rest = content.split(":", 1)
    key = key.strip()
    if key == "":
        raise SpecError(f"{where}: invalid mapping line (empty key): {content!r}")
    rest = rest.strip()
    return key, (rest if rest != "" else None)


def parse_yaml_subset(text: str, *, source: str = "<string>") -> Dict[str, Any]:
    """Parse the small YAML dialect used by generator spec files.

    Supported: nested mappings, block lists (of scalars, mappings or lists),
    flow lists, quoted strings, booleans, decimal/hex/binary integers and
    whole-line ``#`` comments. Indentation is two spaces per level.
    """
    lines = _significant_lines(text, source)
    root: Dict[str, Any] = {}
    stack: List[Tuple[int, Container]] = [(0, root)]

    def open_block(pos: int, indent: int, where: str) -> Container:
        if pos + 1 >= len(lines) or lines[pos + 1][1] <= indent:
            raise SpecError(f"{where}: missing nested block")
        child: Container = [] if lines[pos + 1][2].startswith("-") else {}
        stack.append((lines[pos + 1][1], child))
        return child

    for pos, (lineno, indent, content) in enumerate(lines):
        where = f"{source}:{lineno}"
        while stack[-1][0] > indent:
            stack.pop()
        if stack[-1][0] != indent:
            raise SpecError(f"{where}: bad indentation at indent={indent}")
        container = stack[-1][1]

        if content == "-" or content.startswith("- "):
            if not isinstance(container, list):
                raise SpecError(f"{where}: list item in non-list context")
            item = content[1:].strip()
            if item == "":
                container.append(open_block(pos, indent, where))
            elif ":" in item and not item.startswith(("'", '"', "[")):
                key, rest = _split_key(item, where)
                entry: Dict[str, Any] = {}
                container.append(entry)
                stack.append((indent + 2, entry))
                if rest is None:
                    entry[key] = open_block(pos, indent + 2, where)
                else:
                    entry[key] = parse_scalar(rest)
            else:
                container.append(parse_scalar(item))
            continue

        if not isinstance(container, dict):
            raise SpecError(f"{where}: mapping entry in non-dict context")
        key, rest = _split_key(content, where)
        if key in container:
            raise SpecError(f"{where}: duplicate key {key!r}")
        if rest is None:
            container[key] = open_block(pos, indent, f"{where}: key {key!r}")
        else:
            container[key] = parse_scalar(rest)

    return root
