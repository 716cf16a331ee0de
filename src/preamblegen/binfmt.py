"""
Binary display patterns for unsigned integers of width 8, 16, 32 or 64.

``printf`` has no binary conversion, so the pattern carries one ``%c`` per bit and
the values supply the matching ``'1'``/``'0'`` characters:

    >>> fmt = binary_format(0xB0, 8)
    >>> fmt.pattern
    '0b%c%c%c%c%c%c%c%c'
    >>> str(fmt)
    '0b10110000'
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from .errors import SpecError, WidthError

WIDTHS = (8, 16, 32, 64)
BYTE_BITS = 8

DEFAULT_PREFIX = "0b"
DEFAULT_DELIMITER = "_"
PLACEHOLDER = "%c"


def _check_width(width: int) -> None:
    if not isinstance(width, int) or isinstance(width, bool) or width not in WIDTHS:
        raise WidthError(width)


def _check_literal(text: str, *, what: str) -> None:
    if not isinstance(text, str):
        raise SpecError(f"binary format {what} must be a string, got {type(text).__name__}")
    if "%" in text:
        raise SpecError(f"binary format {what} must not contain '%': {text!r}")


def binary_pattern(width: int, prefix: str = DEFAULT_PREFIX, delimiter: str = DEFAULT_DELIMITER) -> str:
    _check_width(width)
    _check_literal(prefix, what="prefix")
    _check_literal(delimiter, what="delimiter")
    byte = PLACEHOLDER * BYTE_BITS
    return prefix + delimiter.join(byte for _ in range(width // BYTE_BITS))


def binary_chars(value: int, width: int) -> Tuple[str, ...]:
    _check_width(width)
    v = int(value) & ((1 << width) - 1)
    return tuple("1" if (v >> bit) & 1 else "0" for bit in range(width - 1, -1, -1))


@dataclass(frozen=True)
class BinaryFormat:
    pattern: str
    values: Tuple[str, ...]
    width: int

    def __post_init__(self) -> None:
        if self.pattern.count(PLACEHOLDER) != len(self.values):
            raise SpecError(
                f"binary format pattern has {self.pattern.count(PLACEHOLDER)} placeholders "
                f"but {len(self.values)} values"
            )

    def render(self) -> str:
        return self.pattern % self.values

    def to_int(self) -> int:
        return int("".join(self.values), 2)

    def __str__(self) -> str:
        return self.render()


def binary_format(
    value: int,
    width: int,
    *,
    prefix: str = DEFAULT_PREFIX,
    delimiter: str = DEFAULT_DELIMITER,
) -> BinaryFormat:
    return BinaryFormat(binary_pattern(width, prefix, delimiter), binary_chars(value, width), width)


def format_binary(value: int, width: int = 64, **kwargs: str) -> str:
    return binary_format(value, width, **kwargs).render()
