from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


class SpecError(Exception):
    pass


class InvalidNameError(SpecError):
    def __init__(self, symbol: str, *, where: str = "canonical list") -> None:
        super().__init__(f"{where}: invalid identifier {symbol!r}")
        self.symbol = symbol


class DuplicateNameError(SpecError):
    def __init__(self, symbol: str, first: int, index: int, *, where: str = "canonical list") -> None:
        super().__init__(
            f"{where}: redefinition of {symbol!r} at position {index} (first defined at {first})"
        )
        self.symbol = symbol
        self.first = first
        self.index = index


class ArityError(SpecError):
    def __init__(self, family: str, arity: Optional[int], reason: str, *, where: Optional[str] = None) -> None:
        label = family if arity is None else f"{family}{arity}"
        message = f"{label}: {reason}"
        super().__init__(f"{where}: {message}" if where else message)
        self.family = family
        self.arity = arity


class WidthError(SpecError):
    def __init__(self, width: object) -> None:
        super().__init__(f"unsupported binary format width {width!r} (expected 8, 16, 32 or 64)")
        self.width = width


@dataclass(frozen=True)
class CallSiteError:
    """A call site whose arity cannot be resolved against its family."""

    filename: str
    line: int
    family: str
    arity: Optional[int]
    reason: str

    def __str__(self) -> str:
        label = self.family if self.arity is None else f"{self.family}{self.arity}"
        return f"{self.filename}:{self.line}: {label}: {self.reason}"
