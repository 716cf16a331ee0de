"""
Paired generation of an ordinal enum and its name table from one canonical list.

Both artifacts are derived from the same tuple of ``EnumRecord`` rows, built in a
single pass over the list, so inserting, removing or reordering a name updates
the enum and the name table together.

    COLORS = build_enum_table("Color", ["RED", "GREEN", "BLUE"])
    COLORS.enum.GREEN        # <Color.GREEN: 1>
    COLORS.names[1]          # NameTableEntry(text='GREEN', length=6)
    COLORS.name_of(2)        # 'BLUE'
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Iterator, Tuple, Type, TypeVar, Union

from .errors import DuplicateNameError, InvalidNameError, SpecError

T = TypeVar("T")

_RE_IDENT = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


def _is_reserved(text: str) -> bool:
    # _sunder_ and __dunder__ names are not turned into enum members.
    return len(text) > 2 and text.startswith("_") and text.endswith("_")


@dataclass(frozen=True)
class Name:
    text: str

    @property
    def size(self) -> int:
        return len(self.text)

    @property
    def length(self) -> int:
        # sizeof("NAME") in C: characters plus the terminating NUL.
        return len(self.text.encode("utf-8")) + 1

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True)
class EnumMember:
    name: Name
    ordinal: int


@dataclass(frozen=True)
class NameTableEntry:
    text: str
    length: int


@dataclass(frozen=True)
class EnumRecord:
    symbol: str
    entry: NameTableEntry
    ordinal: int


class CanonicalList:
    """Ordered, duplicate-free, immutable list of symbolic names."""

    __slots__ = ("_names", "_index", "where")

    def __init__(self, names: Iterable[Union[str, Name]], *, where: str = "canonical list") -> None:
        index: Dict[str, int] = {}
        items = []
        for position, raw in enumerate(names):
            text = raw.text if isinstance(raw, Name) else raw
            if not isinstance(text, str) or not _RE_IDENT.fullmatch(text):
                raise InvalidNameError(str(text), where=where)
            if _is_reserved(text):
                raise InvalidNameError(text, where=where)
            if text in index:
                raise DuplicateNameError(text, index[text], position, where=where)
            index[text] = position
            items.append(Name(text))
        if not items:
            raise SpecError(f"{where}: must contain at least one name")
        self._names: Tuple[Name, ...] = tuple(items)
        self._index = index
        self.where = where

    def __len__(self) -> int:
        return len(self._names)

    def __iter__(self) -> Iterator[Name]:
        return iter(self._names)

    def __getitem__(self, i: int) -> Name:
        return self._names[i]

    def __contains__(self, text: object) -> bool:
        return text in self._index

    def __repr__(self) -> str:
        return f"CanonicalList({[n.text for n in self._names]!r})"

    def index(self, text: str) -> int:
        if text not in self._index:
            raise KeyError(text)
        return self._index[text]

    def expand(self, fn: Callable[[Name], T]) -> Tuple[T, ...]:
        """Apply a per-entry generator to every name, in list order."""
        return tuple(fn(name) for name in self._names)


def canonical_list(names: Iterable[Union[str, Name]], *, where: str = "canonical list") -> CanonicalList:
    if isinstance(names, CanonicalList):
        return names
    return CanonicalList(names, where=where)


def generate_records(lst: CanonicalList) -> Tuple[EnumRecord, ...]:
    return tuple(
        EnumRecord(name.text, NameTableEntry(name.text, name.length), ordinal)
        for ordinal, name in enumerate(lst)
    )


def generate_members(lst: CanonicalList) -> Tuple[EnumMember, ...]:
    return tuple(EnumMember(name, ordinal) for ordinal, name in enumerate(lst))


def generate_name_table(lst: CanonicalList) -> Tuple[NameTableEntry, ...]:
    return tuple(r.entry for r in generate_records(lst))


def _enum_from_records(typename: str, records: Tuple[EnumRecord, ...]) -> Type[enum.IntEnum]:
    try:
        cls = enum.IntEnum(typename, [(r.symbol, r.ordinal) for r in records])
    except (TypeError, ValueError) as exc:
        raise SpecError(f"{typename}: {exc}") from exc
    if len(cls.__members__) != len(records):
        raise SpecError(f"{typename}: {len(records)} names produced {len(cls.__members__)} enum members")
    return cls


def generate_enum(typename: str, lst: CanonicalList) -> Type[enum.IntEnum]:
    return _enum_from_records(typename, generate_records(lst))


class EnumTable:
    """An enum type and its index-aligned name table, built from shared records."""

    def __init__(self, typename: str, lst: CanonicalList) -> None:
        self.typename = typename
        self.canonical = lst
        self.records = generate_records(lst)
        self.enum = _enum_from_records(typename, self.records)
        self.names = tuple(r.entry for r in self.records)

    def __len__(self) -> int:
        return len(self.records)

    def name_of(self, member: Union[int, enum.IntEnum]) -> str:
        ordinal = int(member)
        if ordinal < 0 or ordinal >= len(self.names):
            raise IndexError(f"{self.typename}: ordinal {ordinal} out of range")
        return self.names[ordinal].text

    def lookup(self, text: str) -> enum.IntEnum:
        try:
            return self.enum[text]
        except KeyError:
            raise KeyError(f"{self.typename}: unknown name {text!r}") from None


def build_enum_table(typename: str, names: Iterable[Union[str, Name]]) -> EnumTable:
    if not _RE_IDENT.fullmatch(typename):
        raise InvalidNameError(typename, where="enum type name")
    return EnumTable(typename, canonical_list(names, where=typename))
