# linker/region.py
"""
Locate one declaration inside a linker-script MEMORY block:

    NAME (attr) : ORIGIN = expr, LENGTH = expr

The scan tries every start position in turn. A declaration of another
region, or text that does not parse, just moves the scan forward. A
declaration with the wanted name that lacks ORIGIN or LENGTH stops it.
"""

from __future__ import annotations

import string
from dataclasses import dataclass
from typing import Iterator, Optional, Tuple

from ..errors import MissingLength, MissingOrigin, RegionNotFound
from .expr import BLANKS, match_expression

IDENT_CHARS = frozenset(string.ascii_letters + string.digits + "_")

# GNU ld accepts the abbreviations as well
ORIGIN_KEYS = frozenset({"ORIGIN", "org", "o"})
LENGTH_KEYS = frozenset({"LENGTH", "len", "l"})


@dataclass(frozen=True)
class MemoryRegion:
    name: str
    attributes: Optional[str]
    origin: int
    length: int

    @property
    def end(self) -> int:
        return self.origin + self.length


@dataclass(frozen=True)
class RegionMatch:
    """A located declaration; before + declaration + after is the scanned text."""

    before: str
    declaration: str
    after: str
    region: MemoryRegion
    # span of the LENGTH expression inside `declaration`
    length_span: Tuple[int, int]


@dataclass(frozen=True)
class _Field:
    key: str
    value: int
    start: int
    end: int


@dataclass(frozen=True)
class _Declaration:
    name: str
    attributes: Optional[str]
    fields: Tuple[_Field, ...]
    start: int
    end: int


def _skip_gap(text: str, pos: int, breaks: bool = False) -> int:
    """Skip blanks and /* */ comments; line breaks only when `breaks` is set."""
    while pos < len(text):
        if text[pos] in BLANKS or (breaks and text[pos] in "\r\n"):
            pos += 1
        elif text.startswith("/*", pos):
            close = text.find("*/", pos + 2)
            if close < 0:
                return pos
            pos = close + 2
        else:
            break
    return pos


def _ident_end(text: str, pos: int) -> int:
    end = pos
    while end < len(text) and text[end] in IDENT_CHARS:
        end += 1
    return end


def _at_boundary(text: str, pos: int) -> bool:
    return pos == 0 or text[pos - 1] not in IDENT_CHARS


def _field(text: str, pos: int) -> Optional[Tuple[_Field, int]]:
    # a field may start on the line after ':' or ','
    pos = _skip_gap(text, pos, breaks=True)
    key_end = _ident_end(text, pos)
    if key_end == pos:
        return None
    key = text[pos:key_end]
    pos = _skip_gap(text, key_end)
    if not text.startswith("=", pos):
        return None
    pos = _skip_gap(text, pos + 1)
    m = match_expression(text, pos)
    if m is None:
        return None
    value, end = m
    return _Field(key, value, pos, end), end


def _name_at(text: str, pos: int) -> Optional[str]:
    if not _at_boundary(text, pos):
        return None
    end = _ident_end(text, pos)
    if end == pos:
        return None
    return text[pos:end]


def _declaration(text: str, start: int) -> Optional[_Declaration]:
    name = _name_at(text, start)
    if name is None:
        return None
    pos = _skip_gap(text, start + len(name))
    attributes = None
    if text.startswith("(", pos):
        close = text.find(")", pos + 1)
        if close < 0:
            return None
        attributes = text[pos + 1:close]
        pos = _skip_gap(text, close + 1)
    if not text.startswith(":", pos):
        return None

    first = _field(text, pos + 1)
    if first is None:
        return None
    field, pos = first
    fields = [field]
    while True:
        comma = _skip_gap(text, pos)
        if not text.startswith(",", comma):
            break
        nxt = _field(text, comma + 1)
        if nxt is None:
            break
        field, pos = nxt
        fields.append(field)
    return _Declaration(name, attributes, tuple(fields), start, pos)


def _last(fields: Tuple[_Field, ...], keys: frozenset) -> Optional[_Field]:
    found = None
    for f in fields:
        if f.key in keys:
            found = f
    return found


def _line_of(text: str, pos: int) -> int:
    return text.count("\n", 0, pos) + 1


def _start_positions(text: str) -> Iterator[int]:
    """Every offset outside /* */ comments."""
    pos = 0
    while pos < len(text):
        if text.startswith("/*", pos):
            close = text.find("*/", pos + 2)
            if close < 0:
                return
            pos = close + 2
            continue
        yield pos
        pos += 1


def find_memory_region(text: str, name: str) -> RegionMatch:
    """Find the declaration of region `name` in linker-script `text`."""
    for pos in _start_positions(text):
        if _name_at(text, pos) != name:
            continue
        decl = _declaration(text, pos)
        if decl is None:
            continue

        origin = _last(decl.fields, ORIGIN_KEYS)
        if origin is None:
            raise MissingOrigin(
                f"memory region {name!r} on line {_line_of(text, pos)} has no ORIGIN"
            )
        length = _last(decl.fields, LENGTH_KEYS)
        if length is None:
            raise MissingLength(
                f"memory region {name!r} on line {_line_of(text, pos)} has no LENGTH"
            )

        region = MemoryRegion(name, decl.attributes, origin.value, length.value)
        return RegionMatch(
            before=text[:decl.start],
            declaration=text[decl.start:decl.end],
            after=text[decl.end:],
            region=region,
            length_span=(length.start - decl.start, length.end - decl.start),
        )
    raise RegionNotFound(f"memory region {name!r} not found")


def iter_memory_regions(text: str) -> Iterator[MemoryRegion]:
    """Yield every complete region declaration in `text`, in order."""
    resume = 0
    for pos in _start_positions(text):
        if pos < resume:
            continue
        decl = _declaration(text, pos)
        if decl is None:
            continue
        origin = _last(decl.fields, ORIGIN_KEYS)
        length = _last(decl.fields, LENGTH_KEYS)
        if origin is not None and length is not None:
            yield MemoryRegion(decl.name, decl.attributes, origin.value, length.value)
            resume = decl.end
