"""Line/column locations inside a source buffer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from codewalk.core.state import Source


@dataclass(frozen=True)
class Location:
    """A 1-based line/column plus the absolute offset in the outermost document."""

    line: int
    column: int
    offset: int
    source: Source | None = None


def is_line_break_at(data: str, index: int) -> bool:
    """True for a ``\\n`` at *index* that is not escaped by a preceding backslash."""
    return data[index] == "\n" and (index == 0 or data[index - 1] != "\\")


def locate(
    data: str,
    offset: int,
    *,
    source: Source | None = None,
    line: int = 1,
    column: int = 1,
    base: int = 0,
) -> Location:
    """Compute the location of *offset* by scanning *data* from the start.

    *line*/*column* are the position of ``data[0]`` and *base* its absolute
    offset. Escaped newlines do not start a new line, matching the cursor's
    own bookkeeping.
    """
    if offset < 0 or offset > len(data):
        raise ValueError(f"Offset {offset} out of range 0..{len(data)}")
    sol = 0
    index = data.find("\n", 0, offset)
    while index != -1:
        if index == 0 or data[index - 1] != "\\":
            line += 1
            sol = index + 1
        index = data.find("\n", index + 1, offset)
    column = offset - sol + (column if sol == 0 else 1)
    return Location(line, column, base + offset, source)


def advance_location(loc: Location, num: int = 1) -> Location:
    """Return a copy of *loc* moved forward *num* characters through its source."""
    if num < 1:
        raise ValueError(f"Cannot advance location by {num}, must be at least 1.")
    if loc.source is None:
        raise ValueError("Cannot advance a location without a source")
    data = loc.source.data
    line, col, pos = loc.line, loc.column, loc.offset
    while num and pos < len(data):
        if is_line_break_at(data, pos):
            line += 1
            col = 1
        else:
            col += 1
        pos += 1
        num -= 1
    return Location(line, col, pos, loc.source)


def retreat_location(loc: Location, num: int = 1) -> Location:
    """Return a copy of *loc* moved backward *num* characters through its source."""
    if num < 1:
        raise ValueError(f"Cannot retreat location by {num}, must be at least 1.")
    if loc.source is None:
        raise ValueError("Cannot retreat a location without a source")
    data = loc.source.data
    line, col, pos = loc.line, loc.column, loc.offset
    while num and pos > 0:
        pos -= 1
        num -= 1
        if is_line_break_at(data, pos):
            line -= 1
            # Column is the distance from the previous real line break.
            prev = pos - 1
            while prev >= 0 and not is_line_break_at(data, prev):
                prev -= 1
            col = pos - prev
        else:
            col -= 1
    return Location(line, col, pos, loc.source)


__all__ = [
    "Location",
    "advance_location",
    "is_line_break_at",
    "locate",
    "retreat_location",
]
