"""Mutable cursor state and the context-tracking advancement algorithm.

The state only ever reads from its ``Source`` buffers. Copies share the
buffers and duplicate everything else, so a snapshot costs O(1) in the
size of the document.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from codewalk.core.context import (
    CODE,
    Code,
    Context,
    InComment,
    InRegex,
    InString,
    copy_context,
)
from codewalk.core.enums import CommentKind
from codewalk.core.languages import LexicalOptions
from codewalk.core.location import Location, locate

_INLINE_WHITESPACE = (" ", "\t")


class InvalidSourceError(TypeError):
    """Raised when an iterator or state is built from unusable input."""


@dataclass(frozen=True)
class Source:
    """Immutable text buffer; ``path`` is informational only."""

    data: str
    path: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.data, str):
            raise InvalidSourceError(
                f"Source data must be a string, got: {type(self.data).__name__}"
            )

    def __len__(self) -> int:
        return len(self.data)


@dataclass
class Depth:
    parentheses: int = 0
    brackets: int = 0
    braces: int = 0
    angle_brackets: int = 0

    def track(self, c: str) -> None:
        match c:
            case "(":
                self.parentheses += 1
            case ")":
                self.parentheses -= 1
            case "[":
                self.brackets += 1
            case "]":
                self.brackets -= 1
            case "{":
                self.braces += 1
            case "}":
                self.braces -= 1
            case "<":
                self.angle_brackets += 1
            case ">":
                self.angle_brackets -= 1

    def copy(self) -> Depth:
        return Depth(self.parentheses, self.brackets, self.braces, self.angle_brackets)

    @property
    def is_balanced(self) -> bool:
        return not (self.parentheses or self.brackets or self.braces or self.angle_brackets)


@dataclass(eq=False)
class State:
    """Cursor over ``source``; positions are also resolvable in ``abs_source``.

    ``abs_source`` is the containing document when the state iterates an
    excerpt, and ``nested_offset`` is where that excerpt starts in it.
    Without a containing document, ``abs_source`` is the local buffer and
    ``origin`` holds the declared position of its first character.
    """

    source: Source
    abs_source: Source
    length: int
    offset: int = 0
    nested_offset: int = 0
    line: int = 1
    col: int = 1
    at_start_of_line: bool = True
    context: Context = CODE
    depth: Depth = field(default_factory=Depth)
    origin: Location | None = None

    @classmethod
    def create(
        cls,
        source: Source | str,
        *,
        abs_source: Source | None = None,
        end: int | None = None,
        offset: int = 0,
        nested_offset: int = 0,
        line: int = 1,
        col: int = 1,
        at_start_of_line: bool = True,
        context: Context | None = None,
        depth: Depth | Mapping | None = None,
        origin: Location | None = None,
    ) -> State:
        if isinstance(source, str):
            source = Source(source)
        if not isinstance(source, Source):
            raise InvalidSourceError(
                f"Expected Source or str, got: {type(source).__name__}"
            )
        length = len(source.data) if end is None else end
        if length < 0 or length > len(source.data):
            raise ValueError(f"End index {end} out of range 0..{len(source.data)}")
        if offset < 0 or offset > length:
            raise ValueError(f"Offset {offset} out of range 0..{length}")
        if line < 1 or col < 1:
            raise ValueError(f"Line and column are 1-based, got {line}:{col}")
        if isinstance(depth, Mapping):
            depth = Depth(**depth)
        if abs_source is None and origin is None and (nested_offset or line != 1 or col != 1):
            origin = _declared_origin(source, offset, nested_offset, line, col)
        return cls(
            source=source,
            abs_source=abs_source or source,
            length=length,
            offset=offset,
            nested_offset=nested_offset,
            line=line,
            col=col,
            at_start_of_line=at_start_of_line,
            context=copy_context(context) if context is not None else CODE,
            depth=depth.copy() if depth is not None else Depth(),
            origin=origin,
        )

    @classmethod
    def from_mapping(cls, raw: Mapping) -> State:
        """Build a state from a state-shaped mapping (``{"source": ..., "line": 3}``)."""
        values = dict(raw)
        if "source" not in values:
            if "data" not in values:
                raise InvalidSourceError("State mapping needs a 'source' or 'data' entry")
            values["source"] = Source(values.pop("data"), values.pop("path", None))
        source = values.pop("source")
        if isinstance(source, Mapping):
            source = Source(source.get("data"), source.get("path"))
        abs_source = values.pop("abs_source", None)
        if isinstance(abs_source, Mapping):
            values["abs_source"] = Source(abs_source.get("data"), abs_source.get("path"))
        elif abs_source is not None:
            values["abs_source"] = abs_source
        try:
            return cls.create(source, **values)
        except TypeError as exc:
            if isinstance(exc, InvalidSourceError):
                raise
            raise InvalidSourceError(f"Invalid state mapping: {exc}") from exc

    # ------------------------------------------------------------------
    # Derived attributes.

    @property
    def is_code(self) -> bool:
        return isinstance(self.context, Code)

    @property
    def in_string(self) -> str | None:
        """The open string delimiter, or None."""
        ctx = self.context
        return ctx.delimiter if isinstance(ctx, InString) else None

    @property
    def in_comment(self) -> InComment | None:
        ctx = self.context
        return ctx if isinstance(ctx, InComment) else None

    @property
    def in_line_comment(self) -> bool:
        ctx = self.context
        return isinstance(ctx, InComment) and ctx.kind == CommentKind.LINE

    @property
    def in_regex(self) -> InRegex | None:
        ctx = self.context
        return ctx if isinstance(ctx, InRegex) else None

    @property
    def abs_offset(self) -> int:
        return self.nested_offset + self.offset

    @property
    def avail(self) -> bool:
        return self.offset < self.length

    @property
    def is_eof(self) -> bool:
        return self.offset >= self.length

    def char_at(self, index: int) -> str | None:
        """Character at local *index*, or None outside ``[0, length)``."""
        if 0 <= index < self.length:
            return self.source.data[index]
        return None

    @property
    def peek(self) -> str | None:
        return self.char_at(self.offset)

    @property
    def next(self) -> str | None:
        return self.char_at(self.offset + 1)

    @property
    def prev(self) -> str | None:
        return self.char_at(self.offset - 1)

    @property
    def is_escaped(self) -> bool:
        return self.prev == "\\"

    def match_prefix(self, s: str, start: int | None = None) -> bool:
        """Does the buffer contain *s* at *start* (default: the cursor)?"""
        return self.source.data.startswith(
            s, self.offset if start is None else start, self.length
        )

    # ------------------------------------------------------------------
    # Advancement.

    def advance(self, options: LexicalOptions | None = None) -> None:
        """Consume one character, updating position, depth and lexical context."""
        offset = self.offset
        if offset >= self.length:
            return
        data = self.source.data
        c = data[offset]
        prev = data[offset - 1] if offset > 0 else None

        if c == "\n" and prev != "\\":
            self.offset += 1
            self.line += 1
            self.col = 1
            self.at_start_of_line = True
            ctx = self.context
            if isinstance(ctx, InComment) and ctx.kind == CommentKind.LINE:
                self.context = CODE
            return

        if self.at_start_of_line and c not in _INLINE_WHITESPACE:
            self.at_start_of_line = False

        ctx = self.context
        if isinstance(ctx, Code):
            self.depth.track(c)

        if options is not None:
            if isinstance(ctx, InString):
                if c == ctx.delimiter and prev != "\\":
                    self.context = CODE
            elif isinstance(ctx, InComment | InRegex):
                if not (isinstance(ctx, InComment) and ctx.kind == CommentKind.LINE):
                    self._match_close(ctx, c, prev)
            else:
                self._detect_open(options, c, prev)

        self.offset += 1
        self.col += 1

    def _match_close(self, ctx: InComment | InRegex, c: str, prev: str | None) -> None:
        close = ctx.close
        if c == close[ctx.progress] and prev != "\\":
            ctx.progress += 1
            if ctx.progress == len(close):
                self.context = CODE
        else:
            # An escaped single-character close must not count as a partial match.
            ctx.progress = 1 if c == close[0] and len(close) > 1 else 0

    def _detect_open(self, options: LexicalOptions, c: str, prev: str | None) -> None:
        if options.string and c in options.string and prev != "\\":
            self.context = InString(c)
            return
        line = options.line_comment
        if line and self.match_prefix(line):
            self.context = InComment(CommentKind.LINE, line)
            return
        for open_seq, close_seq in options.block_comments or ():
            if self._opens(open_seq, c):
                self.context = InComment(CommentKind.BLOCK, open_seq, close_seq)
                return
        for open_seq, close_seq in options.regex or ():
            if self._opens(open_seq, c):
                self.context = InRegex(open_seq, close_seq)
                return

    def _opens(self, open_seq: str, c: str) -> bool:
        if len(open_seq) == 1:
            return c == open_seq
        return self.match_prefix(open_seq)

    # ------------------------------------------------------------------
    # Whole-state operations.

    def copy(self) -> State:
        """Copy every field except the shared ``source``/``abs_source`` buffers."""
        return State(
            source=self.source,
            abs_source=self.abs_source,
            length=self.length,
            offset=self.offset,
            nested_offset=self.nested_offset,
            line=self.line,
            col=self.col,
            at_start_of_line=self.at_start_of_line,
            context=copy_context(self.context),
            depth=self.depth.copy(),
            origin=self.origin,
        )

    def assign(self, other: State) -> None:
        """Adopt all fields of *other* in place, keeping this object's identity."""
        self.source = other.source
        self.abs_source = other.abs_source
        self.length = other.length
        self.offset = other.offset
        self.nested_offset = other.nested_offset
        self.line = other.line
        self.col = other.col
        self.at_start_of_line = other.at_start_of_line
        self.context = copy_context(other.context)
        self.depth = other.depth.copy()
        self.origin = other.origin

    def stop(self) -> None:
        """Move the offset to the end without advancing through the rest."""
        self.offset = self.length

    def locate(self, offset: int) -> Location:
        """Location of a local *offset*, resolved in the absolute document."""
        origin = self.origin
        if origin is None:
            return locate(self.abs_source.data, self.nested_offset + offset, source=self.abs_source)
        return locate(
            self.abs_source.data,
            self.nested_offset + offset - origin.offset,
            line=origin.line,
            column=origin.column,
            base=origin.offset,
        )

    def reset(self) -> None:
        """Rewind to the first character, at its position in the absolute document."""
        loc = self.locate(0)
        self.offset = 0
        self.line = loc.line
        self.col = loc.column
        self.at_start_of_line = True
        self.context = CODE
        self.depth = Depth()


def _declared_origin(
    source: Source, offset: int, nested_offset: int, line: int, col: int
) -> Location:
    """Position of ``source.data[0]`` given the declared position of *offset*."""
    rel = locate(source.data, offset)
    first_col = col - rel.column + 1 if rel.line == 1 else 1
    return Location(max(1, line - rel.line + 1), max(1, first_col), nested_offset)


__all__ = ["Depth", "InvalidSourceError", "Source", "State"]
