"""Context-aware source code iterator.

``CodeIterator`` walks a text buffer one character at a time while tracking
whether the cursor is inside a string, comment or regex literal, how deep it
is nested in brackets, and its line/column. Tools build text edits on top of
the offsets and slices it reports without needing a full parser.

Nested iteration: an iterator may run over an excerpt of a larger document
and still report line/column/offset in that document. Use ``sub_iterator()``
or construct with ``abs_source`` and ``nested_offset``.

Example, splitting code into lines while keeping multi-line strings intact::

    it = CodeIterator(text, "ts")
    lines = []
    while it.avail():
        lines.append(it.consume_until(lambda c, _: c == "\\n" and it.state.is_code, True))
        it.advance()
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass

from codewalk.core.context import CODE
from codewalk.core.languages import LexicalOptions, resolve_language
from codewalk.core.location import Location, is_line_break_at
from codewalk.core.state import Depth, InvalidSourceError, Source, State

logger = logging.getLogger(__name__)

_WHITESPACE = (" ", "\t", "\n", "\r")
_INLINE_WHITESPACE = (" ", "\t")
_QUOTES = ('"', "'", "`")

# Marks "use the character under the cursor" in the classification helpers,
# since None already means "no character".
_CURRENT = object()
_INHERIT = object()

CharPredicate = Callable[[str, int], bool]
Visit = Callable[[State, "CodeIterator"], object]


@dataclass
class CodeScan:
    """What ``consume_code_while`` predicates see for each character.

    ``quote`` is the open quote before ``char`` is consumed.
    """

    index: int = -1
    char: str = ""
    prev: str | None = None
    quote: str | None = None
    is_escaped: bool = False


CodePredicate = Callable[[CodeScan], bool]


def _is_variable_char(c: str | None) -> bool:
    return c is not None and (c == "_" or ("a" <= c <= "z") or ("A" <= c <= "Z") or ("0" <= c <= "9"))


class CodeIterator:
    """Stateful cursor over a source buffer.

    *source* may be a ``str``, a ``Source``, an existing ``State`` (copied,
    so resuming never aliases the caller's state) or a state-shaped mapping
    such as ``{"source": src, "nested_offset": 100, "line": 4}``.

    *options* selects the lexical rules: ``LexicalOptions``, a mapping, or a
    preset name like ``"ts"``. Without options the iterator never enters a
    literal context and only tracks position and depth.

    When *callback* is given the constructor walks the whole buffer, calling
    ``callback(state, it)`` per step and advancing one character whenever the
    callback itself did not move the cursor.
    """

    def __init__(
        self,
        source: str | Source | State | Mapping,
        options: LexicalOptions | Mapping | str | None = None,
        callback: Visit | None = None,
        *,
        end: int | None = None,
    ) -> None:
        self.options: LexicalOptions | None = resolve_language(options)
        self.state: State = _build_state(source, end)
        if callback is not None:
            self.walk(callback)

    def __repr__(self) -> str:
        s = self.state
        return (
            f"CodeIterator(offset={s.offset}, line={s.line}, col={s.col}, "
            f"context={s.context!r}, length={s.length})"
        )

    def __iter__(self) -> Iterator[State]:
        """Yield the live state per step, auto-advancing when the consumer did not."""
        state = self.state
        while state.offset < state.length:
            pos = state.offset
            yield state
            if state.offset == pos:
                self.advance()

    # ------------------------------------------------------------------
    # Advancement.

    def advance(self) -> None:
        """Advance a single character, tracking contexts."""
        self.state.advance(self.options)

    def advance_n(self, n: int) -> None:
        for _ in range(n):
            self.advance()

    def advance_to(self, offset: int) -> None:
        """Advance (tracking contexts) until the cursor reaches *offset* or EOF."""
        if offset < self.state.offset:
            raise ValueError(f"Cannot advance to a past position {offset} < {self.state.offset}")
        state = self.state
        while state.offset < offset and state.offset < state.length:
            self.advance()

    def jump_to(self, offset: int, *, line: int | None = None, col: int | None = None) -> None:
        """Reposition the cursor without advancing.

        The lexical context is reset to code and all depth counters to zero.
        Line/column come from the ``line``/``col`` checkpoint when both are
        given, otherwise they are recomputed from the absolute buffer.
        """
        state = self.state
        if offset < 0 or offset > state.length:
            raise ValueError(f"Cannot jump to position {offset}, must be between 0 and {state.length}.")
        state.offset = offset
        state.context = CODE
        state.depth = Depth()
        if line is not None and col is not None:
            state.line, state.col = line, col
        else:
            loc = self.locate(offset)
            logger.debug("Recomputed position for offset %d: %d:%d", offset, loc.line, loc.column)
            state.line, state.col = loc.line, loc.column
        state.at_start_of_line = self._at_start_of_line(offset)

    def _at_start_of_line(self, offset: int) -> bool:
        data = self.state.source.data
        index = offset - 1
        while index >= 0 and data[index] in _INLINE_WHITESPACE:
            index -= 1
        return index < 0 or is_line_break_at(data, index)

    def stop(self) -> None:
        """Set the offset to the end of the buffer without advancing."""
        self.state.stop()

    def reset(self) -> None:
        self.state.reset()

    def copy(self) -> State:
        """Snapshot the cursor; the buffers are shared, not duplicated."""
        return self.state.copy()

    def restore(self, state: State) -> None:
        """Adopt a snapshot taken with ``copy()``; ``self.state`` keeps its identity."""
        self.state.assign(state)

    def clone(self) -> CodeIterator:
        return CodeIterator(self.state, self.options)

    # ------------------------------------------------------------------
    # Character access.

    def peek(self, adjust: int = 0) -> str | None:
        """Character at ``offset + adjust``, or None when out of range."""
        return self.state.char_at(self.state.offset + adjust)

    def peek_next(self) -> str | None:
        return self.peek(1)

    def peek_prev(self) -> str | None:
        return self.peek(-1)

    def avail(self) -> bool:
        return self.state.offset < self.state.length

    has_more = avail

    def is_eof(self) -> bool:
        return self.state.offset >= self.state.length

    def is_whitespace(self, c: str | None | object = _CURRENT) -> bool:
        """Space, tab or line break."""
        if c is _CURRENT:
            c = self.peek()
        return c in _WHITESPACE

    def is_inline_whitespace(self, c: str | None | object = _CURRENT) -> bool:
        """Space or tab; never a line break."""
        if c is _CURRENT:
            c = self.peek()
        return c in _INLINE_WHITESPACE

    def is_eol(self, c: str | None | object = _CURRENT) -> bool:
        if c is _CURRENT:
            c = self.peek()
        return c == "\n" or c == "\r"

    def is_variable_char(self, c: str | None | object = _CURRENT) -> bool:
        """``[a-zA-Z0-9_]``."""
        if c is _CURRENT:
            c = self.peek()
        return _is_variable_char(c)

    def is_alphanumeric(self, c: str | None | object = _CURRENT) -> bool:
        if c is _CURRENT:
            c = self.peek()
        return c is not None and c != "_" and _is_variable_char(c)

    def is_numeric(self, c: str | None | object = _CURRENT) -> bool:
        if c is _CURRENT:
            c = self.peek()
        return c is not None and "0" <= c <= "9"

    def is_word_boundary(self, c: str | None | object = _CURRENT) -> bool:
        """True for anything that cannot be part of a variable name, including EOF."""
        if c is _CURRENT:
            c = self.peek()
        return not _is_variable_char(c)

    def is_escaped(self) -> bool:
        """The previous character is a backslash."""
        return self.peek_prev() == "\\"

    def match_prefix(self, s: str, start: int | None = None) -> bool:
        return self.state.match_prefix(s, start)

    # ------------------------------------------------------------------
    # Consuming combinators.

    def consume_optional(self, s: str) -> bool:
        """Advance past *s* when the cursor is at it; returns whether it did."""
        if (len(s) == 1 and self.peek() == s) or (len(s) > 1 and self.match_prefix(s)):
            self.advance_n(len(s))
            return True
        return False

    def consume_inline_whitespace(self) -> None:
        while self.peek() in _INLINE_WHITESPACE:
            self.advance()

    def consume_whitespace(self) -> None:
        while self.peek() in _WHITESPACE:
            self.advance()

    def consume_while(self, fn: CharPredicate, slice: bool = False) -> str | None:
        """Advance while ``fn(char, offset)`` holds; stops at EOF."""
        state = self.state
        start = state.offset
        while state.offset < state.length and fn(state.source.data[state.offset], state.offset):
            self.advance()
        if slice:
            return state.source.data[start : state.offset]
        return None

    def consume_until(self, fn: CharPredicate, slice: bool = False) -> str | None:
        return self.consume_while(lambda c, i: not fn(c, i), slice)

    def consume_code_while(self, fn: CodePredicate, slice: bool = False) -> str | None:
        """Like ``consume_while`` but the predicate also sees a quote tracker.

        The quote tracker follows ``'``, ``"`` and backtick strings on its own,
        independent of the iterator's lexical options, so one-off scans can
        respect string boundaries without configuring a language.
        """
        state = self.state
        data = state.source.data
        info = CodeScan()
        start = state.offset
        while state.offset < state.length:
            info.index = state.offset
            info.char = data[state.offset]
            info.prev = state.char_at(state.offset - 1)
            info.is_escaped = info.prev == "\\"
            if not fn(info):
                break
            if info.char in _QUOTES and not info.is_escaped:
                if info.quote == info.char:
                    info.quote = None
                elif info.quote is None:
                    info.quote = info.char
            self.advance()
        if slice:
            return data[start : state.offset]
        return None

    def consume_code_until(self, fn: CodePredicate, slice: bool = False) -> str | None:
        return self.consume_code_while(lambda info: not fn(info), slice)

    def consume_until_eol(self) -> None:
        """Consume up to, not including, the next ``\\n``."""
        self.consume_until(lambda c, _: c == "\n")

    def consume_until_eol_slice(self) -> str:
        return self.consume_until(lambda c, _: c == "\n", True)

    def consume_line(self, slice: bool = False) -> str | None:
        """Consume the rest of the line, stopping at ``\\n`` or ``\\r``."""
        return self.consume_until(lambda c, _: c == "\n" or c == "\r", slice)

    def skip_eol(self) -> None:
        if self.peek() in ("\n", "\r"):
            self.advance()

    def consume_eols(self) -> None:
        while self.peek() in ("\n", "\r"):
            self.advance()

    def consume_comment(self, slice: bool = False) -> str | None:
        """Consume until the cursor leaves the comment it is in (no-op in code).

        The newline that ends a line comment is left unconsumed.
        """
        if self.state.in_comment is None:
            return "" if slice else None
        state = self.state
        return self.consume_while(
            lambda c, _: state.in_comment is not None and not (state.in_line_comment and c == "\n"),
            slice,
        )

    def walk(self, fn: Visit) -> CodeIterator:
        """Drive to EOF calling ``fn(state, it)``; a return of exactly False stops."""
        for state in self:
            if fn(state, self) is False:
                break
        return self

    # ------------------------------------------------------------------
    # Non-consuming lookahead, run on a clone.

    def scan_while(self, fn: Visit, slice: bool = False) -> CodeIterator | str:
        """Advance a clone while ``fn(state, it)`` holds; the cursor stays put.

        Returns the slice when requested, otherwise the clone so the reached
        position can be adopted with ``restore(clone.state)``.
        """
        clone = self.clone()
        start = clone.state.offset
        while clone.avail() and fn(clone.state, clone):
            clone.advance()
        if slice:
            return clone.state.source.data[start : clone.state.offset]
        return clone

    def scan_until(self, fn: Visit, slice: bool = False) -> CodeIterator | str:
        return self.scan_while(lambda s, it: not fn(s, it), slice)

    def find(self, fn: Visit, end: int | None = None) -> str | None:
        """First character, from the cursor, for which ``fn(state, it)`` holds."""
        clone = self._find_clone(fn, end)
        return clone.peek() if clone is not None else None

    def find_index(self, fn: Visit, end: int | None = None) -> int:
        """Offset of the first match for ``fn(state, it)``, or -1."""
        clone = self._find_clone(fn, end)
        return clone.state.offset if clone is not None else -1

    def _find_clone(self, fn: Visit, end: int | None) -> CodeIterator | None:
        if end is None:
            end = self.state.length
        elif end > self.state.length:
            raise ValueError(f"Invalid end index {end}, must be at most {self.state.length}")
        clone = self.clone()
        while clone.avail() and clone.state.offset < end:
            if fn(clone.state, clone):
                return clone
            clone.advance()
        return None

    # ------------------------------------------------------------------
    # Positions.

    def capture_location(self) -> Location:
        """Line/column and the absolute offset in the containing document."""
        s = self.state
        # Without a containing document the offset cannot index abs_source.
        return Location(s.line, s.col, s.abs_offset, s.abs_source if s.origin is None else None)

    def locate(self, offset: int) -> Location:
        """Location of a local *offset*, resolved in the absolute document."""
        return self.state.locate(offset)

    def sub_iterator(
        self,
        start: int,
        end: int | None = None,
        options: LexicalOptions | Mapping | str | None | object = _INHERIT,
    ) -> CodeIterator:
        """Iterate ``data[start:end]`` while reporting positions in the absolute document."""
        s = self.state
        if end is None:
            end = s.length
        if not 0 <= start <= end <= s.length:
            raise ValueError(f"Invalid excerpt bounds {start}..{end} for length {s.length}")
        loc = self.locate(start)
        logger.debug("Nested iterator over %d..%d (absolute %d)", start, end, loc.offset)
        excerpt = Source(s.source.data[start:end], s.source.path)
        nested = State.create(
            excerpt,
            abs_source=s.abs_source,
            nested_offset=s.nested_offset + start,
            line=loc.line,
            col=loc.column,
            at_start_of_line=self._at_start_of_line(start),
            origin=s.origin,
        )
        return CodeIterator(nested, self.options if options is _INHERIT else options)

    # ------------------------------------------------------------------
    # Slicing and index helpers.

    def line(self, full: bool = False) -> str:
        """Current line up to the cursor, or the whole line when *full*."""
        s = self.state
        data = s.source.data
        sol = max(0, s.offset - (s.col - 1))
        if not full:
            return data[sol : s.offset]
        eol = data.find("\n", s.offset, s.length)
        return data[sol : s.length if eol < 0 else eol]

    def next_line(self) -> str:
        """Text from the cursor to the next ``\\n`` (or EOF)."""
        s = self.state
        eol = s.source.data.find("\n", s.offset, s.length)
        return s.source.data[s.offset : s.length if eol < 0 else eol]

    def find_next_eol(self, n: int = 1) -> int:
        """Index of the *n*-th unescaped ``\\n`` from the cursor, or -1."""
        if n < 1:
            raise ValueError(f"Invalid next value {n}, must be greater than 0")
        s = self.state
        data = s.source.data
        pos = s.offset
        while True:
            index = data.find("\n", pos, s.length)
            if index == -1:
                return -1
            pos = index + 1
            if not is_line_break_at(data, index):
                continue
            n -= 1
            if n == 0:
                return index

    def first_non_whitespace(self, start: int | None = None) -> str | None:
        index = self.incr_on_whitespace(self.state.offset if start is None else start)
        return self.state.char_at(index)

    def incr_on_whitespace(self, index: int, end: int | None = None) -> int:
        return self._incr_while(index, end, _WHITESPACE)

    def incr_on_inline_whitespace(self, index: int, end: int | None = None) -> int:
        return self._incr_while(index, end, _INLINE_WHITESPACE)

    def _incr_while(self, index: int, end: int | None, chars: tuple[str, ...]) -> int:
        if end is None:
            end = self.state.length
        data = self.state.source.data
        while 0 <= index < end and data[index] in chars:
            index += 1
        return index

    def decrement_on_trim(self, min_index: int, index: int, plus_one_if_trimmed: bool = False) -> int:
        """Walk *index* back over whitespace down to *min_index*.

        With *plus_one_if_trimmed* the result points one past the last kept
        character whenever anything was trimmed, which makes it a slice end.
        """
        return self._decr_while(min_index, index, plus_one_if_trimmed, _WHITESPACE)

    def decr_on_inline_whitespace(self, min_index: int, index: int, plus_one_if_trimmed: bool = False) -> int:
        return self._decr_while(min_index, index, plus_one_if_trimmed, _INLINE_WHITESPACE)

    def _decr_while(
        self, min_index: int, index: int, plus_one: bool, chars: tuple[str, ...]
    ) -> int:
        data = self.state.source.data
        start = index
        while index >= min_index and 0 <= index < len(data) and data[index] in chars:
            index -= 1
        if plus_one and index != start:
            index += 1
        return index

    def slice(self, start: int, end: int) -> str:
        """Raw substring of the local buffer; cursor state is not involved."""
        return self.state.source.data[start:end]


def _build_state(source: object, end: int | None) -> State:
    if isinstance(source, State):
        state = source.copy()
        if end is not None:
            if end < state.offset or end > len(state.source.data):
                raise ValueError(f"End index {end} out of range {state.offset}..{len(state.source.data)}")
            state.length = end
        return state
    if isinstance(source, str | Source):
        return State.create(source, end=end)
    if isinstance(source, Mapping):
        raw = dict(source)
        if end is not None:
            raw["end"] = end
        return State.from_mapping(raw)
    raise InvalidSourceError(
        f"Invalid source for CodeIterator, expected str, Source, State or mapping, "
        f"got: {type(source).__name__}"
    )


__all__ = ["CodeIterator", "CodeScan"]
