"""Tests for CodeIterator construction, combinators and position helpers."""

from __future__ import annotations

import pytest

from codewalk.core.context import InString
from codewalk.core.iterator import CodeIterator
from codewalk.core.state import Depth, InvalidSourceError, Source, State


# ===========================================================================
# Construction
# ===========================================================================

class TestConstruction:
    def test_from_string(self):
        it = CodeIterator("abc")
        assert it.state.source.data == "abc"
        assert (it.state.offset, it.state.line, it.state.col) == (0, 1, 1)
        assert it.options is None

    def test_from_source_shares_buffer(self):
        src = Source("abc", path="a.ts")
        it = CodeIterator(src)
        assert it.state.source is src
        assert it.state.abs_source is src

    def test_from_state_copies(self):
        state = State.create("((", depth=Depth(parentheses=3))
        it = CodeIterator(state)
        it.advance()
        assert it.state is not state
        assert state.depth.parentheses == 3
        assert it.state.depth.parentheses == 4

    def test_from_mapping_with_position(self):
        it = CodeIterator(
            {"source": {"data": "xy"}, "line": 7, "col": 3, "depth": {"braces": 1}}
        )
        it.advance()
        assert (it.state.line, it.state.col) == (7, 4)
        assert it.state.depth.braces == 1

    def test_end_bound_limits_iteration(self):
        it = CodeIterator("abcdef", end=3)
        while it.avail():
            it.advance()
        assert it.state.offset == 3
        assert it.peek() is None

    @pytest.mark.parametrize("bad", [None, 42, {"nope": 1}, {"data": None}])
    def test_invalid_input_raises(self, bad):
        with pytest.raises(InvalidSourceError):
            CodeIterator(bad)

    def test_invalid_source_is_type_error(self):
        with pytest.raises(TypeError):
            CodeIterator(object())

    def test_unknown_context_value_is_rejected(self):
        with pytest.raises(InvalidSourceError):
            CodeIterator({"source": "x", "context": {"delimiter": '"'}})

    def test_context_from_mapping_is_copied(self):
        ctx = InString('"')
        it = CodeIterator({"source": 'ab"(', "context": ctx}, "ts")
        assert it.state.context is not ctx
        it.advance_n(4)
        assert it.state.is_code
        assert it.state.depth.parentheses == 1

    def test_callback_walks_every_character(self):
        seen: list[int] = []
        it = CodeIterator("abc", callback=lambda s, _: seen.append(s.offset))
        assert seen == [0, 1, 2]
        assert it.is_eof()

    def test_callback_that_advances_is_not_double_advanced(self):
        seen: list[int] = []

        def visit(state, it):
            seen.append(state.offset)
            it.advance_n(2)

        CodeIterator("abcdef", callback=visit)
        assert seen == [0, 2, 4]

    def test_options_by_preset_name(self):
        it = CodeIterator("x", "ts")
        assert it.options.name == "ts"


# ===========================================================================
# Character access
# ===========================================================================

class TestPeek:
    def test_out_of_range_is_none(self):
        it = CodeIterator("a")
        assert it.peek(5) is None
        assert it.peek_prev() is None
        assert it.peek_next() is None
        it.advance()
        assert it.peek() is None
        assert it.peek_prev() == "a"

    def test_availability(self):
        it = CodeIterator("")
        assert not it.avail()
        assert not it.has_more()
        assert it.is_eof()

    def test_classification(self):
        it = CodeIterator(" \n")
        assert it.is_inline_whitespace()
        assert it.is_whitespace()
        assert not it.is_inline_whitespace("\n")
        assert it.is_eol("\r")
        assert it.is_whitespace("\n")
        assert not it.is_whitespace(None)

    def test_variable_chars_include_digits(self):
        it = CodeIterator("a")
        assert it.is_variable_char()
        assert it.is_variable_char("7")
        assert it.is_variable_char("_")
        assert not it.is_variable_char("-")
        assert not it.is_variable_char(None)
        assert it.is_word_boundary(None)
        assert it.is_word_boundary(".")
        assert it.is_numeric("3")
        assert not it.is_alphanumeric("_")

    def test_is_escaped(self):
        it = CodeIterator('\\"')
        it.advance()
        assert it.is_escaped()


# ===========================================================================
# Consuming combinators
# ===========================================================================

class TestConsume:
    def test_noop_predicate_keeps_offset(self):
        it = CodeIterator("abc")
        assert it.consume_while(lambda c, i: False, True) == ""
        assert it.state.offset == 0
        assert it.consume_while(lambda c, i: False) is None

    def test_consume_while_receives_char_and_offset(self):
        calls: list[tuple[str, int]] = []

        def pred(c, i):
            calls.append((c, i))
            return c != "c"

        it = CodeIterator("abc")
        assert it.consume_while(pred, True) == "ab"
        assert calls == [("a", 0), ("b", 1), ("c", 2)]

    def test_consume_until_stops_at_eof(self):
        it = CodeIterator("abc")
        assert it.consume_until(lambda c, i: c == "z", True) == "abc"
        assert it.is_eof()

    def test_consume_code_until_respects_quotes(self):
        it = CodeIterator('foo("a;b"); bar')
        head = it.consume_code_until(lambda info: info.char == ";" and info.quote is None, True)
        assert head == 'foo("a;b")'
        assert it.peek() == ";"

    def test_consume_code_while_reports_escapes(self):
        escaped: list[int] = []

        def pred(info):
            if info.is_escaped:
                escaped.append(info.index)
            return True

        CodeIterator('"\\""').consume_code_while(pred)
        assert escaped == [2]

    def test_consume_optional(self):
        it = CodeIterator("=> x")
        assert it.consume_optional("=>")
        assert it.state.offset == 2
        assert not it.consume_optional("x")
        it.consume_optional(" ")
        assert it.peek() == "x"

    def test_whitespace_consumers(self):
        it = CodeIterator(" \t\n x")
        it.consume_inline_whitespace()
        assert it.state.offset == 2
        it.consume_whitespace()
        assert it.peek() == "x"

    def test_until_eol_and_skip_eol(self):
        it = CodeIterator("abc\ndef")
        assert it.consume_until_eol_slice() == "abc"
        assert it.peek() == "\n"
        it.skip_eol()
        assert it.state.offset == 4
        it.skip_eol()
        assert it.state.offset == 4
        it.consume_until_eol()
        assert it.is_eof()

    def test_consume_line_stops_at_carriage_return(self):
        it = CodeIterator("ab\r\ncd")
        assert it.consume_line(True) == "ab"
        it.consume_eols()
        assert it.peek() == "c"

    def test_consume_comment_leaves_line_break(self):
        it = CodeIterator("// note\nx", "ts")
        it.advance()
        assert it.consume_comment(True) == "/ note"
        assert it.peek() == "\n"

    def test_consume_comment_in_code_is_noop(self):
        it = CodeIterator("x", "ts")
        assert it.consume_comment(True) == ""
        assert it.state.offset == 0

    def test_walk_stops_on_false(self):
        it = CodeIterator("abcdef")
        it.walk(lambda s, _: s.offset < 2 or False)
        assert it.state.offset == 2

    def test_iteration_yields_each_position(self):
        it = CodeIterator("ab\nc")
        assert [s.peek for s in it] == ["a", "b", "\n", "c"]


# ===========================================================================
# Seeking
# ===========================================================================

class TestSeek:
    def test_jump_recomputes_position(self):
        it = CodeIterator("ab\ncd\nef")
        it.jump_to(4)
        assert (it.state.line, it.state.col) == (2, 2)
        assert not it.state.at_start_of_line

    def test_jump_uses_checkpoint(self):
        it = CodeIterator("ab\ncd")
        it.jump_to(3, line=10, col=1)
        assert (it.state.line, it.state.col) == (10, 1)
        assert it.state.at_start_of_line

    def test_jump_resets_context_and_depth(self):
        it = CodeIterator('("abc', "ts")
        it.advance_n(3)
        assert it.state.in_string == '"'
        it.jump_to(1)
        assert it.state.is_code
        assert it.state.depth.is_balanced

    def test_jump_backwards_is_allowed(self):
        it = CodeIterator("abc")
        it.advance_n(3)
        it.jump_to(0)
        assert it.state.offset == 0

    @pytest.mark.parametrize("offset", [-1, 4])
    def test_jump_out_of_range(self, offset):
        with pytest.raises(ValueError):
            CodeIterator("abc").jump_to(offset)

    def test_advance_to_tracks_context(self):
        it = CodeIterator('a"(', "ts")
        it.advance_to(3)
        assert it.state.in_string == '"'
        assert it.state.depth.parentheses == 0

    def test_advance_to_past_raises(self):
        it = CodeIterator("abc")
        it.advance_n(2)
        with pytest.raises(ValueError):
            it.advance_to(1)

    def test_stop_and_reset(self):
        it = CodeIterator("a(b")
        it.advance_n(2)
        it.stop()
        assert it.is_eof()
        it.reset()
        assert (it.state.offset, it.state.line, it.state.col) == (0, 1, 1)
        assert it.state.depth.is_balanced


# ===========================================================================
# Lookahead
# ===========================================================================

class TestLookahead:
    def test_find_index_does_not_move(self):
        it = CodeIterator("a(b)c")
        assert it.find_index(lambda s, _: s.peek == ")") == 3
        assert it.find(lambda s, _: s.peek == "z") is None
        assert it.find(lambda s, _: s.depth.parentheses == 1) == "b"
        assert it.state.offset == 0

    def test_find_respects_end(self):
        it = CodeIterator("abc")
        assert it.find_index(lambda s, _: s.peek == "c", end=2) == -1
        with pytest.raises(ValueError):
            it.find_index(lambda s, _: True, end=10)

    def test_find_skips_strings(self):
        it = CodeIterator('"x;"; y', "ts")
        assert it.find_index(lambda s, _: s.peek == ";" and s.is_code) == 4

    def test_scan_then_restore(self):
        it = CodeIterator("abc def")
        assert it.scan_while(lambda s, _: s.peek != " ", True) == "abc"
        assert it.state.offset == 0
        clone = it.scan_until(lambda s, _: s.peek == " ")
        it.restore(clone.state)
        assert it.state.offset == 3


# ===========================================================================
# Positions, nesting and slicing
# ===========================================================================

class TestPositionsAndSlices:
    def test_nested_offset_translation(self):
        it = CodeIterator({"source": Source("abcdefgh"), "nested_offset": 100})
        it.advance_n(5)
        assert it.capture_location().offset == 105

    def test_nested_state_without_document_jumps_locally(self):
        it = CodeIterator({"source": "abcdefgh", "nested_offset": 100})
        it.advance_n(5)
        it.jump_to(2)
        assert (it.state.line, it.state.col) == (1, 3)
        loc = it.capture_location()
        assert loc.offset == 102
        assert loc.source is None

    def test_nested_state_without_document_keeps_declared_start(self):
        it = CodeIterator({"source": "ab\ncdef", "nested_offset": 100, "line": 4, "col": 3})
        it.jump_to(1)
        assert (it.state.line, it.state.col) == (4, 4)
        it.jump_to(4)
        assert (it.state.line, it.state.col) == (5, 2)
        it.reset()
        assert (it.state.line, it.state.col) == (4, 3)

    def test_sub_iterator_of_nested_state_without_document(self):
        it = CodeIterator({"source": "abcdefgh", "nested_offset": 100})
        sub = it.sub_iterator(2, 5)
        assert sub.state.source.data == "cde"
        loc = sub.capture_location()
        assert (loc.line, loc.column, loc.offset) == (1, 3, 102)
        sub.advance_n(2)
        sub.jump_to(1)
        assert (sub.state.line, sub.state.col) == (1, 4)
        assert sub.capture_location().offset == 103
        assert sub.locate(3).column == 6

    def test_capture_location(self):
        it = CodeIterator("ab\ncd")
        it.advance_n(4)
        loc = it.capture_location()
        assert (loc.line, loc.column, loc.offset) == (2, 2, 4)
        assert loc.source is it.state.abs_source

    def test_sub_iterator_reports_absolute_positions(self):
        text = "line1\nfoo(bar)\n"
        parent = CodeIterator(text)
        sub = parent.sub_iterator(6, 14)
        assert sub.state.source.data == "foo(bar)"
        loc = sub.capture_location()
        assert (loc.line, loc.column, loc.offset) == (2, 1, 6)
        sub.advance_n(3)
        loc = sub.capture_location()
        assert (loc.line, loc.column, loc.offset) == (2, 4, 9)
        assert sub.locate(0).line == 2
        assert sub.state.abs_source is parent.state.abs_source

    def test_sub_iterator_inherits_options(self):
        parent = CodeIterator('x = "(";', "ts")
        sub = parent.sub_iterator(4)
        while sub.avail():
            sub.advance()
        assert sub.options is parent.options
        assert sub.state.depth.parentheses == 0

    def test_sub_iterator_bounds(self):
        with pytest.raises(ValueError):
            CodeIterator("abc").sub_iterator(2, 1)

    def test_line_slices(self):
        it = CodeIterator("abc\ndef\n")
        it.advance_n(6)
        assert it.line() == "de"
        assert it.line(full=True) == "def"
        assert it.next_line() == "f"

    def test_line_without_trailing_newline(self):
        it = CodeIterator("xyz")
        it.advance()
        assert it.line(full=True) == "xyz"
        assert it.next_line() == "yz"

    def test_decrement_on_trim(self):
        it = CodeIterator("abc   \n")
        assert it.decrement_on_trim(0, 6) == 2
        end = it.decrement_on_trim(0, 6, plus_one_if_trimmed=True)
        assert it.slice(0, end) == "abc"
        assert it.decrement_on_trim(0, 1, plus_one_if_trimmed=True) == 1

    def test_decrement_respects_floor(self):
        it = CodeIterator("   ")
        assert it.decrement_on_trim(1, 2) == 0

    def test_whitespace_index_helpers(self):
        it = CodeIterator("a  \n b")
        assert it.incr_on_inline_whitespace(1) == 3
        assert it.incr_on_whitespace(1) == 5
        assert it.decr_on_inline_whitespace(0, 2) == 0
        assert it.first_non_whitespace(1) == "b"

    def test_find_next_eol_skips_escaped(self):
        it = CodeIterator("a\\\nb\nc\nd")
        assert it.find_next_eol() == 4
        assert it.find_next_eol(2) == 6
        assert it.find_next_eol(3) == -1
        with pytest.raises(ValueError):
            it.find_next_eol(0)

    def test_slice_is_raw(self):
        it = CodeIterator("abcdef")
        it.advance_n(4)
        assert it.slice(1, 3) == "bc"
        assert it.state.offset == 4
