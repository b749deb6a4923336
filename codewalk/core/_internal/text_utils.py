"""Text-oriented helpers built on top of the code iterator."""

from __future__ import annotations

import os
from collections.abc import Generator, Mapping
from pathlib import Path

from codewalk.core.iterator import CodeIterator
from codewalk.core.languages import LexicalOptions

# Root at import time; get_project_root() re-reads $CODEWALK_ROOT.
PROJECT_ROOT = Path(os.environ.get("CODEWALK_ROOT", Path.cwd())).resolve()

# Quotes plus // and /* */; no regex literals, so a lone "/" stays code.
C_STYLE = LexicalOptions(
    name="c-style",
    string=frozenset({"'", '"', "`"}),
    line_comment="//",
    block_comments=(("/*", "*/"),),
)

Language = LexicalOptions | Mapping | str | None


def get_project_root() -> Path:
    """Return the active project root ($CODEWALK_ROOT, else the process cwd)."""
    override = os.environ.get("CODEWALK_ROOT")
    if override:
        return Path(override).resolve()
    return PROJECT_ROOT


def split_lines(text: str, language: Language = None) -> list[str]:
    """Split *text* on line breaks that sit in code.

    Newlines inside strings, block comments or regex literals stay part of
    their line, so ``"\\n".join(split_lines(t)) == t`` always holds.
    """
    it = CodeIterator(text, language)
    state = it.state

    def at_break(c: str, _: int) -> bool:
        return (
            c == "\n"
            and state.prev != "\\"
            and (state.is_code or state.in_line_comment)
        )

    lines: list[str] = []
    while True:
        lines.append(it.consume_until(at_break, True))
        if it.is_eof():
            return lines
        it.advance()


def strip_comments(text: str, language: Language = None) -> str:
    """Strip comments while preserving string literals.

    Defaults to ``//`` and ``/* */`` comments with ``'``, ``"`` and backtick
    strings. The newline that ends a line comment is kept.
    """
    it = CodeIterator(text, language if language is not None else C_STYLE)
    result: list[str] = []
    for state in it:
        ch = state.peek
        was_comment = state.in_comment is not None
        ends_line_comment = was_comment and state.in_line_comment and ch == "\n"
        it.advance()
        if ends_line_comment or not (was_comment or state.in_comment is not None):
            result.append(ch)
    return "".join(result)


def scan_code(
    text: str,
    start: int = 0,
    end: int | None = None,
    language: Language = None,
) -> Generator[tuple[int, str, bool], None, None]:
    """Yield ``(index, char, in_string)`` for ``text[start:end]``.

    ``in_string`` is True for an opening quote and the string body, False for
    the closing quote. Indices are offsets into *text*, not the excerpt.
    """
    parent = CodeIterator(text, language if language is not None else C_STYLE)
    it = parent.sub_iterator(start, end)
    for state in it:
        index, ch = state.abs_offset, state.peek
        it.advance()
        yield index, ch, state.in_string is not None


def render_snippet(text: str, line: int, context: int = 1, width: int = 120) -> str | None:
    """Format ±context lines around a 1-based line number, or None when out of range."""
    lines = split_lines(text)
    if line < 1 or line > len(lines):
        return None
    start = max(0, line - 1 - context)
    end = min(len(lines), line + context)
    parts = []
    for i in range(start, end):
        ln = i + 1
        marker = "→" if ln == line else " "
        body = lines[i]
        if len(body) > width:
            body = body[: width - 3] + "..."
        parts.append(f"    {marker} {ln:>4} │ {body}")
    return "\n".join(parts)


__all__ = [
    "C_STYLE",
    "PROJECT_ROOT",
    "get_project_root",
    "render_snippet",
    "scan_code",
    "split_lines",
    "strip_comments",
]
