"""Lexical context of the cursor: code, string, comment or regex literal.

The cursor holds exactly one of these values, which keeps the contexts
mutually exclusive without cross-checking separate flags.
"""

from __future__ import annotations

from dataclasses import dataclass

from codewalk.core.enums import CommentKind


@dataclass(frozen=True)
class Code:
    """Plain code, outside any literal."""

    def __repr__(self) -> str:
        return "CODE"


CODE = Code()


@dataclass
class InString:
    delimiter: str


@dataclass
class InComment:
    kind: CommentKind
    open: str
    close: str | None = None
    # Characters of ``close`` matched so far.
    progress: int = 0


@dataclass
class InRegex:
    open: str
    close: str
    progress: int = 0


Context = Code | InString | InComment | InRegex


def copy_context(context: Context) -> Context:
    """Return an independent copy of *context* (``CODE`` is shared).

    Raises ``TypeError`` for anything that is not a context value.
    """
    if isinstance(context, Code):
        return CODE
    if isinstance(context, InString):
        return InString(context.delimiter)
    if isinstance(context, InComment):
        return InComment(context.kind, context.open, context.close, context.progress)
    if isinstance(context, InRegex):
        return InRegex(context.open, context.close, context.progress)
    raise TypeError(f"Invalid lexical context: {context!r}")


__all__ = [
    "CODE",
    "Code",
    "Context",
    "InComment",
    "InRegex",
    "InString",
    "copy_context",
]
