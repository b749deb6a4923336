"""Canonical enums for lexical contexts.

StrEnum values compare equal to their string values (CommentKind.LINE == "line"),
so callers may keep using raw strings.
"""

from __future__ import annotations

import enum


class CommentKind(enum.StrEnum):
    LINE = "line"
    BLOCK = "block"


__all__ = ["CommentKind"]
