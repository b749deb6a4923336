"""Lexical options and built-in language presets.

A ``LexicalOptions`` instance tells the iterator which characters open
string literals and which sequences open/close comments and regex
literals. Iterators without options skip literal detection entirely.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

logger = logging.getLogger(__name__)

Pair = tuple[str, str]


class UnknownLanguageError(ValueError):
    """Raised when a language preset name is not known."""


@dataclass(frozen=True)
class LexicalOptions:
    name: str | None = None
    string: frozenset[str] | None = None
    line_comment: str | None = None
    block_comments: tuple[Pair, ...] | None = None
    regex: tuple[Pair, ...] | None = None

    def __post_init__(self) -> None:
        if self.string is not None:
            for delim in self.string:
                if not isinstance(delim, str) or len(delim) != 1:
                    raise ValueError(
                        f"String delimiters must be single characters, got: {delim!r}"
                    )
        if self.line_comment is not None and not self.line_comment:
            raise ValueError("Line comment marker must not be empty")
        for label, pairs in (("block comment", self.block_comments), ("regex", self.regex)):
            for open_seq, close_seq in pairs or ():
                if not open_seq or not close_seq:
                    raise ValueError(
                        f"Empty {label} sequence in pair ({open_seq!r}, {close_seq!r})"
                    )

    @classmethod
    def from_dict(cls, raw: Mapping, *, name: str | None = None) -> LexicalOptions:
        """Build options from ``{"string": [...], "comment": {...}, "regex": [...]}``."""
        comment = raw.get("comment") or {}
        if not isinstance(comment, Mapping):
            raise ValueError(f"Expected mapping for 'comment', got: {type(comment).__name__}")
        string = raw.get("string")
        return cls(
            name=raw.get("name", name),
            string=frozenset(string) if string is not None else None,
            line_comment=comment.get("line"),
            block_comments=_normalize_pairs(comment.get("block"), "comment.block"),
            regex=_normalize_pairs(raw.get("regex"), "regex"),
        )

    def to_dict(self) -> dict:
        """Inverse of ``from_dict``; used when persisting custom languages."""
        out: dict = {}
        if self.string is not None:
            out["string"] = sorted(self.string)
        comment: dict = {}
        if self.line_comment is not None:
            comment["line"] = self.line_comment
        if self.block_comments is not None:
            comment["block"] = [list(p) for p in self.block_comments]
        if comment:
            out["comment"] = comment
        if self.regex is not None:
            out["regex"] = [list(p) for p in self.regex]
        return out

    @property
    def has_patterns(self) -> bool:
        return bool(self.string or self.line_comment or self.block_comments or self.regex)


def _normalize_pairs(value: object, field: str) -> tuple[Pair, ...] | None:
    """Accept a single ``[open, close]`` pair or a list of pairs."""
    if value is None:
        return None
    if not isinstance(value, Sequence) or isinstance(value, str):
        raise ValueError(f"Expected list of [open, close] pairs for '{field}', got: {value!r}")
    if len(value) == 2 and all(isinstance(v, str) for v in value):
        return ((value[0], value[1]),)
    pairs: list[Pair] = []
    for entry in value:
        if (
            isinstance(entry, str)
            or not isinstance(entry, Sequence)
            or len(entry) != 2
            or not all(isinstance(v, str) for v in entry)
        ):
            raise ValueError(f"Invalid [open, close] pair in '{field}': {entry!r}")
        pairs.append((entry[0], entry[1]))
    return tuple(pairs)


_C_LIKE = {"line": "//", "block": [["/*", "*/"]]}

_PRESET_DEFS: dict[str, dict] = {
    "js": {"string": ["'", '"', "`"], "comment": _C_LIKE, "regex": [["/", "/"]]},
    "ts": {"string": ["'", '"', "`"], "comment": _C_LIKE, "regex": [["/", "/"]]},
    "css": {"string": ["'", '"'], "comment": {"block": [["/*", "*/"]]}},
    "html": {"string": ["'", '"'], "comment": {"block": [["<!--", "-->"]]}},
    "json": {"string": ['"']},
    "json5": {"string": ['"'], "comment": _C_LIKE},
    "jsonc": {"string": ['"'], "comment": _C_LIKE},
    "yaml": {"string": ['"'], "comment": {"line": "#"}},
    "xml": {"string": ['"'], "comment": {"block": [["<!--", "-->"]]}},
    "md": {"string": ['"'], "comment": {"line": "<!--"}},
    "python": {
        "string": ["'", '"', "`"],
        "comment": {"line": "#", "block": [["'''", "'''"], ['"""', '"""']]},
    },
    "c": {"string": ["'", '"'], "comment": _C_LIKE},
    "cpp": {"string": ["'", '"'], "comment": _C_LIKE},
    "java": {"string": ["'", '"'], "comment": _C_LIKE},
    "php": {"string": ["'", '"', "`"], "comment": _C_LIKE},
    "ruby": {
        "string": ["'", '"', "`"],
        "comment": {"line": "#", "block": [["=begin", "=end"]]},
    },
    "go": {"string": ["'", '"'], "comment": _C_LIKE},
    "rust": {"string": ["'", '"', "`"], "comment": _C_LIKE},
    "swift": {"string": ["'", '"', "`"], "comment": _C_LIKE},
    "kotlin": {"string": ["'", '"', "`"], "comment": _C_LIKE},
    "shell": {"string": ["'", '"'], "comment": {"line": "#"}},
    "bash": {"string": ["'", '"'], "comment": {"line": "#"}},
}

LANGUAGE_PRESETS: dict[str, LexicalOptions] = {
    name: LexicalOptions.from_dict(raw, name=name) for name, raw in _PRESET_DEFS.items()
}


def available_languages() -> list[str]:
    return sorted(LANGUAGE_PRESETS)


def resolve_language(
    language: LexicalOptions | Mapping | str | None,
    custom: Mapping[str, LexicalOptions] | None = None,
) -> LexicalOptions | None:
    """Normalize any accepted language input to ``LexicalOptions`` (or None).

    *custom* definitions take precedence over presets with the same name.
    """
    if language is None or isinstance(language, LexicalOptions):
        return language
    if isinstance(language, str):
        if custom and language in custom:
            logger.debug("Using custom language definition for %s", language)
            return custom[language]
        try:
            return LANGUAGE_PRESETS[language]
        except KeyError:
            names = sorted({*LANGUAGE_PRESETS, *(custom or {})})
            raise UnknownLanguageError(
                f"Language option '{language}' is not supported, "
                f"supported languages: {', '.join(names)}"
            ) from None
    if isinstance(language, Mapping):
        return LexicalOptions.from_dict(language)
    raise TypeError(f"Invalid language options: {language!r}")


__all__ = [
    "LANGUAGE_PRESETS",
    "LexicalOptions",
    "UnknownLanguageError",
    "available_languages",
    "resolve_language",
]
