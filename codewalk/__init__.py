"""Context-aware source code iteration."""

from codewalk.core._internal.text_utils import (
    render_snippet,
    scan_code,
    split_lines,
    strip_comments,
)
from codewalk.core.context import CODE, Code, InComment, InRegex, InString
from codewalk.core.enums import CommentKind
from codewalk.core.iterator import CodeIterator, CodeScan
from codewalk.core.languages import (
    LANGUAGE_PRESETS,
    LexicalOptions,
    UnknownLanguageError,
    available_languages,
    resolve_language,
)
from codewalk.core.location import (
    Location,
    advance_location,
    locate,
    retreat_location,
)
from codewalk.core.state import Depth, InvalidSourceError, Source, State

__all__ = [
    "CODE",
    "Code",
    "CodeIterator",
    "CodeScan",
    "CommentKind",
    "Depth",
    "InComment",
    "InRegex",
    "InString",
    "InvalidSourceError",
    "LANGUAGE_PRESETS",
    "LexicalOptions",
    "Location",
    "Source",
    "State",
    "UnknownLanguageError",
    "advance_location",
    "available_languages",
    "locate",
    "render_snippet",
    "resolve_language",
    "retreat_location",
    "scan_code",
    "split_lines",
    "strip_comments",
]
