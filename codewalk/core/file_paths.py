"""Path resolution and atomic write helpers."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

from codewalk.core._internal.text_utils import get_project_root


def resolve_path(filepath: str | Path) -> Path:
    """Resolve a filepath to absolute; relative paths hang off the project root."""
    p = Path(filepath)
    if p.is_absolute():
        return p.resolve()
    return (get_project_root() / p).resolve()


def safe_write_text(filepath: str | Path, content: str) -> None:
    """Atomically write text to a file using temp+rename."""
    p = Path(filepath)
    p.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=p.parent, suffix=".tmp")
    try:
        with os.fdopen(fd, "w") as f:
            f.write(content)
        os.replace(tmp, str(p))
    except OSError:
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise


__all__ = ["resolve_path", "safe_write_text"]
