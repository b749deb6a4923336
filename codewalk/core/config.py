"""Project-wide config (.codewalk/config.json)."""

from __future__ import annotations

import copy
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from codewalk.core._internal.text_utils import get_project_root
from codewalk.core.file_paths import resolve_path, safe_write_text
from codewalk.core.languages import (
    LANGUAGE_PRESETS,
    LexicalOptions,
    resolve_language,
)

CONFIG_RELPATH = Path(".codewalk") / "config.json"
logger = logging.getLogger(__name__)
MIN_SNIPPET_WIDTH = 10


@dataclass(frozen=True)
class ConfigKey:
    type: type
    default: object
    description: str


CONFIG_SCHEMA: dict[str, ConfigKey] = {
    "default_language": ConfigKey(
        str, "", "Language used when none is passed (empty = no lexical options)"
    ),
    "languages": ConfigKey(
        dict, {}, "Custom language definitions {name: {string, comment, regex}}"
    ),
    "snippet_width": ConfigKey(
        int, 120, "Max characters per line in rendered code snippets"
    ),
}


def config_file() -> Path:
    """Config location under the active project root."""
    return get_project_root() / CONFIG_RELPATH


def default_config() -> dict[str, Any]:
    """Return a config dict with all keys set to their defaults."""
    return {k: copy.deepcopy(v.default) for k, v in CONFIG_SCHEMA.items()}


def load_config(path: str | Path | None = None) -> dict[str, Any]:
    """Load config from disk, filling missing or mistyped keys with defaults."""
    p = resolve_path(path) if path is not None else config_file()
    config: object = {}
    if p.exists():
        try:
            config = json.loads(p.read_text())
        except (json.JSONDecodeError, UnicodeDecodeError, OSError) as exc:
            logger.debug("Ignoring unreadable config %s: %s", p, exc)
    else:
        logger.debug("No config at %s, using defaults", p)
    if not isinstance(config, dict):
        config = {}

    for key, schema in CONFIG_SCHEMA.items():
        if key not in config or not isinstance(config[key], schema.type):
            config[key] = copy.deepcopy(schema.default)
    if isinstance(config["snippet_width"], bool) or config["snippet_width"] < MIN_SNIPPET_WIDTH:
        config["snippet_width"] = CONFIG_SCHEMA["snippet_width"].default
    return config


def save_config(config: dict, path: str | Path | None = None) -> None:
    """Save config to disk atomically."""
    p = resolve_path(path) if path is not None else config_file()
    safe_write_text(p, json.dumps(config, indent=2) + "\n")


def custom_languages(config: dict) -> dict[str, LexicalOptions]:
    """Parse the ``languages`` section; invalid entries are logged and skipped."""
    out: dict[str, LexicalOptions] = {}
    for name, raw in (config.get("languages") or {}).items():
        if not isinstance(raw, dict):
            logger.warning("Skipping language %s: expected an object, got %s", name, type(raw).__name__)
            continue
        try:
            out[name] = LexicalOptions.from_dict(raw, name=name)
        except (TypeError, ValueError) as exc:
            logger.warning("Skipping invalid language definition %s: %s", name, exc)
            continue
        if name in LANGUAGE_PRESETS:
            logger.debug("Custom language %s overrides the built-in preset", name)
    return out


def language_options(config: dict, name: str | None = None) -> LexicalOptions | None:
    """Resolve *name* (or the configured default) to lexical options.

    An empty name means "no lexical options". Raises ``UnknownLanguageError``
    when the name is neither a preset nor a custom language.
    """
    chosen = name if name is not None else config.get("default_language", "")
    if not chosen:
        return None
    return resolve_language(chosen, custom_languages(config))


def add_language(config: dict, name: str, options: LexicalOptions | dict) -> None:
    """Store a custom language definition under *name* (replacing any existing one)."""
    if isinstance(options, dict):
        options = LexicalOptions.from_dict(options, name=name)
    config.setdefault("languages", {})[name] = options.to_dict()


def _set_int_config_value(config: dict, key: str, raw: str) -> None:
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"Expected integer for {key}, got: {raw}") from None
    if key == "snippet_width" and value < MIN_SNIPPET_WIDTH:
        raise ValueError(f"Expected integer >= {MIN_SNIPPET_WIDTH} for {key}, got: {raw}")
    config[key] = value


def _set_str_config_value(config: dict, key: str, raw: str) -> None:
    if key == "default_language" and raw:
        # Validates the name against presets and custom languages.
        resolve_language(raw, custom_languages(config))
    config[key] = raw


def set_config_value(config: dict, key: str, raw: str) -> None:
    """Parse and set a config value from a raw string."""
    if key not in CONFIG_SCHEMA:
        raise KeyError(f"Unknown config key: {key}")

    schema = CONFIG_SCHEMA[key]

    if schema.type is int:
        _set_int_config_value(config, key, raw)
        return
    if schema.type is str:
        _set_str_config_value(config, key, raw)
        return
    if schema.type is dict:
        raise ValueError(f"Cannot set dict key '{key}' from a string, use add_language()")
    config[key] = raw


def unset_config_value(config: dict, key: str) -> None:
    """Reset a config key to its default value."""
    if key not in CONFIG_SCHEMA:
        raise KeyError(f"Unknown config key: {key}")
    config[key] = copy.deepcopy(CONFIG_SCHEMA[key].default)


__all__ = [
    "CONFIG_RELPATH",
    "CONFIG_SCHEMA",
    "ConfigKey",
    "add_language",
    "config_file",
    "custom_languages",
    "default_config",
    "language_options",
    "load_config",
    "save_config",
    "set_config_value",
    "unset_config_value",
]
