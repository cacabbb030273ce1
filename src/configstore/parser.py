"""YAML document loading."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigParseError


def parse_text(text: str, *, source: str | Path = "<string>") -> Any:
    """Parse YAML text; an empty document becomes an empty mapping."""
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigParseError(source, str(exc)) from exc
    return {} if loaded is None else loaded


def parse_file(path: str | Path) -> Any:
    """Read and parse the YAML document at ``path``."""
    path = Path(path)
    try:
        with path.open("r", encoding="utf-8") as handle:
            text = handle.read()
    except OSError as exc:
        raise ConfigParseError(path, exc.strerror or str(exc)) from exc
    except UnicodeDecodeError as exc:
        raise ConfigParseError(path, f"not valid UTF-8 ({exc.reason} at byte {exc.start})") from exc
    return parse_text(text, source=path)


__all__ = ["parse_text", "parse_file"]
