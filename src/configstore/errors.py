"""Exception taxonomy for the configuration store."""

from __future__ import annotations

from pathlib import Path


class ConfigStoreError(Exception):
    """Base class for configuration store failures."""


class ConstructionError(ConfigStoreError):
    """Raised when a store cannot be set up (bad options, watcher failure)."""


class ConfigParseError(ConfigStoreError):
    """Raised when the source document cannot be read or parsed."""

    def __init__(self, source: str | Path, reason: str):
        super().__init__(f"Failed to parse {source}: {reason}")
        self.source = Path(source)
        self.reason = reason


class ConfigNotFoundError(ConfigStoreError, KeyError):
    """Raised by ``get_required`` when a path is absent."""

    def __init__(self, path: tuple[str, ...]):
        super().__init__(path)
        self.path = path

    def __str__(self) -> str:
        return f"Config item not found: {'/'.join(self.path) or '<root>'}"


class StoreStoppedError(ConfigStoreError):
    """Raised when a request is sent to a store that has been stopped."""


__all__ = [
    "ConfigStoreError",
    "ConstructionError",
    "ConfigParseError",
    "ConfigNotFoundError",
    "StoreStoppedError",
]
