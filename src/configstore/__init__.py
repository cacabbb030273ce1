"""Process-local YAML configuration store with optional live reload."""

from __future__ import annotations

__version__ = "0.1.0"

from .errors import (
    ConfigNotFoundError,
    ConfigParseError,
    ConfigStoreError,
    ConstructionError,
    StoreStoppedError,
)
from .paths import MISSING, assign, normalize_path, resolve
from .registry import StoreRegistry, default_registry
from .schemas import StoreOptions, StoreStatus
from .store import ConfigStore, ensure_started, get_store
from .watcher import EventSource, FileEvent, WatchdogEventSource, WatchHandle

__all__ = [
    "__version__",
    "ConfigStore",
    "ConfigStoreError",
    "ConfigNotFoundError",
    "ConfigParseError",
    "ConstructionError",
    "StoreStoppedError",
    "StoreOptions",
    "StoreStatus",
    "StoreRegistry",
    "default_registry",
    "get_store",
    "ensure_started",
    "EventSource",
    "FileEvent",
    "WatchHandle",
    "WatchdogEventSource",
    "MISSING",
    "assign",
    "normalize_path",
    "resolve",
]
