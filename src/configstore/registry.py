"""Name-based lookup of running configuration stores."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Dict, List

from .errors import ConstructionError

if TYPE_CHECKING:
    from .store import ConfigStore


class StoreRegistry:
    """Registry mapping store names to running stores."""

    def __init__(self) -> None:
        self._stores: Dict[str, "ConfigStore"] = {}
        self._lock = threading.Lock()

    def register(self, name: str, store: "ConfigStore") -> None:
        with self._lock:
            existing = self._stores.get(name)
            if existing is not None and existing is not store and existing.running:
                raise ConstructionError(f"A store named {name!r} is already running")
            self._stores[name] = store

    def unregister(self, name: str, store: "ConfigStore") -> None:
        """Forget ``name`` if it still points at ``store``."""
        with self._lock:
            if self._stores.get(name) is store:
                del self._stores[name]

    def get(self, name: str) -> "ConfigStore":
        with self._lock:
            store = self._stores.get(name)
        if store is None or not store.running:
            raise KeyError(f"No running store named {name!r}")
        return store

    def names(self) -> List[str]:
        with self._lock:
            return [name for name, store in self._stores.items() if store.running]


default_registry = StoreRegistry()


__all__ = ["StoreRegistry", "default_registry"]
