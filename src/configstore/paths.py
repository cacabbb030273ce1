"""Pure helpers for walking and amending nested configuration trees."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Final

ConfigPath = tuple[str, ...]


class _Missing:
    """Marker returned by :func:`resolve` for absent paths."""

    _instance: "_Missing | None" = None

    def __new__(cls) -> "_Missing":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "MISSING"


MISSING: Final = _Missing()


def normalize_path(path: str | Sequence[str]) -> ConfigPath:
    """Return ``path`` as a tuple of keys; a bare string is a one-key path."""
    if isinstance(path, str):
        return (path,)
    if isinstance(path, Sequence):
        keys = tuple(path)
        for key in keys:
            if not isinstance(key, str):
                raise TypeError(f"Path keys must be strings, got {type(key).__name__}")
        return keys
    raise TypeError(f"Path must be a string or a sequence of strings, got {type(path).__name__}")


def resolve(tree: Any, path: str | Sequence[str]) -> Any:
    """Walk ``path`` through ``tree`` and return the value or ``MISSING``.

    Every step must land on a mapping that holds the next key. Indexing into a
    scalar or a list yields ``MISSING``. A stored ``None`` is reported as
    ``MISSING`` too, so "present but null" and "absent" look the same.
    """
    node = tree
    for key in normalize_path(path):
        if not isinstance(node, Mapping) or key not in node:
            return MISSING
        node = node[key]
    if node is None:
        return MISSING
    return node


def assign(tree: Any, path: str | Sequence[str], value: Any) -> dict[str, Any]:
    """Return a copy of ``tree`` with ``value`` stored at ``path``.

    Mappings along the path are shallow-copied; anything else in the way
    (missing keys, scalars, lists) is replaced by a new empty mapping.
    """
    keys = normalize_path(path)
    if not keys:
        raise ValueError("Cannot assign to an empty path")
    root = dict(tree) if isinstance(tree, Mapping) else {}
    node = root
    for key in keys[:-1]:
        child = node.get(key)
        child = dict(child) if isinstance(child, Mapping) else {}
        node[key] = child
        node = child
    node[keys[-1]] = value
    return root


__all__ = ["ConfigPath", "MISSING", "normalize_path", "resolve", "assign"]
