"""Pydantic schema definitions for store options and status."""

from __future__ import annotations

from .options import StoreOptions, StoreStatus, load_options

__all__ = ["StoreOptions", "StoreStatus", "load_options"]
