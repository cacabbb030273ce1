"""Pydantic models for store construction options and status snapshots."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..errors import ConstructionError


class StoreOptions(BaseModel):
    """Options recognized by ``ConfigStore.start``."""

    config_file: Path
    watch_fs: bool = False
    name: str | None = None

    model_config = ConfigDict(extra="forbid", frozen=True)

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: str | None) -> str | None:
        if value is not None and not value.strip():
            raise ValueError("name must not be blank")
        return value


class StoreStatus(BaseModel):
    """Point-in-time view of a store's bookkeeping."""

    name: str | None
    source_path: Path
    watch_enabled: bool
    running: bool
    source_present: bool
    loaded_at: datetime | None = None
    last_error: str | None = None
    reload_count: int = Field(default=0, ge=0)

    model_config = ConfigDict(frozen=True)


def load_options(raw: dict[str, Any]) -> StoreOptions:
    """Validate raw keyword options, mapping failures to ``ConstructionError``."""
    try:
        return StoreOptions.model_validate(raw)
    except ValidationError as exc:
        raise ConstructionError(f"Invalid store options: {exc}") from exc
