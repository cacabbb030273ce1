"""Locate an application's config file: environment root first, bundled copy second."""

from __future__ import annotations

import os
from importlib import resources
from pathlib import Path
from typing import Mapping

import structlog

from .store import ConfigStore
from .watcher import EventSource

DEFAULT_ENV_VAR = "CONFIG_ROOT"


def bundled_config_path(app_name: str, *, package: str = "configstore") -> Path:
    """Path of the copy of ``<app_name>.yml`` shipped inside ``package``."""
    return Path(str(resources.files(package).joinpath("data").joinpath(f"{app_name}.yml")))


def resolve_config_path(
    app_name: str,
    *,
    env_var: str = DEFAULT_ENV_VAR,
    default_root: str | Path | None = None,
    package: str = "configstore",
    environ: Mapping[str, str] | None = None,
) -> Path:
    """Return ``<root>/config/<app_name>.yml`` if it exists, else the bundled file.

    ``root`` comes from ``env_var`` and defaults to ``default_root`` (or
    ``/opt/<app_name>``).
    """
    logger = structlog.get_logger(__name__)
    environ = os.environ if environ is None else environ
    root = environ.get(env_var) or str(default_root or Path("/opt") / app_name)
    wanted = Path(root) / "config" / f"{app_name}.yml"
    logger.debug("config.path_wanted", path=str(wanted), env_var=env_var)

    if wanted.exists():
        return wanted

    fallback = bundled_config_path(app_name, package=package)
    logger.error("config.fallback_used", wanted=str(wanted), fallback=str(fallback))
    return fallback


def start_app_store(
    app_name: str,
    *,
    watch_fs: bool = False,
    name: str | None = None,
    env_var: str = DEFAULT_ENV_VAR,
    default_root: str | Path | None = None,
    package: str = "configstore",
    event_source: EventSource | None = None,
) -> ConfigStore:
    """Resolve the application's config file once and start a store on it."""
    path = resolve_config_path(
        app_name,
        env_var=env_var,
        default_root=default_root,
        package=package,
    )
    return ConfigStore.start(
        path,
        watch_fs=watch_fs,
        name=name or app_name,
        event_source=event_source,
    )


__all__ = ["DEFAULT_ENV_VAR", "bundled_config_path", "resolve_config_path", "start_app_store"]
