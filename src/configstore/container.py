"""Dependency injection container for applications using a config store."""

from __future__ import annotations

from typing import Iterator

from dependency_injector import containers, providers

from .bootstrap import DEFAULT_ENV_VAR, resolve_config_path
from .store import ConfigStore
from .watcher import EventSource, WatchdogEventSource


def _open_store(
    config_file,
    watch_fs: bool,
    name: str | None,
    event_source: EventSource | None,
) -> Iterator[ConfigStore]:
    store = ConfigStore.start(
        config_file,
        watch_fs=watch_fs,
        name=name,
        event_source=event_source,
    )
    try:
        yield store
    finally:
        store.stop()


class ApplicationContainer(containers.DeclarativeContainer):
    """Dependency-injector container definition."""

    config = providers.Configuration()

    event_source = providers.Singleton(WatchdogEventSource)

    config_path = providers.Callable(
        resolve_config_path,
        config.app_name,
        env_var=config.env_var,
        default_root=config.config_root,
    )

    store = providers.Resource(
        _open_store,
        config_file=config_path,
        watch_fs=config.watch_fs,
        name=config.store_name,
        event_source=event_source,
    )


def create_container(*, settings: dict | None = None) -> ApplicationContainer:
    """Instantiate container with optional overrides."""

    container = ApplicationContainer()
    container.config.from_dict(
        {
            "app_name": "configstore",
            "env_var": DEFAULT_ENV_VAR,
            "config_root": None,
            "watch_fs": False,
            "store_name": None,
        }
    )

    if not settings:
        return container

    container.config.from_dict(settings)

    if settings.get("config_file"):
        container.config_path.override(providers.Object(settings["config_file"]))

    return container
