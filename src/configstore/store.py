"""YAML-backed configuration store with optional filesystem-driven reload."""

from __future__ import annotations

import copy
import queue
import threading
from collections.abc import Sequence
from concurrent.futures import Future
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pendulum
import structlog

from .errors import ConfigNotFoundError, ConfigParseError, ConstructionError, StoreStoppedError
from .parser import parse_file
from .paths import MISSING, assign, normalize_path, resolve
from .registry import StoreRegistry, default_registry
from .schemas import StoreOptions, StoreStatus, load_options
from .watcher import EventBatch, EventSource, WatchdogEventSource, WatchHandle


@dataclass(slots=True)
class StoreState:
    """Everything the worker owns. Never touched from other threads."""

    source_path: Path
    watch_enabled: bool
    tree: Any = field(default_factory=dict)
    watcher_handle: WatchHandle | None = None
    loaded_at: pendulum.DateTime | None = None
    last_error: str | None = None
    reload_count: int = 0
    source_present: bool = True


@dataclass(slots=True)
class _Request:
    op: str
    args: tuple[Any, ...] = ()
    future: Future | None = None


class ConfigStore:
    """Serve lookups from one YAML document, one request at a time.

    Every operation is queued on a private inbox and executed by a single
    worker thread, in arrival order. Filesystem notifications go through the
    same inbox, so a reload can never interleave with a ``get`` or ``put``.
    """

    def __init__(
        self,
        options: StoreOptions,
        *,
        event_source: EventSource | None = None,
        registry: StoreRegistry | None = None,
    ) -> None:
        self._options = options
        self._event_source = event_source
        self._registry = registry if registry is not None else default_registry
        self._state = StoreState(
            source_path=Path(options.config_file).absolute(),
            watch_enabled=options.watch_fs,
        )
        self._inbox: queue.Queue[_Request] = queue.Queue()
        self._admission = threading.Lock()
        self._stopped = False
        self._thread = threading.Thread(
            target=self._run,
            name=f"configstore-{options.name or self._state.source_path.name}",
            daemon=True,
        )
        self._logger = structlog.get_logger(__name__).bind(
            store=options.name or str(self._state.source_path)
        )

    @classmethod
    def start(
        cls,
        config_file: str | Path,
        watch_fs: bool = False,
        name: str | None = None,
        *,
        event_source: EventSource | None = None,
        registry: StoreRegistry | None = None,
    ) -> "ConfigStore":
        """Start a store and perform the initial parse before returning.

        A document that fails to parse leaves the store running with an empty
        tree. A watcher that cannot be set up, invalid options or a name that
        is already taken raise ``ConstructionError``.
        """
        options = load_options({"config_file": config_file, "watch_fs": watch_fs, "name": name})
        store = cls(options, event_source=event_source, registry=registry)
        store._boot()
        return store

    @property
    def name(self) -> str | None:
        return self._options.name

    @property
    def source_path(self) -> Path:
        return self._state.source_path

    @property
    def running(self) -> bool:
        return not self._stopped and self._thread.is_alive()

    def reload(self) -> None:
        """Reread the source file; raises ``ConfigParseError`` and keeps the old tree on failure."""
        self._call("reload")

    def get(self, path: str | Sequence[str], default: Any = None) -> Any:
        """Return the value at ``path``, or ``default`` when it is absent."""
        return self._call("get", normalize_path(path), default)

    def get_required(self, path: str | Sequence[str]) -> Any:
        """Return the value at ``path``; raise ``ConfigNotFoundError`` when absent."""
        keys = normalize_path(path)
        value = self._call("get", keys, MISSING)
        if value is MISSING:
            raise ConfigNotFoundError(keys)
        return value

    def put(self, path: str | Sequence[str], value: Any) -> None:
        """Set ``path`` in memory only. The source file is never written."""
        keys = normalize_path(path)
        if not keys:
            raise ValueError("Cannot put to an empty path")
        self._call("put", keys, value)

    def status(self) -> StoreStatus:
        return self._call("status")

    def stop(self, timeout: float | None = None) -> None:
        """Stop the worker and release the watcher subscription."""
        if threading.current_thread() is self._thread:
            raise RuntimeError("A store cannot be stopped from its own worker thread")
        with self._admission:
            if self._stopped:
                return
            self._stopped = True
            request = _Request("stop", future=Future())
            self._inbox.put(request)
        if self._thread.is_alive():
            request.future.result(timeout=timeout)
            self._thread.join(timeout=timeout)
        if self._options.name:
            self._registry.unregister(self._options.name, self)
        self._logger.info("store.stopped")

    def __enter__(self) -> "ConfigStore":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    def __repr__(self) -> str:
        return f"ConfigStore(name={self._options.name!r}, source={str(self._state.source_path)!r})"

    def _boot(self) -> None:
        self._thread.start()
        try:
            self._call("init")
            if self._options.name:
                self._registry.register(self._options.name, self)
        except Exception:
            self.stop()
            raise
        self._logger.info(
            "store.started",
            source=str(self._state.source_path),
            watch_fs=self._state.watch_enabled,
        )

    def _call(self, op: str, *args: Any) -> Any:
        if threading.current_thread() is self._thread:
            raise RuntimeError("Store requests cannot be made from the store's worker thread")
        future: Future = Future()
        with self._admission:
            if self._stopped:
                raise StoreStoppedError(f"{self!r} has been stopped")
            self._inbox.put(_Request(op, args, future))
        return future.result()

    def _notify(self, batch: EventBatch) -> None:
        """Queue a watcher batch; called from the watcher's thread."""
        with self._admission:
            if self._stopped:
                return
            self._inbox.put(_Request("events", (batch,)))

    def _run(self) -> None:
        while True:
            request = self._inbox.get()
            if request.op == "stop":
                self._release_watcher()
                request.future.set_result(None)
                break
            handler = getattr(self, f"_handle_{request.op}")
            if request.future is None:
                try:
                    handler(*request.args)
                except Exception:
                    self._logger.exception("store.notification_failed", op=request.op)
                continue
            try:
                result = handler(*request.args)
            except Exception as exc:
                request.future.set_exception(exc)
            else:
                request.future.set_result(result)

    def _handle_init(self) -> None:
        try:
            self._load(trigger="startup")
        except ConfigParseError:
            pass  # already logged; start empty
        if not self._state.watch_enabled:
            return
        source = self._event_source or WatchdogEventSource()
        directory = self._state.source_path.parent
        try:
            self._state.watcher_handle = source.subscribe(directory, self._notify)
        except Exception as exc:
            raise ConstructionError(f"Failed to watch {directory}: {exc}") from exc

    def _handle_reload(self) -> None:
        self._load(trigger="reload")

    def _handle_get(self, keys: tuple[str, ...], default: Any) -> Any:
        value = resolve(self._state.tree, keys)
        if value is MISSING:
            return default
        return copy.deepcopy(value)

    def _handle_put(self, keys: tuple[str, ...], value: Any) -> None:
        self._state.tree = assign(self._state.tree, keys, copy.deepcopy(value))

    def _handle_status(self) -> StoreStatus:
        state = self._state
        return StoreStatus(
            name=self._options.name,
            source_path=state.source_path,
            watch_enabled=state.watch_enabled,
            running=True,
            source_present=state.source_present,
            loaded_at=state.loaded_at,
            last_error=state.last_error,
            reload_count=state.reload_count,
        )

    def _handle_events(self, batch: EventBatch) -> None:
        source = self._state.source_path
        modified = False
        for event in batch:
            if not event.concerns(source):
                continue
            if "modified" in event.kinds:
                modified = True
            moved_away = "moved" in event.kinds and not event.moved_to(source)
            if "deleted" in event.kinds or moved_away:
                self._state.source_present = False
                self._logger.warning("config.source_deleted", source=str(source))
            elif "created" in event.kinds or "moved" in event.kinds:
                self._state.source_present = True
                self._logger.info("config.source_created", source=str(source))
        if not modified:
            return
        try:
            self._load(trigger="watch")
        except ConfigParseError:
            pass  # logged by _load; keep serving the last good tree

    def _load(self, *, trigger: str) -> None:
        state = self._state
        self._logger.info("config.loading", source=str(state.source_path), trigger=trigger)
        try:
            tree = parse_file(state.source_path)
        except ConfigParseError as exc:
            state.last_error = exc.reason
            state.source_present = state.source_path.exists()
            self._logger.error(
                "config.parse_failed",
                source=str(state.source_path),
                trigger=trigger,
                error=exc.reason,
            )
            raise
        state.tree = tree
        state.loaded_at = pendulum.now()
        state.last_error = None
        state.reload_count += 1
        state.source_present = True
        self._logger.debug("config.loaded", trigger=trigger, tree=tree)

    def _release_watcher(self) -> None:
        handle = self._state.watcher_handle
        self._state.watcher_handle = None
        if handle is None:
            return
        try:
            handle.stop()
        except Exception:
            self._logger.exception("watcher.stop_failed")


def get_store(name: str, *, registry: StoreRegistry | None = None) -> ConfigStore:
    """Return the running store registered under ``name``."""
    return (registry if registry is not None else default_registry).get(name)


def ensure_started(
    name: str,
    config_file: str | Path,
    watch_fs: bool = False,
    *,
    event_source: EventSource | None = None,
    registry: StoreRegistry | None = None,
) -> ConfigStore:
    """Return the store named ``name``, starting it first when it is not running."""
    registry = registry if registry is not None else default_registry
    try:
        return registry.get(name)
    except KeyError:
        structlog.get_logger(__name__).error("store.not_running", store=name)
    return ConfigStore.start(
        config_file,
        watch_fs=watch_fs,
        name=name,
        event_source=event_source,
        registry=registry,
    )


__all__ = ["ConfigStore", "StoreState", "get_store", "ensure_started"]
