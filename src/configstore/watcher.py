"""Filesystem change notification sources."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Protocol, runtime_checkable

import structlog
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

EVENT_KINDS = frozenset({"created", "deleted", "modified", "moved", "closed", "opened"})


@dataclass(frozen=True, slots=True)
class FileEvent:
    """A change notification for one path."""

    path: str
    kinds: frozenset[str]
    dest_path: str | None = None

    def __post_init__(self) -> None:
        unknown = self.kinds - EVENT_KINDS
        if unknown:
            raise ValueError(f"Unknown event kinds: {sorted(unknown)}")

    def concerns(self, target: str | Path) -> bool:
        """Return True when the event is about ``target`` (either end of a move)."""
        return os.path.realpath(self.path) == os.path.realpath(target) or self.moved_to(target)

    def moved_to(self, target: str | Path) -> bool:
        """Return True when this is a move whose destination is ``target``."""
        if "moved" not in self.kinds or not self.dest_path:
            return False
        return os.path.realpath(self.dest_path) == os.path.realpath(target)


EventBatch = list[FileEvent]
EventCallback = Callable[[EventBatch], None]


@runtime_checkable
class WatchHandle(Protocol):
    """A live subscription; ``stop`` releases it."""

    def stop(self) -> None:
        """Release the subscription. Must be safe to call more than once."""


@runtime_checkable
class EventSource(Protocol):
    """Subscribe to a directory and receive batches of change events.

    ``callback`` may run on any thread, so implementations must never expect
    it to do more than hand the batch off.
    """

    def subscribe(self, directory: Path, callback: EventCallback) -> WatchHandle:
        """Start watching ``directory`` and return the subscription handle."""


def _kind_of(event: FileSystemEvent) -> str:
    kind = event.event_type
    if kind.startswith("closed"):
        return "closed"
    return kind


class _ForwardingHandler(FileSystemEventHandler):
    """Translate watchdog events into one-element batches."""

    def __init__(self, callback: EventCallback):
        super().__init__()
        self._callback = callback

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        kind = _kind_of(event)
        if kind not in EVENT_KINDS:
            return
        dest_path = getattr(event, "dest_path", "") or None
        self._callback(
            [
                FileEvent(
                    path=os.fsdecode(event.src_path),
                    kinds=frozenset({kind}),
                    dest_path=os.fsdecode(dest_path) if dest_path else None,
                )
            ]
        )


class _ObserverHandle:
    def __init__(self, observer: Observer, directory: Path):
        self._observer = observer
        self._directory = directory
        self._stopped = False
        self._logger = structlog.get_logger(__name__)

    def stop(self) -> None:
        if self._stopped:
            return
        self._stopped = True
        self._observer.stop()
        self._observer.join()
        self._logger.debug("watcher.stopped", directory=str(self._directory))


class WatchdogEventSource:
    """Event source backed by a watchdog ``Observer``."""

    def __init__(self, *, observer_factory: Callable[[], Observer] = Observer) -> None:
        self._observer_factory = observer_factory
        self._logger = structlog.get_logger(__name__)

    def subscribe(self, directory: Path, callback: EventCallback) -> WatchHandle:
        observer = self._observer_factory()
        observer.daemon = True
        observer.schedule(_ForwardingHandler(callback), str(directory), recursive=False)
        observer.start()
        self._logger.debug("watcher.started", directory=str(directory))
        return _ObserverHandle(observer, directory)


__all__ = [
    "EVENT_KINDS",
    "FileEvent",
    "EventBatch",
    "EventCallback",
    "EventSource",
    "WatchHandle",
    "WatchdogEventSource",
]
