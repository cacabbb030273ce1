from __future__ import annotations

from pathlib import Path

import pytest
from structlog.testing import capture_logs

from configstore import ConfigStore, ConstructionError, FileEvent, StoreRegistry


class FakeHandle:
    def __init__(self) -> None:
        self.stopped = False

    def stop(self) -> None:
        self.stopped = True


class FakeEventSource:
    """Event source that lets tests push notifications by hand."""

    def __init__(self) -> None:
        self.subscriptions: list[tuple[Path, object, FakeHandle]] = []

    def subscribe(self, directory: Path, callback) -> FakeHandle:
        handle = FakeHandle()
        self.subscriptions.append((directory, callback, handle))
        return handle

    def send(self, batch: list[FileEvent]) -> None:
        for _, callback, handle in self.subscriptions:
            if not handle.stopped:
                callback(batch)

    def emit(self, path: Path, *kinds: str, dest_path: Path | None = None) -> None:
        self.send(
            [
                FileEvent(
                    path=str(path),
                    kinds=frozenset(kinds),
                    dest_path=str(dest_path) if dest_path else None,
                )
            ]
        )


class BrokenEventSource:
    def subscribe(self, directory: Path, callback):
        raise OSError("inotify watch limit reached")


def write_config(tmp_path: Path, contents: str) -> Path:
    path = tmp_path / "app.yml"
    path.write_text(contents, encoding="utf-8")
    return path


@pytest.fixture
def source() -> FakeEventSource:
    return FakeEventSource()


@pytest.fixture
def watched(tmp_path: Path, source: FakeEventSource):
    path = write_config(tmp_path, "---\nfoo: bar\n")
    store = ConfigStore.start(
        path,
        watch_fs=True,
        event_source=source,
        registry=StoreRegistry(),
    )
    yield path, store
    store.stop()


def test_subscribes_to_containing_directory(tmp_path: Path, source: FakeEventSource, watched):
    path, store = watched

    assert len(source.subscriptions) == 1
    directory, _, _ = source.subscriptions[0]
    assert directory == path.parent.absolute()
    assert store.status().watch_enabled is True


def test_modified_event_triggers_reload(source: FakeEventSource, watched):
    path, store = watched

    path.write_text("---\nfoo: baz\n", encoding="utf-8")
    source.emit(path, "modified")

    # The get is queued behind the notification, so it sees the reload.
    assert store.get("foo") == "baz"


def test_modified_event_discards_overrides(source: FakeEventSource, watched):
    path, store = watched

    store.put("foo", "override")
    source.emit(path, "modified")

    assert store.get("foo") == "bar"


def test_other_event_kinds_do_not_reload(source: FakeEventSource, watched):
    path, store = watched

    path.write_text("---\nfoo: baz\n", encoding="utf-8")
    source.emit(path, "created")
    source.emit(path, "closed")
    source.emit(path, "opened")

    assert store.get("foo") == "bar"
    assert store.status().reload_count == 1


def test_events_for_other_files_are_ignored(tmp_path: Path, source: FakeEventSource, watched):
    path, store = watched

    path.write_text("---\nfoo: baz\n", encoding="utf-8")
    source.emit(tmp_path / "neighbour.yml", "modified")

    assert store.get("foo") == "bar"


def test_one_reload_per_batch(source: FakeEventSource, watched):
    path, store = watched

    source.send(
        [
            FileEvent(path=str(path), kinds=frozenset({"modified"})),
            FileEvent(path=str(path), kinds=frozenset({"modified", "closed"})),
        ]
    )

    assert store.status().reload_count == 2


def test_invalid_content_keeps_last_good_tree(tmp_path: Path, source: FakeEventSource):
    path = write_config(tmp_path, "---\nfoo: bar\nkeep: 1\n")
    with capture_logs() as logs:
        store = ConfigStore.start(
            path,
            watch_fs=True,
            event_source=source,
            registry=StoreRegistry(),
        )
        with store:
            path.write_text("foo: [unclosed\n", encoding="utf-8")
            source.emit(path, "modified")

            assert store.get("foo") == "bar"
            assert store.get("keep") == 1
            assert store.status().last_error

    failures = [entry for entry in logs if entry["event"] == "config.parse_failed"]
    assert failures and failures[-1]["trigger"] == "watch"


def test_deleted_source_keeps_tree_and_is_reported(source: FakeEventSource, watched):
    path, store = watched

    path.unlink()
    source.emit(path, "deleted")

    assert store.get("foo") == "bar"
    assert store.status().source_present is False

    path.write_text("---\nfoo: back\n", encoding="utf-8")
    source.emit(path, "created")
    source.emit(path, "modified")

    assert store.get("foo") == "back"
    assert store.status().source_present is True


def test_moving_source_away_and_back(tmp_path: Path, source: FakeEventSource, watched):
    path, store = watched
    elsewhere = tmp_path / "app.yml.bak"

    source.emit(path, "moved", dest_path=elsewhere)
    assert store.status().source_present is False

    source.emit(tmp_path / "app.yml.tmp", "moved", dest_path=path)
    assert store.status().source_present is True
    assert store.get("foo") == "bar"


def test_stop_releases_watcher(source: FakeEventSource, tmp_path: Path):
    path = write_config(tmp_path, "---\nfoo: bar\n")
    store = ConfigStore.start(path, watch_fs=True, event_source=source, registry=StoreRegistry())

    store.stop()

    _, _, handle = source.subscriptions[0]
    assert handle.stopped is True


def test_events_after_stop_are_dropped(source: FakeEventSource, tmp_path: Path):
    path = write_config(tmp_path, "---\nfoo: bar\n")
    store = ConfigStore.start(path, watch_fs=True, event_source=source, registry=StoreRegistry())
    _, callback, _ = source.subscriptions[0]
    store.stop()

    callback([FileEvent(path=str(path), kinds=frozenset({"modified"}))])

    assert not store.running


def test_watch_disabled_never_subscribes(source: FakeEventSource, tmp_path: Path):
    path = write_config(tmp_path, "---\nfoo: bar\n")

    with ConfigStore.start(path, event_source=source, registry=StoreRegistry()):
        assert source.subscriptions == []


def test_subscription_failure_aborts_start(tmp_path: Path):
    path = write_config(tmp_path, "---\nfoo: bar\n")
    registry = StoreRegistry()

    with pytest.raises(ConstructionError):
        ConfigStore.start(
            path,
            watch_fs=True,
            name="broken",
            event_source=BrokenEventSource(),
            registry=registry,
        )

    assert registry.names() == []


def test_invalid_utf8_edit_is_logged_as_watch_parse_failure(tmp_path: Path, source: FakeEventSource):
    path = write_config(tmp_path, "---\nfoo: bar\n")
    with capture_logs() as logs:
        store = ConfigStore.start(
            path,
            watch_fs=True,
            event_source=source,
            registry=StoreRegistry(),
        )
        with store:
            path.write_bytes(b"foo: \xff\xfe bar\n")
            source.emit(path, "modified")

            assert store.get("foo") == "bar"
            assert store.status().last_error

    events = [entry["event"] for entry in logs]
    assert "store.notification_failed" not in events
    failures = [entry for entry in logs if entry["event"] == "config.parse_failed"]
    assert failures[-1]["trigger"] == "watch"
