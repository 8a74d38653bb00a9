"""Unit tests for the watchdog bridge."""

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

pytest.importorskip("watchdog")

from watchdog.events import (  # noqa: E402
    DirModifiedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
)

from keygraph.cli.watcher import CoordinatorEventHandler, KeygraphWatcher  # noqa: E402
from keygraph.core.types import ChangeKind  # noqa: E402


@pytest.fixture
def coordinator():
    mock = MagicMock()
    mock.notify.return_value = True
    return mock


@pytest.fixture
def handler(coordinator):
    return CoordinatorEventHandler(coordinator)


class TestCoordinatorEventHandler:
    def test_modified(self, handler, coordinator):
        handler.on_modified(FileModifiedEvent("/p/src/lib/Card.svelte"))
        coordinator.notify.assert_called_once_with(Path("/p/src/lib/Card.svelte"), ChangeKind.CHANGED)

    def test_created(self, handler, coordinator):
        handler.on_created(FileCreatedEvent("/p/src/lib/Card.svelte"))
        coordinator.notify.assert_called_once_with(Path("/p/src/lib/Card.svelte"), ChangeKind.ADDED)

    def test_deleted(self, handler, coordinator):
        handler.on_deleted(FileDeletedEvent("/p/src/lib/Card.svelte"))
        coordinator.notify.assert_called_once_with(Path("/p/src/lib/Card.svelte"), ChangeKind.REMOVED)

    def test_moved_is_remove_then_add(self, handler, coordinator):
        handler.on_moved(FileMovedEvent("/p/src/lib/Old.svelte", "/p/src/lib/New.svelte"))
        assert [c.args for c in coordinator.notify.call_args_list] == [
            (Path("/p/src/lib/Old.svelte"), ChangeKind.REMOVED),
            (Path("/p/src/lib/New.svelte"), ChangeKind.ADDED),
        ]

    def test_directory_events_are_ignored(self, handler, coordinator):
        handler.on_modified(DirModifiedEvent("/p/src/lib"))
        coordinator.notify.assert_not_called()

    def test_bytes_paths(self, handler, coordinator):
        handler.on_modified(FileModifiedEvent(b"/p/src/lib/Card.svelte"))
        coordinator.notify.assert_called_once_with(Path("/p/src/lib/Card.svelte"), ChangeKind.CHANGED)


class TestKeygraphWatcher:
    def test_start_schedules_scan_roots(self, blog_project, coordinator):
        with patch("keygraph.cli.watcher.Observer") as mock_observer:
            watcher = KeygraphWatcher(blog_project, coordinator)
            watcher.start()
            watcher.stop()

        coordinator.start.assert_called_once()
        observer = mock_observer.return_value
        scheduled = [c.args[1] for c in observer.schedule.call_args_list]
        # The key source lives under src, so one recursive watch covers it
        assert scheduled == [str(blog_project.source_dir)]
        observer.start.assert_called_once()
        observer.stop.assert_called_once()
        coordinator.stop.assert_called_once()

    def test_key_source_outside_roots(self, make_project, coordinator):
        config = make_project({
            "src/routes/+page.svelte": "",
            "i18n/defaults.ts": "export default {};\n",
        }, key_source="i18n/defaults.ts")

        with patch("keygraph.cli.watcher.Observer") as mock_observer:
            KeygraphWatcher(config, coordinator).start()

        calls = mock_observer.return_value.schedule.call_args_list
        assert [(c.args[1], c.kwargs["recursive"]) for c in calls] == [
            (str(config.source_dir), True),
            (str(config.project_root / "i18n"), False),
        ]

    def test_run_forever_stops_on_interrupt(self, blog_project, coordinator):
        watcher = KeygraphWatcher(blog_project, coordinator)
        with patch("keygraph.cli.watcher.Observer"), \
                patch("keygraph.cli.watcher.time.sleep", side_effect=KeyboardInterrupt):
            watcher.run_forever()

        coordinator.stop.assert_called_once()
        assert watcher.observer is None
