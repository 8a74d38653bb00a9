"""
FileSystem Watcher Module.

Bridges watchdog file events to the change coordinator. The handler only
translates events; debouncing, relevance filtering and rescans all happen
in :class:`~keygraph.core.coordinator.ChangeCoordinator`.

Key Components:
- CoordinatorEventHandler: watchdog handler that forwards events.
- KeygraphWatcher: starts the coordinator and the observer, and stops both.
"""

import logging
import time
from pathlib import Path
from typing import Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from ..config import EngineConfig
from ..core.coordinator import ChangeCoordinator
from ..core.types import ChangeKind

logger = logging.getLogger(__name__)


class CoordinatorEventHandler(FileSystemEventHandler):
    """Forwards file system events to a coordinator."""

    def __init__(self, coordinator: ChangeCoordinator):
        self.coordinator = coordinator

    def on_modified(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        self._forward(event.src_path, ChangeKind.CHANGED)

    def on_created(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        self._forward(event.src_path, ChangeKind.ADDED)

    def on_deleted(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        self._forward(event.src_path, ChangeKind.REMOVED)

    def on_moved(self, event: FileSystemEvent) -> None:
        """A rename is a removal of the old path and an addition of the new one."""
        if event.is_directory:
            return
        self._forward(event.src_path, ChangeKind.REMOVED)
        self._forward(event.dest_path, ChangeKind.ADDED)

    def _forward(self, raw_path, change: ChangeKind) -> None:
        if isinstance(raw_path, bytes):
            raw_path = raw_path.decode()
        path = Path(raw_path)
        if self.coordinator.notify(path, change):
            logger.debug(f"Queued {change} event for {path.name}")


class KeygraphWatcher:
    """
    Main controller for the watch process.
    """

    def __init__(self, config: EngineConfig, coordinator: Optional[ChangeCoordinator] = None):
        self.config = config
        self.coordinator = coordinator or ChangeCoordinator(config)
        self.observer: Optional[Observer] = None

    def start(self) -> None:
        """Run the initial scan and start observing the project."""
        self.coordinator.start()

        handler = CoordinatorEventHandler(self.coordinator)
        self.observer = Observer()
        roots = [root for root in self.config.scan_roots if root.is_dir()]
        for root in roots:
            self.observer.schedule(handler, str(root), recursive=True)

        key_source = self.config.key_source
        if (
            key_source is not None
            and key_source.parent.is_dir()
            and not any(key_source.is_relative_to(r) for r in roots)
        ):
            self.observer.schedule(handler, str(key_source.parent), recursive=False)
        self.observer.start()

        logger.info("👀 keygraph is watching for changes. Press Ctrl+C to stop.")

    def run_forever(self) -> None:
        self.start()
        try:
            while True:
                time.sleep(1)
        except KeyboardInterrupt:
            self.stop()

    def stop(self) -> None:
        """Gracefully stop the observer and flush pending writes."""
        logger.info("Stopping watcher...")
        if self.observer:
            self.observer.stop()
            self.observer.join()
            self.observer = None
        self.coordinator.stop()
