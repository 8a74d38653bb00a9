"""
Change Coordinator.

Turns file-watch events into debounced rescans:

    notify() ──▶ DEBOUNCING ──(quiet for debounce_delay)──▶ RESCANNING ──▶ IDLE

A rescan always rebuilds the reference graph, then (if the change can affect
translation usage at all) recomputes every entry's keys, rolls them down the
route tree, resynchronizes the affected artifacts and the RouteKeyMap, and
flushes the write queue.

The coordinator owns its write queue and timers; nothing here is a
module-level singleton.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Set

from ..analysis.routes import build_route_hierarchy, find_route_entries, route_contains
from ..analysis.usage import document_has_translation_usage, scan_entries
from ..config import EngineConfig
from ..graph.builder import build_graph
from ..parsing.paths import is_safe_path, normalize_path
from ..sync.artifact import ArtifactSynchronizer
from ..sync.route_map import RouteKeyMapWriter
from ..sync.writer import BatchWriteQueue, FlushReport
from .graph import DependencyGraph
from .key_source import KeySource, load_key_source
from .timers import CancellableTimer
from .types import ChangeKind, RouteNode

logger = logging.getLogger(__name__)


class CoordinatorState(StrEnum):
    IDLE = "idle"
    DEBOUNCING = "debouncing"
    RESCANNING = "rescanning"


@dataclass
class ScanSummary:
    """What one rescan did."""
    reason: str
    relevant: bool = True
    routes: int = 0
    synced: List[str] = field(default_factory=list)
    route_keys: Dict[str, List[str]] = field(default_factory=dict)
    report: FlushReport = field(default_factory=FlushReport)
    elapsed_ms: float = 0.0

    @property
    def written(self) -> int:
        return len(self.report.written)

    @property
    def skipped(self) -> int:
        return len(self.report.skipped)

    @property
    def abandoned(self) -> int:
        return len(self.report.abandoned)


def _merge_change(previous: Optional[ChangeKind], new: ChangeKind) -> ChangeKind:
    """Coalesce two events for the same path."""
    if previous is ChangeKind.ADDED and new is ChangeKind.CHANGED:
        return ChangeKind.ADDED
    if previous is ChangeKind.REMOVED and new is ChangeKind.ADDED:
        return ChangeKind.CHANGED
    return new


class ChangeCoordinator:
    """
    Debounced rescan driver for one project.

    Args:
        config: Resolved engine configuration.
        writer: Write queue to use; one is created from ``config`` if omitted.
    """

    def __init__(self, config: EngineConfig, writer: Optional[BatchWriteQueue] = None):
        self.config = config
        self.writer = writer or BatchWriteQueue.from_config(config)
        self.synchronizer = ArtifactSynchronizer.from_config(config, self.writer)
        self.route_map = RouteKeyMapWriter(config.route_map_path, self.writer)

        self.graph: Optional[DependencyGraph] = None
        self.key_source: Optional[KeySource] = None
        self.last_summary: Optional[ScanSummary] = None

        self._pending: Dict[Path, ChangeKind] = {}
        self._events_lock = threading.Lock()
        self._scan_lock = threading.RLock()
        self._state = CoordinatorState.IDLE
        self._usage_seen: Set[str] = set()
        self._timer = CancellableTimer(
            config.debounce_delay, self._run_from_timer, name="keygraph-debounce"
        )

    # --- Lifecycle ---

    @property
    def state(self) -> CoordinatorState:
        return self._state

    @property
    def pending_changes(self) -> Dict[Path, ChangeKind]:
        with self._events_lock:
            return dict(self._pending)

    def start(self) -> ScanSummary:
        """Load the key source and run the initial full scan."""
        logger.info(f"🚀 Starting keygraph for {self.config.project_root}")
        self.reload_key_source()
        return self.full_rescan(reason="initial scan")

    def stop(self) -> FlushReport:
        """Cancel pending timers and write out everything still queued."""
        self._timer.cancel()
        with self._events_lock:
            self._pending.clear()
        report = self.writer.force_flush()
        self._state = CoordinatorState.IDLE
        logger.info("🛑 keygraph stopped")
        return report

    # --- Events ---

    def is_key_source(self, path: Path | str) -> bool:
        if self.config.key_source is None:
            return False
        return normalize_path(path) == normalize_path(self.config.key_source)

    def is_tracked(self, path: Path | str) -> bool:
        """Whether an event for ``path`` can matter to any route."""
        if self.is_key_source(path):
            return True
        path = Path(normalize_path(path))
        if not self.config.is_component(path):
            return False
        if not is_safe_path(path, self.config.allowed_roots):
            return False
        try:
            rel_path = path.relative_to(self.config.project_root)
        except ValueError:
            return False
        return not any(self.config.should_skip_dir(part) for part in rel_path.parts[:-1])

    def notify(self, path: Path | str, change: ChangeKind = ChangeKind.CHANGED) -> bool:
        """
        Record a file event and (re)start the debounce timer.

        Returns False when the path is not something the engine tracks.
        """
        if not self.is_tracked(path):
            return False

        path = Path(normalize_path(path))
        with self._events_lock:
            self._pending[path] = _merge_change(self._pending.get(path), ChangeKind(change))
            if self._state is not CoordinatorState.RESCANNING:
                self._state = CoordinatorState.DEBOUNCING

        self._timer.schedule()
        return True

    def _run_from_timer(self) -> None:
        try:
            self.run_pending()
        except Exception as e:
            logger.error(f"❌ Rescan failed: {e}")

    def run_pending(self) -> Optional[ScanSummary]:
        """Process every coalesced event now."""
        with self._events_lock:
            changes = dict(self._pending)
            self._pending.clear()

        if not changes:
            return None

        with self._scan_lock:
            self._state = CoordinatorState.RESCANNING
            try:
                key_source_changed = any(self.is_key_source(p) for p in changes)
                components = {p: c for p, c in changes.items() if not self.is_key_source(p)}

                if key_source_changed and self.reload_key_source():
                    summary = self._full_rescan("key source changed")
                elif components:
                    summary = self._process_changes(components)
                else:
                    summary = ScanSummary(reason="key source unchanged", relevant=False)
            finally:
                with self._events_lock:
                    self._state = (
                        CoordinatorState.DEBOUNCING if self._pending else CoordinatorState.IDLE
                    )

        self.last_summary = summary
        return summary

    # --- Key source ---

    def reload_key_source(self) -> bool:
        """
        Load and hash the key source.

        Returns True when the table changed. A failed load keeps the
        previous table.
        """
        if self.config.key_source is None:
            return False

        result = load_key_source(self.config.key_source)
        if result.is_err():
            logger.warning(f"⚠️  {result.error}; keeping the previous key table")
            return False

        source = result.unwrap()
        if self.key_source is not None and self.key_source.digest == source.digest:
            logger.debug("Key source content unchanged")
            return False

        self.key_source = source
        logger.info(f"🔑 Loaded {len(source)} keys from {source.path.name}")
        return True

    # --- Rescans ---

    def full_rescan(self, reason: str = "full rescan", replace_route_map: bool = False) -> ScanSummary:
        """
        Rebuild everything and resynchronize every route.

        With ``replace_route_map`` the RouteKeyMap is rewritten from this scan
        alone instead of being merged into.
        """
        with self._scan_lock:
            summary = self._full_rescan(reason, replace_route_map)
        self.last_summary = summary
        return summary

    def process_change(self, path: Path | str, change: ChangeKind = ChangeKind.CHANGED) -> ScanSummary:
        """Handle a single component event immediately, bypassing the debounce."""
        path = Path(normalize_path(path))
        with self._scan_lock:
            if self.is_key_source(path):
                if self.reload_key_source():
                    summary = self._full_rescan("key source changed")
                else:
                    summary = ScanSummary(reason="key source unchanged", relevant=False)
            else:
                summary = self._process_changes({path: ChangeKind(change)})
        self.last_summary = summary
        return summary

    def _full_rescan(self, reason: str, replace_route_map: bool = False) -> ScanSummary:
        start_time = time.perf_counter()
        logger.info(f"🔍 Scanning routes ({reason})")

        self.graph = build_graph(self.config.project_root, self.config)
        self._usage_seen = {
            path for path in self.graph.iter_documents()
            if document_has_translation_usage(path, self.config.translation_modules)
        }
        routes = find_route_entries(self.config.routes_dir, self.config)
        summary = self._sync(routes, affected=None, reason=reason, replace_route_map=replace_route_map)
        summary.elapsed_ms = (time.perf_counter() - start_time) * 1000
        return summary

    def _is_relevant(self, path: Path, change: ChangeKind,
                     graph: DependencyGraph, previous: Optional[DependencyGraph]) -> bool:
        key = str(path)
        had_usage = key in self._usage_seen
        has_usage = change is not ChangeKind.REMOVED and document_has_translation_usage(
            path, self.config.translation_modules
        )
        if has_usage:
            self._usage_seen.add(key)
        else:
            self._usage_seen.discard(key)
        if has_usage or had_usage:
            return True

        users = graph.users_of(path)
        if change is ChangeKind.REMOVED and previous is not None:
            users |= previous.users_of(path)

        # A document that starts or stops rendering translated components
        # changes its users' keys even without usage of its own
        candidates = set(users)
        if previous is not None and previous.forward_edges(path) != graph.forward_edges(path):
            candidates |= previous.dependencies_of(path) | graph.dependencies_of(path)

        return any(
            key in self._usage_seen
            or document_has_translation_usage(key, self.config.translation_modules)
            for key in candidates
        )

    def _process_changes(self, changes: Mapping[Path, ChangeKind]) -> ScanSummary:
        start_time = time.perf_counter()
        previous = self.graph
        graph = build_graph(self.config.project_root, self.config)
        self.graph = graph

        relevant = [
            path for path, change in changes.items()
            if self._is_relevant(path, change, graph, previous)
        ]
        names = ", ".join(sorted(p.name for p in changes))
        if not relevant:
            logger.info(f"⏭️  No translation usage affected by {names}; skipping")
            return ScanSummary(reason=f"changed: {names}", relevant=False)

        logger.info(f"⚡ Change detected: {names}")

        affected_docs: Set[str] = set()
        for path in relevant:
            affected_docs.add(str(path))
            affected_docs |= graph.users_of(path)
            if previous is not None and changes[path] is ChangeKind.REMOVED:
                affected_docs |= previous.users_of(path)

        routes = find_route_entries(self.config.routes_dir, self.config)
        affected = {str(r.entry_path) for r in routes if str(r.entry_path) in affected_docs}
        layout_paths = [r.route_path for r in routes if r.is_layout and str(r.entry_path) in affected]
        # A page and a layout in one directory share a key set
        route_paths = {r.route_path for r in routes if str(r.entry_path) in affected}
        for route in routes:
            if route.route_path in route_paths or any(
                route_contains(layout, route.route_path) for layout in layout_paths
            ):
                affected.add(str(route.entry_path))

        summary = self._sync(routes, affected=affected, reason=f"changed: {names}")
        summary.elapsed_ms = (time.perf_counter() - start_time) * 1000
        return summary

    def compute_route_keys(self, routes: Iterable[RouteNode]) -> Dict[RouteNode, List[str]]:
        """Resolved keys of every route, layouts rolled down."""
        routes = list(routes)
        if self.graph is None:
            self.graph = build_graph(self.config.project_root, self.config)

        own = scan_entries(
            [r.entry_path for r in routes],
            self.graph,
            max_depth=self.config.max_scan_depth,
            handles=self.config.translation_handles,
            modules=self.config.translation_modules,
        )
        hierarchy = build_route_hierarchy((r, own[str(r.entry_path)]) for r in routes)
        table = self.key_source.table if self.key_source is not None else None
        return {r: hierarchy[r.route_path].resolve(table) for r in routes}

    def _sync(
        self,
        routes: List[RouteNode],
        affected: Optional[Set[str]],
        reason: str,
        replace_route_map: bool = False,
    ) -> ScanSummary:
        route_keys = self.compute_route_keys(routes)

        synced: List[str] = []
        map_entries: Dict[str, List[str]] = {}
        for route, keys in route_keys.items():
            if affected is None or str(route.entry_path) in affected:
                function_id = self.synchronizer.inject_keys(route.artifact_path, keys, route)
                if function_id is not None:
                    synced.append(function_id)
            if keys or route.artifact_path.exists():
                map_entries[route.function_id] = keys

        self.route_map.update(map_entries, replace=replace_route_map)
        self.writer.flush()
        report = self.writer.take_report()

        logger.info(
            f"✅ {len(synced)} routes in sync, {len(report.written)} files written"
            + (f", {len(report.abandoned)} abandoned" if report.abandoned else "")
        )
        return ScanSummary(
            reason=reason,
            routes=len(routes),
            synced=synced,
            route_keys={route.function_id: keys for route, keys in route_keys.items()},
            report=report,
        )
