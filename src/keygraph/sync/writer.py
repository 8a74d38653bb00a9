"""
Batched Write Queue.

Accumulates artifact writes and executes them in batches. Writes are keyed
by path (last write wins), content identical to what is on disk never
reaches the disk, and a file that currently carries external debugging
instrumentation is left alone until the instrumentation goes away.
"""

import concurrent.futures as cf
import logging
import re
import threading
import time
from collections import defaultdict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional

from ..config import EngineConfig
from ..core.timers import CancellableTimer
from ..core.types import WriteRequest

logger = logging.getLogger(__name__)

# Signatures of debug/eval scaffolding injected into source files by editor
# tooling. Writing over such a file corrupts it for that tool.
INSTRUMENTATION_PATTERNS: List[re.Pattern] = [
    re.compile(r"\boo_[a-zA-Z_][a-zA-Z0-9_]*"),
    re.compile(r"/\* istanbul ignore next \*/.*function.*oo_"),
    re.compile(r"globalThis\._console_ninja"),
    re.compile(r"console-ninja"),
    re.compile(r"\(0,\s*eval\)\("),
    re.compile(r"/\* c8 ignore start \*/"),
    re.compile(r"_console_ninja_session"),
]

WRITTEN = "written"
SKIPPED = "skipped"
ABANDONED = "abandoned"


def has_instrumentation(content: str) -> bool:
    """Detect external instrumentation in a file's content."""
    return any(pattern.search(content) for pattern in INSTRUMENTATION_PATTERNS)


def read_current(path: Path) -> Optional[str]:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return None


@dataclass
class FlushReport:
    """Outcome of one flush."""
    written: List[Path] = field(default_factory=list)
    skipped: List[Path] = field(default_factory=list)
    abandoned: List[Path] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.written) + len(self.skipped) + len(self.abandoned)

    def merge(self, other: "FlushReport") -> "FlushReport":
        return FlushReport(
            written=self.written + other.written,
            skipped=self.skipped + other.skipped,
            abandoned=self.abandoned + other.abandoned,
        )

    def record(self, path: Path, outcome: str) -> None:
        getattr(self, outcome).append(path)


class BatchWriteQueue:
    """
    Batch file writer.

    A flush is scheduled ``flush_delay`` seconds after the first queued
    write, or runs at once when ``batch_size`` writes are pending.
    """

    def __init__(
        self,
        batch_size: int = 10,
        flush_delay: float = 0.05,
        max_retries: int = 3,
        retry_delay: float = 0.1,
        interference_guard: bool = True,
        max_workers: Optional[int] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.batch_size = batch_size
        self.flush_delay = flush_delay
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.interference_guard = interference_guard
        self.max_workers = max_workers
        self._sleep = sleep

        self._pending: Dict[Path, WriteRequest] = {}
        self._lock = threading.Lock()
        self._flush_lock = threading.Lock()
        self._timer = CancellableTimer(flush_delay, self._flush_from_timer, name="keygraph-flush")
        self._write_count = 0
        self._last_report = FlushReport()
        self._unreported = FlushReport()

    @classmethod
    def from_config(cls, config: EngineConfig) -> "BatchWriteQueue":
        return cls(
            batch_size=config.batch_size,
            flush_delay=config.flush_delay,
            max_retries=config.max_retries,
            retry_delay=config.retry_delay,
            interference_guard=config.interference_guard,
        )

    # --- Queueing ---

    def queue_write(self, path: Path | str, content: str) -> bool:
        """
        Queue a file write.

        Returns False when the content already matches the disk, in which
        case any older pending write for the same path is dropped as well.
        """
        path = Path(path)
        if read_current(path) == content:
            with self._lock:
                self._pending.pop(path, None)
            logger.debug(f"⏭️  Skipping {path} - no changes detected")
            return False

        with self._lock:
            self._pending[path] = WriteRequest(path=path, content=content)
            size = len(self._pending)

        if size >= self.batch_size:
            self.flush()
        elif not self._timer.pending:
            self._timer.schedule()
        return True

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    @property
    def write_count(self) -> int:
        """Files actually written to disk since creation."""
        return self._write_count

    @property
    def last_report(self) -> FlushReport:
        return self._last_report

    def take_report(self) -> FlushReport:
        """Outcomes of every flush since the last call, scheduled flushes included."""
        with self._lock:
            report, self._unreported = self._unreported, FlushReport()
        return report

    def clear(self) -> None:
        """Drop every pending write without touching the disk."""
        self._timer.cancel()
        with self._lock:
            self._pending.clear()

    # --- Flushing ---

    def _flush_from_timer(self) -> None:
        try:
            self.flush()
        except Exception as e:
            logger.error(f"❌ Scheduled flush failed: {e}")

    def flush(self) -> FlushReport:
        """Execute every pending write and wait for all of them."""
        self._timer.cancel()

        with self._flush_lock:
            with self._lock:
                writes = list(self._pending.values())
                self._pending.clear()

            report = FlushReport()
            if not writes:
                return report

            logger.debug(f"📝 Executing batch write of {len(writes)} files")

            groups: Dict[Path, List[WriteRequest]] = defaultdict(list)
            for request in writes:
                groups[request.path.parent].append(request)

            for directory in groups:
                try:
                    directory.mkdir(parents=True, exist_ok=True)
                except OSError as e:
                    logger.debug(f"Could not create {directory}: {e}")

            workers = self.max_workers or min(32, len(writes))
            with cf.ThreadPoolExecutor(max_workers=workers) as ex:
                futures = {
                    ex.submit(self._write_one, request): request
                    for dir_writes in groups.values()
                    for request in dir_writes
                }
                for future in cf.as_completed(futures):
                    request = futures[future]
                    report.record(request.path, future.result())

            logger.debug(
                f"✅ Completed batch write: {len(report.written)} written, "
                f"{len(report.skipped)} skipped, {len(report.abandoned)} abandoned"
            )
            self._last_report = report
            with self._lock:
                self._unreported = self._unreported.merge(report)
            return report

    def force_flush(self) -> FlushReport:
        """Flush now, regardless of batch size or timer state."""
        return self.flush()

    def _write_one(self, request: WriteRequest) -> str:
        attempts = self.max_retries + 1

        for attempt in range(1, attempts + 1):
            request.attempts = attempt
            current = read_current(request.path)

            if current == request.content:
                return SKIPPED

            if self.interference_guard and current and has_instrumentation(current):
                if attempt >= attempts:
                    logger.warning(
                        f"⚠️  Instrumentation detected in {request.path}; "
                        f"write abandoned after {self.max_retries} retries"
                    )
                    return ABANDONED
                logger.debug(f"🔄 Instrumentation in {request.path}, retry {attempt}")
                self._sleep(self.retry_delay * attempt)
                continue

            try:
                request.path.write_text(request.content, encoding="utf-8")
            except OSError as e:
                logger.error(f"❌ Failed to write {request.path}: {e}")
                return ABANDONED

            with self._lock:
                self._write_count += 1
            logger.debug(f"✅ Wrote {request.path}")
            return WRITTEN

        return ABANDONED
