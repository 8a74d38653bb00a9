"""
Dependency Graph Builder.

Walks the permitted roots of a project, reads every component document
once, and records the references it makes. The builder is stateless: every
call produces a fresh graph.
"""

import logging
import time
from pathlib import Path
from typing import Generator, Optional

from ..config import EngineConfig, load_config
from ..core.graph import DependencyGraph
from ..parsing.extractor import extract_references
from ..parsing.paths import ImportResolver, is_safe_path, normalize_path

logger = logging.getLogger(__name__)


def create_resolver(config: EngineConfig) -> ImportResolver:
    return ImportResolver(
        project_root=config.project_root,
        allowed_roots=config.allowed_roots,
        aliases=config.aliases,
        extension=config.component_extension,
    )


def discover_documents(config: EngineConfig) -> Generator[Path, None, None]:
    """Recursive component discovery over the scan roots."""
    for scan_root in config.scan_roots:
        if not scan_root.is_dir():
            logger.debug(f"Scan root {scan_root} does not exist, skipping")
            continue

        for root, dirs, files in scan_root.walk():
            dirs[:] = sorted(d for d in dirs if not config.should_skip_dir(d))

            for file in sorted(files):
                path = root / file
                if config.is_component(path):
                    yield Path(normalize_path(path))


def build_graph(project_root: Path, config: Optional[EngineConfig] = None) -> DependencyGraph:
    """
    Build the reference graph of a project.

    Unreadable documents are logged and skipped; unresolvable or unsafe
    references never become edges.
    """
    if config is None:
        config = load_config(project_root)

    start_time = time.perf_counter()
    graph = DependencyGraph()
    resolver = create_resolver(config)
    failed = 0

    for path in discover_documents(config):
        if not is_safe_path(path, config.allowed_roots):
            continue
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Failed to read {path}: {e}")
            failed += 1
            continue

        graph.add_document(path)
        for target in extract_references(text, path, resolver):
            graph.add_reference(path, target)

    elapsed_ms = (time.perf_counter() - start_time) * 1000
    logger.debug(
        f"Built graph: {graph.document_count} documents, "
        f"{graph.reference_count} references, {failed} unreadable ({elapsed_ms:.1f}ms)"
    )
    return graph
