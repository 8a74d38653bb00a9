"""
Usage Scanner.

Computes the translation keys reachable from a document by following its
forward references. Documents are read on demand and never cached across
scans; a missing or unreadable document contributes nothing.
"""

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set

from ..config import MAX_SCAN_DEPTH
from ..core.graph import DependencyGraph
from ..core.types import KeyUsage
from ..parsing.extractor import (
    DEFAULT_TRANSLATION_HANDLES,
    DEFAULT_TRANSLATION_MODULES,
    extract_key_usage,
    has_translation_usage,
)

logger = logging.getLogger(__name__)


def read_document(path: Path | str) -> Optional[str]:
    try:
        return Path(path).read_text(encoding="utf-8")
    except FileNotFoundError:
        logger.debug(f"Document {path} no longer exists, skipping")
    except (OSError, UnicodeDecodeError) as e:
        logger.warning(f"Failed to read {path}: {e}")
    return None


def document_keys(
    path: Path | str,
    handles: Iterable[str] = DEFAULT_TRANSLATION_HANDLES,
    modules: Iterable[str] = DEFAULT_TRANSLATION_MODULES,
) -> KeyUsage:
    """Keys invoked directly by one document."""
    text = read_document(path)
    if text is None:
        return KeyUsage()
    return extract_key_usage(text, handles=handles, modules=modules)


def scan_transitive_keys(
    entry_path: Path | str,
    graph: DependencyGraph,
    visited: Optional[Set[str]] = None,
    max_depth: int = MAX_SCAN_DEPTH,
    handles: Iterable[str] = DEFAULT_TRANSLATION_HANDLES,
    modules: Iterable[str] = DEFAULT_TRANSLATION_MODULES,
) -> KeyUsage:
    """
    Own keys of ``entry_path`` plus the keys of everything it renders.

    Args:
        entry_path: Document to start from.
        graph: Reference graph of the project.
        visited: Paths already scanned. Mutated in place, so a caller can
            share it across calls; a document already in it contributes
            nothing.
        max_depth: Bound on ``len(visited)``. Once reached, descent stops
            and the keys gathered so far are returned.
        handles: Translation namespace handle names.
        modules: Translation module specifiers.
    """
    if visited is None:
        visited = set()

    usage = KeyUsage()
    handles = set(handles)
    modules = set(modules)
    stack: List[str] = [str(entry_path)]

    while stack:
        path = stack.pop()
        if path in visited:
            continue
        if len(visited) >= max_depth:
            logger.debug(
                f"Scan depth limit ({max_depth}) reached below {entry_path}, "
                f"{len(stack) + 1} documents not scanned"
            )
            break

        visited.add(path)
        usage.update(document_keys(path, handles, modules))

        # Reversed so documents pop in sorted order
        for target in reversed(graph.forward_edges(path)):
            if target not in visited:
                stack.append(target)

    return usage


def scan_entries(
    entries: Iterable[Path | str],
    graph: DependencyGraph,
    max_depth: int = MAX_SCAN_DEPTH,
    handles: Iterable[str] = DEFAULT_TRANSLATION_HANDLES,
    modules: Iterable[str] = DEFAULT_TRANSLATION_MODULES,
) -> Dict[str, KeyUsage]:
    """Transitive keys for each entry, each scanned with a fresh visited set."""
    return {
        str(entry): scan_transitive_keys(entry, graph, None, max_depth, handles, modules)
        for entry in entries
    }


def find_users(path: Path | str, graph: DependencyGraph) -> Set[str]:
    """Every document that transitively renders ``path``."""
    return graph.users_of(path)


def document_has_translation_usage(
    path: Path | str,
    modules: Iterable[str] = DEFAULT_TRANSLATION_MODULES,
) -> bool:
    text = read_document(path)
    return text is not None and has_translation_usage(text, modules)


__all__ = [
    "document_has_translation_usage",
    "document_keys",
    "find_users",
    "has_translation_usage",
    "read_document",
    "scan_entries",
    "scan_transitive_keys",
]
