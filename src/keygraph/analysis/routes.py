"""
Route Hierarchy Resolver.

Places page and layout entries in the route tree and rolls layout keys down
to every route below them.

Route paths:
    src/routes/+page.svelte                    -> /
    src/routes/blog/+layout.svelte             -> /blog
    src/routes/blog/[slug]/+page.svelte        -> /blog/[slug]
    src/routes/(app)/settings/+page.svelte     -> /(app)/settings

Segments are kept verbatim, so group, parameter, optional and rest segments
all participate in containment like any other segment.
"""

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Tuple, Union

from ..config import (
    COMPANION_EXTENSIONS,
    LAYOUT_COMPANION,
    PAGE_COMPANION,
    EngineConfig,
)
from ..core.graph import classify
from ..core.types import DocumentKind, KeyUsage, RouteNode
from ..parsing.paths import normalize_path

logger = logging.getLogger(__name__)

EntryUsage = Union[Mapping[RouteNode, KeyUsage], Iterable[Tuple[RouteNode, KeyUsage]]]


def route_path_for(entry: Path, routes_dir: Path) -> Optional[str]:
    """Route path of an entry document, or None if it is outside the routes."""
    directory = Path(normalize_path(entry)).parent
    root = Path(normalize_path(routes_dir))
    try:
        relative = directory.relative_to(root)
    except ValueError:
        return None
    if not relative.parts:
        return "/"
    return "/" + "/".join(relative.parts)


def route_contains(parent: str, child: str) -> bool:
    """
    Segment-aware containment of route paths.

    ``/blog`` contains ``/blog/post`` but not ``/blogroll``; ``/`` contains
    everything. A route contains itself.
    """
    if parent == "/" or parent == child:
        return True
    return child.startswith(parent.rstrip("/") + "/")


def companion_path_for(entry: Path, kind: DocumentKind) -> Path:
    """
    Server companion of an entry.

    The TypeScript companion is preferred; an existing JavaScript companion
    is used when no TypeScript one exists.
    """
    stem = LAYOUT_COMPANION if kind is DocumentKind.ENTRY_LAYOUT else PAGE_COMPANION
    directory = Path(entry).parent
    candidates = [directory / f"{stem}{ext}" for ext in COMPANION_EXTENSIONS]
    for candidate in candidates:
        if candidate.exists():
            return candidate
    return candidates[0]


def make_route(entry: Path, routes_dir: Path) -> Optional[RouteNode]:
    kind = classify(entry)
    if not kind.is_entry:
        return None
    route_path = route_path_for(entry, routes_dir)
    if route_path is None:
        return None
    entry = Path(normalize_path(entry))
    return RouteNode(
        entry_path=entry,
        kind=kind,
        route_path=route_path,
        artifact_path=companion_path_for(entry, kind),
    )


def _sort_key(route: RouteNode) -> Tuple[int, str, str]:
    # Layouts before pages at equal depth
    return (route.depth, route.route_path, "0" if route.is_layout else "1")


def find_route_entries(routes_dir: Path, config: Optional[EngineConfig] = None) -> List[RouteNode]:
    """All page and layout entries below ``routes_dir``, shallowest first."""
    routes_dir = Path(routes_dir)
    if not routes_dir.is_dir():
        logger.debug(f"Routes directory {routes_dir} does not exist")
        return []

    routes: List[RouteNode] = []
    for root, dirs, files in routes_dir.walk():
        if config is not None:
            dirs[:] = [d for d in dirs if not config.should_skip_dir(d)]
        for file in files:
            route = make_route(root / file, routes_dir)
            if route is not None:
                routes.append(route)

    return sorted(routes, key=_sort_key)


def build_route_hierarchy(entries: EntryUsage) -> Dict[str, KeyUsage]:
    """
    Roll layout keys down the route tree.

    Args:
        entries: Each entry's route and its own transitive keys.

    Returns:
        One key set per route path: the route's own keys plus the keys of
        every layout above it. A page and a layout in the same directory
        share a route path and therefore a key set.
    """
    pairs = list(entries.items()) if isinstance(entries, Mapping) else list(entries)
    pairs.sort(key=lambda pair: _sort_key(pair[0]))

    # Every route is seeded before any layout propagates
    hierarchy: Dict[str, KeyUsage] = {}
    for route, usage in pairs:
        hierarchy.setdefault(route.route_path, KeyUsage()).update(usage)

    for route, usage in pairs:
        if not route.is_layout or not usage:
            continue
        for route_path, accumulated in hierarchy.items():
            if route_path != route.route_path and route_contains(route.route_path, route_path):
                accumulated.update(usage)

    return hierarchy
