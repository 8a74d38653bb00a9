"""
Dependency Graph over component documents, backed by rustworkx.

Nodes are absolute document paths; an edge ``a -> b`` means "a renders b".
Forward edges drive the transitive key scan, reverse edges answer "who is
affected when b changes".

It manages:
- The bimap between path strings and rustworkx integer indices.
- Placeholder nodes for referenced documents that were never visited.
- Reverse-closure queries used by the change coordinator.
"""

from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Set

import rustworkx as rx

from ..config import LAYOUT_ENTRY, PAGE_ENTRY
from .types import DocumentKind


class DocumentRecord:
    """Payload stored on each graph node."""

    __slots__ = ("path", "kind", "visited")

    def __init__(self, path: str, kind: DocumentKind, visited: bool):
        self.path = path
        self.kind = kind
        self.visited = visited

    def __repr__(self) -> str:
        state = "visited" if self.visited else "placeholder"
        return f"DocumentRecord({self.path!r}, {self.kind}, {state})"


def classify(path: Path | str) -> DocumentKind:
    """Role of a document, from its file name."""
    name = Path(path).name
    if name == PAGE_ENTRY:
        return DocumentKind.ENTRY_PAGE
    if name == LAYOUT_ENTRY:
        return DocumentKind.ENTRY_LAYOUT
    return DocumentKind.PLAIN_COMPONENT


class DependencyGraph:
    """
    Directed reference graph of component documents.

    Features:
    - O(1) node lookup via path-to-index bimap
    - Parallel references between the same pair collapse into one edge
    - Fast Rust backend for closure queries
    """

    def __init__(self):
        self._graph = rx.PyDiGraph(multigraph=False)
        self._id_to_idx: Dict[str, int] = {}
        self._idx_to_id: Dict[int, str] = {}

    def _ensure(self, path: str, visited: bool) -> int:
        idx = self._id_to_idx.get(path)
        if idx is None:
            idx = self._graph.add_node(DocumentRecord(path, classify(path), visited))
            self._id_to_idx[path] = idx
            self._idx_to_id[idx] = path
        elif visited:
            self._graph[idx].visited = True
        return idx

    def add_document(self, path: Path | str) -> None:
        """Record a document that was read during the walk."""
        self._ensure(str(path), visited=True)

    def add_reference(self, source: Path | str, target: Path | str) -> None:
        """
        Record that ``source`` renders ``target``.

        The target gets a placeholder record if it has not been visited.
        """
        u = self._ensure(str(source), visited=True)
        v = self._ensure(str(target), visited=False)
        if not self._graph.has_edge(u, v):
            self._graph.add_edge(u, v, None)

    def get_record(self, path: Path | str) -> Optional[DocumentRecord]:
        idx = self._id_to_idx.get(str(path))
        if idx is None:
            return None
        return self._graph[idx]

    def has_document(self, path: Path | str) -> bool:
        return str(path) in self._id_to_idx

    def has_reference(self, source: Path | str, target: Path | str) -> bool:
        u = self._id_to_idx.get(str(source))
        v = self._id_to_idx.get(str(target))
        if u is None or v is None:
            return False
        return self._graph.has_edge(u, v)

    def forward_edges(self, path: Path | str) -> List[str]:
        """Documents directly rendered by ``path``, sorted."""
        idx = self._id_to_idx.get(str(path))
        if idx is None:
            return []
        return sorted(self._idx_to_id[t] for t in self._graph.successor_indices(idx))

    def reverse_edges(self, path: Path | str) -> List[str]:
        """Documents that directly render ``path``, sorted."""
        idx = self._id_to_idx.get(str(path))
        if idx is None:
            return []
        return sorted(self._idx_to_id[s] for s in self._graph.predecessor_indices(idx))

    def users_of(self, path: Path | str) -> Set[str]:
        """Every document that transitively renders ``path``."""
        idx = self._id_to_idx.get(str(path))
        if idx is None:
            return set()
        return {self._idx_to_id[i] for i in rx.ancestors(self._graph, idx)}

    def dependencies_of(self, path: Path | str) -> Set[str]:
        """Every document transitively rendered by ``path``."""
        idx = self._id_to_idx.get(str(path))
        if idx is None:
            return set()
        return {self._idx_to_id[i] for i in rx.descendants(self._graph, idx)}

    def iter_documents(self) -> Iterator[str]:
        return iter(sorted(self._id_to_idx))

    def entries(self) -> List[str]:
        """Paths of every page and layout entry in the graph."""
        return [
            path for path in self.iter_documents()
            if self._graph[self._id_to_idx[path]].kind.is_entry
        ]

    def __contains__(self, path: object) -> bool:
        return str(path) in self._id_to_idx

    def __len__(self) -> int:
        return self._graph.num_nodes()

    @property
    def document_count(self) -> int:
        return self._graph.num_nodes()

    @property
    def reference_count(self) -> int:
        return self._graph.num_edges()

    def as_mapping(self) -> Dict[str, Dict[str, List[str]]]:
        """``path -> {forward_edges, reverse_edges}`` view of the graph."""
        return {
            path: {
                "forward_edges": self.forward_edges(path),
                "reverse_edges": self.reverse_edges(path),
            }
            for path in self.iter_documents()
        }

    def get_stats(self) -> Dict[str, Any]:
        placeholders = sum(1 for record in self._graph.nodes() if not record.visited)
        return {
            "total_documents": self.document_count,
            "total_references": self.reference_count,
            "entries": len(self.entries()),
            "placeholders": placeholders,
            "backend": "rustworkx",
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "documents": self.as_mapping(),
            "stats": self.get_stats(),
        }
