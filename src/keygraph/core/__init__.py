"""
keygraph core module.

Core Types & Graph:
    - DocumentKind, ChangeKind, KeyUsage, RouteNode, WriteRequest
    - DependencyGraph: reference graph over component documents
    - Ok / Err: result values for expected failures

Runtime:
    - ChangeCoordinator: debounced rescans driven by file events
    - CancellableTimer: replaceable one-shot timer
    - load_key_source: load and hash the canonical key table

The runtime pieces are imported from their modules directly
(``keygraph.core.coordinator``) to keep this package import-light.
"""

from .graph import DependencyGraph, DocumentRecord
from .result import Err, Ok, Result
from .types import ChangeKind, DocumentKind, KeyUsage, RouteNode, WriteRequest

__all__ = [
    "ChangeKind",
    "DependencyGraph",
    "DocumentKind",
    "DocumentRecord",
    "Err",
    "KeyUsage",
    "Ok",
    "Result",
    "RouteNode",
    "WriteRequest",
]
