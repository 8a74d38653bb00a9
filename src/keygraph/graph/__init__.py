"""Dependency graph construction."""

from .builder import build_graph, create_resolver, discover_documents

__all__ = ["build_graph", "create_resolver", "discover_documents"]
