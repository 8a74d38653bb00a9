"""
Core type definitions for keygraph.

Documents, routes and write requests are plain pydantic models; key usage is
a small set-like container because it is unioned constantly during a scan.
"""

import hashlib
from enum import StrEnum
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Set

from pydantic import BaseModel, ConfigDict

from ..parsing.keys import kebab_to_camel, key_variants, normalize_key, sanitize_function_name


class DocumentKind(StrEnum):
    """Role a component document plays in the route tree."""
    ENTRY_PAGE = "entry-page"
    ENTRY_LAYOUT = "entry-layout"
    PLAIN_COMPONENT = "plain-component"

    @property
    def is_entry(self) -> bool:
        return self is not DocumentKind.PLAIN_COMPONENT

    @property
    def short_name(self) -> str:
        """``page`` / ``layout`` / ``component``, used in function ids."""
        return {
            DocumentKind.ENTRY_PAGE: "page",
            DocumentKind.ENTRY_LAYOUT: "layout",
        }.get(self, "component")


class ChangeKind(StrEnum):
    """File-watch event kinds the coordinator reacts to."""
    ADDED = "added"
    CHANGED = "changed"
    REMOVED = "removed"


class KeyUsage:
    """
    Set of translation keys referenced by one or more documents.

    Each key is stored with every spelling it may have in the key-source
    table (see :func:`~keygraph.parsing.keys.key_variants`). Iterating yields
    all of those spellings. Keys found only through the bare-call fallback
    are *inferred* and are dropped at resolution time unless the table
    confirms them.
    """

    __slots__ = ("_variants", "_confident")

    def __init__(self, keys: Iterable[str] = ()):
        self._variants: Dict[str, Set[str]] = {}
        self._confident: Set[str] = set()
        for key in keys:
            self.add(key)

    def add(self, identifier: str, inferred: bool = False) -> str:
        """Register a call-site identifier and return its normalized key."""
        key = normalize_key(identifier)
        self._variants.setdefault(key, set()).update(key_variants(identifier))
        if not inferred:
            self._confident.add(key)
        return key

    def update(self, other: "KeyUsage") -> None:
        for key, variants in other._variants.items():
            self._variants.setdefault(key, set()).update(variants)
        self._confident.update(other._confident)

    def copy(self) -> "KeyUsage":
        clone = KeyUsage()
        clone.update(self)
        return clone

    @property
    def keys(self) -> Set[str]:
        """Normalized keys, without their variant spellings."""
        return set(self._variants)

    @property
    def inferred(self) -> Set[str]:
        return set(self._variants) - self._confident

    def variants_of(self, key: str) -> Set[str]:
        return set(self._variants.get(key, ()))

    def identifiers(self) -> Set[str]:
        result: Set[str] = set()
        for variants in self._variants.values():
            result.update(variants)
        return result

    def resolve(self, table: Optional[Mapping[str, object]] = None) -> List[str]:
        """
        Map the used keys onto the key-source table.

        A key resolves to every table entry that matches one of its
        spellings or exposes the key's identifier. Confident keys without a
        match are kept as written (the runtime renders a missing
        placeholder); inferred keys without a match are dropped. Without a
        table every confident key is kept.
        """
        if table is None:
            return sorted(self._confident)

        exposed: Dict[str, Set[str]] = {}
        for table_key in table:
            for name in (sanitize_function_name(table_key), kebab_to_camel(table_key)):
                exposed.setdefault(name, set()).add(table_key)

        resolved: Set[str] = set()
        for key, variants in self._variants.items():
            matches = {v for v in variants if v in table}
            for v in variants:
                matches.update(exposed.get(v, ()))
            if matches:
                resolved.update(matches)
            elif key in self._confident:
                resolved.add(key)
        return sorted(resolved)

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self.identifiers()))

    def __contains__(self, identifier: object) -> bool:
        return any(identifier in variants for variants in self._variants.values())

    def __len__(self) -> int:
        return len(self.identifiers())

    def __bool__(self) -> bool:
        return bool(self._variants)

    def __or__(self, other: "KeyUsage") -> "KeyUsage":
        merged = self.copy()
        merged.update(other)
        return merged

    def __eq__(self, other: object) -> bool:
        if isinstance(other, KeyUsage):
            return self._variants == other._variants and self._confident == other._confident
        return NotImplemented

    def __repr__(self) -> str:
        return f"KeyUsage({sorted(self._variants)!r})"


class RouteNode(BaseModel):
    """An entry document placed in the route tree."""

    entry_path: Path
    kind: DocumentKind
    route_path: str
    artifact_path: Path

    model_config = ConfigDict(frozen=True)

    @property
    def depth(self) -> int:
        """Number of route segments; the root route has depth 0."""
        return len([segment for segment in self.route_path.split("/") if segment])

    @property
    def is_layout(self) -> bool:
        return self.kind is DocumentKind.ENTRY_LAYOUT

    @property
    def function_id(self) -> str:
        """
        Stable identifier of the route's load function.

        A page and a layout in the same directory share a route path but
        never a function id.
        """
        return f"{self.kind.short_name}:{self.route_path}"


class WriteRequest(BaseModel):
    """A pending artifact write."""

    path: Path
    content: str
    attempts: int = 0

    @property
    def digest(self) -> str:
        return content_digest(self.content)


def content_digest(content: str) -> str:
    """Hash used to decide whether a file's content changed."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()
