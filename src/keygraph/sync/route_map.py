"""
RouteKeyMap writer.

Persists ``function id -> keys`` for every route as one generated TypeScript
module the runtime can import:

    const RouteKeysMap = new Map<string, string[]>([
    	['layout:/blog', ['title']],
    	['page:/blog/post', ['body', 'title']]
    ]);

Entries are merged into the existing module, never dropped.
"""

import logging
import re
from pathlib import Path
from typing import Dict, List, Mapping, Optional

from .artifact import BLOCK_END, BLOCK_HEADER, BLOCK_START, format_keys, quote_string
from .writer import BatchWriteQueue, read_current

logger = logging.getLogger(__name__)

MAP_BODY = re.compile(r"new Map<string,\s*string\[\]>\(\[(.*?)\]\);", re.DOTALL)
MAP_ENTRY = re.compile(
    r"""\[\s*(?:'((?:[^'\\]|\\.)*)'|"((?:[^"\\]|\\.)*)")\s*,\s*\[(.*?)\]\s*\]""", re.DOTALL
)
QUOTED = re.compile(r"""'((?:[^'\\]|\\.)*)'|"((?:[^"\\]|\\.)*)\"""")


def _unescape(value: str) -> str:
    return re.sub(r"\\(.)", r"\1", value)


def parse_route_map(content: str) -> Dict[str, List[str]]:
    """Entries of a persisted RouteKeyMap module; empty if none can be found."""
    body = MAP_BODY.search(content)
    if body is None:
        return {}

    entries: Dict[str, List[str]] = {}
    for match in MAP_ENTRY.finditer(body.group(1)):
        keys = [_unescape(single or double) for single, double in QUOTED.findall(match.group(3))]
        entries[_unescape(match.group(1) or match.group(2) or "")] = keys
    return entries


def render_route_map(entries: Mapping[str, List[str]]) -> str:
    rows = [
        f"\t[{quote_string(function_id)}, {format_keys(keys)}]"
        for function_id, keys in sorted(entries.items())
    ]
    return "\n".join([
        BLOCK_START,
        BLOCK_HEADER,
        "const RouteKeysMap = new Map<string, string[]>([",
        ",\n".join(rows),
        "]);",
        BLOCK_END,
        "",
        "export default RouteKeysMap;",
        "",
    ]).replace("([\n\n]);", "([\n]);")


class RouteKeyMapWriter:
    """Merges per-route key lists into the persisted RouteKeyMap module."""

    def __init__(self, path: Path, writer: BatchWriteQueue):
        self.path = Path(path)
        self.writer = writer

    def load(self) -> Dict[str, List[str]]:
        content = read_current(self.path)
        if content is None:
            return {}
        return parse_route_map(content)

    def update(
        self,
        entries: Mapping[str, List[str]],
        replace: bool = False,
    ) -> Optional[Dict[str, List[str]]]:
        """
        Merge ``entries`` into the persisted map and queue the write.

        With ``replace`` the persisted entries are discarded first, so routes
        that no longer exist drop out of the map.

        Returns the merged map when it changed, None when the module on disk
        is already up to date.
        """
        merged = {} if replace else self.load()
        changed = False
        for function_id, keys in entries.items():
            keys = sorted(set(keys))
            if merged.get(function_id) != keys:
                merged[function_id] = keys
                changed = True

        content = render_route_map(merged)
        if not changed and read_current(self.path) == content:
            logger.debug(f"⏭️  Skipping {self.path} - no changes detected")
            return None

        self.writer.queue_write(self.path, content)
        logger.debug(f"Queued RouteKeyMap with {len(merged)} routes")
        return merged
