"""
Key source loading.

The key source is the canonical table of default translations, e.g.
``src/types/default-translations.ts``:

    const defaultTranslations = {
        hello: 'Hello',
        'user-count': 'There {{count}} users online',
    } as const;

    export default defaultTranslations;

It is loaded and hashed once per rescan and handed to the rest of the engine
as plain data. JSON and YAML tables are accepted as well.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from ..parsing.source import match_bracket, skip_ws
from .result import Err, Ok, Result
from .types import content_digest

logger = logging.getLogger(__name__)

EXPORT_DEFAULT = re.compile(r"\bexport\s+default\s+")
ENTRY = re.compile(
    r"""(?:(['"])(?P<quoted>(?:\\.|(?!\1).)+)\1|(?P<bare>[A-Za-z_$][\w$]*))"""
    r"""\s*:\s*(?P<q>['"`])(?P<value>(?:\\.|(?!(?P=q)).)*)(?P=q)""",
    re.DOTALL,
)


@dataclass
class KeySourceError:
    """Structured error for key source loading."""
    message: str
    path: Optional[Path] = None
    cause: Optional[Exception] = None

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class KeySource:
    """A loaded key table and the digest of the document it came from."""
    path: Path
    table: Dict[str, str] = field(default_factory=dict)
    digest: str = ""

    def __contains__(self, key: object) -> bool:
        return key in self.table

    def __len__(self) -> int:
        return len(self.table)


def _object_literal(text: str) -> Optional[str]:
    """The object literal a TS/JS module exports by default."""
    export = EXPORT_DEFAULT.search(text)
    if export is None:
        return None

    start = skip_ws(text, export.end())
    if start < len(text) and text[start] != "{":
        name = re.match(r"[A-Za-z_$][\w$]*", text[start:])
        if name is None:
            return None
        declaration = re.search(
            rf"\b(?:const|let|var)\s+{re.escape(name.group(0))}\b[^=]*=\s*", text
        )
        if declaration is None:
            return None
        start = declaration.end()

    if start >= len(text) or text[start] != "{":
        return None
    end = match_bracket(text, start)
    if end is None:
        return None
    return text[start + 1:end]


def _unescape(value: str) -> str:
    return re.sub(r"\\(.)", r"\1", value)


def parse_module_table(text: str) -> Optional[Dict[str, str]]:
    """Flat ``key -> value`` entries of a module's default-exported object."""
    literal = _object_literal(text)
    if literal is None:
        return None

    table: Dict[str, str] = {}
    for match in ENTRY.finditer(literal):
        key = match.group("quoted") or match.group("bare")
        table[_unescape(key)] = _unescape(match.group("value"))
    return table


def _flatten(data: Any) -> Dict[str, str]:
    if not isinstance(data, dict):
        raise ValueError("key source must be a mapping")
    return {str(key): "" if value is None else str(value) for key, value in data.items()}


def load_key_source(path: Path) -> Result[KeySource, KeySourceError]:
    """
    Load and hash the key source.

    Returns Ok(KeySource) or Err(KeySourceError); a half-written or missing
    document is an expected outcome, not an exception.
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        return Err(KeySourceError(f"Cannot read key source {path}: {e}", path, e))

    suffix = path.suffix.lower()
    try:
        if suffix == ".json":
            table = _flatten(json.loads(text))
        elif suffix in (".yaml", ".yml"):
            table = _flatten(yaml.safe_load(text) or {})
        else:
            parsed = parse_module_table(text)
            if parsed is None:
                return Err(KeySourceError(f"No default-exported object in {path}", path))
            table = parsed
    except (ValueError, yaml.YAMLError) as e:
        return Err(KeySourceError(f"Invalid key source {path}: {e}", path, e))

    logger.debug(f"Loaded {len(table)} keys from {path}")
    return Ok(KeySource(path=path, table=table, digest=content_digest(text)))
