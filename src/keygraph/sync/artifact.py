"""
Artifact Synchronizer.

Keeps the generated key manifest in each route's server companion in sync
with the keys the route uses. The companion gets exactly one generated
block:

    // =============================================================================
    // AUTO-GENERATED CODE BY KEYGRAPH
    import { _getTranslations } from '$lib/server';
    const _translationKeys: string[] = ['hello', 'world'];
    // END AUTO-GENERATED CODE

and its ``load`` function returns ``_loadedTranslations`` alongside whatever
it already returned. Everything else in the file is hand-written and is only
ever touched by whitespace normalization.
"""

import logging
import re
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from ..config import EngineConfig
from ..core.types import RouteNode, content_digest
from ..parsing.source import match_bracket, skip_comment, skip_string, skip_ws
from .writer import BatchWriteQueue, read_current

logger = logging.getLogger(__name__)

BLOCK_START = "// " + "=" * 77
BLOCK_HEADER = "// AUTO-GENERATED CODE BY KEYGRAPH"
BLOCK_END = "// END AUTO-GENERATED CODE"

ACCESSOR_FIELD = "_loadedTranslations"
ACCESSOR_CALL = "_getTranslations(_translationKeys)"
ACCESSOR_ENTRY = f"{ACCESSOR_FIELD}: {ACCESSOR_CALL}"

SYNTHESIZED_LOAD = (
    "export const load = async () => {\n"
    "\treturn {\n"
    f"\t\t{ACCESSOR_ENTRY}\n"
    "\t};\n"
    "};\n"
)

EXPORTED_LOAD = re.compile(
    r"^[ \t]*export\s+(?:(?:const|let|var)\s+load\b|(?:async\s+)?function\s+load\b)", re.M
)
LOCAL_LOAD = re.compile(r"^(?:(?:const|let|var)\s+load\b|(?:async\s+)?function\s+load\b)", re.M)
# export { load } / export { load, actions }
EXPORT_CLAUSE = re.compile(r"\bexport\s*\{[^}]*(?<![\w$])load(?![\w$])[^}]*\}")

ACCESSOR_VALUE = re.compile(rf"\b{ACCESSOR_FIELD}\s*:\s*_getTranslations\s*\([^)]*\)")
ACCESSOR_FIRST = re.compile(rf",\s*{ACCESSOR_FIELD}\s*:\s*_getTranslations\s*\([^)]*\)")
ACCESSOR_ANY = re.compile(rf"{ACCESSOR_FIELD}\s*:\s*_getTranslations\s*\([^)]*\)\s*,?\s*")

IMPORT_LINE = re.compile(r"import\b(?!\s*\()")
IMPORT_DONE = re.compile(r"""(?:\bfrom\s*|^import\s*)['"][^'"]+['"]""")

CONTROL_KEYWORDS = {"if", "for", "while", "switch", "catch", "with"}


class MalformedBlockError(ValueError):
    """A generated block is missing its header or its end marker."""


# --- Generated block ---

def quote_string(value: str) -> str:
    """Single-quoted TypeScript string literal."""
    escaped = value.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


def format_keys(keys: Iterable[str]) -> str:
    return "[" + ", ".join(quote_string(key) for key in keys) + "]"


def render_block(keys: Iterable[str], accessor_module: str) -> List[str]:
    return [
        BLOCK_START,
        BLOCK_HEADER,
        f"import {{ _getTranslations }} from '{accessor_module}';",
        f"const _translationKeys: string[] = {format_keys(sorted(keys))};",
        BLOCK_END,
    ]


def find_blocks(lines: List[str]) -> List[Tuple[int, int]]:
    """
    Line spans (inclusive) of every generated block.

    Raises:
        MalformedBlockError: A header has no end marker, or an end marker
            has no header.
    """
    blocks: List[Tuple[int, int]] = []
    i = 0
    while i < len(lines):
        stripped = lines[i].strip()

        if stripped == BLOCK_END:
            raise MalformedBlockError(f"end marker without header on line {i + 1}")

        if stripped != BLOCK_HEADER:
            i += 1
            continue

        start = i - 1 if i > 0 and lines[i - 1].strip() == BLOCK_START else i
        end = next((j for j in range(i + 1, len(lines)) if lines[j].strip() == BLOCK_END), None)
        if end is None:
            raise MalformedBlockError(f"header without end marker on line {i + 1}")
        if any(lines[j].strip() == BLOCK_HEADER for j in range(i + 1, end)):
            raise MalformedBlockError(f"header without end marker on line {i + 1}")

        # Older writers left a rule line after the end marker
        if (
            end + 1 < len(lines)
            and lines[end + 1].strip() == BLOCK_START
            and not (end + 2 < len(lines) and lines[end + 2].strip() == BLOCK_HEADER)
        ):
            end += 1

        blocks.append((start, end))
        i = end + 1

    return blocks


def strip_blocks(lines: List[str], blocks: List[Tuple[int, int]],
                 replacement: Optional[List[str]] = None) -> List[str]:
    """Remove every block; put ``replacement`` where the first one was."""
    result: List[str] = []
    cursor = 0
    for index, (start, end) in enumerate(blocks):
        result.extend(lines[cursor:start])
        if index == 0 and replacement is not None:
            result.extend(replacement)
        cursor = end + 1
    result.extend(lines[cursor:])
    return result


def find_insert_index(lines: List[str]) -> int:
    """First top-level line that is neither an import nor a comment."""
    in_import = False
    for i, line in enumerate(lines):
        stripped = line.strip()
        if in_import:
            if IMPORT_DONE.search(stripped):
                in_import = False
            continue
        if not stripped:
            continue
        if IMPORT_LINE.match(stripped):
            in_import = not IMPORT_DONE.search(stripped)
            continue
        if stripped.startswith(("//", "/*", "*")):
            continue
        return i
    return len(lines)


def insert_block(lines: List[str], block: List[str]) -> List[str]:
    index = find_insert_index(lines)
    before = lines[:index]
    after = lines[index:]
    return before + [""] + block + [""] + after


def normalize_whitespace(text: str) -> str:
    """Collapse runs of blank lines and end with exactly one newline."""
    text = re.sub(r"\n[ \t]*\n(?:[ \t]*\n)+", "\n\n", text)
    return text.strip("\n").rstrip() + "\n"


# --- Load function ---

def _opens_function(text: str, brace_idx: int) -> bool:
    """Does the ``{`` at ``brace_idx`` open a function body?"""
    before = text[:brace_idx].rstrip()
    if before.endswith("=>"):
        return True
    if not before.endswith(")"):
        return False
    depth = 0
    for j in range(len(before) - 1, -1, -1):
        if before[j] == ")":
            depth += 1
        elif before[j] == "(":
            depth -= 1
            if depth == 0:
                owner = re.search(r"(\w+)\s*$", before[:j])
                return not (owner and owner.group(1) in CONTROL_KEYWORDS)
    return False


def load_body(text: str, match: re.Match) -> Optional[Tuple[int, int, bool]]:
    """
    Span of a load function's body.

    Returns ``(open, close, concise)`` where ``concise`` means the span is
    the returned object literal itself (``=> ({ ... })``).
    """
    i = match.end()
    if "function" in match.group(0):
        paren = text.find("(", i)
        close_paren = match_bracket(text, paren) if paren != -1 else None
        if close_paren is None:
            return None
        brace = text.find("{", close_paren)
        close = match_bracket(text, brace) if brace != -1 else None
        return (brace, close, False) if close is not None else None

    while i < len(text):
        c = text[i]
        if c in "'\"`":
            i = skip_string(text, i)
            continue
        if c in "([{":
            closed = match_bracket(text, i)
            if closed is None:
                return None
            i = closed + 1
            continue
        if c == ";":
            return None
        if text.startswith("=>", i):
            k = skip_ws(text, i + 2)
            if k < len(text) and text[k] == "{":
                close = match_bracket(text, k)
                return (k, close, False) if close is not None else None
            if k < len(text) and text[k] == "(":
                inner = skip_ws(text, k + 1)
                if inner < len(text) and text[inner] == "{":
                    close = match_bracket(text, inner)
                    return (inner, close, True) if close is not None else None
            return None
        i += 1
    return None


def returned_literals(text: str, open_idx: int, close_idx: int) -> List[Tuple[int, int]]:
    """Object literals returned directly by a function body (not by nested functions)."""
    literals: List[Tuple[int, int]] = []
    frames: List[bool] = []
    i = open_idx + 1
    while i < close_idx:
        c = text[i]
        if c in "'\"`":
            i = skip_string(text, i)
            continue
        skipped = skip_comment(text, i)
        if skipped is not None:
            i = skipped
            continue
        if c == "{":
            frames.append(_opens_function(text, i))
        elif c == "}":
            if frames:
                frames.pop()
        elif (
            text.startswith("return", i)
            and (i == 0 or not (text[i - 1].isalnum() or text[i - 1] in "_$"))
            and not (text[i + 6: i + 7].isalnum() or text[i + 6: i + 7] in ("_", "$"))
            and not any(frames)
        ):
            k = skip_ws(text, i + 6)
            if k < close_idx and text[k] == "(":
                k = skip_ws(text, k + 1)
            if k < close_idx and text[k] == "{":
                end = match_bracket(text, k)
                if end is not None:
                    literals.append((k, end))
        i += 1
    return literals


def add_accessor(literal: str) -> str:
    """Add (or normalize) the accessor field in an object literal ``{ ... }``."""
    inner = literal[1:-1]
    if re.search(rf"\b{ACCESSOR_FIELD}\b", inner):
        return "{" + ACCESSOR_VALUE.sub(ACCESSOR_ENTRY, inner) + "}"

    if not inner.strip():
        return "{ " + ACCESSOR_ENTRY + " }"

    if "\n" not in inner:
        fields = inner.strip().rstrip(",").rstrip()
        return "{ " + fields + ", " + ACCESSOR_ENTRY + " }"

    body = inner.rstrip()
    trailing = inner[len(body):]
    last_line = body.rsplit("\n", 1)[-1]
    indent = last_line[: len(last_line) - len(last_line.lstrip())]
    if not body.endswith(","):
        body += ","
    return "{" + body + "\n" + indent + ACCESSOR_ENTRY + trailing + "}"


def inject_accessor(text: str, match: re.Match) -> str:
    """Make every object literal returned by the load function carry the accessor."""
    span = load_body(text, match)
    if span is None:
        logger.debug("Could not locate the load function body; accessor not injected")
        return text

    open_idx, close_idx, concise = span
    literals = [(open_idx, close_idx)] if concise else returned_literals(text, open_idx, close_idx)
    if not literals:
        logger.debug("Load function returns no object literal; accessor not injected")
        return text

    for start, end in reversed(literals):
        text = text[:start] + add_accessor(text[start:end + 1]) + text[end + 1:]
    return text


def remove_accessor(text: str) -> str:
    text = ACCESSOR_FIRST.sub("", text)
    return ACCESSOR_ANY.sub("", text)


# --- Synchronizer ---

class ArtifactSynchronizer:
    """
    Writes generated key manifests into server companions.

    All writes go through the write queue; content identical to what is on
    disk is never queued.
    """

    def __init__(
        self,
        writer: BatchWriteQueue,
        accessor_module: str = "$lib/server",
        prune_empty_blocks: bool = False,
    ):
        self.writer = writer
        self.accessor_module = accessor_module
        self.prune_empty_blocks = prune_empty_blocks

    @classmethod
    def from_config(cls, config: EngineConfig, writer: BatchWriteQueue) -> "ArtifactSynchronizer":
        return cls(
            writer,
            accessor_module=config.accessor_module,
            prune_empty_blocks=config.prune_empty_blocks,
        )

    def render_new(self, keys: Iterable[str]) -> str:
        block = "\n".join(render_block(keys, self.accessor_module))
        return normalize_whitespace(block + "\n\n" + SYNTHESIZED_LOAD)

    def render_update(self, text: str, keys: Iterable[str]) -> Optional[str]:
        """
        New content for an existing artifact, or None when nothing applies.

        Raises:
            MalformedBlockError: The existing generated block is damaged.
        """
        keys = sorted(set(keys))
        lines = text.split("\n")
        blocks = find_blocks(lines)

        if not keys and not blocks:
            return None

        if not keys and self.prune_empty_blocks:
            pruned = "\n".join(strip_blocks(lines, blocks))
            return normalize_whitespace(remove_accessor(pruned))

        block = render_block(keys, self.accessor_module)
        if blocks:
            lines = strip_blocks(lines, blocks, replacement=block)
        else:
            lines = insert_block(lines, block)
        updated = "\n".join(lines)

        exported = EXPORTED_LOAD.search(updated)
        if exported:
            updated = inject_accessor(updated, exported)
        else:
            local = LOCAL_LOAD.search(updated)
            if local and EXPORT_CLAUSE.search(updated):
                updated = inject_accessor(updated, local)
            elif local:
                # Export the hand-written load so its fields and the accessor
                # are returned together
                pos = local.start()
                updated = updated[:pos] + "export " + updated[pos:]
                updated = inject_accessor(updated, EXPORTED_LOAD.search(updated))
            else:
                updated = updated.rstrip() + "\n\n" + SYNTHESIZED_LOAD

        return normalize_whitespace(updated)

    def inject_keys(self, artifact_path: Path | str, keys: Iterable[str],
                    route: RouteNode) -> Optional[str]:
        """
        Bring one artifact in line with ``keys``.

        Returns the route's function id when the artifact is (or is queued
        to be) in sync, and None when nothing was done.
        """
        path = Path(artifact_path)
        keys = sorted(set(keys))

        if not path.exists():
            if not keys:
                return None
            content = self.render_new(keys)
            existing = None
        else:
            existing = read_current(path)
            if existing is None:
                logger.warning(f"⚠️  Could not read {path}; leaving it untouched")
                return None
            try:
                content = self.render_update(existing, keys)
            except MalformedBlockError as e:
                logger.warning(f"⚠️  Malformed generated block in {path} ({e}); leaving it untouched")
                return None
            if content is None:
                return None

        if existing is not None and content_digest(content) == content_digest(existing):
            logger.debug(f"⏭️  Skipping {path} for route {route.route_path} - no changes detected")
            return route.function_id

        self.writer.queue_write(path, content)
        logger.debug(f"Queued {path} for route {route.route_path} with {len(keys)} keys")
        return route.function_id
