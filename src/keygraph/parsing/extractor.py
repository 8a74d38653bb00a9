"""
Reference Extractor for Svelte component documents.

Pure text-pattern functions that, given one document's text, return:
- the component documents it renders (static and dynamic imports)
- the translation keys it invokes

Supported import forms:
- import Card from './Card.svelte'
- import { Card, Badge as B } from '$lib/ui'
- import * as Widgets from './widgets'
- import('./Lazy.svelte'), await import("./Lazy.svelte"),
  const mod = await import(`./Lazy.svelte`)

Supported key forms:
- t.hello(), t['user-count']()
- data._loadedTranslations.hello, data._loadedTranslations['user-count']
- hello() after `import { hello } from '@i18n'`
- any bare call when the document imports the translation module
  (low-confidence fallback)

Matches that sit inside an HTML (<!-- -->), block (/* */, {/* */}) or line
(//) comment are discarded.
"""

import logging
import re
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Set, Tuple

from ..core.types import KeyUsage
from .paths import ImportResolver

logger = logging.getLogger(__name__)

DEFAULT_TRANSLATION_MODULES: Set[str] = {"@i18n"}
DEFAULT_TRANSLATION_HANDLES: Set[str] = {"t"}
LOADED_TRANSLATIONS = "_loadedTranslations"

_IDENT = r"[A-Za-z_$][\w$]*"
_QUOTED = r"""(['"])([^'"\n]+)\1"""

IMPORT_PATTERNS = [
    # import Card from './Card.svelte'  /  import type Props from './x'
    re.compile(rf"\bimport\s+(?:type\s+)?{_IDENT}\s+from\s+{_QUOTED}"),
    # import { Card, Badge as B } from './ui'  /  import Card, {{ x }} from './ui'
    re.compile(rf"\bimport\s+(?:type\s+)?(?:{_IDENT}\s*,\s*)?\{{[^}}]*\}}\s*from\s+{_QUOTED}"),
    # import * as Widgets from './widgets'
    re.compile(rf"\bimport\s+\*\s+as\s+{_IDENT}\s+from\s+{_QUOTED}"),
]

# import('./X.svelte'), await import("./X.svelte"), import(`./X.svelte`)
DYNAMIC_IMPORT_PATTERN = re.compile(r"""\bimport\s*\(\s*(['"`])([^'"`\n]+)\1\s*\)""")

# Whole import statements, used to mask fallback call matches
IMPORT_STATEMENT = re.compile(
    r"""\bimport\s+(?:[^;'"]*?\s+from\s+)?['"][^'"\n]+['"]\s*;?""", re.DOTALL
)

ACCESSOR_PATTERNS = [
    # _loadedTranslations.hello
    re.compile(rf"\b{LOADED_TRANSLATIONS}\.({_IDENT})"),
    # _loadedTranslations['user-count']
    re.compile(rf"\b{LOADED_TRANSLATIONS}\[\s*(['\"])([^'\"\n]+)\1\s*\]"),
]

BARE_CALL = re.compile(rf"(?<![\w$.])({_IDENT})\s*\(")

# Never keys, even when they look like bare calls
JS_KEYWORDS: Set[str] = {
    "if", "for", "while", "switch", "catch", "function", "return", "typeof",
    "import", "await", "new", "delete", "void", "in", "of", "do", "else",
    "super", "this", "with", "yield", "async", "export", "throw",
}


# --- Comment spans ---

def _inside_block(text: str, pos: int, opener: str, closer: str) -> bool:
    """True when the nearest ``opener`` before ``pos`` is not closed before it."""
    start = text.rfind(opener, 0, pos)
    if start == -1:
        return False
    return text.find(closer, start + len(opener), pos) == -1


def _inside_line_comment(text: str, pos: int) -> bool:
    line_start = text.rfind("\n", 0, pos) + 1
    segment = text[line_start:pos]
    index = segment.find("//")
    while index != -1:
        # "https://" is a URL, not a comment
        if index == 0 or segment[index - 1] != ":":
            return True
        index = segment.find("//", index + 2)
    return False


def is_in_comment(text: str, pos: int) -> bool:
    """Check whether offset ``pos`` lies inside any comment span."""
    return (
        _inside_block(text, pos, "<!--", "-->")
        or _inside_block(text, pos, "/*", "*/")
        or _inside_line_comment(text, pos)
    )


def _live_matches(pattern: re.Pattern, text: str) -> Iterator[re.Match]:
    for match in pattern.finditer(text):
        if not is_in_comment(text, match.start()):
            yield match


# --- References ---

def extract_import_specifiers(text: str) -> List[str]:
    """All import specifiers outside comments, in first-seen order."""
    seen: Dict[str, None] = {}
    for pattern in IMPORT_PATTERNS:
        for match in _live_matches(pattern, text):
            seen.setdefault(match.group(2), None)
    for match in _live_matches(DYNAMIC_IMPORT_PATTERN, text):
        # `./${name}.svelte` cannot be resolved statically
        if match.group(1) == "`" and "${" in match.group(2):
            continue
        seen.setdefault(match.group(2), None)
    return list(seen)


def extract_references(text: str, base_path: Path, resolver: ImportResolver) -> List[Path]:
    """
    Component documents rendered by the document at ``base_path``.

    Only existing, in-scope component files are returned; everything else is
    dropped silently.
    """
    return resolver.resolve_all(extract_import_specifiers(text), base_path)


# --- Translation imports ---

def _translation_import_pattern(modules: Iterable[str]) -> re.Pattern:
    names = "|".join(re.escape(m) for m in sorted(modules))
    return re.compile(rf"""\bimport\s+([^;'"]*?)\s+from\s+(['"])(?:{names})\2""", re.DOTALL)


def translation_imports(
    text: str,
    modules: Iterable[str] = DEFAULT_TRANSLATION_MODULES,
) -> Tuple[Set[str], Dict[str, str]]:
    """
    Names bound by imports from the translation module.

    Returns the namespace handles (``import * as t``) and a mapping of local
    name to key for named imports (``import { hello, bye as b }``).
    """
    handles: Set[str] = set()
    named: Dict[str, str] = {}

    for match in _live_matches(_translation_import_pattern(modules), text):
        clause = match.group(1)
        namespace = re.search(rf"\*\s*as\s+({_IDENT})", clause)
        if namespace:
            handles.add(namespace.group(1))
            continue

        braces = re.search(r"\{([^}]*)\}", clause)
        if braces:
            for item in braces.group(1).split(","):
                item = item.strip()
                if not item or item.startswith("type "):
                    continue
                parts = re.split(r"\s+as\s+", item)
                imported = parts[0].strip()
                local = parts[-1].strip()
                named[local] = imported
        default = re.match(rf"\s*({_IDENT})\s*(?:,|$)", clause)
        if default and default.group(1) != "type":
            handles.add(default.group(1))

    return handles, named


def has_translation_import(
    text: str,
    modules: Iterable[str] = DEFAULT_TRANSLATION_MODULES,
) -> bool:
    """Does the document import the translation module directly?"""
    return any(True for _ in _live_matches(_translation_import_pattern(modules), text))


# --- Keys ---

def _handle_patterns(handles: Iterable[str]) -> List[re.Pattern]:
    names = "|".join(re.escape(h) for h in sorted(handles))
    return [
        # t.hello(
        re.compile(rf"(?<![\w$.])(?:{names})\s*\.\s*({_IDENT})\s*\("),
        # t['user-count'](
        re.compile(rf"(?<![\w$.])(?:{names})\s*\[\s*(['\"])([^'\"\n]+)\1\s*\]\s*\("),
    ]


def _import_spans(text: str) -> List[Tuple[int, int]]:
    return [(m.start(), m.end()) for m in IMPORT_STATEMENT.finditer(text)]


def _within(pos: int, spans: List[Tuple[int, int]]) -> bool:
    return any(start <= pos < end for start, end in spans)


def extract_key_usage(
    text: str,
    has_direct_translation_import: Optional[bool] = None,
    handles: Iterable[str] = DEFAULT_TRANSLATION_HANDLES,
    modules: Iterable[str] = DEFAULT_TRANSLATION_MODULES,
) -> KeyUsage:
    """
    Translation keys invoked by one document.

    Args:
        text: Document text.
        has_direct_translation_import: Enables the bare-call fallback.
            Detected from ``text`` when None.
        handles: Namespace handle names always recognized (``t``).
        modules: Import specifiers of the translation module.
    """
    usage = KeyUsage()
    ns_handles, named = translation_imports(text, modules)
    all_handles = set(handles) | ns_handles

    if has_direct_translation_import is None:
        has_direct_translation_import = has_translation_import(text, modules)

    if all_handles:
        dot_call, bracket_call = _handle_patterns(all_handles)
        for match in _live_matches(dot_call, text):
            usage.add(match.group(1))
        for match in _live_matches(bracket_call, text):
            usage.add(match.group(2))

    dot_access, bracket_access = ACCESSOR_PATTERNS
    for match in _live_matches(dot_access, text):
        usage.add(match.group(1))
    for match in _live_matches(bracket_access, text):
        usage.add(match.group(2))

    if has_direct_translation_import:
        spans = _import_spans(text)
        for match in _live_matches(BARE_CALL, text):
            name = match.group(1)
            if name in JS_KEYWORDS or name in all_handles or _within(match.start(), spans):
                continue
            if name in named:
                usage.add(named[name])
            else:
                usage.add(name, inferred=True)

    return usage


def has_translation_usage(
    text: str,
    modules: Iterable[str] = DEFAULT_TRANSLATION_MODULES,
) -> bool:
    """
    Does the document touch translations directly?

    True when it imports the translation module or reads the loaded
    translations accessor outside a comment.
    """
    if has_translation_import(text, modules):
        return True
    return any(True for _ in _live_matches(re.compile(rf"\b{LOADED_TRANSLATIONS}\b"), text))
