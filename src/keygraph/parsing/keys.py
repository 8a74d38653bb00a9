"""
Key name normalization.

Translation keys are written in the key-source table in kebab-case or
camelCase, but call sites can only use valid identifiers: ``t.userCount()``
for ``user-count``, ``t.continueFn()`` for ``continue``. Every key found at a
call site is therefore registered together with the spellings it may have in
the table.
"""

import re
from typing import Set

# Identifiers a generated accessor cannot be named after. Keys whose
# camelCase form is on this list are exposed with an ``Fn`` suffix.
RESERVED_WORDS: frozenset[str] = frozenset({
    # Keywords
    "break", "case", "catch", "class", "const", "continue", "debugger",
    "default", "delete", "do", "else", "export", "extends", "finally", "for",
    "function", "if", "import", "in", "instanceof", "let", "new", "return",
    "super", "switch", "this", "throw", "try", "typeof", "var", "void",
    "while", "with", "yield",
    # Future reserved words
    "enum", "implements", "interface", "package", "private", "protected",
    "public", "static",
    # Globals
    "Array", "Boolean", "Date", "Error", "Function", "JSON", "Math", "Number",
    "Object", "RegExp", "String", "Symbol", "console", "window", "document",
    "global", "process",
    # Browser globals
    "alert", "confirm", "prompt", "setTimeout", "setInterval", "clearTimeout",
    "clearInterval", "localStorage", "sessionStorage", "fetch",
    "XMLHttpRequest",
    # Node globals
    "require", "module", "exports", "__dirname", "__filename", "Buffer",
    # Object.prototype members
    "toString", "valueOf", "hasOwnProperty", "isPrototypeOf",
    "propertyIsEnumerable", "constructor", "prototype", "length", "name",
})

RESERVED_SUFFIX = "Fn"

_UPPER = re.compile(r"([A-Z])")
_SEPARATED = re.compile(r"[-_\s]+(.)?")


def camel_to_kebab(name: str) -> str:
    """``userCount`` -> ``user-count``."""
    kebab = _UPPER.sub(r"-\1", name).lower()
    return kebab[1:] if kebab.startswith("-") else kebab


def kebab_to_camel(name: str) -> str:
    """``user-count`` -> ``userCount``."""
    return _SEPARATED.sub(lambda m: m.group(1).upper() if m.group(1) else "", name)


def is_reserved(name: str) -> bool:
    return name in RESERVED_WORDS


def sanitize_function_name(key: str) -> str:
    """The identifier under which a table key is exposed to call sites."""
    camel = kebab_to_camel(key)
    if is_reserved(camel):
        return camel + RESERVED_SUFFIX
    return camel


def normalize_key(identifier: str) -> str:
    """
    Map a call-site identifier onto the key it stands for.

    Only the suffix of an allow-listed reserved word is stripped:
    ``continueFn`` becomes ``continue`` while ``refetchFn`` stays as is.
    """
    if identifier.endswith(RESERVED_SUFFIX):
        base = identifier[: -len(RESERVED_SUFFIX)]
        if is_reserved(base):
            return base
    return identifier


def key_variants(identifier: str) -> Set[str]:
    """All spellings a key may have in the key-source table."""
    key = normalize_key(identifier)
    variants = {identifier, key}

    kebab = camel_to_kebab(key)
    if kebab != key:
        variants.add(kebab)
    camel = kebab_to_camel(key)
    if camel != key:
        variants.add(camel)

    if is_reserved(camel):
        variants.add(camel + RESERVED_SUFFIX)

    return variants
