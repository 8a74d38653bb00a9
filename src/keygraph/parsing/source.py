"""
Lexical helpers for TypeScript/JavaScript source text.

Just enough scanning to match brackets while stepping over string literals
and comments. Regex literals are not recognized.
"""

from typing import Optional

BRACKETS = {"{": "}", "(": ")", "[": "]"}


def skip_string(text: str, i: int) -> int:
    """Index just past the string literal opening at ``i``."""
    quote = text[i]
    j = i + 1
    while j < len(text):
        c = text[j]
        if c == "\\":
            j += 2
            continue
        if c == quote or (c == "\n" and quote != "`"):
            return j + 1
        j += 1
    return len(text)


def skip_comment(text: str, i: int) -> Optional[int]:
    """Index just past the comment opening at ``i``, or None if there is none."""
    if text.startswith("//", i):
        end = text.find("\n", i)
        return len(text) if end == -1 else end
    if text.startswith("/*", i):
        end = text.find("*/", i + 2)
        return len(text) if end == -1 else end + 2
    return None


def skip_ws(text: str, i: int) -> int:
    while i < len(text) and text[i].isspace():
        i += 1
    return i


def match_bracket(text: str, open_idx: int) -> Optional[int]:
    """Index of the bracket closing ``text[open_idx]``, or None if unbalanced."""
    stack = [BRACKETS[text[open_idx]]]
    i = open_idx + 1
    while i < len(text):
        c = text[i]
        if c in "'\"`":
            i = skip_string(text, i)
            continue
        skipped = skip_comment(text, i)
        if skipped is not None:
            i = skipped
            continue
        if c in BRACKETS:
            stack.append(BRACKETS[c])
        elif c in ")}]":
            if c != stack[-1]:
                return None
            stack.pop()
            if not stack:
                return i
        i += 1
    return None
