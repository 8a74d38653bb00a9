"""
Import specifier resolution and path safety.

Resolution never follows symlinks: both the safety check and the scope
check work on the normalized absolute path string, so a link pointing into
``node_modules`` from inside ``src`` is judged by where it appears to live.
"""

import logging
import os
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

from ..config import COMPONENT_EXTENSION, UNSAFE_PATH_SEGMENTS

logger = logging.getLogger(__name__)


def normalize_path(path: Path | str) -> str:
    """Absolute, ``..``-free, forward-slash form of a path."""
    return os.path.normpath(os.path.abspath(str(path))).replace("\\", "/")


def is_safe_path(path: Path | str, allowed_roots: Sequence[Path]) -> bool:
    """
    Check that a path may become a graph node.

    Rejects anything inside dependency caches, build output, VCS metadata
    or editor state, and anything outside every allowed root.
    """
    normalized = normalize_path(path)

    for root in allowed_roots:
        root_str = normalize_path(root).rstrip("/")
        if normalized != root_str and not normalized.startswith(root_str + "/"):
            continue
        # Only the part below the root is inspected, so a project checked
        # out under e.g. ~/build/ is still scannable
        inside = normalized[len(root_str):] + "/"
        if any(f"/{segment}/" in inside for segment in UNSAFE_PATH_SEGMENTS):
            return False
        return True
    return False


class ImportResolver:
    """
    Turns import specifiers into candidate file paths.

    Relative specifiers resolve against the importing document's directory,
    ``/``-rooted ones against the project root, and aliased ones through the
    alias table (longest prefix wins). Anything else, such as a bare package
    name, passes through unchanged and fails the existence check later.
    """

    def __init__(
        self,
        project_root: Path,
        allowed_roots: Sequence[Path],
        aliases: Optional[Dict[str, str]] = None,
        extension: str = COMPONENT_EXTENSION,
    ):
        self.project_root = Path(project_root)
        self.allowed_roots = list(allowed_roots)
        self.extension = extension
        # Longest alias first so "$lib/server" beats "$lib"
        self._aliases = sorted(
            ((alias.rstrip("/"), target) for alias, target in (aliases or {}).items()),
            key=lambda item: len(item[0]),
            reverse=True,
        )

    def expand(self, specifier: str, base_path: Path) -> Optional[Path]:
        """Resolve a specifier to a path without touching the filesystem."""
        if specifier.startswith(("./", "../")) or specifier in (".", ".."):
            return Path(os.path.normpath(Path(base_path).parent / specifier))

        if specifier.startswith("/"):
            return Path(os.path.normpath(self.project_root / specifier.lstrip("/")))

        for alias, target in self._aliases:
            if specifier == alias or specifier.startswith(alias + "/"):
                rest = specifier[len(alias):].lstrip("/")
                target_path = Path(target)
                if not target_path.is_absolute():
                    target_path = self.project_root / target_path
                return Path(os.path.normpath(target_path / rest)) if rest else target_path

        # Unresolved alias or package import
        return None

    def candidates(self, resolved: Path) -> List[Path]:
        """Extension-less fallbacks tried in order."""
        options = [resolved]
        if not resolved.name.endswith(self.extension):
            options.append(resolved.with_name(resolved.name + self.extension))
            options.append(resolved / f"index{self.extension}")
        return options

    def resolve(self, specifier: str, base_path: Path) -> Optional[Path]:
        """
        Resolve an import to an existing, in-scope component document.

        Returns None for unresolvable, unsafe, or non-component targets.
        """
        resolved = self.expand(specifier, base_path)
        if resolved is None:
            return None

        # Unsafe paths are rejected before any filesystem access
        if not is_safe_path(resolved, self.allowed_roots):
            logger.debug(f"Rejected unsafe import target {specifier!r} from {base_path}")
            return None

        for candidate in self.candidates(resolved):
            if not candidate.name.endswith(self.extension):
                continue
            if not is_safe_path(candidate, self.allowed_roots):
                continue
            if candidate.is_file():
                return Path(normalize_path(candidate))
        return None

    def resolve_all(self, specifiers: Iterable[str], base_path: Path) -> List[Path]:
        seen: Dict[Path, None] = {}
        for specifier in specifiers:
            target = self.resolve(specifier, base_path)
            if target is not None:
                seen.setdefault(target, None)
        return list(seen)
