"""
Global Configuration and Safety Defaults.

This module centralizes the safe defaults for the scan engine: which
directories are never walked, which path segments make an import target
unsafe, how entry and companion documents are named, and the tunables of the
write path. It also loads per-project overrides from ``keygraph.toml`` or
``[tool.keygraph]`` in ``pyproject.toml``.
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Set

# --- Source tree layout ---

COMPONENT_EXTENSION = ".svelte"

PAGE_ENTRY = "+page.svelte"
LAYOUT_ENTRY = "+layout.svelte"

PAGE_COMPANION = "+page.server"
LAYOUT_COMPANION = "+layout.server"
COMPANION_EXTENSIONS = (".ts", ".js")

# --- Safety Limits ---

# Upper bound on documents visited by one transitive key scan
MAX_SCAN_DEPTH = 1000

# --- Blocklists ---

# Directories pruned before descending (the graph must never describe code
# the project does not own)
IGNORE_DIRECTORIES: Set[str] = {
    # Version Control
    ".git",
    ".svn",
    ".hg",
    # Dependencies
    "node_modules",
    ".pnpm-store",
    # Build output
    ".svelte-kit",
    "build",
    "dist",
    ".output",
    ".vercel",
    ".netlify",
    # Coverage
    "coverage",
    ".nyc_output",
    # Editors
    ".idea",
    ".vscode",
    # Scratch
    ".tmp",
    ".bak",
}

# Path segments that make a resolved import target unsafe, checked on the
# normalized absolute path
UNSAFE_PATH_SEGMENTS: tuple[str, ...] = (
    "node_modules",
    ".git",
    ".svelte-kit",
    "dist",
    "build",
    "coverage",
    ".nyc_output",
    ".vscode",
    ".idea",
    ".tmp",
    ".bak",
)


class ConfigError(Exception):
    """Raised when a keygraph configuration file cannot be used."""


CONFIG_FILE = "keygraph.toml"


@dataclass
class EngineConfig:
    """
    Tunables for one watched project.

    Relative paths are resolved against ``project_root`` by
    :meth:`resolved`. Every field may be overridden from the project's
    configuration file.
    """

    project_root: Path = field(default_factory=lambda: Path.cwd())
    source_dir: Path = Path("src")
    routes_dir: Path = Path("src/routes")
    key_source: Path | None = Path("src/types/default-translations.ts")
    route_map_path: Path = Path("src/lib/server/route-keys-map.ts")
    accessor_module: str = "$lib/server"
    translation_modules: Set[str] = field(default_factory=lambda: {"@i18n"})
    translation_handles: Set[str] = field(default_factory=lambda: {"t"})
    aliases: Dict[str, str] = field(default_factory=lambda: {"$lib": "src/lib"})
    component_extension: str = COMPONENT_EXTENSION
    skip_dirs: Set[str] = field(default_factory=lambda: IGNORE_DIRECTORIES.copy())
    verbose: bool = False

    # Write queue
    batch_size: int = 10
    flush_delay: float = 0.05
    interference_guard: bool = True
    max_retries: int = 3
    retry_delay: float = 0.1

    # Coordinator
    debounce_delay: float = 0.1
    max_scan_depth: int = MAX_SCAN_DEPTH
    prune_empty_blocks: bool = False

    def resolved(self) -> "EngineConfig":
        """Return a copy whose paths are absolute."""
        root = Path(self.project_root).absolute()

        def _abs(value: Path) -> Path:
            value = Path(value)
            return value if value.is_absolute() else root / value

        return EngineConfig(
            **{
                **{f.name: getattr(self, f.name) for f in fields(self)},
                "project_root": root,
                "source_dir": _abs(self.source_dir),
                "routes_dir": _abs(self.routes_dir),
                "key_source": _abs(self.key_source) if self.key_source else None,
                "route_map_path": _abs(self.route_map_path),
            }
        )

    @property
    def scan_roots(self) -> List[Path]:
        """Permitted roots, with roots nested inside another root dropped."""
        roots: List[Path] = []
        for candidate in sorted({self.routes_dir, self.source_dir}, key=lambda p: len(p.parts)):
            if any(candidate == root or root in candidate.parents for root in roots):
                continue
            roots.append(candidate)
        return roots

    @property
    def allowed_roots(self) -> List[Path]:
        """Every root an import target may live under."""
        return sorted({self.routes_dir, self.source_dir})

    def should_skip_dir(self, dir_name: str) -> bool:
        return dir_name in self.skip_dirs

    def is_component(self, path: Path) -> bool:
        return path.name.endswith(self.component_extension)


# Types accepted for each overridable field, used to validate config files
_FIELD_TYPES: Dict[str, tuple[type, ...]] = {
    "source_dir": (str,),
    "routes_dir": (str,),
    "key_source": (str,),
    "route_map_path": (str,),
    "accessor_module": (str,),
    "translation_modules": (list,),
    "translation_handles": (list,),
    "aliases": (dict,),
    "component_extension": (str,),
    "skip_dirs": (list,),
    "verbose": (bool,),
    "batch_size": (int,),
    "flush_delay": (int, float),
    "interference_guard": (bool,),
    "max_retries": (int,),
    "retry_delay": (int, float),
    "debounce_delay": (int, float),
    "max_scan_depth": (int,),
    "prune_empty_blocks": (bool,),
}


def _read_table(project_root: Path) -> Dict[str, Any]:
    """Find the keygraph table for a project, if any."""
    config_file = project_root / CONFIG_FILE
    if config_file.exists():
        try:
            with open(config_file, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Invalid TOML in {config_file}: {e}") from e
        return data.get("tool", {}).get("keygraph", data)

    pyproject = project_root / "pyproject.toml"
    if pyproject.exists():
        try:
            with open(pyproject, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Invalid TOML in {pyproject}: {e}") from e
        return data.get("tool", {}).get("keygraph", {})

    return {}


def load_config(project_root: Path, **overrides: Any) -> EngineConfig:
    """
    Build the configuration for a project.

    Values come from (lowest to highest priority) the built-in defaults,
    the project's configuration file, and ``overrides``.

    Raises:
        ConfigError: The file is not valid TOML, names an unknown option,
            or gives an option a value of the wrong type.
    """
    table = dict(_read_table(project_root))
    table.update({k: v for k, v in overrides.items() if v is not None})

    kwargs: Dict[str, Any] = {"project_root": project_root}
    for key, value in table.items():
        if key not in _FIELD_TYPES:
            raise ConfigError(f"Unknown keygraph option: {key!r}")
        expected = _FIELD_TYPES[key]
        # bool is an int subclass; keep them apart
        if isinstance(value, bool) and bool not in expected:
            raise ConfigError(f"Option {key!r} expects {expected[0].__name__}, got bool")
        if not isinstance(value, expected):
            raise ConfigError(
                f"Option {key!r} expects {expected[0].__name__}, got {type(value).__name__}"
            )

        if key == "key_source" and not value:
            value = None
        elif key in ("source_dir", "routes_dir", "key_source", "route_map_path"):
            value = Path(value)
        elif key in ("translation_modules", "translation_handles", "skip_dirs"):
            value = set(value)
        kwargs[key] = value

    return EngineConfig(**kwargs).resolved()
