"""Directories searched for custom fact scripts.

Order, each tier appended after the previous one:
    1. ``<entry>/facter`` for every load path entry that has one
    2. FACTERLIB entries
    3. explicitly supplied paths

Every entry is then canonicalized; entries that do not exist are dropped
and duplicates keep their first position.
"""

import os
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Optional

import structlog

logger = structlog.get_logger()

FACTERLIB = "FACTERLIB"
FACTS_SUBDIR = "facter"
# Present in the root of a facter distribution on the load path
ENTRY_POINTS = ("facter.py", "facter/__init__.py")


def canonical(path: str | Path) -> str:
    """Absolute, symlink-free form of an existing path.

    Raises:
        OSError: If the path does not exist or cannot be resolved
    """
    if not str(path):
        raise FileNotFoundError("empty path")
    return str(Path(path).expanduser().resolve(strict=True))


def load_path_directories(load_path: Iterable[str]) -> list[str]:
    """``facter`` subdirectories of the interpreter's module search path."""
    directories = []
    for entry in load_path:
        try:
            root = Path(canonical(entry))
        except (OSError, RuntimeError):
            continue

        if any((root / name).is_file() for name in ENTRY_POINTS):
            continue

        candidate = root / FACTS_SUBDIR
        if candidate.is_dir():
            directories.append(str(candidate))
    return directories


def environment_directories(environ: Optional[Mapping[str, str]] = None) -> list[str]:
    environ = os.environ if environ is None else environ
    value = environ.get(FACTERLIB)
    if not value:
        return []
    return [p for p in value.split(os.pathsep) if p]


def resolve_search_paths(
    load_path: Iterable[str],
    paths: Iterable[str | Path] = (),
    environ: Optional[Mapping[str, str]] = None,
) -> list[str]:
    """Compute the ordered, deduplicated custom fact search path."""
    candidates = [
        *load_path_directories(load_path),
        *environment_directories(environ),
        *(str(p) for p in paths),
    ]

    resolved: list[str] = []
    for directory in candidates:
        try:
            path = canonical(directory)
        except (OSError, RuntimeError) as e:
            logger.debug("custom_fact_path_skipped", path=directory, error=str(e))
            continue
        if path not in resolved:
            resolved.append(path)
    return resolved
