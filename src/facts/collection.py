"""Base fact collection: built-in probe results and external facts."""

import os
import platform
import socket
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import Any, Optional

import structlog

from shared_types import FACTER_VERSION

from .parsers import can_parse, parse_file

logger = structlog.get_logger()

SYSTEM_EXTERNAL_DIRS = ("/etc/facter/facts.d", "/etc/puppetlabs/facter/facts.d")
USER_EXTERNAL_DIR = "~/.facter/facts.d"


def default_external_dirs() -> list[Path]:
    """External fact directories used when none are configured."""
    if hasattr(os, "geteuid") and os.geteuid() == 0:
        return [Path(d) for d in SYSTEM_EXTERNAL_DIRS]
    return [Path(USER_EXTERNAL_DIR).expanduser()]


class FactCollection:
    """Name -> value store for resolved facts.

    Names are lowercased on the way in. Values are plain Python data
    (str, numbers, bools, lists, dicts).
    """

    def __init__(self):
        self._facts: dict[str, Any] = {}

    def add(self, name: str, value: Any) -> None:
        if value is None:
            self._facts.pop(name.lower(), None)
            return
        self._facts[name.lower()] = value

    def get(self, name: str, default: Any = None) -> Any:
        return self._facts.get(name.lower(), default)

    def __getitem__(self, name: str) -> Any:
        return self.get(name)

    def __contains__(self, name: str) -> bool:
        return name.lower() in self._facts

    def __len__(self) -> int:
        return len(self._facts)

    def __iter__(self) -> Iterator[str]:
        return iter(self._facts)

    @property
    def empty(self) -> bool:
        return not self._facts

    def names(self) -> list[str]:
        return list(self._facts)

    def items(self) -> list[tuple[str, Any]]:
        return list(self._facts.items())

    def clear(self) -> None:
        self._facts.clear()

    def add_default_facts(self) -> None:
        """Populate the small built-in probe set."""
        release = platform.release()
        self.add("facterversion", FACTER_VERSION)
        self.add("kernel", platform.system() or None)
        self.add("kernelrelease", release or None)
        self.add("kernelmajversion", ".".join(release.split(".")[:2]) or None)
        self.add("hardwaremodel", platform.machine() or None)
        self.add("hostname", socket.gethostname().split(".")[0] or None)
        self.add("pythonversion", platform.python_version())
        self.add("path", os.environ.get("PATH"))
        logger.debug("default_facts_added", count=len(self))

    def add_external_facts(self, paths: Optional[Iterable[str | Path]] = None) -> None:
        """Read every parseable file in the external fact directories.

        A file whose JSON is malformed is reported and skipped; the other
        files are still loaded.
        """
        directories = [Path(p).expanduser() for p in paths] if paths else default_external_dirs()
        for directory in directories:
            if not directory.is_dir():
                logger.debug("external_fact_dir_missing", path=str(directory))
                continue
            for path in sorted(directory.iterdir()):
                if not path.is_file():
                    continue
                if not can_parse(path):
                    logger.debug("external_fact_file_skipped", path=str(path))
                    continue
                self._add_external_file(path)

    def _add_external_file(self, path: Path) -> None:
        logger.info("external_facts_loading", path=str(path))
        try:
            facts = parse_file(path)
        except Exception as e:
            logger.error("external_facts_failed", path=str(path), error=f"{type(e).__name__}: {e}")
            return
        for name, value in facts.items():
            self.add(str(name), value)
