"""Bridge to the interpreter that runs fact-definition scripts."""

import runpy
import sys
import traceback
from collections.abc import Iterable, MutableMapping
from dataclasses import dataclass
from pathlib import Path
from types import ModuleType
from typing import Optional

SCRIPT_EXTENSION = ".py"


@dataclass
class LoadResult:
    """Outcome of running one script; errors stay on this side of the boundary."""

    path: str
    error: Optional[BaseException] = None
    backtrace: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None


class ScriptEngine:
    """Runs fact scripts in the current interpreter.

    ``load_path`` defaults to ``sys.path`` (read on each access) and
    ``modules`` to ``sys.modules``. Scripts resolve ``import facter``
    through ``modules``, so tests that swap it out should keep it
    ``sys.modules``.
    """

    script_extension = SCRIPT_EXTENSION

    def __init__(
        self,
        load_path: Optional[Iterable[str]] = None,
        modules: Optional[MutableMapping[str, ModuleType]] = None,
    ):
        self._load_path = list(load_path) if load_path is not None else None
        self.modules = modules if modules is not None else sys.modules
        self.initialized = True

    @property
    def load_path(self) -> list[str]:
        if self._load_path is None:
            return list(sys.path)
        return list(self._load_path)

    def load(self, path: str | Path) -> LoadResult:
        """Execute a script file as a fresh module."""
        run_name = f"facter_custom_{Path(path).stem}"
        try:
            runpy.run_path(str(path), run_name=run_name)
        except (Exception, SystemExit) as e:
            return LoadResult(str(path), e, "".join(traceback.format_exception(e)))
        return LoadResult(str(path))
