"""Custom fact runtime: owns the ``facter`` namespace and all loader state."""

import os
import traceback
from collections.abc import Callable, Iterable, Mapping
from pathlib import Path
from typing import Any, Optional

import structlog

import execution
from facts import Fact, FactCollection
from shared_types import FACTER_VERSION

from .engine import ScriptEngine
from .loader import CustomFactLoader
from .namespace import build_namespace, install, uninstall
from .registry import FactRegistry
from .search_paths import canonical, resolve_search_paths

logger = structlog.get_logger()
# Messages logged on behalf of fact scripts
script_logger = structlog.get_logger("facter")


class ConfigurationError(Exception):
    """The script engine is missing or not initialized."""


class FactRuntime:
    """Lifecycle and callback surface for custom facts.

    Construction registers the ``facter`` module tree with the engine;
    ``close`` (or leaving a ``with`` block) removes it again and restores
    any module it displaced.

    Example:
        collection = FactCollection()
        with FactRuntime(collection, paths=["/srv/facts"]) as runtime:
            runtime.value("kernel")
    """

    def __init__(
        self,
        collection: FactCollection,
        paths: Iterable[str | Path] = (),
        engine: Optional[ScriptEngine] = None,
    ):
        """
        Args:
            collection: Base collection holding built-in and external facts
            paths: Extra custom fact directories, searched last
            engine: Script engine; defaults to the running interpreter

        Raises:
            ConfigurationError: If the engine is not initialized
        """
        engine = engine if engine is not None else ScriptEngine()
        if not getattr(engine, "initialized", False):
            raise ConfigurationError("script engine is not initialized")

        self.engine = engine
        self.collection = collection
        self.registry = FactRegistry()
        self.loader = CustomFactLoader(engine, self.registry, self.facts)
        self._debug_messages: set[str] = set()
        self._warning_messages: set[str] = set()
        self._additional_search_paths: list[str] = []
        self._external_search_paths: list[str] = []
        self._closed = False

        self.initialize_search_paths(paths)

        self._namespace = build_namespace(self)
        self._previous = install(engine.modules, self._namespace)
        if self._previous.get("facter") is not None:
            logger.debug("facter_namespace_replaced")

    def __enter__(self) -> "FactRuntime":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        """Drop custom facts and unregister the namespace. Safe to call twice."""
        if self._closed:
            return
        self._closed = True
        self.clear_facts(clear_collection=False)
        uninstall(self.engine.modules, self._namespace, self._previous)

    @property
    def closed(self) -> bool:
        return self._closed

    # === State ===

    def initialize_search_paths(self, paths: Iterable[str | Path] = ()) -> None:
        self._additional_search_paths.clear()
        self.loader.search_paths = resolve_search_paths(self.engine.load_path, paths)

    def facts(self) -> FactCollection:
        """Base collection, populated with default and external facts on first use."""
        if self.collection.empty:
            self.collection.add_default_facts()
            self.collection.add_external_facts(self._external_search_paths)
        return self.collection

    def resolve_facts(self) -> None:
        """Load every custom fact and compute every value."""
        self.facts()
        self.loader.load_all()
        for fact in self.registry.facts():
            fact.value()

    def clear_facts(self, clear_collection: bool = True) -> None:
        self.registry.clear()
        if clear_collection:
            self.collection.clear()

    # === Fact definition ===

    def version(self) -> str:
        return FACTER_VERSION

    def add(
        self,
        name: Any,
        options: Optional[Mapping] = None,
        block: Optional[Callable] = None,
    ) -> Fact:
        """Define a resolution for a fact and hand it to ``block``.

        ``options`` may carry ``name``, ``type``, ``weight``, ``timeout``
        and ``confine``. If defining the resolution or running the block
        raises, the fact's value is set to None and the error re-raised.
        """
        if options is not None and not isinstance(options, Mapping):
            raise TypeError(f"expected a mapping for options, got {type(options).__name__}")

        fact = self.loader.register(name)
        options = dict(options or {})
        resolution_name = options.pop("name", None)
        try:
            resolution = fact.define_resolution(resolution_name, options)
            if block is not None:
                block(resolution)
        except Exception:
            fact.set_value(None)
            raise
        return fact

    def define_fact(
        self,
        name: Any,
        options: Optional[Mapping] = None,
        block: Optional[Callable] = None,
    ) -> Fact:
        """Fetch or create a fact without adding a resolution; ``block`` gets the fact."""
        if options is not None and not isinstance(options, Mapping):
            raise TypeError(f"expected a mapping for options, got {type(options).__name__}")

        fact = self.loader.register(name)
        if block is not None:
            block(fact)
        return fact

    def value(self, name: Any) -> Any:
        return self.loader.value(name)

    def fact(self, name: Any) -> Optional[Fact]:
        return self.loader.resolve(name)

    # === Logging ===

    def debug(self, message: Any) -> None:
        script_logger.debug(str(message))

    def warn(self, message: Any) -> None:
        script_logger.warning(str(message))

    def debug_once(self, message: Any) -> None:
        msg = str(message)
        if msg not in self._debug_messages:
            self._debug_messages.add(msg)
            script_logger.debug(msg)

    def warn_once(self, message: Any) -> None:
        msg = str(message)
        if msg not in self._warning_messages:
            self._warning_messages.add(msg)
            script_logger.warning(msg)

    def log_exception(self, error: BaseException, message: Optional[str] = None) -> None:
        script_logger.error(
            str(message) if message is not None else str(error),
            backtrace="".join(traceback.format_exception(error)),
        )

    # === Collection ===

    def flush(self) -> None:
        self.registry.flush()

    def list_facts(self) -> list[str]:
        self.resolve_facts()
        return self.collection.names()

    def to_dict(self) -> dict[str, Any]:
        self.resolve_facts()
        return dict(self.collection.items())

    def each(self, block: Callable[[str, Any], Any]) -> None:
        self.resolve_facts()
        for name, value in self.collection.items():
            block(name, value)

    def clear(self) -> None:
        self.flush()
        self.reset()

    def reset(self) -> None:
        """Forget custom facts, loaded files, logged messages and added paths."""
        self.clear_facts()
        self.initialize_search_paths()
        self._external_search_paths.clear()
        self._debug_messages.clear()
        self._warning_messages.clear()
        self.loader.reset()

    def load_all_facts(self) -> None:
        self.loader.load_all()

    # === Search paths ===

    def add_search_path(self, *paths: Any) -> None:
        """Append custom fact directories; non-path arguments are ignored."""
        for path in paths:
            if not isinstance(path, (str, os.PathLike)):
                continue
            self._additional_search_paths.append(str(path))
            try:
                directory = canonical(path)
            except (OSError, RuntimeError) as e:
                logger.debug("custom_fact_path_skipped", path=str(path), error=str(e))
                continue
            if directory not in self.loader.search_paths:
                self.loader.search_paths.append(directory)

    def search_paths(self) -> list[str]:
        """Paths added with ``add_search_path``, as given."""
        return list(self._additional_search_paths)

    def add_external_search_path(self, paths: Any) -> None:
        if isinstance(paths, (str, os.PathLike)):
            paths = [paths]
        for path in paths:
            if isinstance(path, (str, os.PathLike)):
                self._external_search_paths.append(str(path))

    def external_search_paths(self) -> list[str]:
        return list(self._external_search_paths)

    # === Execution ===

    def which(self, binary: str) -> Optional[str]:
        return execution.which(binary)

    def exec_command(self, command: str) -> Optional[str]:
        return execution.exec_(command)

    def execute(self, command: str, options: Optional[Mapping] = None) -> Any:
        return execution.execute(command, options)
