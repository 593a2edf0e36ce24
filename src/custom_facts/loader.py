"""Lazy loading of custom fact scripts."""

import os
from collections.abc import Callable
from pathlib import Path
from typing import Any, Optional

import structlog

from facts import Fact, FactCollection

from .engine import ScriptEngine
from .registry import FactRegistry, normalize_name

logger = structlog.get_logger()


class CustomFactLoader:
    """Finds and runs fact scripts on demand, filling the registry.

    A lookup tries, in order: the registry, a script named after the
    fact in each search directory, the base collection, and finally
    every script in every search directory. Each script runs at most
    once until ``reset``.
    """

    def __init__(
        self,
        engine: ScriptEngine,
        registry: FactRegistry,
        base_facts: Callable[[], FactCollection],
    ):
        """
        Args:
            engine: Runs the script files
            registry: Receives the facts scripts register
            base_facts: Returns the base collection, populating it on first use
        """
        self.engine = engine
        self.registry = registry
        self._base_facts = base_facts
        self.search_paths: list[str] = []
        self.loaded_files: set[str] = set()
        self.loaded_all = False

    def resolve(self, name: Any) -> Optional[Fact]:
        """Return the Fact for a name, loading scripts as needed; None if unknown."""
        fact_name = normalize_name(name)

        fact = self.registry.get(fact_name)
        if fact is not None:
            return fact

        if not self.loaded_all:
            filename = f"{fact_name}{self.engine.script_extension}"
            logger.debug("custom_fact_searching", fact=fact_name)
            for directory in self.search_paths:
                path = Path(directory) / filename
                logger.debug("custom_fact_searching_dir", filename=filename, path=directory)
                if path.is_file():
                    self.load_file(path)

            fact = self.registry.get(fact_name)
            if fact is not None:
                return fact

        if self._base_facts().get(fact_name) is not None:
            return self.register(fact_name)

        self.load_all()
        fact = self.registry.get(fact_name)
        if fact is not None:
            return fact

        logger.debug("custom_fact_not_found", fact=fact_name)
        return None

    def value(self, name: Any) -> Any:
        fact = self.resolve(name)
        if fact is None:
            return None
        return fact.value()

    def load_all(self) -> None:
        """Run every script in every search directory, once."""
        if self.loaded_all:
            return

        logger.debug("custom_facts_loading_all")
        for directory in self.search_paths:
            logger.debug("custom_facts_searching", path=directory)
            try:
                entries = sorted(Path(directory).iterdir())
            except OSError as e:
                logger.warning("custom_fact_dir_unreadable", path=directory, error=str(e))
                continue
            for path in entries:
                if path.suffix == self.engine.script_extension and path.is_file():
                    self.load_file(path)

        self.loaded_all = True

    def load_file(self, path: str | Path) -> bool:
        """Run one script unless it already ran.

        Returns:
            True if the script ran without raising
        """
        key = os.path.realpath(path)
        if key in self.loaded_files:
            return False
        self.loaded_files.add(key)

        logger.info("custom_facts_loading", path=key)
        result = self.engine.load(key)
        if not result.ok:
            logger.error(
                "custom_facts_load_failed",
                path=key,
                error=f"{type(result.error).__name__}: {result.error}",
                backtrace=result.backtrace,
            )
        return result.ok

    def register(self, name: Any) -> Fact:
        """Fetch or create the registry entry for a fact."""
        fact_name = normalize_name(name)

        def create() -> Fact:
            collection = self._base_facts()
            return Fact(fact_name, collection=collection, lookup=self.value)

        return self.registry.fetch_or_create(fact_name, create)

    def reset(self) -> None:
        self.loaded_files.clear()
        self.loaded_all = False
