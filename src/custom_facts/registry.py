"""Per-runtime cache of custom facts keyed by normalized name."""

from collections.abc import Callable, Iterator
from enum import Enum
from typing import Any, Optional

from facts import Fact


def normalize_name(name: Any) -> str:
    """Lowercase a fact name; enum members stand in for symbols.

    Raises:
        TypeError: If the name is neither a str nor an Enum member
    """
    if isinstance(name, Enum):
        name = name.value if isinstance(name.value, str) else name.name
    if not isinstance(name, str):
        raise TypeError(f"expected a str or Enum for fact name, got {type(name).__name__}")
    return name.lower()


class FactRegistry:
    """Normalized name -> Fact."""

    def __init__(self):
        self._facts: dict[str, Fact] = {}

    def get(self, name: str) -> Optional[Fact]:
        return self._facts.get(name)

    def fetch_or_create(self, name: str, factory: Callable[[], Fact]) -> Fact:
        fact = self._facts.get(name)
        if fact is None:
            fact = factory()
            self._facts[name] = fact
        return fact

    def flush(self) -> None:
        """Drop every cached value so the next read recomputes it."""
        for fact in self._facts.values():
            fact.flush()

    def clear(self) -> None:
        self._facts.clear()

    def facts(self) -> list[Fact]:
        return list(self._facts.values())

    def __contains__(self, name: str) -> bool:
        return name in self._facts

    def __len__(self) -> int:
        return len(self._facts)

    def __iter__(self) -> Iterator[str]:
        return iter(self._facts)
