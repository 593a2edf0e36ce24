"""Facts and the resolutions that compute their values."""

import traceback
from collections.abc import Callable, Iterable, Mapping
from typing import Any, Optional

import structlog

import execution
from shared_types import ResolutionType

from .collection import FactCollection

logger = structlog.get_logger()

RESOLUTION_OPTIONS = {"weight", "timeout", "confine"}

Lookup = Callable[[str], Any]

_UNSET = object()


def _no_lookup(name: str) -> Any:
    return None


def deep_merge(base: dict, override: dict) -> dict:
    """Deep merge two dictionaries; conflicting scalar keys are an error."""
    result = base.copy()
    for key, value in override.items():
        if key not in result:
            result[key] = value
        elif isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        elif isinstance(result[key], list) and isinstance(value, list):
            result[key] = result[key] + value
        else:
            raise ValueError(f"cannot merge {result[key]!r} and {value!r} for key {key!r}")
    return result


class Confine:
    """Restricts a resolution to hosts where another fact has a given value."""

    def __init__(
        self,
        fact: Optional[str] = None,
        values: Iterable[Any] = (),
        block: Optional[Callable] = None,
    ):
        self.fact = fact.lower() if fact else None
        self.values = list(values)
        self.block = block

    def is_true(self, lookup: Lookup) -> bool:
        if self.fact is None:
            return bool(self.block())

        value = lookup(self.fact)
        if self.block is not None:
            return bool(self.block(value))
        if value is None:
            return False
        return any(self._matches(value, expected) for expected in self.values)

    @staticmethod
    def _matches(value: Any, expected: Any) -> bool:
        if callable(expected):
            return bool(expected(value))
        return str(value).lower() == str(expected).lower()

    def __repr__(self) -> str:
        return f"<Confine fact={self.fact!r} values={self.values!r}>"


class Resolution:
    """One strategy for computing a fact's value."""

    kind: ResolutionType

    def __init__(self, fact: "Fact", name: Optional[str] = None):
        self.fact = fact
        self.name = name
        self.confines: list[Confine] = []
        self.timeout: Optional[float] = None
        self._weight: Optional[int] = None
        self._flush_block: Optional[Callable] = None

    def set_options(self, options: Mapping) -> None:
        """Apply resolution options.

        Raises:
            ValueError: On an option this resolution does not understand
        """
        invalid = set(options) - RESOLUTION_OPTIONS
        if invalid:
            raise ValueError(f"invalid resolution options: {', '.join(sorted(map(str, invalid)))}")
        if "weight" in options:
            self.has_weight(options["weight"])
        if "timeout" in options:
            self.timeout = options["timeout"]
        if "confine" in options:
            self.confine(options["confine"])

    def confine(self, confines: Any = None, /, block: Optional[Callable] = None, **facts: Any) -> None:
        """Add confinements.

        Accepts a mapping (fact -> value or list of values), keyword
        arguments of the same shape, a fact name together with a predicate
        block, or a bare block.
        """
        if callable(confines) and block is None:
            confines, block = None, confines

        if isinstance(confines, str):
            if block is None:
                raise TypeError("a fact name confine needs a block")
            self.confines.append(Confine(confines, block=block))
            return

        merged = {**(confines or {}), **facts}
        for fact, values in merged.items():
            if isinstance(values, (list, tuple, set)):
                self.confines.append(Confine(fact, values))
            else:
                self.confines.append(Confine(fact, [values]))

        if block is not None:
            self.confines.append(Confine(block=block))

    def has_weight(self, weight: int) -> None:
        self._weight = int(weight)

    @property
    def weight(self) -> int:
        if self._weight is not None:
            return self._weight
        return len(self.confines)

    def suitable(self) -> bool:
        return all(c.is_true(self.fact.lookup) for c in self.confines)

    def on_flush(self, block: Callable) -> None:
        self._flush_block = block

    def flush(self) -> None:
        if self._flush_block is not None:
            self._flush_block()

    def value(self) -> Any:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<{type(self).__name__} fact={self.fact.name!r} name={self.name!r} weight={self.weight}>"


class SimpleResolution(Resolution):
    kind = ResolutionType.SIMPLE

    def __init__(self, fact: "Fact", name: Optional[str] = None):
        super().__init__(fact, name)
        self._code: Any = None

    def setcode(self, code: Any = None, block: Optional[Callable] = None) -> None:
        """Set the code: a shell command string or a callable."""
        code = block if block is not None else code
        if code is None:
            raise TypeError("setcode needs a command string or a callable")
        if not isinstance(code, str) and not callable(code):
            raise TypeError(f"expected a command string or callable, got {type(code).__name__}")
        self._code = code

    def value(self) -> Any:
        if self._code is None:
            return None
        if callable(self._code):
            return self._code()
        output = execution.execute_command(self._code, None, False, self.timeout)
        return output or None


class AggregateResolution(Resolution):
    """Builds a value from named chunks, then combines them."""

    kind = ResolutionType.AGGREGATE

    def __init__(self, fact: "Fact", name: Optional[str] = None):
        super().__init__(fact, name)
        self._chunks: dict[str, tuple[Callable, tuple[str, ...]]] = {}
        self._aggregate: Optional[Callable[[dict], Any]] = None

    def chunk(self, name: str, block: Callable, require: Iterable[str] = ()) -> None:
        if not callable(block):
            raise TypeError(f"chunk {name!r} needs a callable")
        self._chunks[name] = (block, tuple(require))

    def aggregate(self, block: Callable[[dict], Any]) -> None:
        self._aggregate = block

    def value(self) -> Any:
        results: dict[str, Any] = {}
        for name in self._chunks:
            self._run_chunk(name, results, ())
        if self._aggregate is not None:
            return self._aggregate(results)
        return self._default_aggregate(results)

    def _run_chunk(self, name: str, results: dict, resolving: tuple[str, ...]) -> None:
        if name in results:
            return
        if name in resolving:
            raise ValueError(f"chunk dependency cycle: {' -> '.join((*resolving, name))}")
        if name not in self._chunks:
            raise ValueError(f"required chunk {name!r} is not defined")

        block, require = self._chunks[name]
        for dependency in require:
            self._run_chunk(dependency, results, (*resolving, name))
        results[name] = block(*(results[d] for d in require))

    @staticmethod
    def _default_aggregate(results: dict) -> Any:
        values = [v for v in results.values() if v is not None]
        if not values:
            return None
        if all(isinstance(v, dict) for v in values):
            merged: dict = {}
            for v in values:
                merged = deep_merge(merged, v)
            return merged
        if all(isinstance(v, list) for v in values):
            return [item for v in values for item in v]
        raise ValueError("chunks must all be dicts or all be lists without an aggregate block")


RESOLUTION_CLASSES: dict[ResolutionType, type[Resolution]] = {
    ResolutionType.SIMPLE: SimpleResolution,
    ResolutionType.AGGREGATE: AggregateResolution,
}


class Fact:
    """A named fact: its resolutions and its cached value."""

    def __init__(
        self,
        name: str,
        collection: Optional[FactCollection] = None,
        lookup: Optional[Lookup] = None,
    ):
        self.name = name
        self.lookup: Lookup = lookup or _no_lookup
        self._collection = collection
        self._resolutions: list[Resolution] = []
        self._value: Any = None
        self._resolved = False
        self._resolving = False
        # Base collection entry before this fact first wrote over it
        self._base_value: Any = _UNSET

    @property
    def resolutions(self) -> list[Resolution]:
        return list(self._resolutions)

    def resolution(self, name: str) -> Optional[Resolution]:
        for res in self._resolutions:
            if res.name == name:
                return res
        return None

    def add(self, options: Optional[Mapping] = None, block: Optional[Callable] = None) -> Resolution:
        """Define a resolution from options and hand it to ``block``."""
        options = dict(options or {})
        name = options.pop("name", None)
        res = self.define_resolution(name, options)
        if block is not None:
            block(res)
        return res

    def define_resolution(self, name: Optional[str] = None, options: Optional[Mapping] = None) -> Resolution:
        """Create a resolution, or fetch an existing one with the same name.

        Raises:
            ValueError: On an unknown type, or a named resolution redefined with another type
        """
        options = dict(options or {})
        kind = ResolutionType(options.pop("type", ResolutionType.SIMPLE))

        res = self.resolution(name) if name is not None else None
        if res is None:
            res = RESOLUTION_CLASSES[kind](self, name)
            self._resolutions.append(res)
        elif res.kind != kind:
            raise ValueError(
                f"cannot define {kind} resolution {name!r} for fact {self.name!r}: "
                f"already defined as {res.kind}"
            )
        res.set_options(options)
        return res

    def value(self) -> Any:
        if self._resolved:
            return self._value
        if self._resolving:
            logger.warning("custom_fact_cycle", fact=self.name)
            return None

        self._resolving = True
        try:
            value = self._resolve()
        finally:
            self._resolving = False
        self.set_value(value)
        return value

    def _resolve(self) -> Any:
        ordered = sorted(self._resolutions, key=lambda r: r.weight, reverse=True)
        for res in ordered:
            try:
                if not res.suitable():
                    continue
                value = res.value()
            except Exception as e:
                logger.error(
                    "custom_fact_resolution_failed",
                    fact=self.name,
                    resolution=res.name,
                    error=f"{type(e).__name__}: {e}",
                    backtrace="".join(traceback.format_exception(e)),
                )
                continue
            if value is not None:
                return value

        if self._collection is not None:
            return self._collection.get(self.name)
        return None

    def set_value(self, value: Any) -> None:
        self._value = value
        self._resolved = True
        if self._collection is not None and value is not None:
            if self._base_value is _UNSET:
                self._base_value = self._collection.get(self.name)
            self._collection.add(self.name, value)

    def flush(self) -> None:
        """Drop the cached value and restore the base collection entry it replaced."""
        for res in self._resolutions:
            res.flush()
        self._value = None
        self._resolved = False
        if self._collection is not None and self._base_value is not _UNSET:
            self._collection.add(self.name, self._base_value)
            self._base_value = _UNSET

    def __repr__(self) -> str:
        return f"<Fact name={self.name!r} resolutions={len(self._resolutions)}>"
