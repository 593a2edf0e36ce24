"""The ``facter`` module that custom fact scripts import.

The modules are built fresh for each runtime and registered in the
engine's module table; their functions are bound methods of that
runtime, so scripts never reach module-level state.
"""

from collections.abc import MutableMapping
from types import ModuleType
from typing import TYPE_CHECKING, Optional

from execution import ExecutionFailure
from facts import AggregateResolution, Fact, SimpleResolution
from shared_types import FACTER_VERSION

if TYPE_CHECKING:
    from .runtime import FactRuntime

NAMESPACE = "facter"
CORE = "facter.core"
EXECUTION = "facter.core.execution"
UTIL = "facter.util"
# Registered so ``import`` of these names never reaches the filesystem
SUPPORT_MODULES = ("facter.util.resolution", "facter.core.aggregate")

FACTER_FUNCTIONS = {
    "version": "version",
    "add": "add",
    "define_fact": "define_fact",
    "value": "value",
    "fact": "fact",
    "debug": "debug",
    "warn": "warn",
    "debug_once": "debug_once",
    "warn_once": "warn_once",
    "log_exception": "log_exception",
    "flush": "flush",
    "list": "list_facts",
    "to_dict": "to_dict",
    "each": "each",
    "clear": "clear",
    "reset": "reset",
    "load_all_facts": "load_all_facts",
    "add_search_path": "add_search_path",
    "search_paths": "search_paths",
    "add_external_search_path": "add_external_search_path",
    "external_search_paths": "external_search_paths",
}

EXECUTION_FUNCTIONS = {
    "which": "which",
    "exec": "exec_command",
    "execute": "execute",
}


class FrozenModule(ModuleType):
    """Module that refuses attribute changes once frozen."""

    _frozen = False

    def freeze(self) -> None:
        ModuleType.__setattr__(self, "_frozen", True)

    def __setattr__(self, name: str, value: object) -> None:
        if self._frozen:
            raise AttributeError(f"cannot set {name!r} on frozen module {self.__name__!r}")
        super().__setattr__(name, value)

    def __delattr__(self, name: str) -> None:
        if self._frozen:
            raise AttributeError(f"cannot delete {name!r} from frozen module {self.__name__!r}")
        super().__delattr__(name)


def _package(name: str, doc: Optional[str] = None) -> ModuleType:
    module = ModuleType(name, doc)
    module.__path__ = []
    return module


def build_namespace(runtime: "FactRuntime") -> dict[str, ModuleType]:
    """Create the module tree bound to ``runtime``, keyed by module name."""
    facter = _package(NAMESPACE, "Custom fact API.")
    core = _package(CORE)
    util = _package(UTIL)
    execution = FrozenModule(EXECUTION, "Command execution for custom facts.")

    for attr, method in FACTER_FUNCTIONS.items():
        setattr(facter, attr, getattr(runtime, method))
    facter.FACTERVERSION = FACTER_VERSION
    facter.__version__ = FACTER_VERSION
    facter.Fact = Fact

    for attr, method in EXECUTION_FUNCTIONS.items():
        setattr(execution, attr, getattr(runtime, method))
    execution.ExecutionFailure = ExecutionFailure
    execution.freeze()

    resolution = ModuleType(SUPPORT_MODULES[0])
    resolution.Resolution = SimpleResolution
    resolution.exec = runtime.exec_command
    resolution.which = runtime.which

    aggregate = ModuleType(SUPPORT_MODULES[1])
    aggregate.Aggregate = AggregateResolution

    core.execution = execution
    core.aggregate = aggregate
    util.resolution = resolution
    facter.core = core
    facter.util = util

    return {
        NAMESPACE: facter,
        CORE: core,
        EXECUTION: execution,
        UTIL: util,
        SUPPORT_MODULES[0]: resolution,
        SUPPORT_MODULES[1]: aggregate,
    }


def install(
    modules: MutableMapping[str, ModuleType],
    namespace: dict[str, ModuleType],
) -> dict[str, Optional[ModuleType]]:
    """Register the namespace, returning whatever it displaced."""
    previous = {name: modules.get(name) for name in namespace}
    modules.update(namespace)
    return previous


def uninstall(
    modules: MutableMapping[str, ModuleType],
    namespace: dict[str, ModuleType],
    previous: dict[str, Optional[ModuleType]],
) -> None:
    """Remove the namespace and put back what it displaced."""
    for name, module in namespace.items():
        if modules.get(name) is module:
            del modules[name]
        if previous.get(name) is not None:
            modules[name] = previous[name]
