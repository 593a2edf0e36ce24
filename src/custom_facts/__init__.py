from .engine import LoadResult, ScriptEngine
from .host import FacterContext, initialize, shutdown
from .loader import CustomFactLoader
from .registry import FactRegistry, normalize_name
from .runtime import ConfigurationError, FactRuntime

__all__ = [
    "FactRuntime",
    "ConfigurationError",
    "CustomFactLoader",
    "FactRegistry",
    "ScriptEngine",
    "LoadResult",
    "FacterContext",
    "initialize",
    "shutdown",
    "normalize_name",
]
