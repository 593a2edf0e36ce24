"""Process-wide entry points for hosts that embed the custom fact runtime.

``initialize`` hands back the context it creates; hosts that own their
lifecycle should call ``shutdown`` when done. If they never do, the
context is released by an ``atexit`` hook at interpreter shutdown.
"""

import atexit
from typing import Optional

import structlog

from cli.logging_config import setup_logging
from facts import FactCollection
from shared_types import LogLevel

from .runtime import FactRuntime

logger = structlog.get_logger()

_context: Optional["FacterContext"] = None
_atexit_registered = False


class FacterContext:
    """A base collection plus the runtime layered over it."""

    def __init__(self):
        self.collection = FactCollection()
        self.runtime = FactRuntime(self.collection)

    def release(self) -> None:
        self.runtime.close()
        self.collection.clear()


def initialize(log_level: str | LogLevel = LogLevel.WARNING, json_mode: bool = False) -> FacterContext:
    """Configure logging and create the process-wide context.

    Calling it again while a context exists returns that context.
    """
    global _context, _atexit_registered

    if _context is not None:
        return _context

    setup_logging(level=log_level, json_mode=json_mode)
    _context = FacterContext()
    if not _atexit_registered:
        atexit.register(shutdown)
        _atexit_registered = True
    logger.debug("facter_initialized")
    return _context


def shutdown() -> None:
    """Release the process-wide context; a no-op if there is none."""
    global _context

    if _context is None:
        return
    context, _context = _context, None
    context.release()


def current() -> Optional[FacterContext]:
    return _context
