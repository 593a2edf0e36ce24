"""Shared enums and types for facter."""

from enum import StrEnum

FACTER_VERSION = "0.1.0"


class ResolutionType(StrEnum):
    SIMPLE = "simple"
    AGGREGATE = "aggregate"


class LogLevel(StrEnum):
    TRACE = "trace"
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    FATAL = "fatal"

    @property
    def stdlib_name(self) -> str:
        """Name of the matching stdlib logging level."""
        return {
            LogLevel.TRACE: "DEBUG",
            LogLevel.FATAL: "CRITICAL",
        }.get(self, self.value.upper())
