"""Shell command execution for fact scripts and external fact executables."""

import shutil
import subprocess
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Optional

import structlog

logger = structlog.get_logger()

SHELL = "sh"


class ExecutionFailure(Exception):
    """Raised when a command exits unsuccessfully and the caller asked to raise."""

    def __init__(self, command: str):
        self.command = command
        super().__init__(f'execution of command "{command}" failed')


@dataclass
class ExecutionResult:
    """Outcome of one command run."""

    success: bool
    output: str = ""


def run(command: str, timeout: Optional[float] = None) -> ExecutionResult:
    """Run a command through the POSIX shell with stderr folded into stdout.

    Args:
        command: Shell command line
        timeout: Seconds before the child is killed (None = wait forever)

    Returns:
        ExecutionResult; spawn errors and timeouts count as failure
    """
    try:
        proc = subprocess.run(
            [SHELL, "-c", command],
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            stdin=subprocess.DEVNULL,
            text=True,
            errors="replace",
            timeout=timeout,
        )
    except subprocess.TimeoutExpired:
        logger.warning("command_timed_out", command=command, timeout=timeout)
        return ExecutionResult(success=False)
    except OSError as e:
        logger.debug("command_spawn_failed", command=command, error=str(e))
        return ExecutionResult(success=False)

    output = proc.stdout.rstrip() if proc.stdout else ""
    if proc.returncode != 0:
        logger.debug("command_failed", command=command, status=proc.returncode)
        return ExecutionResult(success=False, output=output)
    return ExecutionResult(success=True, output=output)


def which(binary: str) -> Optional[str]:
    """Resolve a binary name to an absolute path, or None."""
    return shutil.which(binary)


def execute_command(
    command: str,
    failure_default: Any = None,
    raise_on_fail: bool = False,
    timeout: Optional[float] = None,
) -> Any:
    """Run a command, returning its output or a failure outcome.

    Raises:
        ExecutionFailure: If the command fails and raise_on_fail is set
    """
    result = run(command, timeout=timeout)
    if result.success:
        return result.output
    if raise_on_fail:
        raise ExecutionFailure(command)
    return failure_default


def exec_(command: str) -> Optional[str]:
    """Quiet entry point: output on success, None on any failure."""
    return execute_command(command, None, False)


def execute(command: str, options: Optional[Mapping] = None) -> Any:
    """Configurable entry point.

    ``options`` recognizes a single ``on_fail`` key: ``"raise"`` raises
    ExecutionFailure, anything else is returned on failure. Omitting
    options entirely means raise.
    """
    if options is None:
        return execute_command(command, None, True)
    if not isinstance(options, Mapping):
        raise TypeError(f"expected a mapping for execute options, got {type(options).__name__}")

    on_fail = options.get("on_fail")
    if on_fail == "raise":
        return execute_command(command, None, True)
    return execute_command(command, on_fail, False)
