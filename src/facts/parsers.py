"""Format drivers for external fact files.

Drivers are tried in declaration order; the first whose ``matches`` accepts
the file wins. YAML, text and executable failures are logged and produce an
empty result. Malformed JSON is not swallowed: the error reaches the caller.
"""

import json
import os
import shlex
import traceback
from pathlib import Path

import structlog
import yaml

import execution

logger = structlog.get_logger()


class ParserNotFoundError(ValueError):
    """No driver accepts the file."""


class ExternalFactError(Exception):
    """An external fact file parsed but does not describe a fact mapping."""


def file_extension(path: str | Path) -> str:
    """Lowercased extension without the leading dot."""
    return Path(path).suffix.lstrip(".").lower()


def parse_key_values(text: str) -> dict[str, str]:
    """Collect ``key=value`` lines; the value is everything after the first ``=``."""
    result = {}
    for line in text.splitlines():
        key, sep, value = line.rstrip("\r\n").partition("=")
        if sep and key and value:
            result[key] = value
    return result


class FactParser:
    """Base driver. Subclasses set ``extensions`` or override ``matches``."""

    extensions: tuple[str, ...] = ()
    format_name = "base"

    def __init__(self, path: str | Path):
        self.path = Path(path)

    @classmethod
    def matches(cls, path: str | Path) -> bool:
        return file_extension(path) in cls.extensions

    def results(self) -> dict:
        raise NotImplementedError(f"{type(self).__name__} must implement results()")

    def _warn(self, error: Exception) -> None:
        logger.warning(
            "external_fact_parse_failed",
            path=str(self.path),
            format=self.format_name,
            error=f"{type(error).__name__}: {error}",
        )


class YamlParser(FactParser):
    extensions = ("yaml", "yml")
    format_name = "yaml"

    def results(self) -> dict:
        try:
            with open(self.path) as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            self._warn(e)
            return {}
        if data is None:
            return {}
        if not isinstance(data, dict):
            self._warn(ExternalFactError(f"expected a mapping, got {type(data).__name__}"))
            return {}
        return data


class TextParser(FactParser):
    extensions = ("txt",)
    format_name = "text"

    def results(self) -> dict:
        try:
            text = self.path.read_text()
        except (OSError, UnicodeDecodeError) as e:
            self._warn(e)
            return {}
        return parse_key_values(text)


class JsonParser(FactParser):
    extensions = ("json",)
    format_name = "json"

    def results(self) -> dict:
        with open(self.path) as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ExternalFactError(f"{self.path}: expected a JSON object, got {type(data).__name__}")
        return data


class ScriptParser(FactParser):
    """Runs an executable and reads ``key=value`` lines from its output."""

    format_name = "script"

    @classmethod
    def matches(cls, path: str | Path) -> bool:
        return os.path.isfile(path) and os.access(path, os.X_OK)

    def results(self) -> dict:
        try:
            output = execution.execute_command(shlex.quote(str(self.path)), raise_on_fail=True)
            return parse_key_values(output)
        except Exception as e:
            self._warn(e)
            logger.debug(
                "external_fact_script_backtrace",
                path=str(self.path),
                backtrace="".join(traceback.format_exception(e)),
            )
            return {}


PARSERS: tuple[type[FactParser], ...] = (YamlParser, TextParser, JsonParser, ScriptParser)


def which_parser(path: str | Path) -> type[FactParser]:
    """Select the first driver accepting the file.

    Raises:
        ParserNotFoundError: If no driver matches
    """
    for parser in PARSERS:
        if parser.matches(path):
            return parser
    raise ParserNotFoundError(f"Could not find parser for {path}")


def can_parse(path: str | Path) -> bool:
    return any(parser.matches(path) for parser in PARSERS)


def parse_file(path: str | Path) -> dict:
    """Parse one external fact file into a name -> value mapping."""
    return which_parser(path)(path).results()
