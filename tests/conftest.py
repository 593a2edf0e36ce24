"""Shared test fixtures for facter."""

import logging
import sys
import textwrap
from pathlib import Path

import pytest
import structlog

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from custom_facts import FactRuntime, ScriptEngine
from facts import FactCollection


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Keep the real FACTERLIB and ~/.facter out of every test."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.delenv("FACTERLIB", raising=False)
    return home


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo setup_logging so handlers never outlive a test's captured streams."""
    yield
    structlog.reset_defaults()
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(logging.WARNING)


@pytest.fixture
def custom_dir(tmp_path):
    path = tmp_path / "custom"
    path.mkdir()
    return path


@pytest.fixture
def external_dir(tmp_path):
    path = tmp_path / "external"
    path.mkdir()
    return path


@pytest.fixture
def write_fact():
    """Write a custom fact script into a directory."""

    def _write(directory: Path, name: str, body: str) -> Path:
        path = directory / f"{name}.py"
        path.write_text(textwrap.dedent(body))
        return path

    return _write


@pytest.fixture
def collection():
    return FactCollection()


@pytest.fixture
def runtime(collection, custom_dir):
    """Runtime over an empty load path, searching only custom_dir."""
    rt = FactRuntime(collection, paths=[custom_dir], engine=ScriptEngine(load_path=[]))
    yield rt
    rt.close()
