"""Tests for the process-wide initialize/shutdown entry points."""

import logging
import sys

import pytest

from custom_facts import host


@pytest.fixture(autouse=True)
def released_context():
    host.shutdown()
    yield
    host.shutdown()


class TestHostBoundary:
    def test_initialize_returns_context(self):
        context = host.initialize("debug")
        assert host.current() is context
        assert sys.modules["facter"].value("facterversion") == context.runtime.version()
        assert logging.getLogger().level == logging.DEBUG

    def test_initialize_twice_returns_same_context(self):
        first = host.initialize()
        assert host.initialize() is first

    def test_shutdown_releases_namespace(self):
        context = host.initialize()
        host.shutdown()
        assert host.current() is None
        assert context.runtime.closed
        assert "facter" not in sys.modules

    def test_shutdown_without_initialize_is_noop(self):
        host.shutdown()
        host.shutdown()
        assert host.current() is None

    def test_reinitialize_after_shutdown(self):
        first = host.initialize()
        host.shutdown()
        second = host.initialize()
        assert second is not first
        assert not second.runtime.closed
