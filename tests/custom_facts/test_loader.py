"""Tests for lazy custom fact loading."""

import platform
from unittest.mock import patch

import pytest

from custom_facts import normalize_name
from shared_types import ResolutionType


def _counting_fact(name, counter, value):
    return f"""
        import facter

        with open({str(counter)!r}, "a") as f:
            f.write("x")

        facter.add({name!r}, block=lambda r: r.setcode(lambda: {value!r}))
    """


class TestNormalizeName:
    def test_lowercases(self):
        assert normalize_name("OperatingSystem") == "operatingsystem"

    def test_enum_member(self):
        assert normalize_name(ResolutionType.AGGREGATE) == "aggregate"

    def test_rejects_other_types(self):
        with pytest.raises(TypeError):
            normalize_name(42)


class TestResolve:
    def test_loads_script_named_after_fact(self, runtime, custom_dir, write_fact, tmp_path):
        counter = tmp_path / "count"
        write_fact(custom_dir, "role", _counting_fact("role", counter, "web"))

        assert runtime.value("role") == "web"
        assert runtime.value("ROLE") == "web"
        assert counter.read_text() == "x"
        assert runtime.loader.loaded_all is False

    def test_same_file_runs_once(self, runtime, custom_dir, write_fact, tmp_path):
        counter = tmp_path / "count"
        path = write_fact(custom_dir, "role", _counting_fact("role", counter, "web"))

        assert runtime.loader.load_file(path) is True
        assert runtime.loader.load_file(path) is False
        assert runtime.loader.load_file(str(path)) is False
        assert counter.read_text() == "x"

    def test_falls_back_to_load_all(self, runtime, custom_dir, write_fact):
        write_fact(custom_dir, "misc", """
            import facter

            facter.add("datacenter", block=lambda r: r.setcode(lambda: "ams"))
        """)

        assert runtime.value("datacenter") == "ams"
        assert runtime.loader.loaded_all is True

    def test_base_fact_skips_bulk_load(self, runtime):
        fact = runtime.fact("kernel")
        assert fact is not None
        assert fact.value() == platform.system()
        assert runtime.loader.loaded_all is False

    def test_unknown_fact_is_none(self, runtime):
        with patch("custom_facts.loader.logger") as mock_logger:
            assert runtime.value("no_such_fact") is None
        events = [call.args[0] for call in mock_logger.debug.call_args_list]
        assert "custom_fact_not_found" in events

    def test_broken_script_does_not_stop_batch(self, runtime, custom_dir, write_fact):
        write_fact(custom_dir, "a_broken", """
            import facter

            raise RuntimeError("boom")
        """)
        write_fact(custom_dir, "b_good", """
            import facter

            facter.add("good", block=lambda r: r.setcode(lambda: "yes"))
        """)

        with patch("custom_facts.loader.logger") as mock_logger:
            runtime.load_all_facts()

        assert runtime.loader.loaded_all is True
        assert runtime.value("good") == "yes"
        mock_logger.error.assert_called_once()
        kwargs = mock_logger.error.call_args.kwargs
        assert kwargs["path"].endswith("a_broken.py")
        assert "boom" in kwargs["error"]
        assert "RuntimeError" in kwargs["backtrace"]

    def test_script_exit_does_not_stop_batch(self, runtime, custom_dir, write_fact):
        write_fact(custom_dir, "a_exits", """
            import sys

            sys.exit(1)
        """)
        write_fact(custom_dir, "b_good", """
            import facter

            facter.add("good", block=lambda r: r.setcode(lambda: "yes"))
        """)

        with patch("custom_facts.loader.logger") as mock_logger:
            runtime.load_all_facts()

        assert runtime.loader.loaded_all is True
        assert runtime.value("good") == "yes"
        kwargs = mock_logger.error.call_args.kwargs
        assert kwargs["path"].endswith("a_exits.py")
        assert "SystemExit" in kwargs["error"]

    def test_syntax_error_is_contained(self, runtime, custom_dir, write_fact):
        write_fact(custom_dir, "bad_syntax", "def broken(:\n")
        with patch("custom_facts.loader.logger") as mock_logger:
            assert runtime.value("bad_syntax") is None
        mock_logger.error.assert_called_once()

    def test_load_all_is_idempotent(self, runtime, custom_dir, write_fact, tmp_path):
        counter = tmp_path / "count"
        write_fact(custom_dir, "role", _counting_fact("role", counter, "web"))

        runtime.load_all_facts()
        runtime.load_all_facts()
        assert counter.read_text() == "x"

    def test_non_script_files_ignored(self, runtime, custom_dir):
        (custom_dir / "notes.txt").write_text("role=web\n")
        runtime.load_all_facts()
        assert runtime.loader.loaded_files == set()

    def test_script_sees_other_facts(self, runtime, custom_dir, write_fact):
        write_fact(custom_dir, "kernel_upper", """
            import facter

            facter.add("kernel_upper", block=lambda r: r.setcode(lambda: facter.value("kernel").upper()))
        """)
        assert runtime.value("kernel_upper") == platform.system().upper()
