"""CLI driver tests using Click CliRunner."""

import json

import pytest
import yaml
from click.testing import CliRunner

from cli.main import cli, format_value
from shared_types import FACTER_VERSION


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def role_fact(custom_dir, write_fact):
    write_fact(custom_dir, "role", """
        import facter

        facter.add("role", block=lambda r: r.setcode(lambda: "web"))
    """)
    return custom_dir


class TestFormatValue:
    def test_scalars(self):
        assert format_value("x") == "x"
        assert format_value(True) == "true"
        assert format_value(None) == ""

    def test_structures(self):
        assert format_value({"b": 1, "a": [2]}) == '{"a": [2], "b": 1}'


class TestCli:
    def test_single_query_prints_bare_value(self, runner):
        result = runner.invoke(cli, ["facterversion"])
        assert result.exit_code == 0, result.output
        assert result.output.strip() == FACTER_VERSION

    def test_custom_dir(self, runner, role_fact):
        result = runner.invoke(cli, ["--custom-dir", str(role_fact), "role"])
        assert result.exit_code == 0, result.output
        assert result.output.strip() == "web"

    def test_no_custom_facts(self, runner, role_fact):
        result = runner.invoke(cli, ["--custom-dir", str(role_fact), "--no-custom-facts", "role"])
        assert result.exit_code == 0
        assert result.output.strip() == ""

    def test_external_dir_json(self, runner, external_dir):
        (external_dir / "site.txt").write_text("site=ams\n")
        result = runner.invoke(cli, ["--external-dir", str(external_dir), "--json", "site", "facterversion"])
        assert result.exit_code == 0, result.output
        assert json.loads(result.output) == {"site": "ams", "facterversion": FACTER_VERSION}

    def test_no_external_facts(self, runner, external_dir):
        (external_dir / "site.txt").write_text("site=ams\n")
        result = runner.invoke(cli, ["--external-dir", str(external_dir), "--no-external-facts", "--json", "site"])
        assert json.loads(result.output) == {"site": None}

    def test_yaml_all_facts(self, runner, role_fact):
        result = runner.invoke(cli, ["--custom-dir", str(role_fact), "--yaml"])
        assert result.exit_code == 0, result.output
        facts = yaml.safe_load(result.output)
        assert facts["role"] == "web"
        assert facts["facterversion"] == FACTER_VERSION

    def test_plain_listing(self, runner, role_fact):
        result = runner.invoke(cli, ["--custom-dir", str(role_fact)])
        assert result.exit_code == 0, result.output
        assert "role => web" in result.output

    def test_json_and_yaml_conflict(self, runner):
        result = runner.invoke(cli, ["--json", "--yaml"])
        assert result.exit_code == 2

    def test_config_file(self, runner, tmp_path, role_fact):
        config = tmp_path / "facter.yaml"
        config.write_text(yaml.safe_dump({"paths": {"custom_dirs": str(role_fact)}}))
        result = runner.invoke(cli, ["--config", str(config), "role"])
        assert result.exit_code == 0, result.output
        assert result.output.strip() == "web"

    def test_invalid_config(self, runner, tmp_path):
        config = tmp_path / "facter.yaml"
        config.write_text("logging: [unterminated\n")
        result = runner.invoke(cli, ["--config", str(config)])
        assert result.exit_code == 1
        assert "Invalid YAML" in result.output

    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"])
        assert FACTER_VERSION in result.output
