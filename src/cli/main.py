"""Command-line driver: gather facts and print them."""

import json
import sys
from pathlib import Path
from typing import Any

import click
import yaml
from rich.console import Console

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from cli.config import load_config_model
from cli.logging_config import setup_logging
from custom_facts import FactRuntime
from facts import FactCollection
from shared_types import FACTER_VERSION, LogLevel

console = Console(highlight=False, soft_wrap=True)


def format_value(value: Any) -> str:
    """Render a fact value for the plain-text output."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, (dict, list)):
        return json.dumps(value, sort_keys=True)
    return str(value)


def gather_facts(
    queries: tuple[str, ...],
    custom_dirs: list[Path],
    external_dirs: list[Path],
    custom_facts: bool = True,
    external_facts: bool = True,
) -> dict[str, Any]:
    """Resolve the queried facts, or every fact when there are no queries."""
    collection = FactCollection()

    if not custom_facts:
        collection.add_default_facts()
        if external_facts:
            collection.add_external_facts(external_dirs)
        if queries:
            return {q: collection.get(q) for q in queries}
        return dict(collection.items())

    with FactRuntime(collection, paths=custom_dirs) as runtime:
        runtime.add_external_search_path(external_dirs)
        if not external_facts:
            # A populated collection is never refilled, so external files are skipped
            collection.add_default_facts()
        if queries:
            return {q: runtime.value(q) for q in queries}
        return runtime.to_dict()


@click.command()
@click.version_option(version=FACTER_VERSION)
@click.argument("queries", nargs=-1)
@click.option("--config", "config_path", type=click.Path(path_type=Path, dir_okay=False),
              help="Config file (defaults to ./facter.yaml or ~/.facter/facter.yaml)")
@click.option("--custom-dir", multiple=True, type=click.Path(path_type=Path),
              help="Directory of custom fact scripts (repeatable)")
@click.option("--external-dir", multiple=True, type=click.Path(path_type=Path),
              help="Directory of external fact files (repeatable)")
@click.option("--no-custom-facts", is_flag=True, help="Skip custom fact scripts")
@click.option("--no-external-facts", is_flag=True, help="Skip external fact files")
@click.option("-j", "--json", "as_json", is_flag=True, help="Output JSON")
@click.option("-y", "--yaml", "as_yaml", is_flag=True, help="Output YAML")
@click.option("-l", "--log-level", type=click.Choice([level.value for level in LogLevel]),
              help="Log level (overrides config)")
@click.option("-d", "--debug", is_flag=True, help="Enable debug logging")
def cli(
    queries: tuple[str, ...],
    config_path: Path | None,
    custom_dir: tuple[Path, ...],
    external_dir: tuple[Path, ...],
    no_custom_facts: bool,
    no_external_facts: bool,
    as_json: bool,
    as_yaml: bool,
    log_level: str | None,
    debug: bool,
):
    """Collect system facts, including custom and external facts."""
    if as_json and as_yaml:
        raise click.UsageError("--json and --yaml cannot be combined")

    try:
        config = load_config_model(config_path)
    except ValueError as e:
        raise click.ClickException(str(e))

    level = LogLevel.DEBUG if debug else (log_level or config.logging.level)
    setup_logging(level=level, json_mode=config.logging.json_mode)

    facts = gather_facts(
        queries,
        custom_dirs=[*config.paths.custom_dirs, *custom_dir],
        external_dirs=[*config.paths.external_dirs, *external_dir],
        custom_facts=config.custom_facts and not no_custom_facts,
        external_facts=config.external_facts and not no_external_facts,
    )

    if as_json:
        click.echo(json.dumps(facts, indent=2, sort_keys=True, default=str))
    elif as_yaml:
        click.echo(yaml.safe_dump(facts, default_flow_style=False, sort_keys=True), nl=False)
    elif len(queries) == 1:
        click.echo(format_value(facts[queries[0]]))
    else:
        for name in sorted(facts):
            console.print(f"{name} => {format_value(facts[name])}", markup=False)


if __name__ == "__main__":
    cli()
