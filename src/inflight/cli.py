"""Command-line interface for inflight."""

import json
import logging
import sys
from pathlib import Path
from typing import Optional

import click
import yaml

from inflight import __version__
from inflight.orchestration import PipelineOrchestrator
from inflight.utils.config import EXAMPLE_CONFIG, ConfigurationError, PipelineConfig, validate_config_file

logger = logging.getLogger(__name__)

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def _configure_logging(log_level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )
    logging.getLogger().setLevel(getattr(logging, log_level))


def _load_config(config_file: Optional[str], **overrides) -> PipelineConfig:
    config = PipelineConfig.from_file(config_file) if config_file else PipelineConfig()
    return config.with_overrides(**overrides)


def _fatal(error: Exception) -> None:
    click.echo(f"fatal: {error}", err=True)
    sys.exit(1)


config_option = click.option(
    "--config", "-c", "config_file", type=click.Path(exists=True, dir_okay=False),
    help="YAML or JSON configuration file"
)
window_option = click.option(
    "--window", "-w", default=None,
    help="Maximum disorder of the input, e.g. 1h or 90m (default 1h)"
)
tabs_option = click.option(
    "--tabs", is_flag=True,
    help="Use tabs as the output delimiter."
)
no_parse_option = click.option(
    "--no-parse", is_flag=True,
    help="Input is the CSV output of a previous 'parse' run."
)
log_level_option = click.option(
    "--log-level", "-l", type=click.Choice(LOG_LEVELS), default="WARNING",
    help="Logging level"
)
input_argument = click.argument("input_file", type=click.File("r"), default="-")


@click.group()
@click.version_option(version=__version__, prog_name="inflight")
def cli():
    """inflight: how many requests were in flight when each request started."""
    pass


@cli.command()
@input_argument
@config_option
@window_option
@tabs_option
@no_parse_option
@click.option("--exact-sort", is_flag=True,
              help="Sort events fully in memory instead of using the window.")
@click.option("--input-order", is_flag=True,
              help="Emit requests in input order rather than by start time.")
@click.option("--summary", "summary_path", type=click.Path(dir_okay=False), default=None,
              help="Write a JSON concurrency summary to this path.")
@log_level_option
def analyse(input_file, config_file, window, tabs, no_parse, exact_sort, input_order,
            summary_path, log_level):
    """Annotate each request with the number of requests in flight when it started."""
    _configure_logging(log_level)
    try:
        config = _load_config(
            config_file,
            window=window,
            tabs=tabs or None,
            exact_sort=exact_sort or None,
            restore_input_order=input_order or None,
            summary_path=summary_path,
        )
        orchestrator = PipelineOrchestrator(config)
        orchestrator.run_analysis(input_file, sys.stdout, pre_parsed=no_parse)
    except Exception as e:
        _fatal(e)


@cli.command()
@input_argument
@config_option
@tabs_option
@log_level_option
def parse(input_file, config_file, tabs, log_level):
    """Convert an access log into CSV without analysis."""
    _configure_logging(log_level)
    try:
        config = _load_config(config_file, tabs=tabs or None)
        PipelineOrchestrator(config).run_parse(input_file, sys.stdout)
    except Exception as e:
        _fatal(e)


@cli.command()
@input_argument
@config_option
@window_option
@tabs_option
@no_parse_option
@log_level_option
def sort(input_file, config_file, window, tabs, no_parse, log_level):
    """Sort requests by startedAt."""
    _configure_logging(log_level)
    try:
        config = _load_config(config_file, window=window, tabs=tabs or None)
        PipelineOrchestrator(config).run_sort(input_file, sys.stdout, pre_parsed=no_parse)
    except Exception as e:
        _fatal(e)


@cli.command()
@click.option(
    "--output", "-o", default="inflight.yaml",
    help="Output file path"
)
@click.option(
    "--format", "-f", type=click.Choice(["yaml", "json"]), default="yaml",
    help="Configuration file format"
)
def generate_config(output: str, format: str):
    """Generate an example configuration file."""
    output_path = Path(output)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, "w") as f:
        if format == "yaml":
            yaml.dump(EXAMPLE_CONFIG, f, default_flow_style=False, sort_keys=False)
        else:
            json.dump(EXAMPLE_CONFIG, f, indent=2)

    click.echo(f"Generated example configuration at {output_path}")


@cli.command()
@click.argument("config_file", type=click.Path(exists=True))
def validate(config_file: str):
    """Validate a configuration file."""
    click.echo(f"Validating configuration: {config_file}")

    try:
        is_valid, errors, config = validate_config_file(config_file)
    except (OSError, ValueError, yaml.YAMLError, ConfigurationError) as e:
        click.echo(click.style(f"Error validating configuration: {e}", fg="red"))
        sys.exit(1)

    if is_valid:
        click.echo(click.style("✓ Configuration is valid", fg="green"))
        click.echo(f"  window: {config.window}ms, channel capacity: {config.channel_capacity}")
    else:
        click.echo(click.style(f"✗ Configuration has {len(errors)} errors:", fg="red"))
        for i, error in enumerate(errors[:20], 1):
            click.echo(f"  {i}. {error}")

    sys.exit(0 if is_valid else 1)


if __name__ == "__main__":
    cli()
