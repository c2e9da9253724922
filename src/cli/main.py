"""CLI entry point for the content job runner."""

from pathlib import Path

import click

from cli.commands import cleanup, daemon, jobs
from cli.config import load_config_model
from cli.logging_config import setup_logging
from cli.utils import console


@click.group()
@click.version_option(version="0.1.0")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Config file (default: ./config.yaml, then ~/.truthordare/config.yaml)",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, config_path: Path | None):
    """Truth or Dare background jobs: retention cleanup and AI task generation."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path

    try:
        config = load_config_model(config_path)
    except ValueError as e:
        console.print(f"[red]Config error:[/] {e}")
        ctx.exit(1)

    setup_logging(
        json_mode=config.logging.json_mode,
        level="DEBUG" if verbose else config.logging.level,
        log_file=config.paths.log_file,
    )


cli.add_command(daemon)
cli.add_command(jobs)
cli.add_command(cleanup)


if __name__ == "__main__":
    cli()
