"""Job introspection and manual run commands."""

import json
import sys

import click
from rich.console import Console
from rich.table import Table

from cli.utils import format_time, get_components
from scheduler import RunStatus

console = Console()

_STATUS_STYLE = {
    "succeeded": "green",
    "failed": "red",
    "cancelled": "yellow",
    "skipped": "yellow",
    "not_found": "red",
}


@click.group()
def jobs():
    """Inspect and run scheduled jobs."""
    pass


@jobs.command("list")
@click.option("--json", "as_json", is_flag=True, help="Print JSON instead of a table")
@click.pass_obj
def jobs_list(obj: dict, as_json: bool):
    """List registered jobs and their next run."""
    c = get_components((obj or {}).get("config_path"), with_llm=False)
    infos = c["scheduler"].get_jobs()

    if as_json:
        click.echo(json.dumps([info.to_dict() for info in infos], indent=2))
        return

    if not infos:
        console.print("[yellow]No jobs registered.[/]")
        return

    table = Table(show_header=True, title="Scheduled Jobs")
    table.add_column("Name", style="cyan")
    table.add_column("Schedule")
    table.add_column("Enabled")
    table.add_column("Next run")
    table.add_column("Description", style="dim")
    for info in infos:
        table.add_row(
            info.name,
            info.schedule,
            "[green]yes[/]" if info.enabled else "[dim]no[/]",
            format_time(info.next_run),
            info.description,
        )
    console.print(table)


@jobs.command("run")
@click.argument("name")
@click.pass_obj
def jobs_run(obj: dict, name: str):
    """Run a job now, even when it is disabled in config."""
    c = get_components((obj or {}).get("config_path"))
    run = c["scheduler"].run_job_now(name)

    style = _STATUS_STYLE.get(run.status.value, "white")
    console.print(f"[{style}]{run.status.value}[/] {run.job_name} in {run.duration_s:.2f}s")
    if run.error:
        console.print(f"[red]Error:[/] {run.error}")
    if run.result is not None:
        console.print_json(json.dumps(run.to_dict()["result"], default=str))

    if run.status != RunStatus.SUCCEEDED:
        sys.exit(1)
