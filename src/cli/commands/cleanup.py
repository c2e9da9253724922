"""Retention cleanup commands."""

import click
from rich.console import Console
from rich.table import Table

from cli.utils import get_components
from scheduler.jobs import CleanupJob

console = Console()


@click.group()
def cleanup():
    """Soft-deleted content retention."""
    pass


@cleanup.command("preview")
@click.pass_obj
def cleanup_preview(obj: dict):
    """Show what the next cleanup run would delete."""
    c = get_components((obj or {}).get("config_path"), with_llm=False)
    preview = CleanupJob(c["storage"], c["config"].cleanup).preview()

    table = Table(show_header=True, title="Cleanup Preview")
    table.add_column("Table")
    table.add_column("Rows to delete", justify="right", style="red")
    table.add_row("tasks", str(preview.tasks_to_delete))
    table.add_row("categories", str(preview.categories_to_delete))

    console.print(
        f"Retention: {preview.retention_months} months "
        f"(deleted before {preview.cutoff_date:%Y-%m-%d %H:%M})"
    )
    console.print(table)
