"""Status command: shows counts by automation and project status."""

from pathlib import Path

import typer
from rich.table import Table

from projectdesk.cli.utils import dir_option, get_console, open_context
from projectdesk.service import status_summary

_AUTOMATION_STYLES = {
    "Created": "green",
    "Deleted": "dim",
    "Error": "red",
    "Ready": "yellow",
    "Updated": "yellow",
}


def status(
    directory: Path = dir_option(),
    errors: bool = typer.Option(False, "--errors", "-e", help="List rows in Error."),
):
    """Show workspace status.

    Example:
        projectdesk status
        projectdesk status --errors
    """
    console = get_console()
    context = open_context(directory)
    summary = status_summary(context)

    console.print(f"[bold]District: {context.config.district_id}[/bold]")
    console.print(f"  Location: {context.workspace.workspace_dir}")
    console.print(f"  Projects: {summary.total} ({summary.hidden} hidden)")
    console.print()

    if not summary.total:
        console.print("[yellow]No projects yet.[/yellow]")
        return

    table = Table(title="Automation Status")
    table.add_column("Status")
    table.add_column("Rows", justify="right")
    for value, count in sorted(summary.by_automation.items()):
        style = _AUTOMATION_STYLES.get(value, "")
        label = f"[{style}]{value}[/{style}]" if style else value
        table.add_row(label, str(count))
    console.print(table)

    table = Table(title="Project Status")
    table.add_column("Status")
    table.add_column("Rows", justify="right")
    for value, count in sorted(summary.by_project.items()):
        table.add_row(value, str(count))
    console.print(table)

    if summary.errors:
        console.print(f"[red]{len(summary.errors)} row(s) in Error[/red]")
        if errors:
            for label, message in summary.errors:
                console.print(f"  {label}: [dim]{message or 'no detail recorded'}[/dim]")
