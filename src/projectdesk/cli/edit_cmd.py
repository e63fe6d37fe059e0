"""Row edit commands: set-status and set-progress."""

from pathlib import Path

import typer

from projectdesk.cli.utils import dir_option, get_console, open_context
from projectdesk.guard import allowed_value_list
from projectdesk.service import record_status_edit, set_automation_status


def set_status(
    row: str = typer.Argument(..., help="Project id or row number."),
    value: str = typer.Argument(..., help="New automation status, e.g. Ready or Updated."),
    directory: Path = dir_option(),
):
    """Set a row's automation status.

    Only values allowed from the current status are accepted.

    Example:
        projectdesk set-status SUSD-25_26-0001 Updated
    """
    console = get_console()
    context = open_context(directory)
    record = set_automation_status(context, row, value)
    console.print(f"[green]{record.label()}[/green] is now [bold]{record.raw_automation_status}[/bold]")
    allowed = ", ".join(v or "(blank)" for v in allowed_value_list(record.automation_status))
    console.print(f"  [dim]Allowed next: {allowed}[/dim]")
    console.print("  Run [bold]projectdesk process[/bold] to apply it.")


def set_progress(
    row: str = typer.Argument(..., help="Project id or row number."),
    value: str = typer.Argument(..., help="New project status, e.g. 'On Track' or Complete."),
    directory: Path = dir_option(),
):
    """Set a row's project status.

    Example:
        projectdesk set-progress SUSD-25_26-0001 Complete
    """
    console = get_console()
    context = open_context(directory)
    record = record_status_edit(context, row, value)
    console.print(f"[green]{record.label()}[/green] project status: [bold]{record.project_status}[/bold]")
    if record.completed_at:
        console.print(f"  [dim]Completed at {record.completed_at}[/dim]")
