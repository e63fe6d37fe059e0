"""Administrative commands: permissions, form sync, guards, validation."""

from pathlib import Path

import typer

from projectdesk.cli.utils import dir_option, get_console, open_context
from projectdesk.service import (
    refresh_all_permissions,
    refresh_guards,
    sync_form_dropdowns,
    validate_configuration,
)


def permissions(directory: Path = dir_option()):
    """Apply directory access roles to the spreadsheet and folders.

    Example:
        projectdesk permissions
    """
    console = get_console()
    context = open_context(directory)
    result = refresh_all_permissions(context)
    console.print("[bold]Permissions refreshed:[/bold]")
    console.print(f"  Granted: {result.granted}")
    console.print(f"  Changed: {result.changed}")
    console.print(f"  Revoked: {result.revoked}")
    console.print(f"  Unchanged: {result.unchanged}")
    console.print(f"  Project folders checked: {result.project_folders}")
    if result.skipped_unmanaged:
        console.print(f"  [dim]Entries without an Active? value (not managed): {result.skipped_unmanaged}[/dim]")
    if result.failures:
        console.print(f"  [yellow]Failures: {len(result.failures)}[/yellow]")
        for failure in result.failures:
            console.print(f"    [dim]{failure}[/dim]")
        raise typer.Exit(2)


def sync_form(directory: Path = dir_option()):
    """Update the intake form's assignee and category choices.

    Example:
        projectdesk sync-form
    """
    console = get_console()
    context = open_context(directory)
    choices = sync_form_dropdowns(context)
    for question, values in choices.items():
        console.print(f"[bold]{question}[/bold]: {len(values)} choice(s)")


def refresh_guards_command(directory: Path = dir_option()):
    """Recompute the allowed automation values for every row."""
    console = get_console()
    context = open_context(directory)
    count = refresh_guards(context)
    console.print(f"[green]Refreshed guards for {count} row(s)[/green]")


def validate(
    check_files: bool = typer.Option(
        False,
        "--check-files",
        help="Also check that configured folders, files and templates exist.",
    ),
    directory: Path = dir_option(),
):
    """Check the config table and project columns.

    Example:
        projectdesk validate --check-files
    """
    console = get_console()
    context = open_context(directory)
    validate_configuration(context, include_file_access=check_files)
    console.print("[green]Configuration is valid[/green]")
