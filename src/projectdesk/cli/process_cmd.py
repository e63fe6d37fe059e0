"""Batch commands: process, maintain and submit."""

from datetime import datetime
from pathlib import Path

import typer

from projectdesk.cli.utils import dir_option, get_console, open_context
from projectdesk.lifecycle.processor import BatchResult
from projectdesk.service import handle_submission, process_projects, run_daily_maintenance


def _print_batch(console, result: BatchResult) -> None:
    console.print("[bold]Processing complete:[/bold]")
    console.print(f"  Created: {len(result.created)}")
    if result.resumed:
        console.print(f"    [dim]resumed without email: {', '.join(result.resumed)}[/dim]")
    console.print(f"  Updated: {len(result.updated)}")
    console.print(f"  Deleted: {len(result.deleted)}")
    if result.errors:
        console.print(f"  [yellow]Errors: {len(result.errors)}[/yellow]")
        for label, message in result.errors:
            console.print(f"    [dim]{label}: {message}[/dim]")


def process(directory: Path = dir_option()):
    """Process rows marked Ready, Updated or Delete.

    Example:
        projectdesk process
    """
    console = get_console()
    context = open_context(directory)
    result = process_projects(context)
    if result is None:
        console.print("[yellow]Another run holds the workspace lock; nothing processed.[/yellow]")
        return
    _print_batch(console, result)
    if result.errors:
        raise typer.Exit(2)


def maintain(
    on: datetime | None = typer.Option(
        None,
        "--date",
        formats=["%Y-%m-%d"],
        help="Run as if today were this date (YYYY-MM-DD).",
    ),
    directory: Path = dir_option(),
):
    """Run the daily sweep: reminders, late marking, status digests, backup.

    Example:
        projectdesk maintain
        projectdesk maintain --date 2026-10-25
    """
    console = get_console()
    context = open_context(directory)
    result = run_daily_maintenance(context, on.date() if on else None)
    if result is None:
        console.print("[yellow]Another run holds the workspace lock; maintenance skipped.[/yellow]")
        return

    console.print("[bold]Maintenance complete:[/bold]")
    console.print(f"  Reminder emails: {result.reminders_sent}")
    console.print(f"  Marked late: {len(result.marked_late)}")
    if result.snapshot_initialized:
        console.print("  Status snapshot initialized")
    else:
        console.print(f"  Status changes: {len(result.status_changes)}")
    if result.backup_name:
        console.print(f"  Backup: {result.backup_name}")
    if result.errors:
        console.print(f"  [yellow]Issues: {len(result.errors)}[/yellow]")
        for where, message in result.errors:
            console.print(f"    [dim]{where}: {message}[/dim]")


def submit(
    source: Path = typer.Argument(
        ...,
        help="Form submission JSON file.",
        exists=True,
        dir_okay=False,
    ),
    directory: Path = dir_option(),
):
    """Record a form submission as a new project and provision it.

    Example:
        projectdesk submit response.json
    """
    console = get_console()
    context = open_context(directory)
    result = handle_submission(context, source)
    console.print(f"[green]Recorded submission as {result.record.label()}[/green]")
    if result.submitter is None:
        console.print("[yellow]Submitter email could not be determined; admins were notified.[/yellow]")
    _print_batch(console, result.batch)
