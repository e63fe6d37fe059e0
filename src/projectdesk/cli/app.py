"""Main Typer application for the ProjectDesk CLI."""

from pathlib import Path

import typer
from rich.console import Console

from projectdesk import __version__
from projectdesk.cli.utils import configure_logging, handle_errors, set_context

console = Console(stderr=True)

app = typer.Typer(
    name="projectdesk",
    help="""ProjectDesk: project lifecycle automation for school districts.

    [bold]Lifecycle:[/bold]
    init            Create a workspace
    submit          Record a form submission as a new project
    process         Provision, update or cancel flagged rows
    maintain        Daily reminders, late marking, status digests, backups

    [bold]Editing:[/bold]
    set-status      Change a row's automation status
    set-progress    Change a row's project status

    [bold]Administration:[/bold]
    permissions     Apply directory roles to folders
    sync-form       Refresh the intake form's choices
    refresh-guards  Recompute allowed automation values
    validate        Check configuration
    status          Show counts by status
    """,
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        console.print(f"projectdesk version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Debug logging and full tracebacks.",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Suppress status output; still shows errors.",
    ),
    silent: bool = typer.Option(
        False,
        "--silent",
        help="Completely silent (exit code only).",
    ),
    config: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Settings YAML file (defaults to ~/.projectdesk/config.yaml).",
        dir_okay=False,
    ),
):
    """ProjectDesk: project lifecycle automation for school districts."""
    ctx.ensure_object(dict)
    quiet_level = 2 if silent else 1 if quiet else 0
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet_level

    set_context(verbose=verbose, quiet=quiet_level, config_path=config)
    configure_logging(verbose=verbose, quiet=quiet_level)


def _wrap_command(func):
    """Wrap a command function with error handling."""
    return handle_errors(func)


def _setup_commands():
    """Set up all commands after imports are resolved."""
    from projectdesk.cli import admin_cmd, edit_cmd, init_cmd, process_cmd, status_cmd

    app.command("init")(_wrap_command(init_cmd.init))
    app.command("submit")(_wrap_command(process_cmd.submit))
    app.command("process")(_wrap_command(process_cmd.process))
    app.command("maintain")(_wrap_command(process_cmd.maintain))

    app.command("set-status")(_wrap_command(edit_cmd.set_status))
    app.command("set-progress")(_wrap_command(edit_cmd.set_progress))

    app.command("permissions")(_wrap_command(admin_cmd.permissions))
    app.command("sync-form")(_wrap_command(admin_cmd.sync_form))
    app.command("refresh-guards")(_wrap_command(admin_cmd.refresh_guards_command))
    app.command("validate")(_wrap_command(admin_cmd.validate))
    app.command("status")(_wrap_command(status_cmd.status))


_setup_commands()


if __name__ == "__main__":
    app()
