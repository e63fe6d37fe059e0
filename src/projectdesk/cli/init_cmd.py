"""Init command: creates a new workspace."""

from pathlib import Path

import typer

from projectdesk.cli.utils import get_console, get_context_value
from projectdesk.config.settings import load_settings
from projectdesk.service import init_workspace


def init(
    district_id: str = typer.Option(
        ...,
        "--district",
        "-D",
        help="District code used in project ids (2-10 letters).",
    ),
    admin: list[str] | None = typer.Option(
        None,
        "--admin",
        "-a",
        help="Address that receives error notifications (repeatable).",
    ),
    force: bool = typer.Option(False, "--force", help="Recreate an existing workspace."),
    directory: Path = typer.Argument(
        Path("."),
        help="Directory to initialize (defaults to current directory).",
    ),
):
    """Initialize a new ProjectDesk workspace.

    Creates a .projectdesk/ folder with the projects, config, directory and
    codes tables, default email templates, and local folders.

    Example:
        projectdesk init --district SUSD --admin ops@example.org
    """
    console = get_console()
    settings = load_settings(get_context_value("config_path"))
    workspace = init_workspace(
        Path(directory).resolve(),
        district_id,
        owner_address=settings.owner_address,
        admin_addresses=admin or [],
        force=force,
    )

    console.print(f"[green]Created workspace for district '{district_id.upper()}'[/green]")
    console.print(f"  [dim]Location: {workspace.workspace_dir}[/dim]")
    console.print()
    console.print("Next steps:")
    console.print(f"  1. Add staff to [bold]{workspace.directory_path.name}[/bold]")
    console.print("  2. Run [bold]projectdesk permissions[/bold] and [bold]projectdesk sync-form[/bold]")
    console.print("  3. Submit a project with [bold]projectdesk submit[/bold]")
