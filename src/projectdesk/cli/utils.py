"""Shared utilities for CLI commands."""

import functools
import io
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar

import typer
from rich.console import Console
from rich.logging import RichHandler

from projectdesk.context import ExecutionContext
from projectdesk.exceptions import ConfigValidationError, ProjectDeskError

# Type variable for decorators
F = TypeVar("F", bound=Callable[..., Any])

# Context storage for output flags
_context: dict[str, Any] = {"verbose": False, "quiet": 0, "config_path": None}


def set_context(verbose: bool = False, quiet: int = 0, config_path: Path | None = None) -> None:
    """Set output flags for the current invocation."""
    _context["verbose"] = verbose
    _context["quiet"] = quiet
    _context["config_path"] = config_path


def get_context_value(key: str, default: Any = None) -> Any:
    return _context.get(key, default)


def get_console() -> Console:
    """Get a Console instance respecting quiet mode.

    Returns a null console when quiet mode is enabled.
    """
    if is_quiet():
        return Console(file=io.StringIO())
    return Console()


def is_quiet() -> bool:
    return bool(get_context_value("quiet", 0) >= 1)


def is_silent() -> bool:
    """Check if silent mode is enabled (exit code only)."""
    return bool(get_context_value("quiet", 0) >= 2)


def is_verbose() -> bool:
    return bool(get_context_value("verbose", False))


def configure_logging(verbose: bool = False, quiet: int = 0) -> None:
    """Route the package logger through rich."""
    level = logging.DEBUG if verbose else logging.ERROR if quiet >= 2 else logging.WARNING if quiet else logging.INFO
    logger = logging.getLogger("projectdesk")
    logger.handlers.clear()
    handler = RichHandler(console=Console(stderr=True), show_path=verbose, rich_tracebacks=verbose)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False


def open_context(directory: Path) -> ExecutionContext:
    """Build the execution context for a command.

    The district's Debug Mode switch turns on debug logging for the run.
    """
    context = ExecutionContext.open(Path(directory).resolve(), config_path=get_context_value("config_path"))
    if context.config.debug_mode and not is_quiet():
        logging.getLogger("projectdesk").setLevel(logging.DEBUG)
    return context


def handle_errors(func: F) -> F:
    """Decorator for consistent CLI error handling.

    Catches ProjectDesk errors and displays user-friendly messages
    instead of raw Python tracebacks. Respects --verbose and --quiet flags.
    """

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        err_console = Console(stderr=True, file=io.StringIO()) if is_silent() else Console(stderr=True)
        verbose = is_verbose()

        try:
            return func(*args, **kwargs)
        except ConfigValidationError as e:
            err_console.print(f"[red]Error:[/red] {e.message}")
            for problem in e.problems:
                err_console.print(f"  - {problem}")
            if e.hint:
                err_console.print(f"[dim]Hint: {e.hint}[/dim]")
            raise typer.Exit(e.exit_code)
        except ProjectDeskError as e:
            if verbose:
                err_console.print_exception()
            else:
                err_console.print(f"[red]Error:[/red] {e.message}")
                if e.details:
                    err_console.print(f"[dim]{e.details}[/dim]")
                if e.hint:
                    err_console.print(f"[dim]Hint: {e.hint}[/dim]")
            raise typer.Exit(e.exit_code)
        except FileNotFoundError as e:
            filename = getattr(e, "filename", None) or str(e)
            err_console.print(f"[red]File not found:[/red] {filename}")
            raise typer.Exit(1)
        except KeyboardInterrupt:
            err_console.print("\n[yellow]Interrupted[/yellow]")
            raise typer.Exit(130)
        except (typer.Exit, typer.BadParameter):
            raise
        except Exception as e:
            if verbose:
                err_console.print_exception()
            else:
                err_console.print(f"[red]Unexpected error:[/red] {type(e).__name__}: {e}")
            raise typer.Exit(1)

    return wrapper  # type: ignore[return-value]


def dir_option() -> Any:
    return typer.Option(Path("."), "--dir", "-d", help="Workspace directory.")
