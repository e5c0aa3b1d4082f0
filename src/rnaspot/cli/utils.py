"""Shared CLI utilities — Rich console, error handling, output path checks."""

from __future__ import annotations

import functools
import traceback
from pathlib import Path
from typing import Any, Callable

from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn

console = Console()

# Set by the --verbose flag on the top-level CLI group.
verbose: bool = False


def error_handler(func: Callable[..., Any]) -> Callable[..., Any]:
    """Decorator wrapping CLI commands with standard error handling.

    Catches SpotDetectionError (exit 1) and unexpected exceptions (exit 2).
    With --verbose, unexpected errors include the full traceback.
    """

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        from rnaspot.core.exceptions import SpotDetectionError

        try:
            return func(*args, **kwargs)
        except SystemExit:
            raise
        except (SpotDetectionError, FileNotFoundError) as e:
            console.print(f"[red]Error:[/red] {e}")
            raise SystemExit(1)
        except Exception as e:
            if verbose:
                console.print(f"[red]Internal error:[/red] {e}")
                console.print(traceback.format_exc())
            else:
                console.print(
                    f"[red]Internal error:[/red] {type(e).__name__}: {e}\n"
                    "[dim]Use --verbose for the full traceback.[/dim]"
                )
            raise SystemExit(2)

    return wrapper


def check_output_path(path: str, overwrite: bool) -> Path:
    """Validate an output file path.

    Rejects directories, missing parent directories, and existing files
    unless ``overwrite`` is set.

    Raises:
        SystemExit: With code 1 if the path is unusable.
    """
    out_path = Path(path).expanduser()
    if out_path.is_dir():
        console.print(f"[red]Error:[/red] Output path is a directory: {out_path}")
        raise SystemExit(1)
    if not out_path.parent.exists():
        console.print(
            f"[red]Error:[/red] Parent directory does not exist: {out_path.parent}"
        )
        raise SystemExit(1)
    if out_path.exists() and not overwrite:
        console.print(
            f"[red]Error:[/red] Output file already exists: {out_path}\n"
            "Use --overwrite to replace it."
        )
        raise SystemExit(1)
    return out_path


def make_progress() -> Progress:
    """Create a Rich progress bar for CLI operations."""
    return Progress(
        SpinnerColumn(),
        TextColumn("[bold blue]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=console,
    )
