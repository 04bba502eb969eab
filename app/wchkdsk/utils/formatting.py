"""Rich console formatting utilities.

Checker progress goes to stdout, diagnostics to stderr.
"""

import sys

from rich.console import Console
from rich.markup import escape

from wchkdsk.core.theme import get_theme


def _detect_color_system() -> str | None:
    """Use truecolor for interactive terminals, let Rich decide otherwise."""
    if sys.stdout.isatty():
        return "truecolor"
    return None


console = Console(theme=get_theme(), color_system=_detect_color_system(), highlight=False)
err_console = Console(
    theme=get_theme(), stderr=True, color_system=_detect_color_system(), highlight=False
)


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[info]{escape(message)}[/]")


def print_warning(message: str) -> None:
    """Print a warning message."""
    err_console.print(f"[warning]WARN:[/] {escape(message)}")


def print_error(message: str) -> None:
    """Print an error message."""
    err_console.print(f"[error]ERR:[/] {escape(message)}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[success]{escape(message)}[/]")
