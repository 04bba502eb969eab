"""CLI package for wchkdsk.

This package contains the Typer application.
"""

from wchkdsk.cli.main import app

__all__ = ["app"]
