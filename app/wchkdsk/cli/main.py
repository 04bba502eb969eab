"""Main CLI application entry point.

Defines the Typer application: option parsing, logging setup, and mapping
of the final verdict to the process exit code.
"""

import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.logging import RichHandler

from wchkdsk import __version__
from wchkdsk.core.check import CheckRequest, DeviceChecker
from wchkdsk.core.config import load_config
from wchkdsk.core.errors import ConfigError
from wchkdsk.core.registry import get_checker, with_program
from wchkdsk.core.supervisor import Supervisor
from wchkdsk.models.filesystem import FilesystemType
from wchkdsk.models.status import MAX_TIMEOUT_SECONDS, SupervisorExitCode, Verdict
from wchkdsk.utils.formatting import err_console, print_error, print_success

app = typer.Typer(
    name="wchkdsk",
    help="Run ntfsck, fsck.exfat or dosfsck against a device and report a stable exit code.",
    add_completion=False,
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"wchkdsk version : {__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _report(verdict: Verdict) -> None:
    if verdict.success:
        print_success(verdict.reason)
    else:
        print_error(verdict.reason)


@app.command()
def main(
    ctx: typer.Context,
    device: Annotated[
        str,
        typer.Argument(help="Block device or image file to check.", show_default=False),
    ],
    fstype: Annotated[
        FilesystemType,
        typer.Option(
            "--fstype",
            "-f",
            help="Filesystem type of the device.",
            case_sensitive=False,
        ),
    ],
    auto: Annotated[
        bool,
        typer.Option("--auto", "-a", help="Exit if the volume dirty flag is clean."),
    ] = False,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Same as -a but without checking the dirty flag."),
    ] = False,
    interactive: Annotated[
        bool,
        typer.Option("--interactive", "-r", help="Run the checker in interactive mode."),
    ] = False,
    timeout: Annotated[
        int | None,
        typer.Option(
            "--timeout",
            "-t",
            min=0,
            max=MAX_TIMEOUT_SECONDS,
            metavar="SECONDS",
            help="Kill the checker once this many seconds have passed (0 = no limit).",
        ),
    ] = None,
    config_path: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Use this config file instead of the default."),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging."),
    ] = False,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = None,
) -> None:
    """Check DEVICE with the checker registered for --fstype.

    Exit codes: 0 success, 1 failure, 2 syntax error, 3 not a supported
    filesystem, 23 read-only device, 160 user cancel, 161 timeout.
    """
    _configure_logging(verbose)

    try:
        config = load_config(config_path)
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(code=SupervisorExitCode.SYNTAX_ERROR) from e

    # -y wins over -a; with neither flag the configured default applies
    force = yes or (not auto and config.force_by_default)
    spec = with_program(get_checker(fstype), config.program_for(fstype))
    request = CheckRequest(
        fstype=fstype,
        device=device,
        force=force,
        interactive=interactive,
        timeout_seconds=config.timeout_seconds if timeout is None else timeout,
    )

    verdict = DeviceChecker(spec, Supervisor(niceness=config.niceness)).check(request)
    _report(verdict)
    if verdict.show_usage:
        typer.echo(ctx.get_help())
    raise typer.Exit(code=int(verdict.code))


if __name__ == "__main__":
    app()
