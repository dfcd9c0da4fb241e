"""The ``grantflow`` command line.

``app`` is the root Typer application with the ``profile`` and
``authorize`` groups attached. Its callback turns the global flags into an
:class:`~grantflow.output.OutputManager`, sets up logging, and leaves the
flags that commands need in ``ctx.obj``.

:func:`main` is the console-script entry point. A
:class:`~grantflow.exceptions.GrantflowError` escaping a command is printed
and mapped to its exit code; any other exception is written to a crash log
in the data directory.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import typer

from grantflow import __version__
from grantflow.commands.authorize import authorize_app
from grantflow.commands.profile import profile_app
from grantflow.exit_codes import EXIT_GENERIC_FAILURE, EXIT_INTERRUPTED

app = typer.Typer(
    name="grantflow",
    help="Run OAuth2 authorization code flows (with PKCE) against configured clients.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)
app.add_typer(profile_app, name="profile", help="Manage client profiles.")
app.add_typer(authorize_app, name="authorize", help="Build authorization URLs and log in.")


def _print_version(value: bool) -> None:
    if value:
        typer.echo(f"grantflow {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False, "--version", callback=_print_version, is_eager=True, help="Show version and exit."
    ),
    profile: Optional[str] = typer.Option(
        None, "--profile", "-p", help="Profile to use instead of the default."
    ),
    json_output: bool = typer.Option(False, "--json", help="Write results as JSON."),
    plain_output: bool = typer.Option(False, "--plain", help="Write results as plain text."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable colour."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only print results and errors."),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Print debug messages and DEBUG log records."
    ),
    force: bool = typer.Option(False, "--force", "-f", help="Do not ask for confirmation."),
    no_input: bool = typer.Option(False, "--no-input", help="Never prompt; fail instead."),
) -> None:
    """Set up output and logging, then store shared flags in ``ctx.obj``.

    ``ctx.obj`` keys: ``profile``, ``force``, ``no_input``, ``verbose``.
    """
    from grantflow.config import load_global_config
    from grantflow.output import OutputFormat, OutputManager, configure_logging, set_output

    global_cfg = load_global_config()
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN
    else:
        fmt = OutputFormat(global_cfg.output.format)

    output = OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose)
    set_output(output)
    configure_logging("DEBUG" if verbose else global_cfg.log_level.upper(), output)

    ctx.ensure_object(dict)
    ctx.obj.update(profile=profile, force=force, no_input=no_input, verbose=verbose)


def _on_sigint(signum: int, frame: Any) -> None:  # noqa: ANN401
    sys.stderr.write("\nCancelled.\n")
    sys.exit(EXIT_INTERRUPTED)


def _write_crash_log() -> Path:
    """Save the traceback being handled, with version and argv, under ``<data dir>/logs``."""
    from grantflow.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    log_path = logs_dir / f"crash-{datetime.now():%Y%m%d-%H%M%S}.log"
    header = f"grantflow {__version__}\nargv: {' '.join(sys.argv)}\n\n"
    log_path.write_text(header + traceback.format_exc(), encoding="utf-8")
    return log_path


def main() -> None:
    """Console-script entry point. Always ends in :class:`SystemExit`."""
    from grantflow.exceptions import GrantflowError
    from grantflow.output import error

    signal.signal(signal.SIGINT, _on_sigint)
    try:
        app()
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_INTERRUPTED)
    except GrantflowError as exc:
        error(str(exc))
        sys.exit(exc.exit_code)
    except Exception:
        error(f"Unexpected error. Debug log: {_write_crash_log()}")
        sys.exit(EXIT_GENERIC_FAILURE)
