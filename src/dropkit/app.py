"""Command-line entry point.

``dropkit`` is a Typer application with three command groups: ``init``
creates a profile, ``auth`` links and unlinks a user account, and ``files``
calls the storage API.  Global flags are handled once in
:func:`main_callback` before any command runs.
"""

from __future__ import annotations

import os
import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer

from dropkit import __version__
from dropkit.exit_codes import EXIT_GENERIC_FAILURE

_INTERRUPTED = 130

app = typer.Typer(
    name="dropkit",
    help="Work with a file-storage account from the terminal.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def _show_version(value: bool) -> None:
    if value:
        typer.echo(f"dropkit {__version__}")
        raise typer.Exit()


def _pick_format(json_output: bool, plain_output: bool):
    from dropkit.output import OutputFormat

    if json_output:
        return OutputFormat.JSON
    if plain_output:
        return OutputFormat.PLAIN
    return OutputFormat.AUTO


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False, "--version", callback=_show_version, is_eager=True,
        help="Print the version and exit.",
    ),
    profile: Optional[str] = typer.Option(
        None, "--profile", "-p", help="Run against this profile instead of the default."
    ),
    json_output: bool = typer.Option(False, "--json", help="Print results as JSON."),
    plain_output: bool = typer.Option(False, "--plain", help="Print results as tab-separated text."),
    no_color: bool = typer.Option(False, "--no-color", help="Turn off colour."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only print results and errors."),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Log handshake steps and requests to stderr."
    ),
) -> None:
    """Work with a file-storage account from the terminal."""
    from dropkit.output import OutputManager, configure_logging, set_output

    output = OutputManager(
        format=_pick_format(json_output, plain_output),
        no_color=no_color,
        quiet=quiet,
        verbose=verbose,
    )
    set_output(output)
    configure_logging(output)

    ctx.ensure_object(dict)
    ctx.obj.update(profile=profile, verbose=verbose)


from dropkit.commands.auth import auth_app  # noqa: E402
from dropkit.commands.files import files_app  # noqa: E402
from dropkit.commands.init import init_command  # noqa: E402

app.command("init")(init_command)
app.add_typer(auth_app, name="auth", help="Link, inspect and unlink the user account.")
app.add_typer(files_app, name="files", help="List, transfer and manage files.")


def _on_sigint(signum: int, frame: Any) -> None:  # noqa: ANN401
    sys.stderr.write("\nCancelled.\n")
    sys.exit(_INTERRUPTED)


def _write_crash_log() -> str:
    """Save the active traceback under ``<data_dir>/logs`` and return the file path."""
    from dropkit.config import get_data_dir

    logs = get_data_dir() / "logs"
    logs.mkdir(exist_ok=True)
    stamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    path = logs / f"crash-{stamp}-{os.getpid()}.log"
    path.write_text(f"dropkit {__version__}\n{' '.join(sys.argv)}\n\n{traceback.format_exc()}")
    return str(path)


def main() -> None:
    """Console-script entry point.

    Errors from the dropkit hierarchy exit with their own code; anything
    else is written to a crash log and exits with the generic failure code.
    """
    signal.signal(signal.SIGINT, _on_sigint)
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(_INTERRUPTED)
    except Exception as exc:
        from dropkit.exceptions import DropkitError
        from dropkit.output import error

        if isinstance(exc, DropkitError):
            error(str(exc))
            sys.exit(exc.exit_code)
        error(f"Unexpected error. Details were saved to {_write_crash_log()}")
        sys.exit(EXIT_GENERIC_FAILURE)
