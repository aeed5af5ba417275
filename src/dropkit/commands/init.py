"""Init command -- register an application as a dropkit profile.

Implements ``dropkit init``.  A profile records where the app key and
secret come from (``env:VAR``, ``file:/path`` or ``prompt``), whether the
app is restricted to its sandbox folder, and which API server it talks to.
The secrets themselves are never written to the profile.
``dropkit init NAME --delete`` removes a profile and its stored token.
"""

from __future__ import annotations

import re
from typing import Optional

import typer

from dropkit.commands.session import fail
from dropkit.exceptions import InvalidUsageError
from dropkit.output import info, success, suggest

_NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")


def init_command(
    name: str = typer.Argument(help="Profile name."),
    consumer_key_source: Optional[str] = typer.Option(
        None,
        "--consumer-key-source",
        help="Where to read the app key: env:VAR, file:/path or prompt.",
    ),
    consumer_secret_source: Optional[str] = typer.Option(
        None,
        "--consumer-secret-source",
        help="Where to read the app secret: env:VAR, file:/path or prompt.",
    ),
    sandbox: bool = typer.Option(
        False,
        "--sandbox/--full-access",
        help="Restrict file access to the app's sandbox folder.",
    ),
    api_server: Optional[str] = typer.Option(
        None, "--api-server", help="Override the API server base URL."
    ),
    locale: Optional[str] = typer.Option(
        None, "--locale", help="Locale sent with every request."
    ),
    set_default: bool = typer.Option(
        False, "--default", help="Make this the default profile."
    ),
    delete: bool = typer.Option(
        False, "--delete", help="Delete the profile and its stored credentials instead."
    ),
) -> None:
    """Create or overwrite a profile, or remove it with ``--delete``.

    Example::

        dropkit init work --consumer-key-source env:APP_KEY \\
            --consumer-secret-source file:~/.secrets/app_secret --sandbox
    """
    from dropkit.config import load_global_config, profile_exists, save_global_config, save_profile
    from dropkit.models import DEFAULT_API_SERVER, Profile

    if not _NAME_RE.match(name):
        raise fail(InvalidUsageError(
            f'Invalid profile name "{name}": use letters, digits, ".", "_" and "-".'
        ))

    if delete:
        _delete_profile(name)
        return

    for label, source in (("key", consumer_key_source), ("secret", consumer_secret_source)):
        if source is None:
            raise fail(InvalidUsageError(f"Missing option --consumer-{label}-source."))
        if not (source.startswith(("env:", "file:")) or source == "prompt"):
            raise fail(InvalidUsageError(
                f"Invalid app {label} source {source!r}: expected env:VAR, file:/path or prompt."
            ))

    if profile_exists(name):
        info(f'Profile "{name}" already exists and will be overwritten.')

    profile = Profile(
        name=name,
        consumer_key_source=consumer_key_source,
        consumer_secret_source=consumer_secret_source,
        use_sandbox_root=sandbox,
        api_server_base=(api_server or DEFAULT_API_SERVER).rstrip("/"),
        locale=locale,
    )
    save_profile(profile)

    if set_default:
        global_cfg = load_global_config()
        global_cfg.default_profile = name
        save_global_config(global_cfg)

    success(f'Profile "{name}" created ({"sandbox" if sandbox else "full access"}).')
    suggest(f"Link your account: dropkit --profile {name} auth login")


def _delete_profile(name: str) -> None:
    from dropkit.auth.credential_store import CredentialFile
    from dropkit.config import delete_profile, load_global_config, save_global_config
    from dropkit.exceptions import ConfigError

    try:
        delete_profile(name)
    except ConfigError as exc:
        raise fail(exc) from None
    CredentialFile(name).clear()

    global_cfg = load_global_config()
    if global_cfg.default_profile == name:
        global_cfg.default_profile = None
        save_global_config(global_cfg)

    success(f'Profile "{name}" deleted.')
