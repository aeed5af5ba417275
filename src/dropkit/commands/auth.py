"""Auth commands -- link, inspect and unlink a user account.

Provides the ``dropkit auth`` group:

* ``login`` runs the three-legged OAuth handshake for the active profile and
  stores the resulting access token.
* ``status`` shows whether an account is linked.
* ``logout`` forgets the stored access token.

Typical workflow::

    dropkit auth login              # opens the browser
    dropkit auth login --manual     # prints the URL instead
    dropkit auth status
"""

from __future__ import annotations

import asyncio
from typing import Optional

import typer

from dropkit.auth.base import AuthorizationDriver
from dropkit.auth.credential_store import CredentialFile, CredentialStore
from dropkit.auth.drivers import BrowserDriver, ConsoleDriver
from dropkit.commands.session import active_profile, open_client
from dropkit.exceptions import InvalidCredentialsError
from dropkit.exit_codes import EXIT_AUTH_FAILURE
from dropkit.output import error, info, print_table, success, suggest, warning

auth_app = typer.Typer(no_args_is_help=True)


def make_driver(manual: bool, port: Optional[int], timeout: float) -> AuthorizationDriver:
    """Build the driver ``login`` uses.  Tests replace this with a scripted one."""
    if manual:
        return ConsoleDriver()
    return BrowserDriver(port=port, timeout=timeout)


@auth_app.command("login")
def auth_login(
    ctx: typer.Context,
    manual: bool = typer.Option(
        False, "--manual", help="Print the authorization URL instead of opening a browser."
    ),
    port: Optional[int] = typer.Option(
        None, "--port", help="Local port for the browser redirect."
    ),
    timeout: float = typer.Option(
        120.0, "--timeout", help="Seconds to wait for the browser redirect."
    ),
) -> None:
    """Link an account to the active profile.

    A successful login replaces any previously stored token.  A failed one
    removes it, so the profile is left unlinked.
    """
    profile = active_profile(ctx)
    client = open_client(profile, driver=make_driver(manual, port, timeout), require_user=False)
    store = CredentialFile(profile.name)

    if not manual:
        info("Opening the authorization page in your browser...")

    async def _run():
        async with client:
            return await client.authenticate()

    result = asyncio.run(_run())
    if not result.ok:
        store.clear()
        error(f"Login failed: {result.error}")
        raise typer.Exit(code=EXIT_AUTH_FAILURE)

    store.save(client.snapshot())
    success(f'Linked user {result.data} to profile "{profile.name}".')
    suggest("Try it: dropkit files ls /")


@auth_app.command("status")
def auth_status(ctx: typer.Context) -> None:
    """Show the linked account for the active profile."""
    profile = active_profile(ctx)
    snapshot = CredentialFile(profile.name).load()
    try:
        stored = CredentialStore.from_snapshot(snapshot) if snapshot else None
    except InvalidCredentialsError as exc:
        warning(f"Ignoring stored credentials: {exc}")
        stored = None
    linked = stored is not None and stored.is_authenticated

    rows = [
        ["Profile", profile.name],
        ["Root", "sandbox" if profile.use_sandbox_root else "dropbox"],
        ["API server", profile.api_server_base],
        ["Linked", "yes" if linked else "no"],
        ["User id", stored.user_id if linked else "-"],
    ]
    print_table(["Field", "Value"], rows, title="Session")
    if not linked:
        suggest("Link an account: dropkit auth login")


@auth_app.command("logout")
def auth_logout(ctx: typer.Context) -> None:
    """Forget the stored access token for the active profile."""
    profile = active_profile(ctx)
    store = CredentialFile(profile.name)
    if store.load() is None:
        info(f'No account is linked to profile "{profile.name}".')
        return
    store.clear()
    success(f'Unlinked profile "{profile.name}".')
