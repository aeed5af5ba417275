"""Shared plumbing for commands that talk to the API.

Commands resolve the active profile, rebuild a
:class:`~dropkit.client.api.StorageClient` from it and the stored
credentials, run one coroutine with :func:`asyncio.run`, and turn a failed
:class:`~dropkit.models.ApiResult` into an error message plus a process exit
code.
"""

from __future__ import annotations

import asyncio
import re
from typing import Any, Awaitable, Callable, Optional

import typer

from dropkit.auth.base import AuthorizationDriver
from dropkit.auth.credential_store import CredentialFile
from dropkit.client.api import StorageClient
from dropkit.config import build_session_config, resolve_profile
from dropkit.exceptions import ConfigError, DropkitError, NotAuthenticatedError, TransportError
from dropkit.exit_codes import EXIT_GENERIC_FAILURE
from dropkit.models import ApiResult, Profile
from dropkit.output import debug, error, suggest

_HTTP_STATUS = re.compile(r"^HTTP (\d{3})\b")


def fail(exc: DropkitError) -> typer.Exit:
    """Print *exc* and return the :class:`typer.Exit` to raise for it."""
    error(str(exc))
    if isinstance(exc, NotAuthenticatedError):
        suggest("Link an account: dropkit auth login")
    return typer.Exit(code=exc.exit_code)


def exit_code_for(message: str) -> int:
    """Map an :class:`ApiResult` error string to a process exit code."""
    match = _HTTP_STATUS.match(message)
    if match:
        return TransportError(message, status_code=int(match.group(1))).exit_code
    return EXIT_GENERIC_FAILURE


def active_profile(ctx: typer.Context) -> Profile:
    """Resolve the profile selected by ``--profile``, the environment or config."""
    name = ctx.obj.get("profile") if ctx.obj else None
    try:
        profile = resolve_profile(name)
    except DropkitError as exc:
        raise fail(exc) from None
    if profile is None:
        error("No profile configured.")
        suggest("Create one: dropkit init NAME --consumer-key-source env:APP_KEY "
                "--consumer-secret-source env:APP_SECRET")
        raise typer.Exit(code=ConfigError.exit_code)
    return profile


def open_client(
    profile: Profile,
    driver: Optional[AuthorizationDriver] = None,
    require_user: bool = True,
) -> StorageClient:
    """Build a client for *profile*, resuming any stored session.

    Raises:
        typer.Exit: If the consumer credentials cannot be resolved, or
            *require_user* is set and no account is linked.
    """
    snapshot = CredentialFile(profile.name).load()
    try:
        client = StorageClient(build_session_config(profile, snapshot), driver=driver)
        if require_user and not client.is_authenticated:
            raise NotAuthenticatedError(f'No account is linked to profile "{profile.name}"')
    except DropkitError as exc:
        raise fail(exc) from None
    debug(f"Using profile {profile.name} ({client.config.root.value} root)")
    return client


def call(
    ctx: typer.Context,
    operation: Callable[[StorageClient], Awaitable[ApiResult]],
) -> Any:
    """Run *operation* against the active profile's client and return its data.

    Raises:
        typer.Exit: If the call fails.
    """
    client = open_client(active_profile(ctx))

    async def _run() -> ApiResult:
        async with client:
            return await operation(client)

    result = asyncio.run(_run())
    if not result.ok:
        error(result.error)
        raise typer.Exit(code=exit_code_for(result.error))
    return result.data
