"""Exception hierarchy for dropkit.

All exceptions inherit from :class:`DropkitError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`dropkit.exit_codes`.
The top-level error handler in :func:`dropkit.app.main` catches
``DropkitError`` and exits with the appropriate code.

Coroutines on :class:`~dropkit.client.api.StorageClient` never let these
escape across an ``await``: transport and handshake failures are converted
into an :class:`~dropkit.models.ApiResult` whose ``error`` field
holds ``str(exc)``.  Only configuration-time errors are raised directly.

Subclass hierarchy::

    DropkitError (exit 1)
    +-- InvalidUsageError        (exit 2)
    +-- InvalidCredentialsError  (exit 3)
    +-- HandshakeError           (exit 3)
    +-- NotAuthenticatedError    (exit 3)
    +-- TransportError           (exit 5 / 4 / 6)
    +-- ConfigError              (exit 1)
"""

from __future__ import annotations

from dropkit.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NOT_FOUND,
    EXIT_SERVER_ERROR,
)


class DropkitError(Exception):
    """Base exception for all dropkit errors.

    Args:
        message: Human-readable diagnostic.  Not localized and not
            guaranteed stable across versions.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(DropkitError):
    """Raised for invalid CLI arguments or missing required parameters."""

    exit_code = EXIT_INVALID_USAGE


class InvalidCredentialsError(DropkitError):
    """Raised when a user token is configured without its secret and user id (or vice versa)."""

    exit_code = EXIT_AUTH_FAILURE


class HandshakeError(DropkitError):
    """Raised for any failure during the three OAuth legs.

    Always accompanied by a full reset of the client's credential store.
    """

    exit_code = EXIT_AUTH_FAILURE


class NotAuthenticatedError(DropkitError):
    """Raised when a signed request is attempted without a linked user."""

    exit_code = EXIT_AUTH_FAILURE


class TransportError(DropkitError):
    """Raised on network failures and HTTP error responses.

    Args:
        message: Diagnostic text, ``"HTTP <status>: <detail>"`` for error
            responses.
        status_code: The HTTP status when the server answered, else ``None``.
    """

    exit_code = EXIT_SERVER_ERROR

    def __init__(self, message: str, status_code: int | None = None):
        if status_code is None:
            exit_code = EXIT_CONNECTION_ERROR
        elif status_code == 404:
            exit_code = EXIT_NOT_FOUND
        elif status_code in (401, 403):
            exit_code = EXIT_AUTH_FAILURE
        else:
            exit_code = EXIT_SERVER_ERROR
        super().__init__(message, exit_code=exit_code)
        self.status_code = status_code


class ConfigError(DropkitError):
    """Raised for configuration problems (missing profiles, invalid JSON, bad credential sources)."""

    exit_code = EXIT_GENERIC_FAILURE
