"""Session credentials, in memory and on disk.

:class:`CredentialStore` holds the consumer key/secret and, once a user has
linked their account, the access token, token secret and user id.  It is
owned by exactly one client instance and enforces that the user triple is
all-or-nothing: a partial triple is never used to sign a request.

:class:`CredentialFile` persists a store's :meth:`~CredentialStore.snapshot`
in ``~/.local/share/dropkit/credentials/<profile>.json`` (XDG) so that a
later process can resume the session without repeating the handshake.
Files are written atomically with ``0o600`` permissions.

See Also:
    :class:`~dropkit.auth.handshake.Authenticator` -- the only component
    that installs or clears user credentials.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, NamedTuple, Optional

from dropkit.auth.base import TokenPair
from dropkit.config import _atomic_write, get_credentials_dir
from dropkit.exceptions import InvalidCredentialsError
from dropkit.models import SessionConfig


class UserCredentials(NamedTuple):
    """The access token pair and the id of the user it was issued for."""

    token: str
    token_secret: str
    user_id: str

    @property
    def pair(self) -> TokenPair:
        return TokenPair(self.token, self.token_secret)


def _user_credentials(
    token: Optional[str],
    token_secret: Optional[str],
    user_id: Optional[str],
) -> Optional[UserCredentials]:
    """Validate a user triple, returning ``None`` when all three are absent."""
    present = [bool(token), bool(token_secret), bool(user_id)]
    if not any(present):
        return None
    if not all(present):
        raise InvalidCredentialsError(
            "A user token requires its token secret and user id "
            "(got token=%s, token_secret=%s, user_id=%s)"
            % tuple("set" if p else "missing" for p in present)
        )
    return UserCredentials(str(token), str(token_secret), str(user_id))


class CredentialStore:
    """Consumer and user credentials for one client instance.

    The user triple is stored as a single immutable record, so
    :meth:`install` and :meth:`clear` replace it in one assignment and a
    reader never observes a mix of old and new fields.

    Requests that already read the credentials keep using what they read;
    :meth:`clear` has no effect on requests already dispatched.

    Args:
        consumer_key: The application key.
        consumer_secret: The application secret.
        token: Optional user access token.
        token_secret: Secret paired with *token*.
        user_id: Id of the user *token* was issued for.

    Raises:
        InvalidCredentialsError: If only part of the user triple is given.

    Example::

        store = CredentialStore("key", "secret")
        store.install("tok", "tok-secret", "12345")
        store.snapshot()
        # {"consumer_key": "key", "consumer_secret": "secret",
        #  "token": "tok", "token_secret": "tok-secret", "uid": "12345"}
    """

    def __init__(
        self,
        consumer_key: str,
        consumer_secret: str,
        token: Optional[str] = None,
        token_secret: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> None:
        self._consumer = TokenPair(consumer_key, consumer_secret)
        self._user = _user_credentials(token, token_secret, user_id)

    @classmethod
    def from_config(cls, config: SessionConfig) -> CredentialStore:
        return cls(
            config.consumer_key,
            config.consumer_secret,
            config.user_token,
            config.user_token_secret,
            config.user_id,
        )

    @classmethod
    def from_snapshot(cls, snapshot: dict[str, Any]) -> CredentialStore:
        """Rebuild a store from the output of :meth:`snapshot`.

        Raises:
            InvalidCredentialsError: If consumer credentials are missing or
                the user triple is partial.
        """
        try:
            consumer_key = snapshot["consumer_key"]
            consumer_secret = snapshot["consumer_secret"]
        except KeyError as exc:
            raise InvalidCredentialsError(f"Snapshot is missing {exc.args[0]!r}") from exc
        return cls(
            consumer_key,
            consumer_secret,
            snapshot.get("token"),
            snapshot.get("token_secret"),
            snapshot.get("uid"),
        )

    @property
    def consumer(self) -> TokenPair:
        return self._consumer

    @property
    def is_authenticated(self) -> bool:
        return self._user is not None

    @property
    def user_id(self) -> Optional[str]:
        user = self._user
        return user.user_id if user else None

    def access_token(self) -> Optional[TokenPair]:
        """Return the current access token pair, or ``None`` when no user is linked."""
        user = self._user
        return user.pair if user else None

    def install(self, token: str, token_secret: str, user_id: str) -> None:
        """Replace the user credentials with a new, complete triple.

        Raises:
            InvalidCredentialsError: If any of the three values is empty.
        """
        user = _user_credentials(token, token_secret, user_id)
        if user is None:
            raise InvalidCredentialsError("Cannot install an empty user token")
        self._user = user

    def clear(self) -> None:
        """Forget the user credentials, keeping the consumer key and secret."""
        self._user = None

    def snapshot(self) -> dict[str, str]:
        """Return a plain, JSON-serialisable projection of the credentials.

        The ``token``, ``token_secret`` and ``uid`` keys are present only
        when a user is authenticated.
        """
        data = {
            "consumer_key": self._consumer.key,
            "consumer_secret": self._consumer.secret,
        }
        user = self._user
        if user is not None:
            data.update(token=user.token, token_secret=user.token_secret, uid=user.user_id)
        return data


class CredentialFile:
    """Read/write a credentials snapshot for a single profile.

    Args:
        profile_name: The profile identifier used to derive the file name.

    Example::

        CredentialFile("work").save(client.credentials.snapshot())
        snapshot = CredentialFile("work").load()
    """

    def __init__(self, profile_name: str) -> None:
        self._profile_name = profile_name
        self._path = get_credentials_dir() / f"{profile_name}.json"

    @property
    def path(self) -> Path:
        """The filesystem path to this profile's credential file."""
        return self._path

    def save(self, snapshot: dict[str, str]) -> None:
        """Persist *snapshot* atomically with ``0o600`` permissions.

        Raises:
            OSError: If the file cannot be written.
        """
        _atomic_write(self._path, json.dumps(snapshot, indent=2) + "\n", mode=0o600)

    def load(self) -> Optional[dict[str, str]]:
        """Load the stored snapshot.

        Returns:
            The snapshot dict, or ``None`` if the file does not exist or
            cannot be parsed.
        """
        if not self._path.is_file():
            return None
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError):
            return None
        if not isinstance(data, dict):
            return None
        return {str(key): str(value) for key, value in data.items()}

    def clear(self) -> None:
        """Delete the stored snapshot.  A no-op when it does not exist."""
        if self._path.is_file():
            self._path.unlink()
