"""Canonical Pydantic models shared across all dropkit modules.

The models fall into three groups:

**Session models** -- built in memory for one client instance:
    :class:`Root`, :class:`RequestConfig`, and :class:`SessionConfig`.

**Results** -- :class:`ApiResult` and the :func:`deliver` helper that hands a
result to an optional ``(data, error)`` callback.

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`GlobalConfig` and :class:`Profile`.

All models use Pydantic v2.  :class:`SessionConfig` is frozen: server bases
are fixed at construction so that several clients pointing at different
servers can coexist in one process.
"""

from __future__ import annotations

import enum
from typing import Any, Callable, NamedTuple, Optional

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_API_SERVER = "https://api.dropbox.com"


class Root(str, enum.Enum):
    """Storage scope a file path is resolved against."""

    SANDBOX = "sandbox"
    DROPBOX = "dropbox"


# --- Session ---


class RequestConfig(BaseModel):
    """HTTP settings applied to every request a client sends."""

    timeout: float = Field(default=30.0, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")


class SessionConfig(BaseModel):
    """Everything a :class:`~dropkit.client.api.StorageClient` is constructed from.

    The user token triple (``user_token``, ``user_token_secret``,
    ``user_id``) is all-or-nothing.  The model itself accepts any
    combination so that it can be loaded from partial sources; the
    :class:`~dropkit.auth.credential_store.CredentialStore` rejects a
    partial triple with :class:`~dropkit.exceptions.InvalidCredentialsError`.

    Example::

        SessionConfig(
            consumer_key="app-key",
            consumer_secret="app-secret",
            use_sandbox_root=True,
        )
    """

    model_config = ConfigDict(frozen=True)

    use_sandbox_root: bool = Field(
        default=False, description="Restrict file access to the app-private folder"
    )
    consumer_key: str
    consumer_secret: str
    user_token: Optional[str] = None
    user_token_secret: Optional[str] = None
    user_id: Optional[str] = None
    api_server_base: str = DEFAULT_API_SERVER
    auth_server_base: Optional[str] = Field(
        default=None, description="Derived from api_server_base when absent"
    )
    file_server_base: Optional[str] = Field(
        default=None, description="Derived from api_server_base when absent"
    )
    locale: Optional[str] = Field(
        default=None, description="Sent as the 'locale' parameter on every request"
    )
    request: RequestConfig = Field(default_factory=RequestConfig)

    @property
    def root(self) -> Root:
        """The root selector implied by :attr:`use_sandbox_root`."""
        return Root.SANDBOX if self.use_sandbox_root else Root.DROPBOX


# --- Persistent configuration ---


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/dropkit/config.json``."""

    default_profile: Optional[str] = None
    auto_select_single_profile: bool = True


class Profile(BaseModel):
    """Per-application profile stored under the ``profiles/`` config directory.

    Consumer credentials are referenced by *source* (``env:VAR``,
    ``file:/path`` or ``prompt``) rather than stored inline; see
    :func:`~dropkit.config.resolve_credential`.  The user's access token
    is kept separately by :class:`~dropkit.auth.credential_store.CredentialFile`.
    """

    model_config = ConfigDict(extra="allow")

    name: str
    consumer_key_source: str = Field(description="Credential source for the app key")
    consumer_secret_source: str = Field(description="Credential source for the app secret")
    use_sandbox_root: bool = False
    api_server_base: str = DEFAULT_API_SERVER
    auth_server_base: Optional[str] = None
    file_server_base: Optional[str] = None
    locale: Optional[str] = None
    request: RequestConfig = Field(default_factory=RequestConfig)


# --- Results ---


ResultCallback = Callable[[Any, Optional[str]], None]


class ApiResult(NamedTuple):
    """Outcome of an API call: response ``data`` or a diagnostic ``error`` string.

    Exactly one of the two is meaningful.  ``error`` messages are meant for
    logs and diagnostics, not for end users.
    """

    data: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def deliver(result: ApiResult, callback: Optional[ResultCallback]) -> ApiResult:
    """Invoke *callback* with ``(data, error)`` when given, then return *result*."""
    if callback is not None:
        callback(result.data, result.error)
    return result
