"""Authentication for dropkit: OAuth 1.0a signing, credentials and drivers.

The main entry points are:

- :class:`CredentialStore` -- consumer and user credentials of one client.
- :class:`CredentialFile` -- on-disk snapshot of a store, per profile.
- :class:`HmacSha1Signer` / :class:`PlaintextSigner` -- oauthlib-backed request signers.
- :class:`AuthorizationDriver` -- interface for the user consent step, with
  :class:`BrowserDriver` and :class:`ConsoleDriver` implementations.

The handshake itself lives in :mod:`dropkit.auth.handshake` and is driven
through :meth:`dropkit.client.api.StorageClient.authenticate`.
"""

from dropkit.auth.base import AuthorizationDriver, OAuthSigner, TokenPair
from dropkit.auth.credential_store import CredentialFile, CredentialStore
from dropkit.auth.drivers import BrowserDriver, ConsoleDriver
from dropkit.auth.signer import HmacSha1Signer, PlaintextSigner

__all__ = [
    "AuthorizationDriver",
    "BrowserDriver",
    "ConsoleDriver",
    "CredentialFile",
    "CredentialStore",
    "HmacSha1Signer",
    "OAuthSigner",
    "PlaintextSigner",
    "TokenPair",
]
