"""Abstract interfaces of the auth subsystem.

This module defines the foundational types the rest of :mod:`dropkit.auth`
builds on:

- :class:`TokenPair` -- an OAuth key/secret pair (consumer, request token,
  or access token).
- :class:`OAuthSigner` -- signs a request with OAuth 1.0a, either as an
  ``Authorization`` header or as form parameters.
- :class:`AuthorizationDriver` -- the capability the embedding application
  supplies to walk a user through the browser consent page.  It has one
  method, :meth:`~AuthorizationDriver.authorize`.

See Also:
    :mod:`dropkit.auth.signer` for the HMAC-SHA1 and PLAINTEXT signers.
    :mod:`dropkit.auth.drivers` for the browser and console drivers.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Mapping, NamedTuple, Optional


class TokenPair(NamedTuple):
    """An OAuth credential: the public ``key`` and the signing ``secret``."""

    key: str
    secret: str


class OAuthSigner(ABC):
    """Computes OAuth 1.0a authorization for a single request.

    Signers are stateless: every call draws a fresh nonce and timestamp, so
    one signer may be shared by any number of concurrent requests.

    Both methods take the same arguments:

    Args:
        method: HTTP method, upper case.
        url: Request URL without a query string.
        params: Query or form parameters that take part in the signature.
            Binary request bodies never do.
        consumer: The application's key and secret.
        token: The request or access token, if any.

    Raises:
        ValueError: If the URL or parameters cannot be signed.
    """

    @property
    @abstractmethod
    def signature_method(self) -> str:
        """The ``oauth_signature_method`` value (e.g. ``"HMAC-SHA1"``)."""
        ...

    @abstractmethod
    def authorization_header(
        self,
        method: str,
        url: str,
        params: Optional[Mapping[str, str]],
        consumer: TokenPair,
        token: Optional[TokenPair] = None,
    ) -> str:
        """Return an ``Authorization: OAuth ...`` header value for the request."""
        ...

    @abstractmethod
    def authorized_params(
        self,
        method: str,
        url: str,
        params: Optional[Mapping[str, str]],
        consumer: TokenPair,
        token: Optional[TokenPair] = None,
    ) -> dict[str, str]:
        """Return *params* merged with the signed protocol parameters, for form submission."""
        ...


class AuthorizationDriver(ABC):
    """Drives a user through the browser-based consent step.

    Implementations decide *how* the user reaches the authorization page
    (system browser, popup window, printed link, scripted test double).
    The handshake awaits :meth:`authorize` and treats its return as the
    completion signal; it does not inspect the callback request itself.

    Drivers bound their own wait.  A driver whose :meth:`authorize` never
    returns leaves the handshake awaiting user authorization indefinitely.
    """

    @property
    def callback_url(self) -> Optional[str]:
        """URL the authorization page redirects to, sent as ``oauth_callback``.

        ``None`` omits the parameter (the user returns manually).
        """
        return None

    @abstractmethod
    async def authorize(self, authorize_url: str) -> None:
        """Present *authorize_url* to the user and return once they have finished.

        Raises:
            HandshakeError: If the user declines, the wait times out, or
                the page cannot be presented.
        """
        ...
