"""Signed request dispatcher -- the primitive every API call goes through.

:meth:`Dispatcher.send` builds the request URL and parameter set, asks the
:class:`~dropkit.auth.base.OAuthSigner` for authorization, and hands the
request to the :class:`~dropkit.client.transport.Transport`.  The outcome is
returned as an :class:`ApiResult` and, when a callback is given, delivered
to it exactly once.  Errors never propagate out of :meth:`~Dispatcher.send`
as exceptions.

Signing rules:

* ``POST`` with a plain form body -- the signed ``oauth_*`` parameters are
  merged into the form parameters.
* Every other request (``GET``, ``PUT`` with a file body, multipart
  ``POST``) -- an ``Authorization: OAuth ...`` header; the parameters
  travel in the query string.

The signer only ever sees the URL and the parameters, never a binary body.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Sequence
from urllib.parse import quote

from dropkit.auth.base import OAuthSigner, TokenPair
from dropkit.auth.credential_store import CredentialStore
from dropkit.client.transport import FileField, Transport
from dropkit.exceptions import DropkitError, NotAuthenticatedError, TransportError
from dropkit.models import ApiResult, ResultCallback, Root, deliver

logger = logging.getLogger(__name__)


def encode_params(params: Optional[Mapping[str, Any]]) -> dict[str, str]:
    """Drop ``None`` values and render the rest as strings.

    Booleans become ``"true"``/``"false"``; an explicit ``False`` or ``0``
    is kept.
    """
    encoded: dict[str, str] = {}
    for key, value in (params or {}).items():
        if value is None:
            continue
        if isinstance(value, bool):
            encoded[key] = "true" if value else "false"
        else:
            encoded[key] = str(value)
    return encoded


def build_url(endpoint_url: str, root: Root, path_segments: Optional[Sequence[str]]) -> str:
    """Join *endpoint_url*, the root selector and each percent-encoded path segment.

    Each segment is encoded on its own, so a ``/`` inside a segment is
    escaped rather than read as a separator.  ``None`` means the endpoint
    addresses no file path and the root is not appended.
    """
    if path_segments is None:
        return endpoint_url
    parts = [endpoint_url, root.value]
    parts.extend(quote(segment, safe="") for segment in path_segments)
    return "/".join(parts)


class Dispatcher:
    """Builds, signs and sends requests for one client instance.

    The dispatcher holds no per-request state.  Each :meth:`send` reads the
    access token from the :class:`~dropkit.auth.credential_store.CredentialStore`
    once and builds its own parameter dict, so concurrent calls cannot see
    each other's signing data.

    Args:
        credentials: Source of the consumer and access tokens.  Read only.
        signer: Computes OAuth parameters.
        transport: Sends the request.
        root: Root selector prepended to file paths.
        locale: When set, added as the ``locale`` parameter to every request.
    """

    def __init__(
        self,
        credentials: CredentialStore,
        signer: OAuthSigner,
        transport: Transport,
        root: Root = Root.DROPBOX,
        locale: Optional[str] = None,
    ) -> None:
        self._credentials = credentials
        self._signer = signer
        self._transport = transport
        self.root = root
        self._locale = locale

    async def send(
        self,
        method: str,
        endpoint_url: str,
        path_segments: Optional[Sequence[str]] = None,
        params: Optional[Mapping[str, Any]] = None,
        body: Optional[bytes] = None,
        requires_auth: bool = True,
        token: Optional[TokenPair] = None,
        files: Optional[Mapping[str, FileField]] = None,
        raw: bool = False,
        callback: Optional[ResultCallback] = None,
    ) -> ApiResult:
        """Send a signed request and return its :class:`ApiResult`.

        Args:
            method: HTTP method.
            endpoint_url: Base URL from the endpoint registry.
            path_segments: File path segments below the root, or ``None``.
            params: Query or form parameters; ``None`` values are omitted.
            body: Raw upload body.  Never signed.
            requires_auth: Sign with a user token.  When ``False`` only the
                consumer credentials are used.
            token: Token to sign with instead of the stored access token
                (the handshake signs with its request token).
            files: Multipart file fields.
            raw: Return the response body as ``bytes``.
            callback: Called once with ``(data, error)``.
        """
        try:
            data = await self._send(
                method.upper(), endpoint_url, path_segments, params,
                body, requires_auth, token, files, raw,
            )
            result = ApiResult(data=data)
        except DropkitError as exc:
            logger.debug("%s %s failed: %s", method.upper(), endpoint_url, exc)
            result = ApiResult(error=str(exc))
        return deliver(result, callback)

    async def _send(
        self,
        method: str,
        endpoint_url: str,
        path_segments: Optional[Sequence[str]],
        params: Optional[Mapping[str, Any]],
        body: Optional[bytes],
        requires_auth: bool,
        token: Optional[TokenPair],
        files: Optional[Mapping[str, FileField]],
        raw: bool,
    ) -> Any:
        url = build_url(endpoint_url, self.root, path_segments)
        query = encode_params({"locale": self._locale, **(params or {})})

        signing_token: Optional[TokenPair] = None
        if requires_auth:
            signing_token = token or self._credentials.access_token()
            if signing_token is None:
                raise NotAuthenticatedError("No user is linked to this client; authenticate first")

        consumer = self._credentials.consumer
        authorization: Optional[str] = None
        try:
            if method == "POST" and body is None and files is None:
                query = self._signer.authorized_params(method, url, query, consumer, signing_token)
            else:
                authorization = self._signer.authorization_header(
                    method, url, query, consumer, signing_token
                )
        except ValueError as exc:
            raise TransportError(f"{method} {url} could not be signed: {exc}") from exc

        logger.debug("%s %s", method, url)
        return await self._transport.request(
            method, url, query, authorization=authorization, body=body, files=files, raw=raw,
        )
