"""OAuth 1.0a request signers (RFC 5849, section 3.4), backed by oauthlib.

Two signature methods are provided:

- :class:`HmacSha1Signer` -- the default.  Signs the normalized method,
  URL and parameters with the consumer and token secrets.
- :class:`PlaintextSigner` -- sends the joined secrets as the signature.
  Only safe over HTTPS; kept for servers that require it.

Signed requests take one of two shapes.  :meth:`~ClientSigner.authorization_header`
leaves the parameters in the query string and returns an ``Authorization``
header (oauthlib's ``AUTH_HEADER`` signature type).
:meth:`~ClientSigner.authorized_params` returns the parameters with the
``oauth_*`` fields merged in, for a form-encoded POST body (``BODY``).

Only the URL query and the form/query parameters take part in the
signature.  Binary request bodies (file uploads) are never signed.
"""

from __future__ import annotations

from typing import Mapping, Optional
from urllib.parse import parse_qsl, quote, urlencode

from oauthlib.oauth1 import (
    SIGNATURE_HMAC_SHA1,
    SIGNATURE_PLAINTEXT,
    SIGNATURE_TYPE_AUTH_HEADER,
    SIGNATURE_TYPE_BODY,
    Client,
)
from oauthlib.oauth1.rfc5849 import CONTENT_TYPE_FORM_URLENCODED

from dropkit.auth.base import OAuthSigner, TokenPair


class ClientSigner(OAuthSigner):
    """Signs requests with an :class:`oauthlib.oauth1.Client` built per call.

    Subclasses pick the method by setting :attr:`signature_method`.
    """

    signature_method = SIGNATURE_HMAC_SHA1

    def client(
        self,
        consumer: TokenPair,
        token: Optional[TokenPair],
        signature_type: str,
    ) -> Client:
        return Client(
            consumer.key,
            client_secret=consumer.secret,
            resource_owner_key=token.key if token else None,
            resource_owner_secret=token.secret if token else None,
            signature_method=self.signature_method,
            signature_type=signature_type,
        )

    def authorization_header(
        self,
        method: str,
        url: str,
        params: Optional[Mapping[str, str]],
        consumer: TokenPair,
        token: Optional[TokenPair] = None,
    ) -> str:
        if params:
            url = f"{url}?{urlencode(dict(params), quote_via=quote)}"
        client = self.client(consumer, token, SIGNATURE_TYPE_AUTH_HEADER)
        _, headers, _ = client.sign(url, http_method=method)
        return headers["Authorization"]

    def authorized_params(
        self,
        method: str,
        url: str,
        params: Optional[Mapping[str, str]],
        consumer: TokenPair,
        token: Optional[TokenPair] = None,
    ) -> dict[str, str]:
        client = self.client(consumer, token, SIGNATURE_TYPE_BODY)
        _, _, body = client.sign(
            url,
            http_method=method,
            body=dict(params or {}),
            headers={"Content-Type": CONTENT_TYPE_FORM_URLENCODED},
        )
        return dict(parse_qsl(body, keep_blank_values=True))


class HmacSha1Signer(ClientSigner):
    """``HMAC-SHA1`` signature method."""

    signature_method = SIGNATURE_HMAC_SHA1


class PlaintextSigner(ClientSigner):
    """``PLAINTEXT`` signature method."""

    signature_method = SIGNATURE_PLAINTEXT
