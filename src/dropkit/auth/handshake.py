"""Three-legged OAuth 1.0a handshake.

:class:`Authenticator` links a user account to a client in three legs, each
awaited before the next starts:

1. **Request token** -- consumer-signed ``POST`` to ``request_token``.
2. **User authorization** -- the
   :class:`~dropkit.auth.base.AuthorizationDriver` takes the user to the
   authorize page; its return is the completion signal.
3. **Access token** -- ``POST`` to ``access_token`` signed with the request
   token.  The returned token, secret and ``uid`` are installed in the
   :class:`~dropkit.auth.credential_store.CredentialStore`.

Every failure leaves through one exit path: the credential store is cleared
(including a previously linked identity), the request token is discarded,
and the state becomes :attr:`HandshakeState.FAILED`.

State diagram::

    UNAUTHENTICATED -> REQUESTING_TOKEN -> AWAITING_USER_AUTHORIZATION
        -> EXCHANGING_ACCESS_TOKEN -> AUTHENTICATED
    (any leg) -> FAILED
"""

from __future__ import annotations

import enum
import logging
from typing import TYPE_CHECKING, Any, Optional
from urllib.parse import parse_qsl, urlencode

from dropkit.auth.base import AuthorizationDriver, TokenPair
from dropkit.auth.credential_store import CredentialStore
from dropkit.exceptions import DropkitError, HandshakeError
from dropkit.models import ApiResult, ResultCallback, deliver

if TYPE_CHECKING:
    from dropkit.client.dispatcher import Dispatcher
    from dropkit.endpoints import EndpointRegistry

logger = logging.getLogger(__name__)


class HandshakeState(str, enum.Enum):
    UNAUTHENTICATED = "unauthenticated"
    REQUESTING_TOKEN = "requesting_token"
    AWAITING_USER_AUTHORIZATION = "awaiting_user_authorization"
    EXCHANGING_ACCESS_TOKEN = "exchanging_access_token"
    AUTHENTICATED = "authenticated"
    FAILED = "failed"


def parse_token_response(data: Any, *fields: str) -> dict[str, str]:
    """Pull *fields* out of a token endpoint response.

    The endpoints answer with a URL-encoded body, sometimes labelled
    ``text/plain``; a decoded dict is accepted as well.

    Raises:
        HandshakeError: If the response lacks one of *fields*.
    """
    if isinstance(data, bytes):
        data = data.decode("utf-8", errors="replace")
    if isinstance(data, str):
        data = dict(parse_qsl(data.strip(), keep_blank_values=True))
    if not isinstance(data, dict):
        raise HandshakeError(f"Unexpected token response: {data!r}")

    missing = [name for name in fields if not data.get(name)]
    if missing:
        raise HandshakeError(f"Token response missing {', '.join(missing)}")
    return {name: str(data[name]) for name in fields}


class Authenticator:
    """Runs the OAuth handshake for one client instance.

    Only one handshake may be in flight at a time.  A second
    :meth:`authenticate` call made while the first is still running is
    rejected with an error result and leaves the running one untouched.

    Args:
        dispatcher: Sends the token requests.
        credentials: Receives the access token on success; cleared on failure.
        endpoints: Supplies the ``request_token``, ``authorize`` and
            ``access_token`` URLs.
        driver: Takes the user through the authorize page.  May be
            registered later with :meth:`register_driver`.
    """

    def __init__(
        self,
        dispatcher: Dispatcher,
        credentials: CredentialStore,
        endpoints: EndpointRegistry,
        driver: Optional[AuthorizationDriver] = None,
    ) -> None:
        self._dispatcher = dispatcher
        self._credentials = credentials
        self._endpoints = endpoints
        self._driver = driver
        self._state = (
            HandshakeState.AUTHENTICATED if credentials.is_authenticated
            else HandshakeState.UNAUTHENTICATED
        )
        self._request_token: Optional[TokenPair] = None
        self._in_flight = False

    @property
    def state(self) -> HandshakeState:
        return self._state

    @property
    def request_token(self) -> Optional[TokenPair]:
        """The temporary request token; only set while a handshake is running."""
        return self._request_token

    def register_driver(self, driver: AuthorizationDriver) -> None:
        self._driver = driver

    def authorize_url(self, request_token: TokenPair) -> str:
        """Return the page the user must visit to approve *request_token*."""
        params = {"oauth_token": request_token.key}
        callback_url = self._driver.callback_url if self._driver else None
        if callback_url:
            params["oauth_callback"] = callback_url
        return f"{self._endpoints['authorize']}?{urlencode(params)}"

    async def authenticate(self, callback: Optional[ResultCallback] = None) -> ApiResult:
        """Link a user account, returning its user id in :attr:`ApiResult.data`.

        On failure the result carries the diagnostic in ``error`` and the
        credential store has been cleared.  *callback*, when given, is
        invoked exactly once with ``(uid, error)``.
        """
        if self._in_flight:
            return deliver(
                ApiResult(error="An authentication handshake is already in progress"),
                callback,
            )

        self._in_flight = True
        try:
            uid = await self._run()
            result = ApiResult(data=uid)
        except DropkitError as exc:
            self._fail(exc)
            result = ApiResult(error=str(exc))
        except Exception as exc:
            error = HandshakeError(f"Authentication failed: {exc}")
            self._fail(error)
            result = ApiResult(error=str(error))
        finally:
            self._request_token = None
            self._in_flight = False
        return deliver(result, callback)

    def unlink(self) -> None:
        """Forget the linked user: clear the credential store and return to ``UNAUTHENTICATED``."""
        self._credentials.clear()
        self._transition(HandshakeState.UNAUTHENTICATED)

    async def _run(self) -> str:
        if self._driver is None:
            raise HandshakeError("No authorization driver registered")

        self._transition(HandshakeState.REQUESTING_TOKEN)
        result = await self._dispatcher.send(
            "POST", self._endpoints["request_token"], requires_auth=False,
        )
        if not result.ok:
            raise HandshakeError(f"Request token failed: {result.error}")
        fields = parse_token_response(result.data, "oauth_token", "oauth_token_secret")
        self._request_token = TokenPair(fields["oauth_token"], fields["oauth_token_secret"])

        self._transition(HandshakeState.AWAITING_USER_AUTHORIZATION)
        await self._driver.authorize(self.authorize_url(self._request_token))

        self._transition(HandshakeState.EXCHANGING_ACCESS_TOKEN)
        result = await self._dispatcher.send(
            "POST", self._endpoints["access_token"], token=self._request_token,
        )
        if not result.ok:
            raise HandshakeError(f"Access token failed: {result.error}")
        fields = parse_token_response(result.data, "oauth_token", "oauth_token_secret", "uid")

        self._credentials.install(fields["oauth_token"], fields["oauth_token_secret"], fields["uid"])
        self._transition(HandshakeState.AUTHENTICATED)
        return fields["uid"]

    def _transition(self, state: HandshakeState) -> None:
        logger.debug("Handshake %s -> %s", self._state.value, state.value)
        self._state = state

    def _fail(self, exc: DropkitError) -> None:
        logger.warning("Authentication failed in state %s: %s", self._state.value, exc)
        self._credentials.clear()
        self._transition(HandshakeState.FAILED)
