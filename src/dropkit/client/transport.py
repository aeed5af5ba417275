"""HTTP transport -- the only layer that touches the network.

:class:`Transport` is the interface the
:class:`~dropkit.client.dispatcher.Dispatcher` sends through;
:class:`HttpxTransport` implements it on :class:`httpx.AsyncClient`.

A transport performs exactly one HTTP exchange per call.  It does not sign,
retry, or cache.  Network failures and HTTP error statuses are raised as
:class:`~dropkit.exceptions.TransportError`; successful bodies are parsed by
:func:`extract_response_data`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Mapping, Optional
from urllib.parse import parse_qsl

import httpx

from dropkit.exceptions import TransportError
from dropkit.models import RequestConfig

FileField = tuple[str, bytes]


class Transport(ABC):
    """Performs one HTTP request and returns the parsed response body."""

    @abstractmethod
    async def request(
        self,
        method: str,
        url: str,
        params: Mapping[str, str],
        authorization: Optional[str] = None,
        body: Optional[bytes] = None,
        files: Optional[Mapping[str, FileField]] = None,
        raw: bool = False,
    ) -> Any:
        """Send a request.

        Args:
            method: HTTP method, upper case.
            url: Fully built request URL, without query string.
            params: Sent as the form body for a plain ``POST``, and as the
                query string otherwise.
            authorization: ``Authorization`` header value, if any.
            body: Raw request body (file upload).
            files: Multipart file fields, ``{field: (filename, data)}``.
            raw: Return the body as ``bytes`` without parsing.

        Returns:
            The parsed response body (see :func:`extract_response_data`).

        Raises:
            TransportError: On network failure, an invalid URL or an HTTP status >= 400.
        """
        ...

    async def aclose(self) -> None:
        """Release any pooled connections."""


def extract_response_data(response: httpx.Response) -> Any:
    """Extract the body from an HTTP response.

    JSON bodies (the API labels them ``text/javascript`` as well as
    ``application/json``) are decoded.  URL-encoded bodies become a dict.
    Other text is returned as ``str`` and anything else as ``bytes``.
    Returns ``None`` for an empty body.
    """
    if not response.content:
        return None

    content_type = response.headers.get("content-type", "").split(";")[0].strip().lower()

    if content_type == "application/x-www-form-urlencoded":
        return dict(parse_qsl(response.text, keep_blank_values=True))

    if "json" in content_type or content_type.startswith("text/"):
        try:
            return response.json()
        except ValueError:
            return response.text

    return response.content


def _error_message(response: httpx.Response) -> str:
    """Build ``"HTTP <status>: <detail>"`` from an error response."""
    try:
        detail = response.json()
        if isinstance(detail, dict):
            msg = detail.get("error") or detail.get("message") or ""
            if isinstance(msg, dict):
                msg = "; ".join(f"{k}: {v}" for k, v in msg.items())
        else:
            msg = str(detail)
    except ValueError:
        msg = response.text[:200] if response.text else ""

    prefix = f"HTTP {response.status_code}"
    return f"{prefix}: {msg}" if msg else prefix


class HttpxTransport(Transport):
    """:class:`Transport` backed by a shared :class:`httpx.AsyncClient`.

    The underlying client is created on first use and reused for every
    request, so concurrent requests share its connection pool.  Use as an
    async context manager, or call :meth:`aclose` when done.

    Args:
        config: Timeout and SSL settings.
        client: An existing :class:`httpx.AsyncClient` to send through
            (tests pass one built on :class:`httpx.MockTransport`).

    Example::

        async with HttpxTransport() as transport:
            data = await transport.request("GET", url, {"list": "true"}, auth_header)
    """

    def __init__(
        self,
        config: Optional[RequestConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._config = config or RequestConfig()
        self._client = client

    async def __aenter__(self) -> HttpxTransport:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._config.timeout,
                verify=self._config.verify_ssl,
                follow_redirects=True,
            )
        return self._client

    async def request(
        self,
        method: str,
        url: str,
        params: Mapping[str, str],
        authorization: Optional[str] = None,
        body: Optional[bytes] = None,
        files: Optional[Mapping[str, FileField]] = None,
        raw: bool = False,
    ) -> Any:
        headers: dict[str, str] = {}
        if authorization is not None:
            headers["Authorization"] = authorization

        kwargs: dict[str, Any] = {"method": method, "url": url, "headers": headers}
        if method == "POST" and body is None and files is None:
            kwargs["data"] = dict(params)
        else:
            kwargs["params"] = dict(params)
        if body is not None:
            kwargs["content"] = body
        if files is not None:
            kwargs["files"] = dict(files)

        try:
            response = await self._get_client().request(**kwargs)
        except httpx.HTTPError as exc:
            raise TransportError(f"{method} {url} failed: {exc}") from exc
        except (httpx.InvalidURL, ValueError) as exc:
            raise TransportError(f"{method} {url} is not a valid request URL: {exc}") from exc

        if response.status_code >= 400:
            raise TransportError(_error_message(response), status_code=response.status_code)

        if raw:
            return response.content
        return extract_response_data(response)

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
