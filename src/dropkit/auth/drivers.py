"""Built-in authorization drivers.

- :class:`BrowserDriver` opens the authorization page in the system browser
  and listens on a temporary ``127.0.0.1`` HTTP server for the redirect
  back, giving up after a timeout.
- :class:`ConsoleDriver` prints the authorization URL and waits for the user
  to press Enter; used on headless machines (``dropkit auth login --manual``).

Both implement :class:`~dropkit.auth.base.AuthorizationDriver`.  Blocking
work (the callback server, reading stdin) runs in a worker thread so the
event loop stays responsive.
"""

from __future__ import annotations

import asyncio
import logging
import socket
import sys
import webbrowser
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Any, Callable, Optional
from urllib.parse import parse_qs, urlparse

from dropkit.auth.base import AuthorizationDriver
from dropkit.exceptions import HandshakeError

logger = logging.getLogger(__name__)


def _find_free_port() -> int:
    """Find a free TCP port on localhost."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


def _query_value(url: str, name: str) -> Optional[str]:
    values = parse_qs(urlparse(url).query).get(name)
    return values[0] if values else None


class BrowserDriver(AuthorizationDriver):
    """Open the authorization page in a browser and wait for the redirect.

    Args:
        port: Local port for the callback listener.  A free port is picked
            when omitted.
        timeout: Seconds to wait for the redirect before failing.
        open_browser: Function used to open a URL; defaults to
            :func:`webbrowser.open`.
    """

    def __init__(
        self,
        port: Optional[int] = None,
        timeout: float = 120.0,
        open_browser: Callable[[str], Any] = webbrowser.open,
    ) -> None:
        self._port = port or _find_free_port()
        self._timeout = timeout
        self._open_browser = open_browser

    @property
    def callback_url(self) -> str:
        return f"http://127.0.0.1:{self._port}/callback"

    async def authorize(self, authorize_url: str) -> None:
        result: dict[str, Optional[str]] = {"query": None}

        class CallbackHandler(BaseHTTPRequestHandler):
            def do_GET(self) -> None:
                result["query"] = self.path
                if _query_value(self.path, "not_approved") == "true":
                    body = "Authorization was declined. You can close this window."
                else:
                    body = (
                        "Authorization successful! You can close this window "
                        "and return to the terminal."
                    )
                self.send_response(200)
                self.send_header("Content-Type", "text/html; charset=utf-8")
                self.end_headers()
                self.wfile.write(f"<html><body><h2>{body}</h2></body></html>".encode("utf-8"))

            def log_message(self, format: str, *args: Any) -> None:
                pass

        try:
            server = HTTPServer(("127.0.0.1", self._port), CallbackHandler)
        except OSError as exc:
            raise HandshakeError(f"Cannot listen on port {self._port}: {exc}") from exc
        server.timeout = self._timeout

        try:
            logger.debug("Opening authorization page, waiting on %s", self.callback_url)
            self._open_browser(authorize_url)
            await asyncio.to_thread(server.handle_request)
        finally:
            server.server_close()

        path = result["query"]
        if path is None:
            raise HandshakeError(
                f"No authorization callback received within {self._timeout:g} seconds"
            )
        if _query_value(path, "not_approved") == "true":
            raise HandshakeError("User declined the authorization request")
        expected = _query_value(authorize_url, "oauth_token")
        returned = _query_value(path, "oauth_token")
        if returned is not None and returned != expected:
            raise HandshakeError("Authorization callback carried an unexpected request token")


class ConsoleDriver(AuthorizationDriver):
    """Print the authorization URL and wait for the user to confirm.

    Args:
        prompt: Text shown after the URL.
        stream: Where the URL is written; defaults to stderr so that stdout
            stays clean for data.
    """

    def __init__(
        self,
        prompt: str = "Press Enter once you have allowed access...",
        stream: Any = None,
    ) -> None:
        self._prompt = prompt
        self._stream = stream

    async def authorize(self, authorize_url: str) -> None:
        if not sys.stdin.isatty():
            raise HandshakeError(
                "Manual authorization requires an interactive terminal "
                "(stdin must be a TTY)"
            )
        stream = self._stream or sys.stderr
        print(f"Open this URL in a browser to authorize dropkit:\n\n  {authorize_url}\n", file=stream)
        print(self._prompt, file=stream, flush=True)
        line = await asyncio.to_thread(sys.stdin.readline)
        if not line:
            raise HandshakeError("Authorization cancelled: stdin closed before confirmation")
