"""Shared test fixtures for dropkit.

Provides isolated config directories, output state management, a scripted
authorization driver, and a recording transport so that client tests never
touch the network or the real user configuration.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Mapping, Optional

import pytest

from dropkit.auth.base import AuthorizationDriver
from dropkit.client.transport import FileField, Transport
from dropkit.exceptions import HandshakeError
from dropkit.models import SessionConfig
from dropkit.output import OutputFormat, OutputManager, reset_output, set_output


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The manager holds references to sys.stdout/sys.stderr taken when it was
    created; CliRunner swaps those streams per invocation.  The CLI also
    attaches a stream handler to the ``dropkit`` logger, removed here.
    """
    yield
    reset_output()
    logger = logging.getLogger("dropkit")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


# ---------------------------------------------------------------------------
# Config isolation
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Redirect XDG config and data directories into tmp_path.

    Clears DROPKIT_* environment variables and forces the XDG layout so
    paths are the same on every platform.
    """
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setattr("dropkit.config._is_xdg_platform", lambda: True)
    for var in ["DROPKIT_PROFILE", "DROPKIT_API_SERVER"]:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def quiet_output() -> OutputManager:
    output = OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def cli_runner():
    from typer.testing import CliRunner

    return CliRunner()


# ---------------------------------------------------------------------------
# Session helpers
# ---------------------------------------------------------------------------


@pytest.fixture
def session_config() -> SessionConfig:
    return SessionConfig(consumer_key="app-key", consumer_secret="app-secret")


@pytest.fixture
def linked_config() -> SessionConfig:
    return SessionConfig(
        consumer_key="app-key",
        consumer_secret="app-secret",
        user_token="user-token",
        user_token_secret="user-secret",
        user_id="4242",
    )


class ScriptedDriver(AuthorizationDriver):
    """Authorization driver that records the URL and optionally fails."""

    def __init__(
        self,
        callback_url: Optional[str] = None,
        error: Optional[str] = None,
        on_authorize: Optional[Callable[[str], Any]] = None,
    ) -> None:
        self._callback_url = callback_url
        self._error = error
        self._on_authorize = on_authorize
        self.urls: list[str] = []

    @property
    def callback_url(self) -> Optional[str]:
        return self._callback_url

    async def authorize(self, authorize_url: str) -> None:
        self.urls.append(authorize_url)
        if self._on_authorize is not None:
            await self._on_authorize(authorize_url)
        if self._error is not None:
            raise HandshakeError(self._error)


class RecordingTransport(Transport):
    """Transport that records each request and answers from a handler.

    The handler receives the recorded request dict and returns the
    response data, or raises a :class:`~dropkit.exceptions.DropkitError`.
    """

    def __init__(self, handler: Optional[Callable[[dict[str, Any]], Any]] = None) -> None:
        self._handler = handler or (lambda request: {})
        self.requests: list[dict[str, Any]] = []
        self.closed = False

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
        request = {
            "method": method,
            "url": url,
            "params": dict(params),
            "authorization": authorization,
            "body": body,
            "files": dict(files) if files is not None else None,
            "raw": raw,
        }
        self.requests.append(request)
        return self._handler(request)

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def scripted_driver() -> ScriptedDriver:
    return ScriptedDriver(callback_url="http://127.0.0.1:9999/callback")


@pytest.fixture
def make_driver() -> type[ScriptedDriver]:
    """The :class:`ScriptedDriver` class, for tests that need custom behaviour."""
    return ScriptedDriver


@pytest.fixture
def make_transport() -> type[RecordingTransport]:
    """The :class:`RecordingTransport` class."""
    return RecordingTransport
