"""dropkit -- OAuth 1.0a client for a v1 file-storage REST API.

The package links a user account through the three-legged OAuth handshake,
keeps the resulting credentials per session, and sends signed requests to
the API's file, metadata and sharing endpoints.

Typical use::

    from dropkit import SessionConfig, StorageClient
    from dropkit.auth import BrowserDriver

    config = SessionConfig(consumer_key="...", consumer_secret="...")
    async with StorageClient(config, driver=BrowserDriver()) as client:
        await client.authenticate()
        result = await client.metadata("/")

A ``dropkit`` command-line tool is built on the same client.

Modules:
    app: Typer application and CLI entry point.
    models: Pydantic models and the ApiResult type.
    config: XDG-aware configuration and profile management.
    endpoints: Endpoint registry derived from the server bases.
    exceptions: Exception hierarchy with exit-code mapping.
    output: stdout/stderr formatting with Rich support.
"""

__version__ = "0.3.0"

from dropkit.client.api import StorageClient  # noqa: E402
from dropkit.models import ApiResult, SessionConfig  # noqa: E402

__all__ = ["ApiResult", "SessionConfig", "StorageClient", "__version__"]
