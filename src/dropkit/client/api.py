"""High-level client for the file-storage API.

:class:`StorageClient` wires one :class:`~dropkit.models.SessionConfig` into
its collaborators -- credential store, endpoint registry, signer, transport,
dispatcher and authenticator -- and exposes the endpoint catalog as
coroutine methods.  Each method builds a URL and parameter set and delegates
to :meth:`~dropkit.client.dispatcher.Dispatcher.send`; all of them return an
:class:`~dropkit.models.ApiResult` and accept an optional
``callback(data, error)``.

Example::

    config = SessionConfig(consumer_key="k", consumer_secret="s")
    async with StorageClient(config, driver=BrowserDriver()) as client:
        result = await client.authenticate()
        if result.ok:
            listing = await client.metadata("/Photos")
"""

from __future__ import annotations

from typing import Any, Optional

from dropkit.auth.base import AuthorizationDriver, OAuthSigner
from dropkit.auth.credential_store import CredentialStore
from dropkit.auth.handshake import Authenticator, HandshakeState
from dropkit.auth.signer import HmacSha1Signer
from dropkit.client.dispatcher import Dispatcher
from dropkit.client.transport import HttpxTransport, Transport
from dropkit.endpoints import EndpointRegistry
from dropkit.models import ApiResult, ResultCallback, SessionConfig


def split_path(path: str) -> list[str]:
    """Split a slash-separated file path into its non-empty segments."""
    return [segment for segment in path.split("/") if segment]


class StorageClient:
    """Client for one user session against one API server.

    Args:
        config: Server bases, consumer credentials and, optionally, a
            previously obtained user token triple.
        driver: Authorization driver used by :meth:`authenticate`.
        signer: OAuth signer; :class:`~dropkit.auth.signer.HmacSha1Signer`
            by default.
        transport: HTTP transport; an
            :class:`~dropkit.client.transport.HttpxTransport` built from
            ``config.request`` by default.

    Raises:
        InvalidCredentialsError: If *config* carries a partial user token
            triple.
    """

    def __init__(
        self,
        config: SessionConfig,
        driver: Optional[AuthorizationDriver] = None,
        signer: Optional[OAuthSigner] = None,
        transport: Optional[Transport] = None,
    ) -> None:
        self.config = config
        self.credentials = CredentialStore.from_config(config)
        self.endpoints = EndpointRegistry.from_config(config)
        self._transport = transport or HttpxTransport(config.request)
        self.dispatcher = Dispatcher(
            self.credentials,
            signer or HmacSha1Signer(),
            self._transport,
            root=config.root,
            locale=config.locale,
        )
        self.authenticator = Authenticator(
            self.dispatcher, self.credentials, self.endpoints, driver
        )

    async def __aenter__(self) -> StorageClient:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._transport.aclose()

    # ------------------------------------------------------------------ #
    # Session
    # ------------------------------------------------------------------ #

    @property
    def state(self) -> HandshakeState:
        return self.authenticator.state

    @property
    def is_authenticated(self) -> bool:
        return self.credentials.is_authenticated

    @property
    def user_id(self) -> Optional[str]:
        return self.credentials.user_id

    def register_driver(self, driver: AuthorizationDriver) -> None:
        """Set the driver used by the next :meth:`authenticate`."""
        self.authenticator.register_driver(driver)

    async def authenticate(self, callback: Optional[ResultCallback] = None) -> ApiResult:
        """Run the OAuth handshake; the result carries the linked user id."""
        return await self.authenticator.authenticate(callback)

    def snapshot(self) -> dict[str, str]:
        """Return the credentials needed to resume this session later."""
        return self.credentials.snapshot()

    def unlink(self) -> None:
        """Forget the linked user and reset :attr:`state` to ``UNAUTHENTICATED``."""
        self.authenticator.unlink()

    # ------------------------------------------------------------------ #
    # Account and file contents
    # ------------------------------------------------------------------ #

    async def account_info(self, callback: Optional[ResultCallback] = None) -> ApiResult:
        """Retrieve information about the linked user's account."""
        return await self.dispatcher.send(
            "GET", self.endpoints["account_info"], callback=callback
        )

    async def get_file(
        self,
        path: str,
        rev: Optional[str] = None,
        callback: Optional[ResultCallback] = None,
    ) -> ApiResult:
        """Download a file; :attr:`ApiResult.data` holds its bytes."""
        return await self.dispatcher.send(
            "GET", self.endpoints["get_file"], split_path(path),
            {"rev": rev}, raw=True, callback=callback,
        )

    async def put_file(
        self,
        path: str,
        data: bytes,
        overwrite: Optional[bool] = None,
        parent_rev: Optional[str] = None,
        callback: Optional[ResultCallback] = None,
    ) -> ApiResult:
        """Upload *data* to *path* as the request body.

        Args:
            overwrite: When ``False`` an existing file is kept and the
                upload is renamed by the server.  Omitted when ``None``.
            parent_rev: Revision the upload is based on.
        """
        return await self.dispatcher.send(
            "PUT", self.endpoints["put_file"], split_path(path),
            {"overwrite": overwrite, "parent_rev": parent_rev},
            body=data, callback=callback,
        )

    async def post_file(
        self,
        path: str,
        data: bytes,
        filename: Optional[str] = None,
        overwrite: Optional[bool] = None,
        parent_rev: Optional[str] = None,
        callback: Optional[ResultCallback] = None,
    ) -> ApiResult:
        """Upload *data* as a multipart form.

        *path* is the destination file.  When *filename* is given, *path* is
        taken as the destination folder instead.
        """
        segments = split_path(path)
        if filename is None:
            filename = segments.pop() if segments else "upload"
        return await self.dispatcher.send(
            "POST", self.endpoints["post_file"], segments,
            {"overwrite": overwrite, "parent_rev": parent_rev},
            files={"file": (filename, data)}, callback=callback,
        )

    async def thumbnails(
        self,
        path: str,
        size: Optional[str] = None,
        format: Optional[str] = None,
        callback: Optional[ResultCallback] = None,
    ) -> ApiResult:
        """Download a thumbnail image (``size``: ``xs``..``xl``; ``format``: ``JPEG``/``PNG``)."""
        return await self.dispatcher.send(
            "GET", self.endpoints["thumbnails"], split_path(path),
            {"size": size, "format": format}, raw=True, callback=callback,
        )

    # ------------------------------------------------------------------ #
    # Metadata
    # ------------------------------------------------------------------ #

    async def metadata(
        self,
        path: str,
        file_limit: Optional[int] = None,
        hash: Optional[str] = None,
        list: Optional[bool] = None,
        include_deleted: Optional[bool] = None,
        rev: Optional[str] = None,
        callback: Optional[ResultCallback] = None,
    ) -> ApiResult:
        """Retrieve metadata for a file or folder (and its contents when listing)."""
        params: dict[str, Any] = {
            "file_limit": file_limit,
            "hash": hash,
            "list": list,
            "include_deleted": include_deleted,
            "rev": rev,
        }
        return await self.dispatcher.send(
            "GET", self.endpoints["metadata"], split_path(path), params, callback=callback
        )

    async def delta(
        self,
        cursor: Optional[str] = None,
        path_prefix: Optional[str] = None,
        callback: Optional[ResultCallback] = None,
    ) -> ApiResult:
        """Fetch changes since *cursor* (everything when omitted)."""
        return await self.dispatcher.send(
            "POST", self.endpoints["delta"],
            params={"cursor": cursor, "path_prefix": path_prefix}, callback=callback,
        )

    async def revisions(
        self,
        path: str,
        rev_limit: Optional[int] = None,
        callback: Optional[ResultCallback] = None,
    ) -> ApiResult:
        return await self.dispatcher.send(
            "GET", self.endpoints["revisions"], split_path(path),
            {"rev_limit": rev_limit}, callback=callback,
        )

    async def restore(
        self,
        path: str,
        rev: str,
        callback: Optional[ResultCallback] = None,
    ) -> ApiResult:
        """Restore *path* to revision *rev*."""
        return await self.dispatcher.send(
            "POST", self.endpoints["restore"], split_path(path), {"rev": rev}, callback=callback
        )

    async def search(
        self,
        path: str,
        query: str,
        file_limit: Optional[int] = None,
        include_deleted: Optional[bool] = None,
        callback: Optional[ResultCallback] = None,
    ) -> ApiResult:
        """Search below *path* for names containing *query*."""
        params: dict[str, Any] = {
            "query": query,
            "file_limit": file_limit,
            "include_deleted": include_deleted,
        }
        return await self.dispatcher.send(
            "GET", self.endpoints["search"], split_path(path), params, callback=callback
        )

    # ------------------------------------------------------------------ #
    # Links
    # ------------------------------------------------------------------ #

    async def shares(
        self,
        path: str,
        short_url: Optional[bool] = None,
        callback: Optional[ResultCallback] = None,
    ) -> ApiResult:
        """Create a shareable link to *path*."""
        return await self.dispatcher.send(
            "POST", self.endpoints["shares"], split_path(path),
            {"short_url": short_url}, callback=callback,
        )

    async def media(self, path: str, callback: Optional[ResultCallback] = None) -> ApiResult:
        """Create a direct streaming link to *path*."""
        return await self.dispatcher.send(
            "POST", self.endpoints["media"], split_path(path), callback=callback
        )

    async def copy_ref(self, path: str, callback: Optional[ResultCallback] = None) -> ApiResult:
        """Create a reference that :meth:`copy` can use as ``from_copy_ref``."""
        return await self.dispatcher.send(
            "GET", self.endpoints["copy_ref"], split_path(path), callback=callback
        )

    # ------------------------------------------------------------------ #
    # File operations
    # ------------------------------------------------------------------ #

    async def _fileop(
        self,
        operation: str,
        params: dict[str, Any],
        callback: Optional[ResultCallback],
    ) -> ApiResult:
        return await self.dispatcher.send(
            "POST", self.endpoints.fileops(operation),
            params={"root": self.dispatcher.root.value, **params}, callback=callback,
        )

    async def copy(
        self,
        from_path: Optional[str],
        to_path: str,
        from_copy_ref: Optional[str] = None,
        callback: Optional[ResultCallback] = None,
    ) -> ApiResult:
        """Copy *from_path* to *to_path*.

        Pass ``from_path=None`` and a *from_copy_ref* to copy a file from a
        reference created by :meth:`copy_ref`, possibly in another account.
        """
        return await self._fileop(
            "copy",
            {"from_path": from_path, "to_path": to_path, "from_copy_ref": from_copy_ref},
            callback,
        )

    async def create_folder(self, path: str, callback: Optional[ResultCallback] = None) -> ApiResult:
        return await self._fileop("create_folder", {"path": path}, callback)

    async def delete(self, path: str, callback: Optional[ResultCallback] = None) -> ApiResult:
        return await self._fileop("delete", {"path": path}, callback)

    async def move(
        self,
        from_path: str,
        to_path: str,
        callback: Optional[ResultCallback] = None,
    ) -> ApiResult:
        return await self._fileop("move", {"from_path": from_path, "to_path": to_path}, callback)
