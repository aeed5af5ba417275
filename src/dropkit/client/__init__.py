"""HTTP client layer for dropkit.

Classes:
    :class:`Transport` / :class:`HttpxTransport` -- one HTTP exchange,
    backed by :class:`httpx.AsyncClient`.
    :class:`Dispatcher` -- builds, signs and sends API requests.
    :class:`StorageClient` -- the endpoint catalog on top of both.
"""

from dropkit.client.dispatcher import Dispatcher
from dropkit.client.transport import HttpxTransport, Transport
from dropkit.client.api import StorageClient

__all__ = ["Dispatcher", "HttpxTransport", "StorageClient", "Transport"]
