"""Endpoint registry -- every API URL, derived once from the server bases.

The API is served from three hosts that differ only in their first DNS
label:

* the **API server** (``api.<domain>``) for metadata and OAuth token calls,
* the **auth server** (``www.<domain>``) for the browser authorization page,
* the **file server** (``api-content.<domain>``) for file contents.

Only the API server base needs configuring; the other two are derived by
substituting the first host label unless given explicitly.  Malformed bases
are not validated here and surface later as transport failures.
"""

from __future__ import annotations

import ipaddress
from types import MappingProxyType
from typing import Iterator, Mapping, Optional
from urllib.parse import urlsplit, urlunsplit

from dropkit.models import SessionConfig

API_VERSION = 1

FILE_OPERATIONS = ("copy", "create_folder", "delete", "move")

# (logical name, server, path)
_CATALOG: tuple[tuple[str, str, str], ...] = (
    ("request_token", "api", "/oauth/request_token"),
    ("authorize", "auth", "/oauth/authorize"),
    ("access_token", "api", "/oauth/access_token"),
    ("account_info", "api", "/account/info"),
    ("get_file", "file", "/files"),
    ("put_file", "file", "/files_put"),
    ("post_file", "file", "/files"),
    ("metadata", "api", "/metadata"),
    ("delta", "api", "/delta"),
    ("revisions", "api", "/revisions"),
    ("restore", "api", "/restore"),
    ("search", "api", "/search"),
    ("shares", "api", "/shares"),
    ("media", "api", "/media"),
    ("copy_ref", "api", "/copy_ref"),
    ("thumbnails", "file", "/thumbnails"),
) + tuple((f"fileops_{op}", "api", f"/fileops/{op}") for op in FILE_OPERATIONS)


def _is_ip_address(host: str) -> bool:
    try:
        ipaddress.ip_address(host)
    except ValueError:
        return False
    return True


def derive_server_base(api_server_base: str, label: str) -> str:
    """Replace the first host label of *api_server_base* with *label*.

    ``derive_server_base("https://api.example.com", "www")`` returns
    ``"https://www.example.com"``.  A host without a subdomain (such as
    ``localhost:8080``) or an IP address is returned unchanged.
    """
    parts = urlsplit(api_server_base)
    host = parts.netloc
    _, dot, rest = host.partition(".")
    if not dot or _is_ip_address(parts.hostname or ""):
        return api_server_base.rstrip("/")
    return urlunsplit((parts.scheme, f"{label}.{rest}", parts.path, "", "")).rstrip("/")


class EndpointRegistry(Mapping[str, str]):
    """Read-only mapping from logical operation name to fully qualified URL.

    Example::

        registry = EndpointRegistry.from_config(config)
        registry["metadata"]      # "https://api.dropbox.com/1/metadata"
        registry.fileops("move")  # "https://api.dropbox.com/1/fileops/move"
    """

    def __init__(
        self,
        api_server_base: str,
        auth_server_base: Optional[str] = None,
        file_server_base: Optional[str] = None,
    ) -> None:
        api = api_server_base.rstrip("/")
        self.servers: Mapping[str, str] = MappingProxyType({
            "api": api,
            "auth": (auth_server_base or derive_server_base(api, "www")).rstrip("/"),
            "file": (file_server_base or derive_server_base(api, "api-content")).rstrip("/"),
        })
        self._urls: Mapping[str, str] = MappingProxyType({
            name: f"{self.servers[server]}/{API_VERSION}{path}"
            for name, server, path in _CATALOG
        })

    @classmethod
    def from_config(cls, config: SessionConfig) -> EndpointRegistry:
        return cls(config.api_server_base, config.auth_server_base, config.file_server_base)

    @property
    def api_server_base(self) -> str:
        return self.servers["api"]

    @property
    def auth_server_base(self) -> str:
        return self.servers["auth"]

    @property
    def file_server_base(self) -> str:
        return self.servers["file"]

    def fileops(self, operation: str) -> str:
        """Return the URL of a file operation (``copy``, ``create_folder``, ``delete``, ``move``)."""
        return self._urls[f"fileops_{operation}"]

    def __getitem__(self, name: str) -> str:
        return self._urls[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._urls)

    def __len__(self) -> int:
        return len(self._urls)
