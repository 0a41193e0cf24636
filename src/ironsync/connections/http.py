"""
HTTP and GitHub Gist connections.

Conditional fetch: ``If-Modified-Since`` is sent when the resource's last
modification time is known. A 304, or a ``Last-Modified`` header that is not
strictly newer, short-circuits as "not modified".
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from email.utils import format_datetime, parsedate_to_datetime
from typing import Any

import aiofiles
import aiohttp

from ironsync.connections.base import BaseConnection, ConnectionType, DownloadResult
from ironsync.core.resource import Resource
from ironsync.exceptions import TransportError
from ironsync.utils.logging import get_logger

logger = get_logger("ironsync.connections.http")

DEFAULT_GIST_URL = "https://gist.githubusercontent.com"
STREAM_CHUNK_SIZE = 64 * 1024


def parse_http_date(value: str | None) -> datetime | None:
    """Parse an RFC 7231 date header, None if absent or malformed."""
    if not value:
        return None
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_http_date(value: datetime) -> str:
    return format_datetime(value.astimezone(timezone.utc), usegmt=True)


async def write_response(resp: aiohttp.ClientResponse, staging: str) -> None:
    """Stream a response body into the staging file."""
    async with aiofiles.open(staging, "wb") as f:
        async for chunk in resp.content.iter_chunked(STREAM_CHUNK_SIZE):
            await f.write(chunk)


class HTTPConnection(BaseConnection):
    """
    Plain HTTP(S) source.

    The resource URL is ``url`` with ``remote_path`` appended when set. The
    handle is an ``aiohttp.ClientSession``.
    """

    type = ConnectionType.HTTP
    transport_errors = (aiohttp.ClientError, asyncio.TimeoutError, OSError)

    def __init__(self, name: str, config: dict[str, Any]):
        super().__init__(name, config)
        self.url: str = config.get("url", "")

    def build_url(self, resource: Resource) -> str:
        if not resource.remote_path:
            return self.url
        return f"{self.url.rstrip('/')}/{resource.remote_path.lstrip('/')}"

    def build_headers(self, resource: Resource) -> dict[str, str]:
        headers: dict[str, str] = {}
        if resource.last_modified_time is not None:
            headers["If-Modified-Since"] = format_http_date(resource.last_modified_time)
        return headers

    async def _open_handle(self) -> aiohttp.ClientSession:
        return aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout))

    async def _close_handle(self, handle: aiohttp.ClientSession) -> None:
        await handle.close()

    async def _fetch(self, handle: aiohttp.ClientSession, resource: Resource, staging: str) -> DownloadResult:
        url = self.build_url(resource)

        async with handle.get(url, headers=self.build_headers(resource)) as resp:
            if resp.status == 304:
                return DownloadResult(modified=False)
            if resp.status != 200:
                raise TransportError(self.name, f"Connection failed to {url} ({resp.status})")

            last_modified = parse_http_date(resp.headers.get("Last-Modified"))
            if (
                last_modified is not None
                and resource.last_modified_time is not None
                and last_modified <= resource.last_modified_time
            ):
                return DownloadResult(modified=False)

            await write_response(resp, staging)

        return DownloadResult(modified=True, path=staging, last_modified=last_modified)


class GistConnection(HTTPConnection):
    """
    GitHub Gist raw-content source.

    URL: ``{url}/{gist_username}/{gist_id}/raw/{remote_path}``. ``gist_id``,
    ``gist_username`` and ``github_token`` are taken from the resource, which
    inherits them from the connection config when not set itself.
    """

    type = ConnectionType.GIST

    def __init__(self, name: str, config: dict[str, Any]):
        super().__init__(name, {**config, "url": config.get("url") or DEFAULT_GIST_URL})
        self.gist_id: str | None = config.get("gist_id")
        self.gist_username: str | None = config.get("gist_username")
        self.github_token: str | None = config.get("github_token")

    def build_url(self, resource: Resource) -> str:
        base = self.url.rstrip("/")
        url = f"{base}/{resource.gist_username}/{resource.gist_id}/raw"
        if resource.remote_path:
            url = f"{url}/{resource.remote_path.lstrip('/')}"
        return url

    def build_headers(self, resource: Resource) -> dict[str, str]:
        headers = super().build_headers(resource)
        if resource.github_token:
            headers["Authorization"] = f"token {resource.github_token}"
        return headers
