"""
Dropbox connection using the HTTP API v2.

Before downloading, the content hash of the installed file is compared with
the ``content_hash`` Dropbox reports for the remote file. Failure to compute
either side is not an error: the file is simply downloaded.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any

import aiohttp

from ironsync.connections.base import BaseConnection, ConnectionType, DownloadResult
from ironsync.connections.http import write_response
from ironsync.core.resource import Resource
from ironsync.exceptions import TransportError
from ironsync.utils.hashing import dropbox_content_hash
from ironsync.utils.logging import get_logger

logger = get_logger("ironsync.connections.dropbox")

DEFAULT_API_URL = "https://api.dropboxapi.com/2"
DEFAULT_CONTENT_URL = "https://content.dropboxapi.com/2"


class DropboxConnection(BaseConnection):
    """Dropbox source; the handle is an authenticated ``aiohttp.ClientSession``."""

    type = ConnectionType.DROPBOX
    transport_errors = (aiohttp.ClientError, asyncio.TimeoutError, OSError)

    def __init__(self, name: str, config: dict[str, Any]):
        super().__init__(name, config)
        self.token: str = config.get("token", "")
        self.api_url: str = config.get("api_url", DEFAULT_API_URL).rstrip("/")
        self.content_url: str = config.get("content_url", DEFAULT_CONTENT_URL).rstrip("/")

    async def _open_handle(self) -> aiohttp.ClientSession:
        return aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self.timeout),
            headers={"Authorization": f"Bearer {self.token}"},
        )

    async def _close_handle(self, handle: aiohttp.ClientSession) -> None:
        await handle.close()

    async def _local_content_hash(self, path: str) -> str | None:
        try:
            return await asyncio.to_thread(dropbox_content_hash, path)
        except OSError as e:
            logger.debug(f"[{self.name}] No local content hash for {path}: {e}")
            return None

    async def _remote_content_hash(self, session: aiohttp.ClientSession, remote_path: str) -> str | None:
        try:
            async with session.post(
                f"{self.api_url}/files/get_metadata",
                json={"path": remote_path, "include_media_info": False},
            ) as resp:
                if resp.status != 200:
                    logger.debug(f"[{self.name}] get_metadata for {remote_path} returned {resp.status}")
                    return None
                metadata = await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.debug(f"[{self.name}] get_metadata for {remote_path} failed: {e}")
            return None
        return metadata.get("content_hash") if isinstance(metadata, dict) else None

    async def _fetch(self, handle: aiohttp.ClientSession, resource: Resource, staging: str) -> DownloadResult:
        local_hash = await self._local_content_hash(resource.path)
        if local_hash is not None:
            remote_hash = await self._remote_content_hash(handle, resource.remote_path)
            if remote_hash == local_hash:
                return DownloadResult(modified=False)

        headers = {"Dropbox-API-Arg": json.dumps({"path": resource.remote_path})}
        async with handle.post(f"{self.content_url}/files/download", headers=headers) as resp:
            if resp.status != 200:
                body = (await resp.text())[:200]
                raise TransportError(
                    self.name, f"Dropbox download of {resource.remote_path} failed ({resp.status}): {body}"
                )
            await write_response(resp, staging)

        return DownloadResult(modified=True, path=staging)
