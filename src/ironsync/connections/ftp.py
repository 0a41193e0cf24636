"""
FTP connection built on ``ftplib``.
"""

from __future__ import annotations

import asyncio
import ftplib
from typing import Any

from ironsync.connections.base import BaseConnection, ConnectionType, DownloadResult
from ironsync.core.resource import Resource
from ironsync.utils.logging import get_logger

logger = get_logger("ironsync.connections.ftp")

DEFAULT_FTP_PORT = 21


class FTPConnection(BaseConnection):
    """FTP source; the handle is a logged-in ``ftplib.FTP``."""

    type = ConnectionType.FTP
    transport_errors = ftplib.all_errors

    def __init__(self, name: str, config: dict[str, Any]):
        super().__init__(name, config)
        self.hostname: str = config.get("hostname", "")
        self.port = int(config.get("port", DEFAULT_FTP_PORT))
        self.username: str = config.get("username", "")
        self.password: str = config.get("password", "")

    def connect(self) -> ftplib.FTP:
        """Dial and log in (blocking)."""
        ftp = ftplib.FTP(timeout=self.timeout)
        try:
            ftp.connect(self.hostname, self.port)
            ftp.login(self.username, self.password)
        except BaseException:
            ftp.close()
            raise
        return ftp

    @staticmethod
    def _quit(ftp: ftplib.FTP) -> None:
        try:
            ftp.quit()
        except ftplib.all_errors:
            ftp.close()

    @staticmethod
    def _retrieve(ftp: ftplib.FTP, remote_path: str, staging: str) -> None:
        with open(staging, "wb") as f:
            ftp.retrbinary(f"RETR {remote_path}", f.write)

    async def _open_handle(self) -> ftplib.FTP:
        return await asyncio.to_thread(self.connect)

    async def _close_handle(self, handle: ftplib.FTP) -> None:
        await asyncio.to_thread(self._quit, handle)

    async def _fetch(self, handle: ftplib.FTP, resource: Resource, staging: str) -> DownloadResult:
        await asyncio.to_thread(self._retrieve, handle, resource.remote_path, staging)
        return DownloadResult(modified=True, path=staging)
