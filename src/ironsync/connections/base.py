"""
Abstract base connection class for all remote sources.

A connection owns its resources and an optional client handle. Every
protocol implements one operation, ``_fetch``: write the remote content of a
resource into a staging file and report whether it changed.
"""

from __future__ import annotations

import os
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar

from ironsync.core.install import discard_file
from ironsync.core.resource import Resource
from ironsync.exceptions import TransportError
from ironsync.utils.logging import get_logger

logger = get_logger("ironsync.connections.base")

DEFAULT_TIMEOUT = 30


class ConnectionType(str, Enum):
    HTTP = "http"
    GIST = "gist"
    SFTP = "sftp"
    FTP = "ftp"
    DROPBOX = "dropbox"


@dataclass(frozen=True)
class DownloadResult:
    """
    Outcome of a download.

    ``path`` is the staging file holding the new content; it is None when
    the remote reported no change (the staging file is already removed).
    ``last_modified`` is the server-reported modification time, committed to
    the resource by the worker once the update cycle succeeds.
    """

    modified: bool
    path: str | None = None
    last_modified: datetime | None = None


def describe_error(exc: BaseException) -> str:
    text = str(exc)
    return f"{type(exc).__name__}: {text}" if text else type(exc).__name__


class BaseConnection(ABC):
    """
    Base class for all remote connections.

    Handle lifecycle:
        - ``acquire()`` opens the client handle on first need
        - non-persistent connections ``release()`` it after every download
        - persistent connections keep it, and release it on any transport failure
          so the next download dials again
    """

    type: ClassVar[ConnectionType]
    # Library exceptions that mean "the transfer failed" for this protocol
    transport_errors: ClassVar[tuple[type[BaseException], ...]] = (OSError,)

    def __init__(self, name: str, config: dict[str, Any]):
        """
        Initialize connection.

        Args:
            name: Connection name (from config), also the staging file prefix
            config: Connection configuration dictionary
        """
        self.name = name
        self.config = config
        self.resources: list[Resource] = []
        self.timeout = float(config.get("timeout", DEFAULT_TIMEOUT))
        self.persistent = bool(config.get("persistent", False))
        self.staging_dir: str | None = config.get("staging_dir")
        self._handle: Any | None = None

    @property
    def handle(self) -> Any | None:
        """The live client handle, or None when no session is open."""
        return self._handle

    def add_resource(self, resource: Resource) -> None:
        self.resources.append(resource)

    async def acquire(self) -> Any:
        """Return the client handle, opening it if absent."""
        if self._handle is None:
            self._handle = await self._open_handle()
            logger.debug(f"[{self.name}] Opened {self.type.value} session")
        return self._handle

    async def release(self) -> None:
        """Close the client handle (if any) and mark it absent."""
        handle, self._handle = self._handle, None
        if handle is None:
            return
        try:
            await self._close_handle(handle)
        except Exception as e:
            logger.debug(f"[{self.name}] Error closing session: {e}")

    async def close(self) -> None:
        """Close connection and cleanup resources."""
        await self.release()

    async def download(self, resource: Resource) -> DownloadResult:
        """
        Download ``resource`` into a fresh staging file.

        Returns:
            DownloadResult; when ``modified`` is True the caller owns ``path``

        Raises:
            TransportError: On any transport or protocol failure (staging file removed)
        """
        fd, staging = tempfile.mkstemp(prefix=f"{self.name}-", dir=self.staging_dir)
        os.close(fd)

        try:
            handle = await self.acquire()
            result = await self._fetch(handle, resource, staging)
        except TransportError:
            discard_file(staging)
            await self.release()
            raise
        except self.transport_errors as e:
            discard_file(staging)
            await self.release()
            raise TransportError(self.name, describe_error(e), cause=e) from e
        except BaseException:
            discard_file(staging)
            raise
        finally:
            if not self.persistent:
                await self.release()

        if not result.modified:
            discard_file(staging)
            return DownloadResult(modified=False, last_modified=result.last_modified)
        return result

    @abstractmethod
    async def _open_handle(self) -> Any:
        """Open and return a new client handle."""

    @abstractmethod
    async def _close_handle(self, handle: Any) -> None:
        """Close a client handle previously returned by ``_open_handle``."""

    @abstractmethod
    async def _fetch(self, handle: Any, resource: Resource, staging: str) -> DownloadResult:
        """Write the remote content of ``resource`` into ``staging``."""

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name='{self.name}')"
