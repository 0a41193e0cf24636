"""
Remote connections: one class per protocol, all sharing the download contract
of BaseConnection.
"""

from ironsync.connections.base import BaseConnection, ConnectionType, DownloadResult
from ironsync.connections.dropbox import DropboxConnection
from ironsync.connections.ftp import FTPConnection
from ironsync.connections.http import GistConnection, HTTPConnection
from ironsync.connections.manager import ConnectionManager
from ironsync.connections.sftp import SFTPConnection

__all__ = [
    "BaseConnection",
    "ConnectionType",
    "DownloadResult",
    "ConnectionManager",
    "HTTPConnection",
    "GistConnection",
    "SFTPConnection",
    "FTPConnection",
    "DropboxConnection",
]
