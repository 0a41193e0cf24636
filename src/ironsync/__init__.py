"""
ironsync - periodically mirror remote files onto the local filesystem.

Remote sources (HTTP, GitHub Gist, SFTP, FTP, Dropbox) are polled on a
per-resource schedule; changed content is installed atomically with the
configured ownership and permissions.
"""

__version__ = "0.2.0"

from ironsync.config.loader import Config, load_config
from ironsync.connections import (
    BaseConnection,
    ConnectionManager,
    ConnectionType,
    DownloadResult,
    DropboxConnection,
    FTPConnection,
    GistConnection,
    HTTPConnection,
    SFTPConnection,
)
from ironsync.core.resource import Resource

# Exceptions
from ironsync.exceptions import (
    ComparisonError,
    ConfigurationError,
    HookError,
    InitializationError,
    InstallError,
    IronsyncError,
    TransportError,
)
from ironsync.service import ConnectionWorker, SyncService, UpdateOutcome, run_service

# Logging utilities
from ironsync.utils.logging import get_logger, setup_logging, setup_logging_from_config

__all__ = [
    # Config
    "Config",
    "load_config",
    # Graph
    "Resource",
    "BaseConnection",
    "ConnectionType",
    "DownloadResult",
    "ConnectionManager",
    "HTTPConnection",
    "GistConnection",
    "SFTPConnection",
    "FTPConnection",
    "DropboxConnection",
    # Service
    "ConnectionWorker",
    "UpdateOutcome",
    "SyncService",
    "run_service",
    # Logging
    "setup_logging",
    "setup_logging_from_config",
    "get_logger",
    # Exceptions
    "IronsyncError",
    "ConfigurationError",
    "InitializationError",
    "TransportError",
    "ComparisonError",
    "InstallError",
    "HookError",
]
