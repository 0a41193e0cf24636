"""
Background service: per-connection workers and the process that runs them.
"""

from ironsync.service.server import SyncService, run_service
from ironsync.service.worker import ConnectionWorker, UpdateOutcome

__all__ = [
    "ConnectionWorker",
    "UpdateOutcome",
    "SyncService",
    "run_service",
]
