"""
Resource: a single local file kept in sync with a remote source.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from ironsync.utils.commands import DEFAULT_COMMAND_TIMEOUT
from ironsync.utils.permissions import stat_existing_file

DEFAULT_INTERVAL = 60
DEFAULT_RETRY_INTERVAL = 30
DEFAULT_PERMS = 0o664


@dataclass
class Resource:
    """
    A local install target with its scheduling state.

    ``path`` is the absolute destination and doubles as the resource key.
    ``remote_path`` is interpreted by the owning connection (URL suffix,
    SFTP/FTP path, Dropbox path or Gist file name).

    Scheduling fields are epoch seconds and are only mutated by the worker of
    the owning connection.
    """

    path: str
    remote_path: str = ""

    # Scheduling
    interval: int = DEFAULT_INTERVAL
    retry_interval: int = DEFAULT_RETRY_INTERVAL
    next_update_time: float = 0.0
    last_update_time: float | None = None
    last_modified_time: datetime | None = None

    # File attributes (perms == 0 means inherit from installed file, or 0664)
    user: str | None = None
    group: str | None = None
    perms: int = 0

    # Hooks
    pre_update_command: str | None = None
    pre_update_command_timeout: float = DEFAULT_COMMAND_TIMEOUT
    post_update_command: str | None = None
    post_update_command_timeout: float = DEFAULT_COMMAND_TIMEOUT

    # GitHub Gist
    gist_id: str | None = None
    gist_username: str | None = None
    github_token: str | None = None

    def is_due(self, now: float) -> bool:
        return now >= self.next_update_time

    def schedule_next(self, now: float, seconds: float) -> None:
        self.next_update_time = now + seconds

    def mark_updated(self, now: float) -> None:
        self.last_update_time = now

    def effective_mode(self) -> int:
        """Declared perms, else the installed file's mode, else 0664."""
        if self.perms:
            return self.perms
        existing = stat_existing_file(self.path)
        if existing is not None:
            return existing.mode
        return DEFAULT_PERMS

    def __repr__(self) -> str:
        return f"Resource(path='{self.path}', remote_path='{self.remote_path}')"
