"""
File ownership and permission helpers.

These are the OS-facing capabilities used by the install step: stat the
currently installed file and apply mode/owner/group to a staging file.
"""

from __future__ import annotations

import grp
import os
import pwd
import stat
from dataclasses import dataclass

from ironsync.exceptions import InstallError
from ironsync.utils.logging import get_logger

logger = get_logger("ironsync.utils.permissions")


@dataclass(frozen=True)
class FileStat:
    mode: int
    mtime: float


def stat_existing_file(path: str) -> FileStat | None:
    """Return permission bits and mtime of ``path``, or None if it does not exist."""
    try:
        st = os.stat(path)
    except FileNotFoundError:
        return None
    return FileStat(mode=stat.S_IMODE(st.st_mode), mtime=st.st_mtime)


def resolve_uid(user: str | None) -> int:
    """Resolve a user name (or numeric id) to a uid, -1 when not given."""
    if not user:
        return -1
    try:
        return pwd.getpwnam(user).pw_uid
    except KeyError:
        if user.isdigit():
            return int(user)
        raise InstallError(user, f"Unknown user: {user}") from None


def resolve_gid(group: str | None) -> int:
    """Resolve a group name (or numeric id) to a gid, -1 when not given."""
    if not group:
        return -1
    try:
        return grp.getgrnam(group).gr_gid
    except KeyError:
        if group.isdigit():
            return int(group)
        raise InstallError(group, f"Unknown group: {group}") from None


def apply_permissions(path: str, user: str | None, group: str | None, mode: int) -> None:
    """
    Apply mode and ownership to ``path``.

    Ownership is only changed when a user or a group is given.

    Raises:
        InstallError: On unknown user/group or when chmod/chown fails
    """
    uid = resolve_uid(user)
    gid = resolve_gid(group)

    try:
        os.chmod(path, mode)
        if uid != -1 or gid != -1:
            os.chown(path, uid, gid)
    except OSError as e:
        raise InstallError(path, f"Setting file permissions failed: {e}") from e

    logger.debug(f"Applied mode {mode:o} uid={uid} gid={gid} to {path}")
