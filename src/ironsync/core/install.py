"""
Atomic install of a staging file onto a resource's final path.

Order of operations:
1. resolve the effective mode (declared, inherited, or 0664)
2. bring the staging file onto the destination filesystem if needed
3. apply mode/ownership to the staging file
4. ``os.replace`` it onto the final path

The staging file is removed on every failure path before the rename.
"""

from __future__ import annotations

import os
import shutil
import tempfile
from pathlib import Path

from ironsync.core.resource import Resource
from ironsync.exceptions import InstallError
from ironsync.utils.logging import get_logger
from ironsync.utils.permissions import apply_permissions

logger = get_logger("ironsync.core.install")


def discard_file(path: str) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(f"Could not remove staging file {path}: {e}")


def _same_filesystem(staging: str, dest_dir: Path) -> bool:
    try:
        return os.stat(staging).st_dev == os.stat(dest_dir).st_dev
    except OSError:
        return False


def _move_beside(staging: str, dest: Path) -> str:
    """Copy ``staging`` into a temp file next to ``dest`` so the final rename stays atomic."""
    fd, local = tempfile.mkstemp(prefix=f".{dest.name}.", suffix=".part", dir=dest.parent)
    os.close(fd)
    try:
        shutil.copyfile(staging, local)
    except OSError:
        discard_file(local)
        raise
    discard_file(staging)
    return local


def install_staging_file(staging: str, resource: Resource) -> None:
    """
    Install ``staging`` at ``resource.path``.

    Raises:
        InstallError: If permissions cannot be applied or the rename fails
    """
    dest = Path(resource.path)
    current = staging
    try:
        mode = resource.effective_mode()

        if not dest.parent.is_dir():
            raise InstallError(resource.path, f"Destination directory does not exist: {dest.parent}")

        if not _same_filesystem(current, dest.parent):
            current = _move_beside(current, dest)

        apply_permissions(current, resource.user, resource.group, mode)

        os.replace(current, dest)
    except InstallError:
        discard_file(current)
        raise
    except OSError as e:
        discard_file(current)
        raise InstallError(resource.path, f"Moving file failed {current}: {e}") from e

    logger.debug(f"Installed {resource.path} (mode {mode:o})")
