"""
File hashing utilities for change detection.

Dropbox reports a ``content_hash`` for every file: the SHA256 of the
concatenated SHA256 digests of each 4 MiB block. Computing the same value
for the installed file lets the Dropbox connection skip unchanged downloads.
"""

import hashlib
from pathlib import Path

from ironsync.utils.logging import get_logger

logger = get_logger("ironsync.utils.hashing")

DROPBOX_BLOCK_SIZE = 4 * 1024 * 1024


def dropbox_content_hash(file_path: str | Path, block_size: int = DROPBOX_BLOCK_SIZE) -> str:
    """
    Calculate the Dropbox content hash of a local file.

    Args:
        file_path: Path to file
        block_size: Block size in bytes (Dropbox uses 4 MiB)

    Returns:
        Content hash as hex string

    Raises:
        OSError: If the file cannot be read
    """
    overall = hashlib.sha256()
    with open(file_path, "rb") as f:
        for block in iter(lambda: f.read(block_size), b""):
            overall.update(hashlib.sha256(block).digest())
    return overall.hexdigest()
