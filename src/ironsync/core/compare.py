"""
Byte-for-byte comparison of a staging file against the installed file.

Any failure to open or read either side counts as "different" so an
ambiguous comparison never blocks an update.
"""

from __future__ import annotations

from ironsync.exceptions import ComparisonError
from ironsync.utils.logging import get_logger

logger = get_logger("ironsync.core.compare")

CHUNK_SIZE = 64000


def _read_exact(f, size: int) -> bytes:
    # Short reads are legal; keep reading until the chunk is full or EOF.
    buf = bytearray()
    while len(buf) < size:
        data = f.read(size - len(buf))
        if not data:
            break
        buf.extend(data)
    return bytes(buf)


def compare_files(file1: str, file2: str, chunk_size: int = CHUNK_SIZE) -> bool:
    """
    Compare two files chunk by chunk.

    Raises:
        ComparisonError: If either file cannot be opened or read
    """
    try:
        with open(file1, "rb") as f1, open(file2, "rb") as f2:
            while True:
                b1 = _read_exact(f1, chunk_size)
                b2 = _read_exact(f2, chunk_size)
                if b1 != b2:
                    return False
                if not b1:
                    # Both sides hit end-of-stream on the same chunk
                    return True
    except OSError as e:
        raise ComparisonError(f"Cannot compare {file1} with {file2}: {e}") from e


def files_equal(file1: str, file2: str, chunk_size: int = CHUNK_SIZE) -> bool:
    """Return True only if both files are readable and byte-identical."""
    try:
        return compare_files(file1, file2, chunk_size)
    except ComparisonError as e:
        logger.debug(f"{e} (treating as different)")
        return False
