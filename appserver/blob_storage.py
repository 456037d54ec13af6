"""Manages physical content blobs on disk: append-open, ranged streaming reads."""

import os
from pathlib import Path
from typing import BinaryIO, Iterator, Optional

from common.constants import STREAM_PIECE_SIZE_BYTES


def open_blob_for_append(blob_path: Path, committed_size: int) -> BinaryIO:
    """
    Open a blob for writing the next chunk.

    Creates the blob (and its shard directory) if absent, drops any bytes past
    the committed size left by an interrupted write, and positions the cursor
    at the committed size.

    Args:
        blob_path: Path of the blob
        committed_size: Number of bytes recorded in the entry metadata

    Returns:
        Binary file handle opened for read/write

    Raises:
        OSError: If the blob cannot be opened or truncated
    """
    blob_path.parent.mkdir(parents=True, exist_ok=True)
    fd = os.open(blob_path, os.O_RDWR | os.O_CREAT, 0o644)
    f = os.fdopen(fd, 'r+b')
    try:
        f.truncate(committed_size)
        f.seek(committed_size)
    except OSError:
        f.close()
        raise
    return f


def sync_blob(f: BinaryIO) -> None:
    """Flush buffered writes and force them to stable storage."""
    f.flush()
    os.fsync(f.fileno())


def iter_blob_range(
    blob_path: Path,
    start: int,
    length: int,
    piece_size: int = STREAM_PIECE_SIZE_BYTES,
) -> Iterator[bytes]:
    """
    Stream a byte range of a blob in pieces.

    Never yields more than length bytes, even when the blob on disk is longer
    because an append is in flight.

    Args:
        blob_path: Path of the blob
        start: Offset of the first byte
        length: Maximum number of bytes to yield
        piece_size: Size of each piece in bytes (default 64KB)

    Yields:
        Blob data pieces

    Raises:
        FileNotFoundError: If the blob does not exist
        OSError: If read operation fails
    """
    remaining = length
    if remaining <= 0:
        return
    with open(blob_path, 'rb') as f:
        f.seek(start)
        while remaining > 0:
            piece = f.read(min(piece_size, remaining))
            if not piece:
                break
            remaining -= len(piece)
            yield piece


def blob_size(blob_path: Path) -> Optional[int]:
    """
    Get size of blob file in bytes.

    Args:
        blob_path: Path of the blob

    Returns:
        Size in bytes, or None if blob doesn't exist
    """
    if blob_path.exists():
        return blob_path.stat().st_size
    return None
