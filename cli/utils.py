"""Utility functions for CLI operations."""

import hashlib
import sys

from common.constants import STREAM_PIECE_SIZE_BYTES
from cli.constants import GREEN, RESET


def display_progress(label: str, done: int, total: int) -> None:
    """
    Redraw a single-line progress indicator on stdout.

    Args:
        label: Text shown before the counters (e.g., "Uploading report.pdf")
        done: Bytes transferred so far
        total: Total bytes expected
    """
    progress = (done / total) * 100 if total else 100.0
    sys.stdout.write(
        f"\r{label}: {format_file_size(done)} / {format_file_size(total)} ({GREEN}{progress:.1f}%{RESET})"
    )
    sys.stdout.flush()


def finish_progress() -> None:
    """Terminate the progress line."""
    sys.stdout.write('\n')
    sys.stdout.flush()


def sha256_of_file(path: str) -> str:
    """
    Hash a local file for comparison with the server digest.

    Args:
        path: Local file path

    Returns:
        Hex SHA-256 of the file content
    """
    h = hashlib.sha256()
    with open(path, 'rb') as f:
        while True:
            piece = f.read(STREAM_PIECE_SIZE_BYTES)
            if not piece:
                break
            h.update(piece)
    return h.hexdigest()


def format_entry(entry: dict) -> str:
    """
    Render an entry projection as an indented block.

    Args:
        entry: Entry projection as returned by the server

    Returns:
        Multi-line description
    """
    state = "finalized" if entry.get('finalized') else "uploading"
    return (
        f"{entry.get('name')} ({entry.get('id')})\n"
        f"  Size:         {format_file_size(entry.get('size', 0))} ({entry.get('size', 0)} bytes)\n"
        f"  Content-Type: {entry.get('contentType')}\n"
        f"  SHA-256:      {entry.get('sha256')}\n"
        f"  State:        {state}\n"
        f"  Updated:      {entry.get('lastUpdate')}\n"
        f"  URI:          {entry.get('uri')}"
    )


def format_file_size(size_bytes: int) -> str:
    """
    Format file size in bytes to human-readable format with appropriate unit.

    Uses binary units (1024-based) and automatically selects the most
    appropriate unit (B, KiB, MiB, GiB, TiB).

    Args:
        size_bytes: File size in bytes

    Returns:
        Formatted string with size and unit (e.g., "1.50 MiB", "512 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"

    units = ['KiB', 'MiB', 'GiB', 'TiB']
    size = size_bytes / 1024.0

    for unit in units:
        if size < 1024.0:
            return f"{size:.2f} {unit}"
        size /= 1024.0

    return f"{size:.2f} PiB"
