"""Download service: whole and single-range reads of entry content."""

from dataclasses import dataclass, field
from typing import Dict, Iterator, Optional

from common.logging_config import get_logger
from appserver import config
from appserver import service_locator
from appserver.blob_storage import blob_size, iter_blob_range
from appserver.exceptions import (
    AppServerException,
    EntryNotFoundError,
    InvalidRangeError,
    RangeNotSatisfiableError,
)
from appserver.repositories.entry_repository import EntryRepository, FileEntry

logger = get_logger(__name__)

RANGE_UNIT_PREFIX = "bytes="


@dataclass(frozen=True)
class ByteRange:
    """Half-open byte span [start, end)."""
    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start

    def content_range(self, total: int) -> str:
        return f"bytes {self.start}-{self.end - 1}/{total}"


def _parse_bound(value: str, header: str, size: int) -> int:
    value = value.strip()
    if not value.isdigit() or not value.isascii():
        raise RangeNotSatisfiableError(f"Unsupported range: {header}", size)
    return int(value)


def parse_range_header(header: str, size: int, max_length: int) -> ByteRange:
    """
    Resolve a Range header against content of the given size.

    A missing start means 0 and a missing end means the end of the content.
    The end is clamped to the content size and the span to max_length bytes,
    so an oversized request yields a shorter partial response instead of an
    error.

    Args:
        header: Raw Range header value
        size: Committed content size
        max_length: Largest span served by one response

    Returns:
        The span to serve

    Raises:
        InvalidRangeError: Header does not use the bytes unit
        RangeNotSatisfiableError: Several ranges, malformed bounds, or a span
            outside the content
    """
    if not header.startswith(RANGE_UNIT_PREFIX):
        raise InvalidRangeError(f"Range header must start with '{RANGE_UNIT_PREFIX}': {header}")

    specs = [spec.strip() for spec in header[len(RANGE_UNIT_PREFIX):].split(",")]
    if len(specs) > 1:
        raise RangeNotSatisfiableError(f"Multiple ranges are not supported: {header}", size)

    spec = specs[0]
    if "-" not in spec:
        raise RangeNotSatisfiableError(f"Unsupported range: {header}", size)

    start_str, end_str = spec.split("-", 1)
    start = 0 if start_str.strip() == "" else _parse_bound(start_str, header, size)
    end = size if end_str.strip() == "" else _parse_bound(end_str, header, size) + 1
    end = min(end, size)

    if start >= end:
        raise RangeNotSatisfiableError(f"Range {header} is outside content of {size} bytes", size)

    if end - start > max_length:
        end = start + max_length

    return ByteRange(start=start, end=end)


@dataclass
class Download:
    """Everything needed to build the HTTP response for a read."""
    entry: FileEntry
    status_code: int
    body: Iterator[bytes]
    byte_range: Optional[ByteRange] = None
    headers: Dict[str, str] = field(default_factory=dict)


class DownloadService:
    def __init__(self, entry_repo: Optional[EntryRepository] = None, max_range_bytes: Optional[int] = None):
        self.entry_repo = entry_repo or service_locator.get_entry_repository()
        self.max_range_bytes = max_range_bytes if max_range_bytes is not None else config.RANGE_MAX_BYTES

    def open_download(self, entry_id: str, range_header: Optional[str] = None) -> Download:
        """
        Prepare a streamed read of an entry.

        Reads take no lock: the span served is bounded by the committed size
        in the metadata snapshot, so bytes of an in-flight append are never
        exposed.

        Raises:
            EntryNotFoundError: Unknown entry id
            InvalidRangeError: Range header without the bytes unit
            RangeNotSatisfiableError: Range cannot be served
        """
        entry = self.entry_repo.get_by_id(entry_id)
        if entry is None:
            raise EntryNotFoundError(f"Entry {entry_id} not found")

        blob_path = self.entry_repo.get_blob_path(entry_id)
        if entry.size > 0 and (blob_size(blob_path) or 0) < entry.size:
            raise AppServerException(f"Content blob of entry {entry_id} is missing or shorter than {entry.size} bytes")

        headers = {
            "Content-Type": entry.content_type,
            "ETag": f'"{entry.digest}"',
            "Accept-Ranges": "bytes",
        }

        if range_header is None:
            headers["Content-Length"] = str(entry.size)
            headers["Content-Disposition"] = "inline"
            logger.debug(f"Serving full content ({entry.size} bytes) [entry_id={entry_id}]")
            return Download(
                entry=entry,
                status_code=200,
                body=iter_blob_range(blob_path, 0, entry.size),
                headers=headers,
            )

        byte_range = parse_range_header(range_header, entry.size, self.max_range_bytes)
        headers["Content-Length"] = str(byte_range.length)
        headers["Content-Range"] = byte_range.content_range(entry.size)
        logger.debug(
            f"Serving range {headers['Content-Range']} [entry_id={entry_id}]"
        )
        return Download(
            entry=entry,
            status_code=206,
            body=iter_blob_range(blob_path, byte_range.start, byte_range.length),
            byte_range=byte_range,
            headers=headers,
        )
