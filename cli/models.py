"""Command request data types for CLI."""

from dataclasses import dataclass
from typing import Literal, Optional


@dataclass(frozen=True)
class UploadCommand:
    """Upload a local file as a new entry."""

    path: str
    name: Optional[str] = None
    content_type: Optional[str] = None
    command: Literal["upload"] = "upload"


@dataclass(frozen=True)
class ResumeCommand:
    """Resume uploading a local file into an existing entry."""

    entry_id: str
    path: str
    command: Literal["resume"] = "resume"


@dataclass(frozen=True)
class ListCommand:
    """List all entries."""

    command: Literal["list"] = "list"


@dataclass(frozen=True)
class InfoCommand:
    """Show metadata of one entry."""

    entry_id: str
    command: Literal["info"] = "info"


@dataclass(frozen=True)
class DownloadCommand:
    """Download an entry, optionally a byte range of it."""

    entry_id: str
    output_path: str
    byte_range: Optional[tuple[Optional[int], Optional[int]]] = None
    command: Literal["download"] = "download"


@dataclass(frozen=True)
class ChunkSizeCommand:
    """Show or change the upload chunk size."""

    chunk_size: Optional[int] = None
    command: Literal["chunk-size"] = "chunk-size"


CommandRequest = (
    UploadCommand
    | ResumeCommand
    | ListCommand
    | InfoCommand
    | DownloadCommand
    | ChunkSizeCommand
)
