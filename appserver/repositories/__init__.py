"""Repository layer for data access."""

from appserver.repositories.entry_repository import EntryRepository, FileEntry

__all__ = [
    "EntryRepository",
    "FileEntry",
]
