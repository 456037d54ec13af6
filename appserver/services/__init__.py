"""Service layer for business logic."""

from appserver.services.entry_service import EntryService
from appserver.services.upload_service import UploadService
from appserver.services.download_service import DownloadService

__all__ = [
    "EntryService",
    "UploadService",
    "DownloadService",
]
