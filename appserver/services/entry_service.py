"""Entry service: creation, lookup and listing of file entries."""

from typing import List, Optional

from common.constants import API_PREFIX, DEFAULT_CONTENT_TYPE
from common.logging_config import get_logger
from appserver import config
from appserver import service_locator
from appserver.digest import EMPTY_SHA256_HEX, Sha256
from appserver.exceptions import EntryNotFoundError
from appserver.repositories.entry_repository import EntryRepository, FileEntry
from appserver.schemas.entries import EntryResponse
from appserver.utils import generate_uuid, get_current_timestamp

logger = get_logger(__name__)


class EntryService:
    def __init__(self, entry_repo: Optional[EntryRepository] = None, base_uri: Optional[str] = None):
        self.entry_repo = entry_repo or service_locator.get_entry_repository()
        self.base_uri = (base_uri if base_uri is not None else config.APPSERVER_BASEURI).rstrip("/")

    def create_entry(self, name: str, content_type: Optional[str] = None) -> FileEntry:
        entry = FileEntry(
            id=generate_uuid(),
            name=name,
            content_type=content_type or DEFAULT_CONTENT_TYPE,
            size=0,
            last_update=get_current_timestamp(),
            digest=EMPTY_SHA256_HEX,
            finalized=False,
            saved_digest_state=Sha256().export_state().to_dict(),
        )
        return self.entry_repo.create(entry)

    def get_entry(self, entry_id: str) -> FileEntry:
        entry = self.entry_repo.get_by_id(entry_id)
        if entry is None:
            raise EntryNotFoundError(f"Entry {entry_id} not found")
        return entry

    def list_entries(self) -> List[FileEntry]:
        entries = self.entry_repo.list_all()
        logger.debug(f"Listed {len(entries)} entries")
        return entries

    def entry_uri(self, entry_id: str) -> str:
        return f"{self.base_uri}{API_PREFIX}/{entry_id}"

    def to_projection(self, entry: FileEntry) -> EntryResponse:
        return EntryResponse(
            id=entry.id,
            name=entry.name,
            content_type=entry.content_type,
            size=entry.size,
            last_update=entry.last_update,
            sha256=entry.digest,
            finalized=entry.finalized,
            uri=self.entry_uri(entry.id),
        )
