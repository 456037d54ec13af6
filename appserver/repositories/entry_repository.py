"""File entry repository: JSON metadata records sharded by id prefix."""

import json
import os
import re
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from common.constants import SHARD_PREFIX_LENGTH
from common.logging_config import get_logger

logger = get_logger(__name__)

METADATA_SUFFIX = ".json"

_ENTRY_ID_PATTERN = re.compile(r'^[0-9A-Fa-f-]{%d,64}$' % SHARD_PREFIX_LENGTH)


@dataclass
class FileEntry:
    id: str
    name: str
    content_type: str
    size: int
    last_update: str
    digest: str
    finalized: bool = False
    saved_digest_state: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the on-disk record layout."""
        record = {
            "id": self.id,
            "name": self.name,
            "contentType": self.content_type,
            "size": self.size,
            "lastUpdate": self.last_update,
            "sha256": self.digest,
            "finalized": self.finalized,
        }
        if self.saved_digest_state is not None:
            record["sha256context"] = self.saved_digest_state
        return record

    @staticmethod
    def from_dict(record: Dict[str, Any]) -> 'FileEntry':
        """
        Deserialize an on-disk record.

        Raises:
            KeyError: If a required field is missing
            ValueError: If a field has the wrong type
        """
        size = record["size"]
        if not isinstance(size, int) or size < 0:
            raise ValueError(f"Invalid size in entry record: {size!r}")
        return FileEntry(
            id=str(record["id"]),
            name=str(record["name"]),
            content_type=str(record["contentType"]),
            size=size,
            last_update=str(record["lastUpdate"]),
            digest=str(record["sha256"]),
            finalized=bool(record.get("finalized", False)),
            saved_digest_state=record.get("sha256context"),
        )


def is_valid_entry_id(entry_id: str) -> bool:
    """Check that an id is safe to use as a path component."""
    return bool(_ENTRY_ID_PATTERN.match(entry_id))


class EntryRepository:
    """
    Durable id -> metadata store.

    Layout: <data_dir>/<first 3 chars of id>/<id>.json next to the content
    blob <data_dir>/<first 3 chars of id>/<id>.
    """

    def __init__(self, data_dir: Path):
        self.data_dir = Path(data_dir)

    def get_entry_dir(self, entry_id: str) -> Path:
        if not is_valid_entry_id(entry_id):
            raise ValueError(f"Invalid entry id: {entry_id!r}")
        return self.data_dir / entry_id[:SHARD_PREFIX_LENGTH]

    def get_blob_path(self, entry_id: str) -> Path:
        return self.get_entry_dir(entry_id) / entry_id

    def get_metadata_path(self, entry_id: str) -> Path:
        return self.get_entry_dir(entry_id) / f"{entry_id}{METADATA_SUFFIX}"

    def create(self, entry: FileEntry) -> FileEntry:
        """
        Persist a new entry. The caller guarantees the id is unique.
        """
        self.save(entry)
        logger.info(f"Entry created [entry_id={entry.id}] [name={entry.name}]")
        return entry

    def get_by_id(self, entry_id: str) -> Optional[FileEntry]:
        """
        Load an entry.

        Returns:
            FileEntry, or None for unknown ids and unreadable records
        """
        if not is_valid_entry_id(entry_id):
            return None
        return self._read(self.get_metadata_path(entry_id))

    def save(self, entry: FileEntry) -> None:
        """
        Overwrite the full metadata record.

        The record is written to a temporary file in the shard directory and
        renamed over the previous one, so readers see either the old or the
        new record.
        """
        path = self.get_metadata_path(entry.id)
        path.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(prefix=f".{entry.id}.", suffix=".tmp", dir=path.parent)
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(entry.to_dict(), f)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
        except Exception:
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
            logger.error(f"Failed to save entry [entry_id={entry.id}]", exc_info=True)
            raise

    def list_all(self) -> List[FileEntry]:
        """
        Best-effort scan of every shard directory.

        Records that cannot be read (for instance while being replaced) are
        logged and skipped.
        """
        entries: List[FileEntry] = []
        try:
            shard_dirs = sorted(p for p in self.data_dir.iterdir() if p.is_dir())
        except FileNotFoundError:
            return entries
        except OSError as e:
            logger.warning(f"Cannot scan data directory {self.data_dir}: {e}")
            return entries

        for shard_dir in shard_dirs:
            try:
                paths = sorted(shard_dir.glob(f"*{METADATA_SUFFIX}"))
            except OSError as e:
                logger.warning(f"Cannot scan shard directory {shard_dir}: {e}")
                continue
            for path in paths:
                if path.name.startswith("."):
                    continue
                entry = self._read(path)
                if entry is not None:
                    entries.append(entry)

        return entries

    def _read(self, path: Path) -> Optional[FileEntry]:
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return FileEntry.from_dict(json.load(f))
        except FileNotFoundError:
            return None
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning(f"Skipping unreadable entry record {path}: {e}")
            return None
