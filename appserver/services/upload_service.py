"""Upload service: chunked append and finalization of file entries."""

import asyncio
from dataclasses import replace
from pathlib import Path
from typing import AsyncIterator, BinaryIO, Optional

from common.logging_config import get_logger
from appserver import service_locator
from appserver.blob_storage import open_blob_for_append, sync_blob
from appserver.classifier import ContentClassifier
from appserver.digest import Sha256, Sha256State
from appserver.exceptions import (
    AppServerException,
    EntryFinalizedError,
    EntryNotFoundError,
    IncompleteBodyError,
    MissingBodyError,
    OffsetMismatchError,
)
from appserver.locks import KeyedLockRegistry
from appserver.repositories.entry_repository import EntryRepository, FileEntry
from appserver.utils import get_current_timestamp

logger = get_logger(__name__)


class UploadService:
    def __init__(
        self,
        entry_repo: Optional[EntryRepository] = None,
        lock_registry: Optional[KeyedLockRegistry] = None,
        classifier: Optional[ContentClassifier] = None,
    ):
        self.entry_repo = entry_repo or service_locator.get_entry_repository()
        self.lock_registry = lock_registry or service_locator.get_lock_registry()
        self.classifier = classifier or service_locator.get_classifier()

    async def append_chunk(
        self,
        entry_id: str,
        offset: int,
        body: Optional[AsyncIterator[bytes]],
        finalize: bool = False,
        declared_length: Optional[int] = None,
    ) -> FileEntry:
        """
        Append one contiguous slice of bytes to an entry.

        Appends to the same entry are serialized; the metadata record is
        rewritten only after the whole body has been stored, so a failed or
        interrupted call leaves the entry exactly as it was and can be retried
        at the same offset.

        Args:
            entry_id: Id of the entry
            offset: Offset claimed by the caller, must equal the committed size
            body: Async iterator over the request body, None when absent
            finalize: Mark the entry complete after this slice
            declared_length: Content-Length of the request, if known

        Returns:
            The updated entry

        Raises:
            EntryNotFoundError: Unknown entry id
            EntryFinalizedError: Entry no longer accepts data
            OffsetMismatchError: Offset differs from the committed size
            MissingBodyError: Non-empty request without a body
            IncompleteBodyError: Body shorter or longer than declared
        """
        async with self.lock_registry.hold(entry_id):
            entry = self.entry_repo.get_by_id(entry_id)
            if entry is None:
                raise EntryNotFoundError(f"Entry {entry_id} not found")
            if entry.finalized:
                raise EntryFinalizedError(f"Entry {entry_id} is finalized; no more data accepted")
            if offset != entry.size:
                raise OffsetMismatchError(entry_id, offset, entry.size)
            if body is None and declared_length:
                raise MissingBodyError(f"Request declares {declared_length} bytes but has no body")

            engine = self._restore_engine(entry)
            blob_path = self.entry_repo.get_blob_path(entry_id)

            f = await _run_blocking(open_blob_for_append, blob_path, entry.size)
            try:
                written = await self._copy_body(body, f, engine) if body is not None else 0
                if declared_length and written == 0:
                    raise MissingBodyError(f"Request declares {declared_length} bytes but the body is empty")
                if declared_length is not None and written != declared_length:
                    raise IncompleteBodyError(
                        f"Received {written} bytes but Content-Length is {declared_length}"
                    )
                await _run_blocking(sync_blob, f)
            except BaseException as e:
                logger.warning(
                    f"Append aborted, entry left at size {entry.size} [entry_id={entry_id}]: {e!r}"
                )
                raise
            finally:
                f.close()

            updated = replace(entry, size=entry.size + written, last_update=get_current_timestamp())

            if finalize:
                updated.digest = engine.finalize_hexdigest()
                updated.saved_digest_state = None
                updated.finalized = True
                content_type = await self._classify(blob_path, entry_id)
                if content_type is not None:
                    updated.content_type = content_type
            else:
                updated.digest = engine.preview_hexdigest()
                updated.saved_digest_state = engine.export_state().to_dict()

            await _run_blocking(self.entry_repo.save, updated)

        logger.info(
            f"Appended {written} bytes at offset {offset} [entry_id={entry_id}] "
            f"size={updated.size} finalized={updated.finalized}"
        )
        return updated

    def _restore_engine(self, entry: FileEntry) -> Sha256:
        if entry.saved_digest_state is None:
            if entry.size == 0:
                return Sha256()
            raise AppServerException(f"Entry {entry.id} has data but no saved digest state")
        try:
            state = Sha256State.from_dict(entry.saved_digest_state)
        except ValueError as e:
            raise AppServerException(f"Entry {entry.id} has a corrupt digest state: {e}") from e
        if state.length != entry.size:
            raise AppServerException(
                f"Entry {entry.id} digest state covers {state.length} bytes but size is {entry.size}"
            )
        return Sha256.import_state(state)

    async def _copy_body(self, body: AsyncIterator[bytes], f: BinaryIO, engine: Sha256) -> int:
        """Write and hash each piece in a worker thread; the event loop only moves bytes."""
        written = 0
        async for piece in body:
            if not piece:
                continue
            await _run_blocking(_store_piece, f, engine, piece)
            written += len(piece)
        return written

    async def _classify(self, blob_path: Path, entry_id: str) -> Optional[str]:
        try:
            content_type = await self.classifier.classify(blob_path)
        except Exception as e:
            logger.warning(f"Content classifier failed, keeping content type [entry_id={entry_id}]: {e}")
            return None
        if content_type:
            logger.info(f"Classified content as {content_type} [entry_id={entry_id}]")
        return content_type or None


def _store_piece(f: BinaryIO, engine: Sha256, piece: bytes) -> None:
    f.write(piece)
    engine.update(piece)


async def _run_blocking(func, *args):
    """
    Run blocking file or hashing work in the default executor.

    If the awaiting request is cancelled, the call is still waited for before
    the cancellation propagates, so the blob handle is never closed (and the
    entry lock never released) while a worker thread is writing to it.
    """
    loop = asyncio.get_event_loop()
    future = loop.run_in_executor(None, func, *args)
    try:
        return await asyncio.shield(future)
    except asyncio.CancelledError:
        await asyncio.wait([future])
        raise
