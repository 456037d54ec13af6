"""Tests for the chunk append pipeline."""

import asyncio
import hashlib
from pathlib import Path
from typing import Optional

import pytest

from appserver.classifier import ContentClassifier
from appserver.exceptions import (
    EntryFinalizedError,
    EntryNotFoundError,
    IncompleteBodyError,
    MissingBodyError,
    OffsetMismatchError,
)
from appserver.services.upload_service import UploadService


def sha(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


class FixedClassifier(ContentClassifier):
    def __init__(self, media_type):
        self.media_type = media_type
        self.calls = []

    async def classify(self, blob_path: Path) -> Optional[str]:
        self.calls.append(blob_path)
        return self.media_type


class BrokenClassifier(ContentClassifier):
    async def classify(self, blob_path: Path) -> Optional[str]:
        raise RuntimeError("classifier crashed")


@pytest.mark.asyncio
async def test_hello_world_in_two_chunks(entry_service, upload_service, entry_repo, body_of):
    entry = entry_service.create_entry("greeting.txt", "text/plain")

    first = await upload_service.append_chunk(entry.id, 0, body_of(b"hello "), declared_length=6)
    assert first.size == 6
    assert first.digest == sha(b"hello ")
    assert first.finalized is False

    final = await upload_service.append_chunk(entry.id, 6, body_of(b"world"), finalize=True, declared_length=5)
    assert final.size == 11
    assert final.digest == sha(b"hello world")
    assert final.finalized is True
    assert final.saved_digest_state is None

    assert entry_repo.get_blob_path(entry.id).read_bytes() == b"hello world"
    assert entry_repo.get_by_id(entry.id) == final


@pytest.mark.asyncio
async def test_digest_is_independent_of_chunking(entry_service, upload_service, body_of):
    data = bytes(range(256)) * 5
    expected = sha(data)

    for chunk in (1, 63, 64, 100, len(data)):
        entry = entry_service.create_entry("blob.bin")
        offset = 0
        while offset < len(data):
            piece = data[offset:offset + chunk]
            updated = await upload_service.append_chunk(
                entry.id, offset, body_of(piece), finalize=offset + len(piece) == len(data)
            )
            offset = updated.size
        assert updated.digest == expected


@pytest.mark.asyncio
async def test_offset_mismatch_leaves_entry_unchanged(entry_service, upload_service, entry_repo, body_of):
    entry = entry_service.create_entry("a.bin")
    await upload_service.append_chunk(entry.id, 0, body_of(b"abc"))
    before = entry_repo.get_by_id(entry.id)

    with pytest.raises(OffsetMismatchError) as exc_info:
        await upload_service.append_chunk(entry.id, 1, body_of(b"zzz"))

    assert exc_info.value.size == 3
    assert entry_repo.get_by_id(entry.id) == before
    assert entry_repo.get_blob_path(entry.id).read_bytes() == b"abc"


@pytest.mark.asyncio
async def test_finalized_entry_rejects_appends(entry_service, upload_service, entry_repo, body_of):
    entry = entry_service.create_entry("a.bin")
    done = await upload_service.append_chunk(entry.id, 0, body_of(b"abc"), finalize=True)

    with pytest.raises(EntryFinalizedError):
        await upload_service.append_chunk(entry.id, 3, body_of(b"more"))

    assert entry_repo.get_by_id(entry.id) == done


@pytest.mark.asyncio
async def test_empty_finalize(entry_service, upload_service, body_of):
    entry = entry_service.create_entry("empty.bin")

    final = await upload_service.append_chunk(entry.id, 0, body_of(), finalize=True, declared_length=0)

    assert final.size == 0
    assert final.finalized is True
    assert final.digest == sha(b"")


@pytest.mark.asyncio
async def test_absent_body_with_zero_length_finalizes(entry_service, upload_service):
    entry = entry_service.create_entry("empty.bin")

    final = await upload_service.append_chunk(entry.id, 0, None, finalize=True)

    assert final.finalized is True
    assert final.size == 0


@pytest.mark.asyncio
async def test_unknown_entry(upload_service, body_of):
    with pytest.raises(EntryNotFoundError):
        await upload_service.append_chunk("abcdef00-0000-4000-8000-000000000000", 0, body_of(b"x"))


@pytest.mark.asyncio
async def test_missing_body_with_declared_length(entry_service, upload_service):
    entry = entry_service.create_entry("a.bin")

    with pytest.raises(MissingBodyError):
        await upload_service.append_chunk(entry.id, 0, None, declared_length=10)


@pytest.mark.asyncio
async def test_short_body_is_rejected_and_retry_succeeds(entry_service, upload_service, entry_repo, body_of):
    entry = entry_service.create_entry("a.bin")
    await upload_service.append_chunk(entry.id, 0, body_of(b"head-"))
    before = entry_repo.get_by_id(entry.id)

    with pytest.raises(IncompleteBodyError):
        await upload_service.append_chunk(entry.id, 5, body_of(b"ta"), declared_length=4)
    assert entry_repo.get_by_id(entry.id) == before

    final = await upload_service.append_chunk(entry.id, 5, body_of(b"tail"), finalize=True, declared_length=4)
    assert entry_repo.get_blob_path(entry.id).read_bytes() == b"head-tail"
    assert final.digest == sha(b"head-tail")


@pytest.mark.asyncio
async def test_interrupted_stream_leaves_metadata_untouched(entry_service, upload_service, entry_repo, body_of):
    entry = entry_service.create_entry("a.bin")
    await upload_service.append_chunk(entry.id, 0, body_of(b"abc"))
    before = entry_repo.get_by_id(entry.id)

    async def failing_body():
        yield b"partial"
        raise ConnectionResetError("client went away")

    with pytest.raises(ConnectionResetError):
        await upload_service.append_chunk(entry.id, 3, failing_body())

    assert entry_repo.get_by_id(entry.id) == before

    final = await upload_service.append_chunk(entry.id, 3, body_of(b"def"), finalize=True)
    assert entry_repo.get_blob_path(entry.id).read_bytes() == b"abcdef"
    assert final.digest == sha(b"abcdef")


@pytest.mark.asyncio
async def test_classifier_sets_content_type_on_finalize(entry_service, entry_repo, lock_registry, body_of):
    classifier = FixedClassifier("image/png")
    service = UploadService(entry_repo=entry_repo, lock_registry=lock_registry, classifier=classifier)
    entry = entry_service.create_entry("picture")

    partial = await service.append_chunk(entry.id, 0, body_of(b"\x89PNG"))
    assert partial.content_type == "application/octet-stream"
    assert classifier.calls == []

    final = await service.append_chunk(entry.id, 4, body_of(b"rest"), finalize=True)
    assert final.content_type == "image/png"
    assert classifier.calls == [entry_repo.get_blob_path(entry.id)]


@pytest.mark.asyncio
async def test_classifier_failure_keeps_declared_type(entry_service, entry_repo, lock_registry, body_of):
    service = UploadService(entry_repo=entry_repo, lock_registry=lock_registry, classifier=BrokenClassifier())
    entry = entry_service.create_entry("notes", "text/plain")

    final = await service.append_chunk(entry.id, 0, body_of(b"text"), finalize=True)

    assert final.finalized is True
    assert final.content_type == "text/plain"


@pytest.mark.asyncio
async def test_distinct_entries_progress_independently(entry_service, upload_service, body_of):
    entries = [entry_service.create_entry(f"file-{i}") for i in range(5)]

    async def upload(entry, payload):
        offset = 0
        for i in range(0, len(payload), 3):
            updated = await upload_service.append_chunk(entry.id, offset, body_of(payload[i:i + 3]))
            offset = updated.size
            await asyncio.sleep(0)
        return await upload_service.append_chunk(entry.id, offset, body_of(), finalize=True)

    payloads = [f"payload number {i}".encode() * (i + 1) for i in range(5)]
    results = await asyncio.gather(*(upload(e, p) for e, p in zip(entries, payloads)))

    for result, payload in zip(results, payloads):
        assert result.size == len(payload)
        assert result.digest == sha(payload)


@pytest.mark.asyncio
async def test_same_entry_appends_are_serialized(entry_service, upload_service, entry_repo, lock_registry):
    """Two appends racing for the same offset: one wins, the other sees the new size."""
    entry = entry_service.create_entry("race.bin")
    release = asyncio.Event()

    async def slow_body(data):
        await release.wait()
        yield data

    first = asyncio.create_task(upload_service.append_chunk(entry.id, 0, slow_body(b"AAAA")))
    await asyncio.sleep(0)
    second = asyncio.create_task(upload_service.append_chunk(entry.id, 0, slow_body(b"BBBB")))
    await asyncio.sleep(0)
    release.set()

    results = await asyncio.gather(first, second, return_exceptions=True)

    succeeded = [r for r in results if not isinstance(r, Exception)]
    failed = [r for r in results if isinstance(r, Exception)]
    assert len(succeeded) == 1
    assert len(failed) == 1
    assert isinstance(failed[0], OffsetMismatchError)

    stored = entry_repo.get_blob_path(entry.id).read_bytes()
    assert stored in (b"AAAA", b"BBBB")
    assert entry_repo.get_by_id(entry.id).digest == sha(stored)
    assert lock_registry.active_keys() == 0


@pytest.mark.asyncio
async def test_declared_length_with_empty_stream_is_missing_body(entry_service, upload_service, entry_repo, body_of):
    entry = entry_service.create_entry("a.bin")
    before = entry_repo.get_by_id(entry.id)

    with pytest.raises(MissingBodyError):
        await upload_service.append_chunk(entry.id, 0, body_of(), declared_length=10)

    assert entry_repo.get_by_id(entry.id) == before


@pytest.mark.asyncio
async def test_event_loop_keeps_running_during_large_append(entry_service, upload_service, body_of):
    entry = entry_service.create_entry("large.bin")
    piece = bytes(range(256)) * 64
    loop = asyncio.get_running_loop()
    gaps = []
    done = asyncio.Event()

    async def ticker():
        while not done.is_set():
            started = loop.time()
            await asyncio.sleep(0.001)
            gaps.append(loop.time() - started)

    tick_task = asyncio.create_task(ticker())
    await asyncio.sleep(0)
    final = await upload_service.append_chunk(entry.id, 0, body_of(*[piece] * 16), finalize=True)
    done.set()
    await tick_task

    assert final.digest == sha(piece * 16)
    assert len(gaps) > 1
    assert max(gaps) < 0.25


@pytest.mark.asyncio
async def test_small_append_is_not_held_up_by_large_append_to_other_entry(
    entry_service, upload_service, entry_repo, body_of
):
    big = entry_service.create_entry("big.bin")
    small = entry_service.create_entry("small.bin")
    piece = bytes(range(256)) * 64

    big_task = asyncio.create_task(
        upload_service.append_chunk(big.id, 0, body_of(*[piece] * 64), finalize=True)
    )
    await asyncio.sleep(0.01)

    small_result = await upload_service.append_chunk(small.id, 0, body_of(b"tiny"), finalize=True)

    assert small_result.digest == sha(b"tiny")
    assert not big_task.done()

    big_result = await big_task
    assert big_result.size == len(piece) * 64
    assert entry_repo.get_blob_path(small.id).read_bytes() == b"tiny"
