"""Tests for the upload session manager."""

import asyncio
from datetime import timedelta

import pytest

from common.constants import CHUNK_SIZE_BYTES, MAX_UPLOAD_BYTES
from common.exceptions import (
    AlreadyCompletedError,
    AssemblyError,
    IncompleteUploadError,
    UnknownSessionError,
    ValidationError,
)
from server.repositories.session_repository import SessionRepository, STATUS_FAILED
from server.services.upload_service import UploadSessionManager
from server.utils import utc_now


def split(data: bytes, chunk_size: int = CHUNK_SIZE_BYTES):
    return [data[i:i + chunk_size] for i in range(0, len(data), chunk_size)]


async def upload_all(manager, upload_id, data):
    for index, chunk in enumerate(split(data)):
        await manager.put_chunk(upload_id, index, chunk)


class TestInit:
    """Session initialization and validation."""

    @pytest.mark.parametrize("size,expected_chunks", [
        (1, 1),
        (CHUNK_SIZE_BYTES, 1),
        (CHUNK_SIZE_BYTES + 1, 2),
        (1_000_000, 2),
        (MAX_UPLOAD_BYTES, 80),
    ])
    def test_total_chunks(self, manager, size, expected_chunks):
        descriptor = manager.init("file.bin", size, None, "tmp-1")

        assert descriptor.total_chunks == expected_chunks
        assert descriptor.chunk_size == CHUNK_SIZE_BYTES
        assert descriptor.max_bytes == MAX_UPLOAD_BYTES

    def test_new_session_has_no_chunks(self, manager):
        descriptor = manager.init("file.bin", 10, "application/octet-stream", "tmp-1")

        status = manager.status(descriptor.upload_id)

        assert status.uploaded_chunks == []
        assert status.total_chunks == 1

    @pytest.mark.parametrize("filename,size,temp_identifier", [
        (None, 10, "tmp-1"),
        ("   ", 10, "tmp-1"),
        ("file.bin", None, "tmp-1"),
        ("file.bin", 0, "tmp-1"),
        ("file.bin", MAX_UPLOAD_BYTES + 1, "tmp-1"),
        ("file.bin", 10, None),
        ("file.bin", 10, "../escape"),
        ("file.bin", 10, "has space"),
        ("file.bin", 10, "tmp\n"),
    ])
    def test_rejects_invalid_requests(self, manager, test_db, filename, size, temp_identifier):
        with pytest.raises(ValidationError):
            manager.init(filename, size, None, temp_identifier)

        assert SessionRepository.find_inactive_since(utc_now() + timedelta(days=1)) == []


class TestStatus:
    """Status queries."""

    @pytest.mark.parametrize("upload_id", ["does-not-exist", "../../etc/passwd", "", "up-1\n"])
    def test_unknown_session(self, manager, upload_id):
        with pytest.raises(UnknownSessionError):
            manager.status(upload_id)

    @pytest.mark.asyncio
    async def test_reports_ascending_indices(self, manager, payload):
        data = payload(CHUNK_SIZE_BYTES * 3)
        descriptor = manager.init("file.bin", len(data), None, "tmp-1")
        chunks = split(data)

        await manager.put_chunk(descriptor.upload_id, 2, chunks[2])
        await manager.put_chunk(descriptor.upload_id, 0, chunks[0])

        assert manager.status(descriptor.upload_id).uploaded_chunks == [0, 2]


class TestComplete:
    """Completion and assembly."""

    @pytest.mark.asyncio
    async def test_incomplete_upload_lists_missing_chunks(self, manager, payload):
        data = payload(1_000_000)
        descriptor = manager.init("file.bin", len(data), None, "tmp-1")
        await manager.put_chunk(descriptor.upload_id, 0, split(data)[0])

        with pytest.raises(IncompleteUploadError) as exc_info:
            await manager.complete(descriptor.upload_id)

        assert exc_info.value.missing_chunks == [1]

    @pytest.mark.asyncio
    async def test_complete_assembles_identical_bytes(self, manager, storage_root, payload):
        data = payload(1_000_000)
        descriptor = manager.init("Holiday Photo.png", len(data), None, "tmp-1")
        await upload_all(manager, descriptor.upload_id, data)

        artifact = await manager.complete(descriptor.upload_id)

        assert (storage_root / artifact.path).read_bytes() == data
        assert artifact.size == len(data)
        assert artifact.original_filename == "Holiday Photo.png"
        assert artifact.mime_type == "image/png"
        stored_name = artifact.path.rsplit("/", 1)[-1]
        assert artifact.url == f"/attachments/temp/tmp-1/{stored_name}"
        assert not (storage_root / "temp_chunks" / descriptor.upload_id).exists()

    @pytest.mark.asyncio
    async def test_completed_session_reports_every_chunk(self, manager, payload):
        data = payload(1_000_000)
        descriptor = manager.init("file.bin", len(data), None, "tmp-1")
        await upload_all(manager, descriptor.upload_id, data)
        await manager.complete(descriptor.upload_id)

        status = manager.status(descriptor.upload_id)

        assert status.uploaded_chunks == [0, 1]
        assert manager.chunk_store.get_uploaded_indices(descriptor.upload_id) == set()

    @pytest.mark.asyncio
    async def test_concurrent_chunks_for_one_session_are_all_kept(self, manager, storage_root, payload):
        data = payload(CHUNK_SIZE_BYTES * 5 + 17)
        descriptor = manager.init("file.bin", len(data), None, "tmp-1")
        chunks = split(data)

        await asyncio.gather(*(
            manager.put_chunk(descriptor.upload_id, index, chunk)
            for index, chunk in reversed(list(enumerate(chunks)))
        ))

        assert manager.status(descriptor.upload_id).uploaded_chunks == list(range(descriptor.total_chunks))
        artifact = await manager.complete(descriptor.upload_id)
        assert (storage_root / artifact.path).read_bytes() == data

    @pytest.mark.asyncio
    async def test_idempotent_overwrite_before_complete(self, manager, storage_root, payload):
        data = payload(CHUNK_SIZE_BYTES + 10)
        descriptor = manager.init("file.bin", len(data), None, "tmp-1")
        chunks = split(data)

        await manager.put_chunk(descriptor.upload_id, 0, chunks[0])
        await manager.put_chunk(descriptor.upload_id, 0, chunks[0])
        await manager.put_chunk(descriptor.upload_id, 1, chunks[1])

        assert manager.status(descriptor.upload_id).uploaded_chunks == [0, 1]
        artifact = await manager.complete(descriptor.upload_id)
        assert (storage_root / artifact.path).read_bytes() == data

    @pytest.mark.asyncio
    async def test_second_complete_returns_cached_artifact(self, manager, storage_root, payload):
        data = payload(100)
        descriptor = manager.init("file.bin", len(data), None, "tmp-1")
        await upload_all(manager, descriptor.upload_id, data)

        first = await manager.complete(descriptor.upload_id)
        second = await manager.complete(descriptor.upload_id)

        assert first == second
        files = [p for p in (storage_root / "temp_attachments" / "tmp-1").iterdir() if p.suffix != ".meta"]
        assert len(files) == 1

    @pytest.mark.asyncio
    async def test_concurrent_completion_assembles_once(self, manager, storage_root, payload):
        data = payload(CHUNK_SIZE_BYTES * 2 + 5)
        descriptor = manager.init("file.bin", len(data), None, "tmp-1")
        await upload_all(manager, descriptor.upload_id, data)

        results = await asyncio.gather(
            manager.complete(descriptor.upload_id),
            manager.complete(descriptor.upload_id),
            manager.complete(descriptor.upload_id),
        )

        assert len({r.path for r in results}) == 1
        files = [p for p in (storage_root / "temp_attachments" / "tmp-1").iterdir() if p.suffix != ".meta"]
        assert len(files) == 1

    @pytest.mark.asyncio
    async def test_chunk_after_completion_is_rejected(self, manager, payload):
        data = payload(100)
        descriptor = manager.init("file.bin", len(data), None, "tmp-1")
        await upload_all(manager, descriptor.upload_id, data)
        await manager.complete(descriptor.upload_id)

        with pytest.raises(AlreadyCompletedError):
            await manager.put_chunk(descriptor.upload_id, 0, data)

    @pytest.mark.asyncio
    async def test_assembly_failure_marks_session_failed(self, manager, payload):
        data = payload(CHUNK_SIZE_BYTES + 1)
        descriptor = manager.init("file.bin", len(data), None, "tmp-1")
        await upload_all(manager, descriptor.upload_id, data)
        manager.chunk_store.get_chunk_path(descriptor.upload_id, 1).unlink()

        with pytest.raises(AssemblyError):
            await manager.complete(descriptor.upload_id)

        assert SessionRepository.get_by_id(descriptor.upload_id).status == STATUS_FAILED
        with pytest.raises(AssemblyError):
            await manager.complete(descriptor.upload_id)
        with pytest.raises(AssemblyError):
            await manager.put_chunk(descriptor.upload_id, 1, split(data)[1])

    @pytest.mark.asyncio
    async def test_public_url_prefix(self, test_db, storage_root, payload):
        manager = UploadSessionManager(
            storage_root=storage_root,
            session_ttl=60,
            public_url_prefix="https://cdn.example.com/uploads/",
        )
        descriptor = manager.init("a.txt", 3, "text/plain", "tmp-1")
        await manager.put_chunk(descriptor.upload_id, 0, payload(3))

        artifact = await manager.complete(descriptor.upload_id)

        stored_name = artifact.path.rsplit("/", 1)[-1]
        assert artifact.url == f"https://cdn.example.com/uploads/attachments/temp/tmp-1/{stored_name}"
        assert artifact.mime_type == "text/plain"


class TestExpiry:
    """Expiry of idle sessions."""

    @pytest.mark.asyncio
    async def test_expires_idle_session(self, manager, storage_root, payload):
        data = payload(CHUNK_SIZE_BYTES + 1)
        descriptor = manager.init("file.bin", len(data), None, "tmp-1")
        await manager.put_chunk(descriptor.upload_id, 0, split(data)[0])

        expired = await manager.expire_stale(now=utc_now() + timedelta(seconds=manager.session_ttl + 1))

        assert expired == [descriptor.upload_id]
        assert not (storage_root / "temp_chunks" / descriptor.upload_id).exists()
        with pytest.raises(UnknownSessionError):
            manager.status(descriptor.upload_id)
        with pytest.raises(UnknownSessionError):
            await manager.put_chunk(descriptor.upload_id, 1, split(data)[1])

    @pytest.mark.asyncio
    async def test_keeps_active_session(self, manager):
        descriptor = manager.init("file.bin", 10, None, "tmp-1")

        expired = await manager.expire_stale(now=utc_now() + timedelta(seconds=manager.session_ttl - 60))

        assert expired == []
        assert manager.status(descriptor.upload_id).total_chunks == 1

    @pytest.mark.asyncio
    async def test_skips_session_whose_lock_is_held(self, manager):
        descriptor = manager.init("file.bin", 10, None, "tmp-1")
        later = utc_now() + timedelta(seconds=manager.session_ttl + 1)

        async with manager.locks.get(descriptor.upload_id):
            expired = await manager.expire_stale(now=later)

        assert expired == []
        assert manager.status(descriptor.upload_id).upload_id == descriptor.upload_id

        assert await manager.expire_stale(now=later) == [descriptor.upload_id]

    @pytest.mark.asyncio
    async def test_completed_session_keeps_its_artifact(self, manager, storage_root, payload):
        descriptor = manager.init("file.bin", 5, None, "tmp-1")
        await manager.put_chunk(descriptor.upload_id, 0, payload(5))
        artifact = await manager.complete(descriptor.upload_id)

        expired = await manager.expire_stale(now=utc_now() + timedelta(seconds=manager.session_ttl + 1))

        assert expired == [descriptor.upload_id]
        assert (storage_root / artifact.path).exists()
        assert len(manager.locks) == 0
