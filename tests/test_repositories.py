"""Integration tests for database repositories."""

import sqlite3
from datetime import datetime, timedelta, timezone

import pytest

from server.database import get_db_connection
from server.repositories import ChunkRecord, ChunkRepository, SessionRepository, UploadSession
from server.repositories.session_repository import STATUS_COMPLETED, STATUS_FAILED, STATUS_PENDING

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def make_session(upload_id="up-1", declared_size=1_000_000, last_activity=NOW) -> UploadSession:
    return UploadSession(
        upload_id=upload_id,
        original_filename="report.pdf",
        declared_size=declared_size,
        chunk_size=524288,
        total_chunks=2,
        mime_type=None,
        temp_identifier="tmp-1",
        status=STATUS_PENDING,
        created_at=last_activity.isoformat(),
        last_activity_at=last_activity.isoformat(),
    )


def make_chunk(index, upload_id="up-1", size=4) -> ChunkRecord:
    return ChunkRecord(
        upload_id=upload_id,
        chunk_index=index,
        size=size,
        checksum="c" * 64,
        storage_ref=f"temp_chunks/{upload_id}/{index}",
        received_at=NOW.isoformat(),
    )


class TestSessionRepository:
    """Test SessionRepository operations."""

    def test_create_and_get(self, test_db):
        SessionRepository.create_session(make_session())

        session = SessionRepository.get_by_id("up-1")

        assert session is not None
        assert session.original_filename == "report.pdf"
        assert session.status == STATUS_PENDING
        assert session.final_path is None

    def test_get_missing_returns_none(self, test_db):
        assert SessionRepository.get_by_id("nope") is None

    def test_duplicate_id_raises(self, test_db):
        SessionRepository.create_session(make_session())

        with pytest.raises(sqlite3.IntegrityError):
            SessionRepository.create_session(make_session())

    def test_create_with_shared_connection(self, test_db):
        with get_db_connection() as conn:
            SessionRepository.create_session(make_session("up-1"), conn=conn)
            SessionRepository.create_session(make_session("up-2"), conn=conn)
            conn.commit()

        assert SessionRepository.get_by_id("up-2") is not None

    def test_touch_and_update_status(self, test_db):
        SessionRepository.create_session(make_session())
        later = NOW + timedelta(minutes=5)

        SessionRepository.touch("up-1", later)
        SessionRepository.update_status("up-1", STATUS_FAILED)

        session = SessionRepository.get_by_id("up-1")
        assert session.last_activity_at == later.isoformat()
        assert session.status == STATUS_FAILED

    def test_mark_completed_stores_artifact(self, test_db):
        SessionRepository.create_session(make_session())

        SessionRepository.mark_completed(
            "up-1", "temp_attachments/tmp-1/report_abc.pdf", None, 1_000_000, "application/pdf", "d" * 64, NOW
        )

        session = SessionRepository.get_by_id("up-1")
        assert session.status == STATUS_COMPLETED
        assert session.final_path == "temp_attachments/tmp-1/report_abc.pdf"
        assert session.final_size == 1_000_000
        assert session.completed_at == NOW.isoformat()

    def test_find_inactive_since(self, test_db):
        SessionRepository.create_session(make_session("old", last_activity=NOW - timedelta(days=2)))
        SessionRepository.create_session(make_session("fresh", last_activity=NOW))

        stale = SessionRepository.find_inactive_since(NOW - timedelta(days=1))

        assert [s.upload_id for s in stale] == ["old"]

    def test_delete_session_removes_chunks(self, test_db):
        SessionRepository.create_session(make_session())
        ChunkRepository.upsert_chunk(make_chunk(0))

        assert SessionRepository.delete_session("up-1") is True
        assert SessionRepository.get_by_id("up-1") is None
        assert ChunkRepository.get_indices("up-1") == set()
        assert SessionRepository.delete_session("up-1") is False


class TestUploadSession:
    """Test expected chunk sizes."""

    def test_last_chunk_is_remainder(self):
        session = make_session(declared_size=1_000_000)

        assert session.expected_chunk_size(0) == 524288
        assert session.expected_chunk_size(1) == 475712


class TestChunkRepository:
    """Test ChunkRepository operations."""

    def test_upsert_is_idempotent_per_index(self, test_db):
        SessionRepository.create_session(make_session())

        ChunkRepository.upsert_chunk(make_chunk(1, size=4))
        ChunkRepository.upsert_chunk(make_chunk(0, size=4))
        ChunkRepository.upsert_chunk(make_chunk(1, size=8))

        chunks = ChunkRepository.get_chunks("up-1")
        assert [c.chunk_index for c in chunks] == [0, 1]
        assert chunks[1].size == 8
        assert ChunkRepository.get_indices("up-1") == {0, 1}

    def test_repeated_writes_without_shared_connection(self, test_db):
        for n in range(5):
            SessionRepository.create_session(make_session(f"up-{n}"))
            for index in range(3):
                ChunkRepository.upsert_chunk(make_chunk(index, upload_id=f"up-{n}"))

        assert all(ChunkRepository.get_indices(f"up-{n}") == {0, 1, 2} for n in range(5))

    def test_chunk_requires_session(self, test_db):
        with pytest.raises(sqlite3.IntegrityError):
            ChunkRepository.upsert_chunk(make_chunk(0, upload_id="ghost"))

    def test_delete_chunks(self, test_db):
        SessionRepository.create_session(make_session())
        ChunkRepository.upsert_chunk(make_chunk(0))
        ChunkRepository.upsert_chunk(make_chunk(1))

        assert ChunkRepository.delete_chunks("up-1") == 2
        assert ChunkRepository.get_chunks("up-1") == []
