"""Durable chunk blobs keyed by (upload id, index), with idempotent overwrite."""

import os
import shutil
from pathlib import Path
from typing import Iterator, Optional, Set

from common.constants import CHUNKS_DIRNAME
from common.exceptions import ChunkMismatchError, UnknownSessionError
from common.logging_config import get_logger
from common.checksum import checksum_matches, compute_checksum
from server.repositories.chunk_repository import ChunkRecord, ChunkRepository
from server.repositories.session_repository import SessionRepository, UploadSession
from server.utils import utc_now

logger = get_logger(__name__)


class ChunkStore:
    """
    Filesystem-backed chunk storage.

    Blobs live at <root>/temp_chunks/<upload_id>/chunk_<index>.part and each
    stored blob has exactly one ChunkRecord in the database. The record is
    written only after the blob is durably in place, so the set of records is
    always a subset of the blobs on disk.
    """

    def __init__(
        self,
        storage_root: Path,
        session_repo: Optional[SessionRepository] = None,
        chunk_repo: Optional[ChunkRepository] = None,
    ):
        self.chunks_dir = Path(storage_root) / CHUNKS_DIRNAME
        self.session_repo = session_repo or SessionRepository()
        self.chunk_repo = chunk_repo or ChunkRepository()

    def session_dir(self, upload_id: str) -> Path:
        return self.chunks_dir / upload_id

    def get_chunk_path(self, upload_id: str, index: int) -> Path:
        """
        Get file path for a chunk.

        Args:
            upload_id: Session the chunk belongs to
            index: 0-based chunk index

        Returns:
            Path object for chunk file
        """
        return self.session_dir(upload_id) / f"chunk_{index}.part"

    def ensure_session_dir(self, upload_id: str) -> Path:
        path = self.session_dir(upload_id)
        path.mkdir(parents=True, exist_ok=True)
        return path

    def put_chunk(
        self,
        upload_id: str,
        index: int,
        data: bytes,
        checksum: Optional[str] = None,
        session: Optional[UploadSession] = None,
    ) -> ChunkRecord:
        """
        Validate and store one chunk, overwriting any previous blob for the index.

        Args:
            upload_id: Session the chunk belongs to
            index: 0-based chunk index
            data: Raw chunk bytes
            checksum: Optional SHA-256 hex digest supplied by the client
            session: Already-loaded session metadata (looked up if omitted)

        Returns:
            The stored ChunkRecord

        Raises:
            UnknownSessionError: If the session does not exist
            ChunkMismatchError: If index, length or checksum do not match
            OSError: If the blob cannot be written
        """
        if session is None:
            session = self.session_repo.get_by_id(upload_id)
        if session is None:
            raise UnknownSessionError(f"Upload {upload_id} not found")

        if index < 0 or index >= session.total_chunks:
            raise ChunkMismatchError(
                f"Invalid chunk index {index}; must be between 0 and {session.total_chunks - 1}"
            )

        expected_size = session.expected_chunk_size(index)
        if len(data) != expected_size:
            raise ChunkMismatchError(
                f"Chunk {index} has {len(data)} bytes; expected {expected_size}"
            )

        if not checksum_matches(data, checksum):
            raise ChunkMismatchError(f"Checksum mismatch for chunk {index}")

        self.ensure_session_dir(upload_id)
        filepath = self.get_chunk_path(upload_id, index)
        tmp_path = filepath.with_name(f"{filepath.name}.{os.getpid()}.tmp")
        tmp_path.write_bytes(data)
        os.replace(tmp_path, filepath)

        record = ChunkRecord(
            upload_id=upload_id,
            chunk_index=index,
            size=len(data),
            checksum=compute_checksum(data),
            storage_ref=str(filepath),
            received_at=utc_now().isoformat(),
        )
        self.chunk_repo.upsert_chunk(record)

        logger.debug(f"Stored chunk {index}/{session.total_chunks - 1} [upload_id={upload_id}] size={len(data)}")
        return record

    def get_uploaded_indices(self, upload_id: str) -> Set[int]:
        """
        Indices with a stored chunk for the session.
        """
        return self.chunk_repo.get_indices(upload_id)

    def chunk_exists(self, upload_id: str, index: int) -> bool:
        return self.get_chunk_path(upload_id, index).exists()

    def read_chunk(self, upload_id: str, index: int) -> bytes:
        """
        Read an entire chunk from disk.

        Raises:
            FileNotFoundError: If the blob does not exist
        """
        return self.get_chunk_path(upload_id, index).read_bytes()

    def read_chunk_streaming(self, upload_id: str, index: int, piece_size: int = 64 * 1024) -> Iterator[bytes]:
        """
        Stream a chunk from disk in pieces.

        Raises:
            FileNotFoundError: If the blob does not exist
        """
        with open(self.get_chunk_path(upload_id, index), 'rb') as f:
            while True:
                piece = f.read(piece_size)
                if not piece:
                    break
                yield piece

    def purge(self, upload_id: str) -> int:
        """
        Remove every blob and record for a session.

        Returns:
            Number of chunk records removed
        """
        removed = self.chunk_repo.delete_chunks(upload_id)
        session_dir = self.session_dir(upload_id)
        if session_dir.exists():
            shutil.rmtree(session_dir, ignore_errors=True)
        logger.info(f"Purged {removed} chunks [upload_id={upload_id}]")
        return removed
