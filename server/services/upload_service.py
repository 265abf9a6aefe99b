"""Upload session manager: init, status, chunk intake, completion and expiry."""

from datetime import datetime, timedelta
from pathlib import Path
from typing import List, Optional

from common.constants import CHUNK_SIZE_BYTES, MAX_UPLOAD_BYTES
from common.exceptions import (
    AlreadyCompletedError,
    AssemblyError,
    IncompleteUploadError,
    UnknownSessionError,
    ValidationError,
)
from common.logging_config import get_logger
from common.types import FinalArtifact, SessionDescriptor, UploadStatus, total_chunks_for
from server import config
from server.assembler import Assembler
from server.chunk_store import ChunkStore
from server.repositories.chunk_repository import ChunkRecord, ChunkRepository
from server.repositories.session_repository import (
    STATUS_COMPLETED,
    STATUS_EXPIRED,
    STATUS_FAILED,
    STATUS_PENDING,
    SessionRepository,
    UploadSession,
)
from server.services.session_locks import SessionLockRegistry
from server.utils import generate_uuid, resolve_mime_type, sanitize_identifier, temp_file_url, utc_now

logger = get_logger(__name__)


class UploadSessionManager:
    """
    Owns session metadata and drives assembly once every chunk has arrived.

    Chunk intake, completion and expiry of one session are serialized through
    that session's lock; status reads are lock-free.
    """

    def __init__(
        self,
        storage_root: Optional[Path] = None,
        session_ttl: Optional[int] = None,
        public_url_prefix: Optional[str] = None,
        session_repo: Optional[SessionRepository] = None,
        chunk_repo: Optional[ChunkRepository] = None,
    ):
        self.storage_root = Path(storage_root or config.STORAGE_ROOT)
        self.session_ttl = session_ttl if session_ttl is not None else config.SESSION_TTL
        self.public_url_prefix = public_url_prefix if public_url_prefix is not None else config.PUBLIC_URL_PREFIX
        self.session_repo = session_repo or SessionRepository()
        self.chunk_repo = chunk_repo or ChunkRepository()
        self.chunk_store = ChunkStore(self.storage_root, self.session_repo, self.chunk_repo)
        self.assembler = Assembler(self.storage_root, self.chunk_store)
        self.locks = SessionLockRegistry()

    def init(
        self,
        filename: Optional[str],
        declared_size: Optional[int],
        mime_type: Optional[str],
        temp_identifier: Optional[str],
    ) -> SessionDescriptor:
        """
        Create a pending session.

        Args:
            filename: Original filename
            declared_size: Total file size in bytes
            mime_type: Declared mime type (optional)
            temp_identifier: Client-supplied grouping key for the final artifact

        Returns:
            SessionDescriptor with the new upload id and chunk geometry

        Raises:
            ValidationError: If a field is missing or the size is out of range
        """
        if filename is None or not str(filename).strip():
            raise ValidationError("filename is required")
        if declared_size is None:
            raise ValidationError("size is required")
        if isinstance(declared_size, bool) or not isinstance(declared_size, int):
            raise ValidationError("size must be an integer")
        if declared_size < 1:
            raise ValidationError("size must be at least 1 byte")
        if declared_size > MAX_UPLOAD_BYTES:
            raise ValidationError(
                f"size {declared_size} exceeds the maximum of {MAX_UPLOAD_BYTES} bytes"
            )
        if temp_identifier is None or not str(temp_identifier).strip():
            raise ValidationError("temp_identifier is required")
        if sanitize_identifier(temp_identifier) is None:
            raise ValidationError("temp_identifier may only contain letters, digits, '-' and '_'")

        now = utc_now().isoformat()
        session = UploadSession(
            upload_id=generate_uuid(),
            original_filename=str(filename).strip(),
            declared_size=declared_size,
            chunk_size=CHUNK_SIZE_BYTES,
            total_chunks=total_chunks_for(declared_size, CHUNK_SIZE_BYTES),
            mime_type=mime_type or None,
            temp_identifier=temp_identifier,
            status=STATUS_PENDING,
            created_at=now,
            last_activity_at=now,
        )
        self.session_repo.create_session(session)
        self.chunk_store.ensure_session_dir(session.upload_id)

        logger.info(
            f"Initialized upload session {session.upload_id} for {session.original_filename} "
            f"({session.declared_size} bytes, {session.total_chunks} chunks)"
        )

        return SessionDescriptor(
            upload_id=session.upload_id,
            chunk_size=session.chunk_size,
            total_chunks=session.total_chunks,
            max_bytes=MAX_UPLOAD_BYTES,
        )

    def status(self, upload_id: str) -> UploadStatus:
        """
        Report which chunk indices the server holds.

        A completed session reports every index even though its chunks
        have been purged.

        Raises:
            UnknownSessionError: If the session is unknown or expired
        """
        session = self._load_session(upload_id)
        if session.status == STATUS_COMPLETED:
            uploaded = list(range(session.total_chunks))
        else:
            uploaded = sorted(self.chunk_store.get_uploaded_indices(session.upload_id))
        return UploadStatus(
            upload_id=session.upload_id,
            uploaded_chunks=uploaded,
            total_chunks=session.total_chunks,
            chunk_size=session.chunk_size,
        )

    async def put_chunk(
        self,
        upload_id: str,
        index: int,
        data: bytes,
        checksum: Optional[str] = None,
    ) -> ChunkRecord:
        """
        Store one chunk for a pending session.

        Raises:
            UnknownSessionError: If the session is unknown or expired
            AlreadyCompletedError: If the session already completed
            AssemblyError: If the session failed assembly
            ChunkMismatchError: If index, length or checksum are wrong
        """
        self._load_session(upload_id)

        async with self.locks.get(upload_id):
            session = self._load_session(upload_id)
            if session.status == STATUS_COMPLETED:
                raise AlreadyCompletedError(f"Upload {upload_id} is already completed")
            if session.status == STATUS_FAILED:
                raise AssemblyError(f"Upload {upload_id} failed and no longer accepts chunks")

            record = self.chunk_store.put_chunk(upload_id, index, data, checksum, session=session)
            self.session_repo.touch(upload_id, utc_now())
            return record

    async def complete(self, upload_id: str) -> FinalArtifact:
        """
        Assemble the final artifact once every chunk has arrived.

        A session completes at most once; later calls return the cached result.

        Raises:
            UnknownSessionError: If the session is unknown or expired
            IncompleteUploadError: If chunks are still missing
            AssemblyError: If assembly fails (the session is marked failed)
        """
        self._load_session(upload_id)

        async with self.locks.get(upload_id):
            session = self._load_session(upload_id)

            if session.status == STATUS_COMPLETED:
                logger.info(f"Upload {upload_id} already completed, returning cached result")
                return self._artifact_from_session(session)

            if session.status == STATUS_FAILED:
                raise AssemblyError(f"Upload {upload_id} previously failed assembly")

            uploaded = self.chunk_store.get_uploaded_indices(upload_id)
            missing = sorted(set(range(session.total_chunks)) - uploaded)
            if missing:
                logger.info(f"Upload {upload_id} incomplete, missing chunks: {missing}")
                raise IncompleteUploadError(
                    f"Missing {len(missing)} of {session.total_chunks} chunks",
                    missing_chunks=missing,
                )

            try:
                assembled = self.assembler.assemble(session)
            except AssemblyError as e:
                logger.error(f"Assembly failed for upload {upload_id}: {e}")
                self.session_repo.update_status(upload_id, STATUS_FAILED)
                raise

            url = temp_file_url(self.public_url_prefix, session.temp_identifier, assembled.absolute_path.name)
            mime_type = resolve_mime_type(session.original_filename, session.mime_type)
            self.session_repo.mark_completed(
                upload_id,
                final_path=assembled.path,
                final_url=url,
                final_size=assembled.size,
                final_mime_type=mime_type,
                final_checksum=assembled.checksum,
                completed_at=utc_now(),
            )
            self.chunk_store.purge(upload_id)

            logger.info(f"Completed upload {upload_id}, file saved to {assembled.path}")

            return FinalArtifact(
                original_filename=session.original_filename,
                path=assembled.path,
                url=url,
                size=assembled.size,
                mime_type=mime_type,
                checksum=assembled.checksum,
            )

    async def expire_stale(self, now: Optional[datetime] = None) -> List[str]:
        """
        Purge sessions with no activity inside the TTL window.

        Pending and failed sessions lose their chunks; completed sessions only
        lose their record (the artifact stays). Sessions whose lock is held
        are left for the next sweep.

        Returns:
            Upload ids that were expired
        """
        now = now or utc_now()
        cutoff = now - timedelta(seconds=self.session_ttl)
        expired = []

        for candidate in self.session_repo.find_inactive_since(cutoff):
            upload_id = candidate.upload_id
            if self.locks.is_locked(upload_id):
                logger.info(f"Skipping expiry of busy session {upload_id}")
                continue

            async with self.locks.get(upload_id):
                session = self.session_repo.get_by_id(upload_id)
                if session is None or session.last_activity_at >= cutoff.isoformat():
                    continue

                if session.status != STATUS_COMPLETED:
                    self.session_repo.update_status(upload_id, STATUS_EXPIRED)
                self.chunk_store.purge(upload_id)
                self.session_repo.delete_session(upload_id)
                expired.append(upload_id)

            self.locks.discard(upload_id)
            logger.info(f"Expired upload session {upload_id} (status was {candidate.status})")

        return expired

    def _load_session(self, upload_id: str) -> UploadSession:
        if sanitize_identifier(upload_id) is None:
            raise UnknownSessionError("Upload not found")
        session = self.session_repo.get_by_id(upload_id)
        if session is None or session.status == STATUS_EXPIRED:
            raise UnknownSessionError(f"Upload {upload_id} not found")
        return session

    @staticmethod
    def _artifact_from_session(session: UploadSession) -> FinalArtifact:
        return FinalArtifact(
            original_filename=session.original_filename,
            path=session.final_path,
            url=session.final_url,
            size=session.final_size,
            mime_type=session.final_mime_type,
            checksum=session.final_checksum,
        )
