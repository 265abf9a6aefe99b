"""Upload session repository for database operations."""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from common.logging_config import get_logger
from server.database import get_db_connection

logger = get_logger(__name__)

STATUS_PENDING = "pending"
STATUS_COMPLETED = "completed"
STATUS_FAILED = "failed"
STATUS_EXPIRED = "expired"

_COLUMNS = """
    upload_id, original_filename, declared_size, chunk_size, total_chunks,
    mime_type, temp_identifier, status, created_at, last_activity_at,
    final_path, final_url, final_size, final_mime_type, final_checksum, completed_at
"""


@dataclass
class UploadSession:
    upload_id: str
    original_filename: str
    declared_size: int
    chunk_size: int
    total_chunks: int
    mime_type: Optional[str]
    temp_identifier: str
    status: str
    created_at: str
    last_activity_at: str
    final_path: Optional[str] = None
    final_url: Optional[str] = None
    final_size: Optional[int] = None
    final_mime_type: Optional[str] = None
    final_checksum: Optional[str] = None
    completed_at: Optional[str] = None

    def expected_chunk_size(self, index: int) -> int:
        """Byte length the chunk at index must have."""
        if index == self.total_chunks - 1:
            return self.declared_size - index * self.chunk_size
        return self.chunk_size


def _row_to_session(row) -> UploadSession:
    return UploadSession(**{key: row[key] for key in row.keys()})


class SessionRepository:
    @staticmethod
    def create_session(session: UploadSession, conn=None) -> UploadSession:
        connection_cm = None
        if conn is None:
            connection_cm = get_db_connection()
            conn = connection_cm.__enter__()

        try:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO sessions (
                    upload_id, original_filename, declared_size, chunk_size, total_chunks,
                    mime_type, temp_identifier, status, created_at, last_activity_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    session.upload_id,
                    session.original_filename,
                    session.declared_size,
                    session.chunk_size,
                    session.total_chunks,
                    session.mime_type,
                    session.temp_identifier,
                    session.status,
                    session.created_at,
                    session.last_activity_at,
                )
            )
            if connection_cm is not None:
                conn.commit()
            logger.debug(f"Created session record [upload_id={session.upload_id}]")
            return session
        except Exception as e:
            logger.error(f"Failed to create session [upload_id={session.upload_id}]: {e}", exc_info=True)
            raise
        finally:
            if connection_cm is not None:
                connection_cm.__exit__(None, None, None)

    @staticmethod
    def get_by_id(upload_id: str) -> Optional[UploadSession]:
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"SELECT {_COLUMNS} FROM sessions WHERE upload_id = ?",
                (upload_id,)
            )
            row = cursor.fetchone()
            return _row_to_session(row) if row else None

    @staticmethod
    def touch(upload_id: str, at: datetime) -> None:
        with get_db_connection() as conn:
            conn.execute(
                "UPDATE sessions SET last_activity_at = ? WHERE upload_id = ?",
                (at.isoformat(), upload_id)
            )
            conn.commit()

    @staticmethod
    def update_status(upload_id: str, status: str) -> None:
        logger.debug(f"Updating session status [upload_id={upload_id}] status={status}")
        with get_db_connection() as conn:
            conn.execute(
                "UPDATE sessions SET status = ? WHERE upload_id = ?",
                (status, upload_id)
            )
            conn.commit()

    @staticmethod
    def mark_completed(
        upload_id: str,
        final_path: str,
        final_url: Optional[str],
        final_size: int,
        final_mime_type: Optional[str],
        final_checksum: str,
        completed_at: datetime,
    ) -> None:
        with get_db_connection() as conn:
            conn.execute(
                """
                UPDATE sessions
                SET status = 'completed',
                    final_path = ?,
                    final_url = ?,
                    final_size = ?,
                    final_mime_type = ?,
                    final_checksum = ?,
                    completed_at = ?,
                    last_activity_at = ?
                WHERE upload_id = ?
                """,
                (
                    final_path,
                    final_url,
                    final_size,
                    final_mime_type,
                    final_checksum,
                    completed_at.isoformat(),
                    completed_at.isoformat(),
                    upload_id,
                )
            )
            conn.commit()
        logger.info(f"Session marked completed [upload_id={upload_id}] path={final_path}")

    @staticmethod
    def delete_session(upload_id: str) -> bool:
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM session_chunks WHERE upload_id = ?", (upload_id,))
            cursor.execute("DELETE FROM sessions WHERE upload_id = ?", (upload_id,))
            deleted = cursor.rowcount > 0
            conn.commit()
        if deleted:
            logger.info(f"Deleted session record [upload_id={upload_id}]")
        return deleted

    @staticmethod
    def find_inactive_since(cutoff: datetime) -> List[UploadSession]:
        """
        Sessions whose last activity happened before cutoff, any status.
        """
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"""
                SELECT {_COLUMNS} FROM sessions
                WHERE last_activity_at < ?
                ORDER BY last_activity_at
                """,
                (cutoff.isoformat(),)
            )
            return [_row_to_session(row) for row in cursor.fetchall()]
