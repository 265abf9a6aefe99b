"""Chunk record repository for database operations."""

from dataclasses import dataclass
from typing import List, Set

from common.logging_config import get_logger
from server.database import get_db_connection

logger = get_logger(__name__)


@dataclass
class ChunkRecord:
    upload_id: str
    chunk_index: int
    size: int
    checksum: str
    storage_ref: str
    received_at: str


class ChunkRepository:
    @staticmethod
    def upsert_chunk(record: ChunkRecord, conn=None) -> None:
        """
        Insert or overwrite the record for (upload_id, chunk_index).
        """
        connection_cm = None
        if conn is None:
            connection_cm = get_db_connection()
            conn = connection_cm.__enter__()

        try:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO session_chunks (upload_id, chunk_index, size, checksum, storage_ref, received_at)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(upload_id, chunk_index) DO UPDATE SET
                    size = excluded.size,
                    checksum = excluded.checksum,
                    storage_ref = excluded.storage_ref,
                    received_at = excluded.received_at
                """,
                (
                    record.upload_id,
                    record.chunk_index,
                    record.size,
                    record.checksum,
                    record.storage_ref,
                    record.received_at,
                )
            )
            if connection_cm is not None:
                conn.commit()
        except Exception as e:
            logger.error(
                f"Failed to record chunk {record.chunk_index} [upload_id={record.upload_id}]: {e}",
                exc_info=True
            )
            raise
        finally:
            if connection_cm is not None:
                connection_cm.__exit__(None, None, None)

    @staticmethod
    def get_indices(upload_id: str) -> Set[int]:
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT chunk_index FROM session_chunks WHERE upload_id = ?",
                (upload_id,)
            )
            return {row["chunk_index"] for row in cursor.fetchall()}

    @staticmethod
    def get_chunks(upload_id: str) -> List[ChunkRecord]:
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT upload_id, chunk_index, size, checksum, storage_ref, received_at
                FROM session_chunks
                WHERE upload_id = ?
                ORDER BY chunk_index
                """,
                (upload_id,)
            )
            return [
                ChunkRecord(
                    upload_id=row["upload_id"],
                    chunk_index=row["chunk_index"],
                    size=row["size"],
                    checksum=row["checksum"],
                    storage_ref=row["storage_ref"],
                    received_at=row["received_at"],
                )
                for row in cursor.fetchall()
            ]

    @staticmethod
    def delete_chunks(upload_id: str) -> int:
        logger.debug(f"Deleting chunk records [upload_id={upload_id}]")
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM session_chunks WHERE upload_id = ?", (upload_id,))
            deleted = cursor.rowcount
            conn.commit()
        return deleted
