"""Repository layer for data access."""

from server.repositories.session_repository import SessionRepository, UploadSession
from server.repositories.chunk_repository import ChunkRepository, ChunkRecord

__all__ = [
    "SessionRepository",
    "UploadSession",
    "ChunkRepository",
    "ChunkRecord",
]
