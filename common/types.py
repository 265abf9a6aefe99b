"""Shared data type definitions exchanged between server and client."""

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass(frozen=True)
class SessionDescriptor:
    """
    Result of initializing an upload session.
    """
    upload_id: str
    chunk_size: int
    total_chunks: int
    max_bytes: int


@dataclass(frozen=True)
class UploadStatus:
    """
    Snapshot of the chunk indices a server holds for a session.
    """
    upload_id: str
    uploaded_chunks: List[int]
    total_chunks: int
    chunk_size: int


@dataclass(frozen=True)
class FinalArtifact:
    """
    Reference to the assembled file produced by a completed upload.
    """
    original_filename: str
    path: str
    url: Optional[str] = None
    size: Optional[int] = None
    mime_type: Optional[str] = None
    checksum: Optional[str] = None


@dataclass
class ChunkSpan:
    """Byte range covered by one chunk index."""
    index: int
    start: int
    end: int

    @property
    def size(self) -> int:
        return self.end - self.start


def total_chunks_for(size: int, chunk_size: int) -> int:
    """
    Number of chunks needed to cover size bytes.

    Args:
        size: Total size in bytes
        chunk_size: Chunk size in bytes

    Returns:
        ceil(size / chunk_size)
    """
    return (size + chunk_size - 1) // chunk_size


def chunk_span(index: int, size: int, chunk_size: int) -> ChunkSpan:
    """
    Byte range of a chunk index within a file of the given size.

    The last chunk is shortened to the remainder; indices past the end
    yield an empty span.
    """
    start = index * chunk_size
    end = min(start + chunk_size, size)
    return ChunkSpan(index=index, start=start, end=max(start, end))


@dataclass
class ProgressTracker:
    """Tracks uploaded bytes and reports a non-decreasing percentage."""
    total_bytes: int
    uploaded_bytes: int = 0
    last_reported: int = field(default=-1)

    def add(self, size: int) -> None:
        self.uploaded_bytes += size

    def percent(self) -> int:
        if self.total_bytes <= 0:
            value = 100
        else:
            value = round(min(100.0, self.uploaded_bytes / self.total_bytes * 100))
        self.last_reported = max(value, self.last_reported)
        return self.last_reported
