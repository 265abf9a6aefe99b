"""Pydantic schemas for the chunked upload endpoints."""

from typing import List, Optional
from pydantic import BaseModel


class UploadInitRequest(BaseModel):
    """Request model for starting an upload session."""
    filename: Optional[str] = None
    size: Optional[int] = None
    temp_identifier: Optional[str] = None
    mime_type: Optional[str] = None


class UploadInitResponse(BaseModel):
    """Response model for a new upload session."""
    upload_id: str
    chunk_size: int
    total_chunks: int
    max_bytes: int


class UploadStatusResponse(BaseModel):
    """Response model for the chunks a server holds."""
    upload_id: str
    uploaded_chunks: List[int]
    total_chunks: int
    chunk_size: int


class UploadChunkResponse(BaseModel):
    """Response model for an accepted chunk."""
    ok: bool = True
    chunk_index: int
    size: int


class UploadCompleteRequest(BaseModel):
    """Request model for completing an upload."""
    upload_id: str


class UploadCompleteResponse(BaseModel):
    """Response model for an assembled artifact."""
    original_filename: str
    path: str
    url: Optional[str] = None
    size: int
    mime_type: str
    checksum: Optional[str] = None
