"""Pydantic schemas for temporary attachment endpoints."""

from typing import List, Optional
from pydantic import BaseModel


class TempFileResponse(BaseModel):
    """Response model for one assembled temporary file."""
    path: str
    original_filename: str
    size: int
    mime_type: str
    url: Optional[str] = None


class ListTempFilesResponse(BaseModel):
    """Response model for temporary file listing."""
    files: List[TempFileResponse]


class RemoveTempFileResponse(BaseModel):
    """Response model for temporary file removal."""
    success: bool
