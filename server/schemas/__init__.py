"""Pydantic schemas for API requests and responses."""

from server.schemas.uploads import (
    UploadInitRequest,
    UploadInitResponse,
    UploadStatusResponse,
    UploadChunkResponse,
    UploadCompleteRequest,
    UploadCompleteResponse
)
from server.schemas.attachments import (
    TempFileResponse,
    ListTempFilesResponse,
    RemoveTempFileResponse
)
from server.schemas.common import ErrorResponse

__all__ = [
    "UploadInitRequest",
    "UploadInitResponse",
    "UploadStatusResponse",
    "UploadChunkResponse",
    "UploadCompleteRequest",
    "UploadCompleteResponse",
    "TempFileResponse",
    "ListTempFilesResponse",
    "RemoveTempFileResponse",
    "ErrorResponse"
]
