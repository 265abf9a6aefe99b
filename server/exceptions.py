"""Server-side view of the upload error taxonomy and its HTTP mapping."""

from fastapi import status

from common.exceptions import (
    UploadError,
    ValidationError,
    UnknownSessionError,
    ChunkMismatchError,
    IncompleteUploadError,
    AlreadyCompletedError,
    AssemblyError,
    TempFileNotFoundError,
)

HTTP_STATUS_BY_ERROR = {
    ValidationError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    UnknownSessionError: status.HTTP_404_NOT_FOUND,
    ChunkMismatchError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    IncompleteUploadError: status.HTTP_409_CONFLICT,
    AlreadyCompletedError: status.HTTP_409_CONFLICT,
    AssemblyError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    TempFileNotFoundError: status.HTTP_404_NOT_FOUND,
}


def http_status_for(exc: UploadError) -> int:
    """
    Resolve the HTTP status code for an upload error.

    Args:
        exc: Raised upload error

    Returns:
        HTTP status code (500 for unmapped errors)
    """
    for error_type in type(exc).__mro__:
        if error_type in HTTP_STATUS_BY_ERROR:
            return HTTP_STATUS_BY_ERROR[error_type]
    return status.HTTP_500_INTERNAL_SERVER_ERROR


__all__ = [
    "UploadError",
    "ValidationError",
    "UnknownSessionError",
    "ChunkMismatchError",
    "IncompleteUploadError",
    "AlreadyCompletedError",
    "AssemblyError",
    "TempFileNotFoundError",
    "HTTP_STATUS_BY_ERROR",
    "http_status_for",
]
