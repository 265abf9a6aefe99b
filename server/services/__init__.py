"""Service layer for upload sessions and temporary attachments."""

from server.services.session_locks import SessionLockRegistry
from server.services.temp_file_service import TempFile, TempFileService
from server.services.upload_service import UploadSessionManager

__all__ = [
    "SessionLockRegistry",
    "TempFile",
    "TempFileService",
    "UploadSessionManager",
]
