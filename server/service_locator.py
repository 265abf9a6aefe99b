"""Service locator for the process-wide upload components."""

from typing import Optional

from server.services.temp_file_service import TempFileService
from server.services.upload_service import UploadSessionManager

_upload_manager: Optional[UploadSessionManager] = None
_temp_file_service: Optional[TempFileService] = None


def set_upload_manager(manager: Optional[UploadSessionManager]):
    """Set global upload session manager instance"""
    global _upload_manager
    _upload_manager = manager


def get_upload_manager() -> UploadSessionManager:
    """Get global upload session manager instance, creating it on first use"""
    global _upload_manager
    if _upload_manager is None:
        _upload_manager = UploadSessionManager()
    return _upload_manager


def set_temp_file_service(service: Optional[TempFileService]):
    """Set global temp file service instance"""
    global _temp_file_service
    _temp_file_service = service


def get_temp_file_service() -> TempFileService:
    """Get global temp file service instance, creating it on first use"""
    global _temp_file_service
    if _temp_file_service is None:
        _temp_file_service = TempFileService()
    return _temp_file_service
