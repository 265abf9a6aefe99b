"""Exception taxonomy shared by the upload server and client."""

from typing import Dict, List, Optional, Type


class UploadError(Exception):
    """
    Base exception class for all upload protocol errors.
    """
    code = "UPLOAD_ERROR"
    retryable = False


class ValidationError(UploadError):
    """
    Raised when an init request is malformed or exceeds the size limit.
    """
    code = "VALIDATION_ERROR"


class UnknownSessionError(UploadError):
    """
    Raised when an upload id is not tracked or has expired.
    """
    code = "UNKNOWN_SESSION"


class ChunkMismatchError(UploadError):
    """
    Raised when a chunk index is out of range or its payload has the wrong length or checksum.
    """
    code = "CHUNK_MISMATCH"


class IncompleteUploadError(UploadError):
    """
    Raised when completion is requested before every chunk has arrived.
    """
    code = "INCOMPLETE_UPLOAD"

    def __init__(self, message: str, missing_chunks: Optional[List[int]] = None):
        super().__init__(message)
        self.missing_chunks = list(missing_chunks or [])


class AlreadyCompletedError(UploadError):
    """
    Raised when a completed session receives further chunks.
    """
    code = "ALREADY_COMPLETED"


class AssemblyError(UploadError):
    """
    Raised when chunks cannot be concatenated into the final artifact.
    The session is marked failed.
    """
    code = "ASSEMBLY_ERROR"


class TempFileNotFoundError(UploadError):
    """
    Raised when an assembled temporary file does not exist.
    """
    code = "TEMP_FILE_NOT_FOUND"


class TransientError(UploadError):
    """
    Raised by the client for network failures and unexpected server errors.
    """
    code = "TRANSIENT"
    retryable = True


class UploadFailedError(UploadError):
    """
    Terminal failure of an upload driver run.

    Carries the last concrete error, the progress reached and the upload id
    so the caller can decide whether to resume.
    """
    code = "UPLOAD_FAILED"

    def __init__(
        self,
        message: str,
        cause: Optional[UploadError] = None,
        progress: int = 0,
        upload_id: Optional[str] = None,
        states: Optional[List[str]] = None,
    ):
        super().__init__(message)
        self.cause = cause
        self.progress = progress
        self.upload_id = upload_id
        self.states = list(states or [])

    @property
    def kind(self) -> str:
        return self.cause.code if self.cause is not None else self.code


ERRORS_BY_CODE: Dict[str, Type[UploadError]] = {
    cls.code: cls
    for cls in (
        ValidationError,
        UnknownSessionError,
        ChunkMismatchError,
        IncompleteUploadError,
        AlreadyCompletedError,
        AssemblyError,
        TempFileNotFoundError,
    )
}
