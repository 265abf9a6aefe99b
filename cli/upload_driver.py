"""Client-side state machine that uploads one file chunk by chunk."""

import mimetypes
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Set

from common.checksum import compute_checksum
from common.constants import (
    CHUNK_SIZE_BYTES,
    DEFAULT_RETRY_BASE_DELAY,
    DEFAULT_RETRY_LIMIT,
    MAX_UPLOAD_BYTES,
)
from common.exceptions import (
    AlreadyCompletedError,
    UnknownSessionError,
    UploadError,
    UploadFailedError,
    ValidationError,
)
from common.logging_config import get_logger
from common.types import (
    FinalArtifact,
    ProgressTracker,
    SessionDescriptor,
    chunk_span,
    total_chunks_for,
)

logger = get_logger(__name__)


class DriverState(str, Enum):
    """States of a single upload run."""
    IDLE = "Idle"
    INITIATING = "Initiating"
    RESUME_QUERY = "ResumeQuery"
    UPLOADING = "Uploading"
    RETRYING = "Retrying"
    COMPLETING = "Completing"
    DONE = "Done"
    FAILED = "Failed"


@dataclass
class DriverConfig:
    """Tunables for an UploadDriver."""
    chunk_size_bytes: int = CHUNK_SIZE_BYTES
    max_upload_bytes: int = MAX_UPLOAD_BYTES
    retry_limit: int = DEFAULT_RETRY_LIMIT
    retry_base_delay: float = DEFAULT_RETRY_BASE_DELAY
    on_progress: Optional[Callable[[int], None]] = None
    send_checksums: bool = True


class UploadDriver:
    """
    Uploads one file through a transport, resuming and retrying chunk by chunk.

    The transport provides init_upload, get_status, upload_chunk and
    complete_upload (see cli.upload_client.UploadApiClient). Chunks are sent
    one at a time in ascending index order and complete_upload is only called
    after every chunk has been acknowledged.
    """

    def __init__(self, transport, config: Optional[DriverConfig] = None, sleep: Callable[[float], None] = time.sleep):
        self.transport = transport
        self.config = config or DriverConfig()
        self.sleep = sleep
        self.state = DriverState.IDLE
        self.history: List[str] = []
        self.upload_id: Optional[str] = None
        self._tracker: Optional[ProgressTracker] = None

    @property
    def progress(self) -> int:
        if self._tracker is None or self._tracker.last_reported < 0:
            return 0
        return self._tracker.last_reported

    def upload(
        self,
        file_path,
        temp_identifier: str,
        resume_upload_id: Optional[str] = None,
        mime_type: Optional[str] = None,
    ) -> FinalArtifact:
        """
        Upload a file and return the assembled artifact.

        Args:
            file_path: Local file to upload
            temp_identifier: Grouping key for the final artifact on the server
            resume_upload_id: Upload id of an earlier, interrupted run (optional)
            mime_type: Mime type to declare (guessed from the name if omitted)

        Returns:
            FinalArtifact returned by the server

        Raises:
            UploadFailedError: On any terminal failure; carries the last error,
                the progress reached and the upload id for resumption
        """
        self.history = []
        self.upload_id = None
        self._tracker = None
        self._enter(DriverState.IDLE)

        path = Path(file_path)
        try:
            size = path.stat().st_size
        except OSError as e:
            self._fail(ValidationError(f"Cannot read {path}: {e}"))

        if size > self.config.max_upload_bytes:
            self._fail(ValidationError(
                f"{path.name} is {size} bytes; the limit is {self.config.max_upload_bytes} bytes"
            ))

        self._enter(DriverState.INITIATING)
        mime_type = mime_type or mimetypes.guess_type(path.name)[0]
        try:
            descriptor = self._initiate(path.name, size, temp_identifier, mime_type, resume_upload_id)
        except UploadError as e:
            self._fail(e)
        self.upload_id = descriptor.upload_id

        chunk_size = descriptor.chunk_size or self.config.chunk_size_bytes
        total = descriptor.total_chunks or total_chunks_for(size, chunk_size)

        self._enter(DriverState.RESUME_QUERY)
        uploaded = self._query_uploaded(descriptor.upload_id)

        self._tracker = ProgressTracker(total_bytes=size)
        for index in sorted(uploaded):
            if 0 <= index < total:
                self._tracker.add(chunk_span(index, size, chunk_size).size)
        self._report_progress()

        if uploaded:
            logger.info(f"Resuming upload {descriptor.upload_id}: {len(uploaded)}/{total} chunks already on server")

        try:
            with open(path, 'rb') as f:
                for index in range(total):
                    if index in uploaded:
                        continue
                    span = chunk_span(index, size, chunk_size)
                    f.seek(span.start)
                    data = f.read(span.size)
                    try:
                        self._send_chunk(descriptor.upload_id, index, data)
                    except AlreadyCompletedError:
                        logger.info(f"Upload {descriptor.upload_id} was already completed on the server")
                        self._tracker.uploaded_bytes = size
                        self._report_progress()
                        break
                    uploaded.add(index)
                    self._tracker.add(span.size)
                    self._report_progress()
        except OSError as e:
            self._fail(UploadError(f"Cannot read {path}: {e}"))

        self._enter(DriverState.COMPLETING)
        try:
            artifact = self.transport.complete_upload(descriptor.upload_id)
        except UploadError as e:
            self._fail(e)

        self._enter(DriverState.DONE)
        logger.info(f"Upload {descriptor.upload_id} done: {artifact.path}")
        return artifact

    def _initiate(
        self,
        filename: str,
        size: int,
        temp_identifier: str,
        mime_type: Optional[str],
        resume_upload_id: Optional[str],
    ) -> SessionDescriptor:
        if resume_upload_id:
            try:
                status = self.transport.get_status(resume_upload_id)
                return SessionDescriptor(
                    upload_id=resume_upload_id,
                    chunk_size=status.chunk_size,
                    total_chunks=status.total_chunks,
                    max_bytes=self.config.max_upload_bytes,
                )
            except UnknownSessionError:
                logger.info(f"Upload {resume_upload_id} is no longer known, starting a new session")

        return self.transport.init_upload(filename, size, temp_identifier, mime_type)

    def _query_uploaded(self, upload_id: str) -> Set[int]:
        """Indices the server holds; any failure counts as nothing uploaded."""
        try:
            return set(self.transport.get_status(upload_id).uploaded_chunks)
        except UploadError as e:
            logger.warning(f"Status query failed for {upload_id}, assuming no chunks: {e}")
            return set()

    def _send_chunk(self, upload_id: str, index: int, data: bytes) -> None:
        checksum = compute_checksum(data) if self.config.send_checksums else None
        attempt = 0
        self._enter(DriverState.UPLOADING, index)

        while True:
            try:
                self.transport.upload_chunk(upload_id, index, data, checksum)
                return
            except AlreadyCompletedError:
                raise
            except UploadError as e:
                if not e.retryable:
                    self._fail(e)
                if attempt >= self.config.retry_limit:
                    logger.error(f"Chunk {index} failed after {attempt + 1} attempts: {e}")
                    self._fail(e)

                attempt += 1
                self._enter(DriverState.RETRYING, index)
                delay = self.config.retry_base_delay * attempt
                logger.warning(f"Chunk {index} failed ({e}), retry {attempt}/{self.config.retry_limit} in {delay:.2f}s")
                self.sleep(delay)

                if index in self._query_uploaded(upload_id):
                    logger.info(f"Chunk {index} already on server after failed attempt")
                    return

                self._enter(DriverState.UPLOADING, index)

    def _report_progress(self) -> None:
        value = self._tracker.percent()
        if self.config.on_progress is not None:
            self.config.on_progress(value)

    def _enter(self, state: DriverState, index: Optional[int] = None) -> None:
        self.state = state
        self.history.append(state.value if index is None else f"{state.value}({index})")

    def _fail(self, cause: UploadError) -> None:
        self._enter(DriverState.FAILED)
        logger.error(f"Upload failed in {self.history[-2] if len(self.history) > 1 else 'Idle'}: {cause}")
        raise UploadFailedError(
            str(cause),
            cause=cause,
            progress=self.progress,
            upload_id=self.upload_id,
            states=self.history,
        ) from cause
