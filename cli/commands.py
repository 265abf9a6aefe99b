"""Command handler functions for CLI operations."""

from pathlib import Path
from typing import Optional, TextIO

from common.exceptions import UploadError, UploadFailedError
from common.logging_config import get_logger
from common.types import FinalArtifact
from cli.config import Config
from cli.constants import DEFAULT_TEMP_IDENTIFIER
from cli.models import ResumeCommand, StatusCommand, UploadCommand
from cli.upload_client import UploadApiClient
from cli.upload_driver import DriverConfig, UploadDriver
from cli.utils import ProgressPrinter, format_file_size

logger = get_logger(__name__)


_client: Optional[UploadApiClient] = None


def get_client() -> UploadApiClient:
    """
    Get or create global UploadApiClient instance.

    Returns:
        UploadApiClient instance
    """
    global _client
    if _client is None:
        logger.debug("Creating new UploadApiClient instance")
        _client = UploadApiClient(Config())
    return _client


def close_client() -> None:
    """Close the global UploadApiClient, if one was created."""
    global _client
    if _client is not None:
        _client.close()
        _client = None


def handle_upload(
    cmd: UploadCommand,
    client: Optional[UploadApiClient] = None,
    stream: Optional[TextIO] = None,
) -> str:
    """
    Handle 'upload' command.

    Args:
        cmd: UploadCommand with file_path and optional temp_identifier
        client: Optional UploadApiClient for dependency injection (testing)
        stream: Optional output stream for progress (testing)

    Returns:
        Success or error message
    """
    logger.info(f"Executing upload command: {cmd.file_path}")
    if client is None:
        client = get_client()
    return _run_upload(client, cmd.file_path, cmd.temp_identifier, None, stream)


def handle_resume(
    cmd: ResumeCommand,
    client: Optional[UploadApiClient] = None,
    stream: Optional[TextIO] = None,
) -> str:
    """
    Handle 'resume' command.

    Args:
        cmd: ResumeCommand with upload_id and file_path
        client: Optional UploadApiClient for dependency injection (testing)
        stream: Optional output stream for progress (testing)

    Returns:
        Success or error message
    """
    logger.info(f"Executing resume command: upload_id={cmd.upload_id} path={cmd.file_path}")
    if client is None:
        client = get_client()
    return _run_upload(client, cmd.file_path, cmd.temp_identifier, cmd.upload_id, stream)


def handle_status(cmd: StatusCommand, client: Optional[UploadApiClient] = None) -> str:
    """
    Handle 'status' command.

    Args:
        cmd: StatusCommand with upload_id
        client: Optional UploadApiClient for dependency injection (testing)

    Returns:
        Chunk summary or error message
    """
    if client is None:
        client = get_client()

    try:
        status = client.get_status(cmd.upload_id)
    except UploadError as e:
        logger.warning(f"Status query failed for {cmd.upload_id}: {e}")
        return f"Error: {e}"

    uploaded = set(status.uploaded_chunks)
    missing = [i for i in range(status.total_chunks) if i not in uploaded]
    lines = [
        f"Upload {status.upload_id}: {len(uploaded)}/{status.total_chunks} chunks uploaded "
        f"(chunk size {format_file_size(status.chunk_size)})"
    ]
    if missing:
        lines.append(f"Missing chunks: {', '.join(str(i) for i in missing)}")
    else:
        lines.append("All chunks uploaded")
    return "\n".join(lines)


def _run_upload(
    client: UploadApiClient,
    file_path: str,
    temp_identifier: Optional[str],
    resume_upload_id: Optional[str],
    stream: Optional[TextIO],
) -> str:
    path = Path(file_path).expanduser()
    if not path.is_file():
        return f"Error: File not found: {file_path}"

    retry_config = client.config.get_chunk_retry_config()
    printer = ProgressPrinter(path.name, path.stat().st_size, stream)
    driver = UploadDriver(
        client,
        DriverConfig(
            retry_limit=retry_config['retry_limit'],
            retry_base_delay=retry_config['retry_base_delay'],
            on_progress=printer,
        ),
    )

    try:
        artifact = driver.upload(
            path,
            temp_identifier or DEFAULT_TEMP_IDENTIFIER,
            resume_upload_id=resume_upload_id,
        )
    except UploadFailedError as e:
        printer.finish()
        message = f"Upload failed ({e.kind}) at {e.progress}%: {e}"
        if e.upload_id:
            message += f"\nResume with: resume {e.upload_id} {file_path}"
        return message

    printer.finish()
    return _format_artifact(artifact)


def _format_artifact(artifact: FinalArtifact) -> str:
    lines = [
        "Upload complete!",
        f"File: {artifact.original_filename}",
        f"Stored at: {artifact.path}",
    ]
    if artifact.size is not None:
        lines.append(f"Size: {format_file_size(artifact.size)}")
    if artifact.mime_type:
        lines.append(f"Type: {artifact.mime_type}")
    if artifact.url:
        lines.append(f"URL: {artifact.url}")
    return "\n".join(lines)
