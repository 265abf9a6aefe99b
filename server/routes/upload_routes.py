"""Chunked upload API routes."""

from typing import Optional
from fastapi import APIRouter, Depends, File, Form, Header, Query, UploadFile, status

from server.auth import require_api_key
from server.schemas.uploads import (
    UploadInitRequest,
    UploadInitResponse,
    UploadStatusResponse,
    UploadChunkResponse,
    UploadCompleteRequest,
    UploadCompleteResponse
)
from server.service_locator import get_upload_manager
from server.services.upload_service import UploadSessionManager

router = APIRouter(
    prefix="/attachments",
    tags=["Uploads"],
    dependencies=[Depends(require_api_key)]
)


@router.post("/upload-init", response_model=UploadInitResponse, status_code=status.HTTP_201_CREATED)
async def upload_init(
    request: UploadInitRequest,
    manager: UploadSessionManager = Depends(get_upload_manager)
):
    """
    Start a resumable upload session.

    Parameters:
        - filename: Original filename
        - size: Total size in bytes (1 to max_bytes)
        - temp_identifier: Grouping key for the assembled file
        - mime_type: Declared mime type (optional)

    Returns:
        - upload_id, chunk_size, total_chunks, max_bytes

    Raises:
        - 401: Invalid or missing API Key (when enabled)
        - 422: Missing field or size out of range
    """
    descriptor = manager.init(
        filename=request.filename,
        declared_size=request.size,
        mime_type=request.mime_type,
        temp_identifier=request.temp_identifier,
    )

    return UploadInitResponse(
        upload_id=descriptor.upload_id,
        chunk_size=descriptor.chunk_size,
        total_chunks=descriptor.total_chunks,
        max_bytes=descriptor.max_bytes,
    )


@router.get("/upload-status", response_model=UploadStatusResponse)
async def upload_status(
    upload_id: str = Query(..., description="Upload session id"),
    manager: UploadSessionManager = Depends(get_upload_manager)
):
    """
    Report which chunk indices the server already holds.

    Raises:
        - 404: Unknown or expired upload
    """
    upload_status = manager.status(upload_id)

    return UploadStatusResponse(
        upload_id=upload_status.upload_id,
        uploaded_chunks=upload_status.uploaded_chunks,
        total_chunks=upload_status.total_chunks,
        chunk_size=upload_status.chunk_size,
    )


@router.post("/upload-chunk", response_model=UploadChunkResponse)
async def upload_chunk(
    upload_id: str = Form(...),
    chunk_index: int = Form(...),
    chunk: UploadFile = File(...),
    x_chunk_checksum: Optional[str] = Header(None),
    manager: UploadSessionManager = Depends(get_upload_manager)
):
    """
    Store one chunk. Re-sending an index overwrites the previous copy.

    Parameters:
        - upload_id: Upload session id (multipart field)
        - chunk_index: 0-based chunk index (multipart field)
        - chunk: Chunk bytes (multipart file)
        - X-Chunk-Checksum header: SHA-256 hex digest of the chunk (optional)

    Raises:
        - 404: Unknown or expired upload
        - 409: Upload already completed
        - 422: Index out of range, wrong length or checksum mismatch
    """
    data = await chunk.read()

    record = await manager.put_chunk(upload_id, chunk_index, data, x_chunk_checksum)

    return UploadChunkResponse(ok=True, chunk_index=record.chunk_index, size=record.size)


@router.post("/upload-complete", response_model=UploadCompleteResponse)
async def upload_complete(
    request: UploadCompleteRequest,
    manager: UploadSessionManager = Depends(get_upload_manager)
):
    """
    Assemble the uploaded chunks into the final file.

    Calling again after success returns the same result.

    Raises:
        - 404: Unknown or expired upload
        - 409: Chunks still missing (missing_chunks lists them)
        - 500: Assembly failed
    """
    artifact = await manager.complete(request.upload_id)

    return UploadCompleteResponse(
        original_filename=artifact.original_filename,
        path=artifact.path,
        url=artifact.url,
        size=artifact.size,
        mime_type=artifact.mime_type,
        checksum=artifact.checksum,
    )
