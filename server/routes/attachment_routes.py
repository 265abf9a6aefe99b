"""Temporary attachment API routes."""

from fastapi import APIRouter, Depends, Query
from fastapi.responses import FileResponse

from server.auth import require_api_key
from server.schemas.attachments import (
    TempFileResponse,
    ListTempFilesResponse,
    RemoveTempFileResponse
)
from server.service_locator import get_temp_file_service
from server.services.temp_file_service import TempFileService

router = APIRouter(
    prefix="/attachments",
    tags=["Attachments"],
    dependencies=[Depends(require_api_key)]
)

# Artifact URLs are handed to browsers, which cannot send the API key.
public_router = APIRouter(
    prefix="/attachments",
    tags=["Attachments"]
)


@router.get("/temp-files", response_model=ListTempFilesResponse)
async def list_temp_files(
    temp_identifier: str = Query(..., description="Grouping key used at init"),
    service: TempFileService = Depends(get_temp_file_service)
):
    """
    List assembled files waiting under a temp identifier.

    Raises:
        - 422: Invalid temp identifier
    """
    files = service.list_temp_files(temp_identifier)

    return ListTempFilesResponse(
        files=[
            TempFileResponse(
                path=f.path,
                original_filename=f.original_filename,
                size=f.size,
                mime_type=f.mime_type,
                url=f.url,
            )
            for f in files
        ]
    )


@router.delete("/temp-files", response_model=RemoveTempFileResponse)
async def remove_temp_file(
    path: str = Query(..., description="Relative path returned by upload-complete"),
    service: TempFileService = Depends(get_temp_file_service)
):
    """
    Remove an assembled file and its metadata sidecar.

    Raises:
        - 404: File not found
        - 422: Path outside the attachments directory
    """
    service.remove_temp_file(path)
    return RemoveTempFileResponse(success=True)


@public_router.get("/temp/{temp_identifier}/{filename}")
async def show_temp_file(
    temp_identifier: str,
    filename: str,
    service: TempFileService = Depends(get_temp_file_service)
):
    """
    Serve an assembled file inline with its mime type.

    Raises:
        - 404: Unsafe path segment or file not found
    """
    path, temp_file = service.get_temp_file(temp_identifier, filename)

    return FileResponse(
        path,
        media_type=temp_file.mime_type,
        filename=temp_file.original_filename,
        content_disposition_type="inline",
    )
