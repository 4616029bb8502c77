"""Public file API: upload, metadata, view counting, content and download."""

import logging
from urllib.parse import quote
from uuid import UUID

from fastapi import APIRouter, Body, Depends, File, Form, Header, Path, UploadFile
from fastapi.responses import RedirectResponse, StreamingResponse
from starlette.background import BackgroundTask

from filevault.core.dependencies import get_blob_store, get_file_service
from filevault.domains.files.service import FileContent, FileService, as_utc
from filevault.exceptions.file import FileValidationError, StoredFileNotFoundError
from filevault.schemas.file import (
    DirectUploadMetadata,
    DownloadRequest,
    FileMetadataResponse,
    SpreadsheetPreviewResponse,
    UploadResponse,
    UploadSignatureResponse,
    ViewResponse,
)
from filevault.services.storage import BlobStore, CloudinaryBlobStore
from models.file_record import FileRecord

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["files"])


def parse_file_id(value: str, message: str = "File not found") -> UUID:
    """Shared links carry the id verbatim; anything unparsable is just unknown."""
    try:
        return UUID(value)
    except ValueError:
        raise StoredFileNotFoundError(message)


def _upload_response(service: FileService, record: FileRecord) -> UploadResponse:
    preview_link, download_link = service.links(record.id)
    return UploadResponse(
        message="File uploaded successfully",
        file_id=record.id,
        preview_link=preview_link,
        download_link=download_link,
        expires_at=as_utc(record.expires_at),
    )


def _content_disposition(file_name: str, disposition: str) -> str:
    fallback = file_name.encode("ascii", "replace").decode("ascii").replace('"', "")
    return f"{disposition}; filename=\"{fallback}\"; filename*=UTF-8''{quote(file_name)}"


def _stream_response(content: FileContent, disposition: str) -> StreamingResponse:
    stream = content.stream
    headers = stream.headers()
    headers["Content-Disposition"] = _content_disposition(content.record.original_name, disposition)
    return StreamingResponse(
        stream.chunks,
        status_code=stream.status_code,
        media_type=content.record.file_type,
        headers=headers,
        background=BackgroundTask(stream.aclose),
    )


@router.post("/upload", response_model=UploadResponse)
async def upload_file(
    file: UploadFile | None = File(None),
    password: str | None = Form(None),
    service: FileService = Depends(get_file_service),
):
    """Upload a file protected by a password."""
    record = await service.create_file(file, password)
    return _upload_response(service, record)


@router.post("/upload/metadata", response_model=UploadResponse)
async def register_uploaded_file(
    metadata: DirectUploadMetadata,
    service: FileService = Depends(get_file_service),
):
    """Register a file the browser uploaded directly to the blob store."""
    record = await service.create_from_stored_blob(metadata)
    return _upload_response(service, record)


@router.get("/upload/signature", response_model=UploadSignatureResponse)
async def get_upload_signature(store: BlobStore = Depends(get_blob_store)):
    """Signed parameters for a direct browser upload."""
    if not isinstance(store, CloudinaryBlobStore):
        raise FileValidationError("Direct uploads are not supported by the configured storage")
    return UploadSignatureResponse(**store.signed_upload_params())


@router.get("/file/{file_id}", response_model=FileMetadataResponse)
async def get_file_metadata(
    file_id: str = Path(..., description="File ID"),
    service: FileService = Depends(get_file_service),
):
    """Public metadata for the preview page. Does not count a view."""
    return await service.get_metadata(parse_file_id(file_id))


@router.post("/file/{file_id}/view", response_model=ViewResponse)
async def record_file_view(
    file_id: str = Path(..., description="File ID"),
    service: FileService = Depends(get_file_service),
):
    views = await service.record_view(parse_file_id(file_id))
    return ViewResponse(views=views)


@router.get("/file/{file_id}/content")
async def get_file_content(
    file_id: str = Path(..., description="File ID"),
    range_header: str | None = Header(None, alias="Range"),
    service: FileService = Depends(get_file_service),
):
    """Inline bytes for previews. Remote blobs are answered with a redirect."""
    content = await service.open_content(parse_file_id(file_id), range_header)
    if content.redirect_url:
        return RedirectResponse(content.redirect_url, status_code=307)
    return _stream_response(content, "inline")


@router.get("/file/{file_id}/spreadsheet", response_model=SpreadsheetPreviewResponse)
async def get_spreadsheet_preview(
    file_id: str = Path(..., description="File ID"),
    service: FileService = Depends(get_file_service),
):
    """First sheet of a CSV or XLSX file as a table of cell text."""
    return await service.read_spreadsheet(parse_file_id(file_id))


@router.post("/download/{file_id}")
async def download_file(
    file_id: str = Path(..., description="File ID"),
    body: DownloadRequest | None = Body(None),
    range_header: str | None = Header(None, alias="Range"),
    service: FileService = Depends(get_file_service),
):
    """Stream the original file once the password checks out."""
    password = body.password if body else None
    file_uuid = parse_file_id(file_id, "File not found or expired")
    content = await service.download_with_password(file_uuid, password, range_header)
    logger.info("Download of %s started", file_id)
    return _stream_response(content, "attachment")
