"""File schemas for request/response serialization."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import Field, field_validator

from filevault.shared.preview import PreviewKind

from .base import CamelSchema, ResponseSchema


class UploadResponse(ResponseSchema):
    """Returned after a successful upload."""

    file_id: UUID
    preview_link: str
    download_link: str
    expires_at: datetime | None = None


class DirectUploadMetadata(CamelSchema):
    """Metadata posted after the browser uploaded straight to the blob store."""

    original_name: str | None = None
    file_type: str | None = None
    file_size: int | None = Field(None, ge=0)
    file_path: str | None = None
    stored_name: str | None = None
    password: str | None = None

    @field_validator("original_name", "file_type", "file_path", "stored_name")
    @classmethod
    def strip_blank(cls, v: str | None) -> str | None:
        if isinstance(v, str):
            v = v.strip()
        return v or None


class FileMetadataResponse(CamelSchema):
    """Public projection of a file record. Never carries the password hash."""

    original_name: str
    file_type: str
    file_size: int
    created_at: datetime
    expires_at: datetime | None = None
    ext: str
    url: str
    views: int
    downloads: int
    preview_link: str
    download_link: str
    preview_kind: PreviewKind


class ViewResponse(CamelSchema):
    success: bool = True
    views: int


class DownloadRequest(CamelSchema):
    password: str | None = None


class UploadSignatureResponse(CamelSchema):
    """Signed parameters for a direct-to-store browser upload."""

    timestamp: int
    signature: str
    api_key: str
    cloud_name: str
    folder: str


class SpreadsheetPreviewResponse(CamelSchema):
    """First sheet of a CSV or XLSX file as rows of cell text."""

    success: bool = True
    original_name: str
    sheet_name: str | None = None
    rows: list[list[str]]
    truncated: bool = False
