"""Admin console schemas."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import Field

from .base import CamelSchema, ResponseSchema


class AdminLoginRequest(CamelSchema):
    username: str = ""
    password: str = ""


class AdminLoginResponse(ResponseSchema):
    token: str
    expires_at: datetime


class AdminFileItem(CamelSchema):
    """A file record as shown to the admin; the password hash is left out."""

    id: UUID
    original_name: str
    stored_name: str
    file_path: str
    file_type: str
    file_size: int
    created_at: datetime
    expires_at: datetime | None = None
    views: int
    downloads: int
    expired: bool = False


class PaginationInfo(CamelSchema):
    total_files: int
    current_page: int
    total_pages: int
    page_size: int


class AdminFileListResponse(ResponseSchema):
    files: list[AdminFileItem]
    pagination: PaginationInfo


class BulkDeleteRequest(CamelSchema):
    ids: list[UUID] = Field(default_factory=list)


class BulkDeleteResponse(ResponseSchema):
    deleted: int


class AdminStats(CamelSchema):
    total_files: int
    total_size_bytes: int
    total_size_in_mb: float = Field(alias="totalSizeInMB")
    total_views: int
    total_downloads: int


class AdminStatsResponse(ResponseSchema):
    stats: AdminStats
