"""Admin API controller with FastAPI endpoints."""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query

from filevault.core.dependencies import get_admin_service, require_admin
from filevault.domains.admin.service import AdminService
from filevault.schemas.admin import (
    AdminFileListResponse,
    AdminLoginRequest,
    AdminLoginResponse,
    AdminStats,
    AdminStatsResponse,
    BulkDeleteRequest,
    BulkDeleteResponse,
    PaginationInfo,
)
from filevault.schemas.base import ResponseSchema
from filevault.shared.pagination import PaginationParams

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.post("/login", response_model=AdminLoginResponse)
async def admin_login(
    credentials: AdminLoginRequest,
    service: AdminService = Depends(get_admin_service),
):
    """Exchange the admin credentials for a signed, expiring token."""
    token, expires_at = service.login(credentials.username, credentials.password)
    return AdminLoginResponse(token=token, expires_at=expires_at)


@router.get(
    "/files",
    response_model=AdminFileListResponse,
    dependencies=[Depends(require_admin)],
)
async def list_files(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: str | None = Query(None, description="Case-insensitive name filter"),
    file_type: str | None = Query(None, alias="type", description="MIME type prefix, e.g. image/"),
    service: AdminService = Depends(get_admin_service),
):
    """Get paginated list of files, newest first."""
    pagination = PaginationParams(page=page, size=limit)
    result = await service.list_files(pagination, search=search, file_type=file_type)

    return AdminFileListResponse(
        files=result["items"],
        pagination=PaginationInfo(
            total_files=result["total"],
            current_page=result["page"],
            total_pages=result["total_pages"],
            page_size=result["size"],
        ),
    )


@router.delete(
    "/files/{file_id}",
    response_model=ResponseSchema,
    dependencies=[Depends(require_admin)],
)
async def delete_file(
    file_id: UUID = Path(..., description="File ID"),
    service: AdminService = Depends(get_admin_service),
):
    await service.delete_file(file_id)
    return ResponseSchema(message="File deleted successfully")


@router.post(
    "/files/bulk-delete",
    response_model=BulkDeleteResponse,
    dependencies=[Depends(require_admin)],
)
async def bulk_delete_files(
    request: BulkDeleteRequest,
    service: AdminService = Depends(get_admin_service),
):
    """Delete several files; failures on individual files are logged and skipped."""
    deleted = await service.bulk_delete(request.ids)
    return BulkDeleteResponse(message=f"Deleted {deleted} file(s)", deleted=deleted)


@router.get(
    "/stats",
    response_model=AdminStatsResponse,
    dependencies=[Depends(require_admin)],
)
async def get_stats(service: AdminService = Depends(get_admin_service)):
    stats = await service.get_stats()
    return AdminStatsResponse(stats=AdminStats(**stats))
