# filevault/core/dependencies.py
import logging
from functools import lru_cache

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from filevault.core.config import settings
from filevault.core.security import AdminTokenManager
from filevault.database import get_db
from filevault.domains.admin.service import AdminService
from filevault.domains.files.service import FileService
from filevault.exceptions.admin import AdminAccessDeniedError
from filevault.services.storage import BlobStore, build_blob_store

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

__all__ = [
    "get_db",
    "get_blob_store",
    "get_token_manager",
    "get_file_service",
    "get_admin_service",
    "require_admin",
]


@lru_cache
def get_blob_store() -> BlobStore:
    """Process-wide blob store for the configured backend."""
    return build_blob_store(settings)


@lru_cache
def get_token_manager() -> AdminTokenManager:
    return AdminTokenManager()


def get_file_service(
    db: AsyncSession = Depends(get_db),
    store: BlobStore = Depends(get_blob_store),
) -> FileService:
    return FileService(db, store)


def get_admin_service(
    db: AsyncSession = Depends(get_db),
    store: BlobStore = Depends(get_blob_store),
    token_manager: AdminTokenManager = Depends(get_token_manager),
) -> AdminService:
    return AdminService(db, store, token_manager=token_manager)


async def require_admin(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    token_manager: AdminTokenManager = Depends(get_token_manager),
) -> dict:
    """Validate the admin bearer token.

    Missing, malformed, expired and forged tokens are all answered the same
    way: 403 Forbidden.

    Returns:
        dict: Decoded token claims
    """
    if credentials is None or not credentials.credentials:
        raise AdminAccessDeniedError()

    payload = token_manager.verify_token(credentials.credentials)
    if not payload:
        raise AdminAccessDeniedError()

    # Add token id to request state for logging
    request.state.admin_token_id = payload.get("jti")
    return payload
