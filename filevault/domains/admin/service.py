"""Admin service layer: login, listing, statistics and deletion."""

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from filevault.core.config import Settings, settings
from filevault.core.security import AdminTokenManager
from filevault.domains.files.service import FileService, as_utc
from filevault.exceptions.admin import InvalidAdminCredentialsError
from filevault.exceptions.file import FileValidationError
from filevault.schemas.admin import AdminFileItem
from filevault.services.storage import BlobStore
from filevault.shared.pagination import PaginationParams, paginate
from models.base import utcnow
from models.file_record import FileRecord

logger = logging.getLogger(__name__)

BYTES_PER_MB = 1024 * 1024


class AdminService:
    """Service class for the admin console."""

    def __init__(
        self,
        db: AsyncSession,
        store: BlobStore,
        config: Optional[Settings] = None,
        token_manager: Optional[AdminTokenManager] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self.config = config or settings
        self.token_manager = token_manager or AdminTokenManager()
        self.files = FileService(db, store, config=self.config, clock=clock)

    def login(self, username: str, password: str) -> tuple[str, datetime]:
        """Check the static credential pair and mint a signed token."""
        if not self.config.has_admin_login:
            logger.warning("Admin login attempted but no admin credentials are configured")
            raise InvalidAdminCredentialsError()

        if not self.token_manager.check_credentials(
            username,
            password,
            expected_username=self.config.admin_username,
            expected_password=self.config.admin_password,
        ):
            logger.info("Rejected admin login")
            raise InvalidAdminCredentialsError()

        logger.info("Admin logged in")
        return self.token_manager.issue_token()

    async def list_files(
        self,
        pagination: PaginationParams,
        search: Optional[str] = None,
        file_type: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Newest first. ``search`` and ``file_type`` are optional narrowing filters."""

        stmt = select(FileRecord)

        if search:
            stmt = stmt.where(
                func.lower(FileRecord.original_name).contains(search.lower(), autoescape=True)
            )
        if file_type:
            stmt = stmt.where(FileRecord.file_type.startswith(file_type, autoescape=True))

        stmt = stmt.order_by(desc(FileRecord.created_at), desc(FileRecord.id))

        result = await paginate(self.db, stmt, pagination)
        result["items"] = self._to_items(result["items"])
        return result

    def _to_items(self, records: List[FileRecord]) -> List[AdminFileItem]:
        now = self.files.clock()
        return [
            AdminFileItem(
                id=record.id,
                original_name=record.original_name,
                stored_name=record.stored_name,
                file_path=record.file_path,
                file_type=record.file_type,
                file_size=record.file_size,
                created_at=as_utc(record.created_at),
                expires_at=as_utc(record.expires_at),
                views=record.views or 0,
                downloads=record.downloads or 0,
                expired=self.files.is_expired(record, now),
            )
            for record in records
        ]

    async def get_stats(self) -> Dict[str, Any]:
        """Totals across every stored record, not just one page."""

        stmt = select(
            func.count(FileRecord.id),
            func.coalesce(func.sum(FileRecord.file_size), 0),
            func.coalesce(func.sum(FileRecord.views), 0),
            func.coalesce(func.sum(FileRecord.downloads), 0),
        )
        total_files, total_size, total_views, total_downloads = (await self.db.execute(stmt)).one()

        return {
            "total_files": int(total_files),
            "total_size_bytes": int(total_size),
            "total_size_in_mb": int(total_size) / BYTES_PER_MB,
            "total_views": int(total_views),
            "total_downloads": int(total_downloads),
        }

    async def delete_file(self, file_id: UUID) -> None:
        await self.files.delete_file(file_id)

    async def bulk_delete(self, file_ids: List[UUID]) -> int:
        """Best effort: one failing blob never stops the batch."""
        if not file_ids:
            raise FileValidationError("No file ids provided")

        deleted = await self.files.delete_files(file_ids)
        logger.info("Admin bulk delete removed %d of %d requested files", deleted, len(file_ids))
        return deleted
