"""File lifecycle service: upload, read, count, download, delete and expire."""

import logging
import mimetypes
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from pathlib import PurePosixPath
from typing import Any
from uuid import UUID, uuid4

from fastapi import UploadFile
from sqlalchemy import and_, delete, not_, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from filevault.core.config import Settings, settings
from filevault.core.security import hash_password, verify_password
from filevault.exceptions.base import BaseAppException
from filevault.exceptions.file import (
    FileExpiredError,
    FileTooLargeError,
    FileValidationError,
    InvalidFilePasswordError,
    StorageError,
    StoredFileNotFoundError,
)
from filevault.schemas.file import (
    DirectUploadMetadata,
    FileMetadataResponse,
    SpreadsheetPreviewResponse,
)
from filevault.services.storage import BlobNotFoundError, BlobStore, BlobStream
from filevault.shared.preview import PreviewKind, file_extension, preview_kind
from filevault.shared.spreadsheet import (
    UnreadableSpreadsheetError,
    UnsupportedSpreadsheetError,
    read_table,
)
from models.base import utcnow
from models.file_record import FileRecord

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"
MAX_NAME_LENGTH = 500


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to the naive timestamps the database returns."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)


def clean_file_name(name: str | None) -> str:
    """Drop any client-side directory components from an uploaded name."""
    base = PurePosixPath((name or "").replace("\\", "/")).name.strip()
    return base[:MAX_NAME_LENGTH]


@dataclass
class FileContent:
    """What a content or download route needs to build its response.

    Exactly one of ``stream`` and ``redirect_url`` is set.
    """

    record: FileRecord
    stream: BlobStream | None = None
    redirect_url: str | None = None


class FileService:
    """Service class for the file lifecycle business logic."""

    def __init__(
        self,
        db: AsyncSession,
        store: BlobStore,
        config: Settings | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self.store = store
        self.config = config or settings
        self.clock = clock

    # ----- expiry -----

    def expired_clause(self, now: datetime):
        """SQL condition matching records whose link is no longer valid."""
        return or_(
            and_(FileRecord.expires_at.is_not(None), FileRecord.expires_at <= now),
            FileRecord.created_at <= now - self.config.record_retention,
        )

    def is_expired(self, record: FileRecord, now: datetime | None = None) -> bool:
        """Inclusive on both bounds: a record expiring exactly now is expired."""
        now = now or self.clock()
        if record.expires_at is not None and record.expires_at <= now:
            return True
        return record.created_at <= now - self.config.record_retention

    # ----- create -----

    async def create_file(
        self,
        upload: UploadFile | None,
        password: str | None,
        ttl: timedelta | None = None,
    ) -> FileRecord:
        """Hash the password, store the blob, then write the record."""

        if upload is None or not upload.filename or not password:
            raise FileValidationError("File and password are required")

        original_name = clean_file_name(upload.filename)
        if not original_name:
            raise FileValidationError("File name is required")

        size = await self._upload_size(upload)
        if size > self.config.max_file_size:
            raise FileTooLargeError(self.config.max_file_size)

        content_type = (
            upload.content_type
            or mimetypes.guess_type(original_name)[0]
            or DEFAULT_CONTENT_TYPE
        )
        password_hash = await run_in_threadpool(hash_password, password)

        # A storage failure propagates before any record exists
        blob = await self.store.store(upload, original_name, content_type)

        return await self._save_record(
            stored_name=blob.key,
            file_path=blob.address,
            original_name=original_name,
            file_type=content_type,
            file_size=blob.size or size,
            password_hash=password_hash,
            ttl=ttl,
        )

    async def create_from_stored_blob(
        self, metadata: DirectUploadMetadata, ttl: timedelta | None = None
    ) -> FileRecord:
        """Register a blob the browser already uploaded to the store directly."""

        if not all(
            [
                metadata.original_name,
                metadata.file_type,
                metadata.file_size,
                metadata.file_path,
                metadata.password,
            ]
        ):
            raise FileValidationError("Missing file metadata or password")

        if not self.store.supports_direct_upload or not self.store.owns(metadata.file_path):
            raise FileValidationError("File path does not belong to the configured storage")

        if metadata.file_size > self.config.max_file_size:
            raise FileTooLargeError(self.config.max_file_size)

        stored_name = self.store.key_from_address(metadata.file_path) or metadata.stored_name
        if not stored_name:
            raise FileValidationError("Stored file name could not be determined")

        password_hash = await run_in_threadpool(hash_password, metadata.password)
        return await self._save_record(
            stored_name=stored_name,
            file_path=metadata.file_path,
            original_name=clean_file_name(metadata.original_name),
            file_type=metadata.file_type,
            file_size=metadata.file_size,
            password_hash=password_hash,
            ttl=ttl,
        )

    async def _save_record(self, *, stored_name: str, ttl: timedelta | None, **fields: Any) -> FileRecord:
        now = self.clock()
        record = FileRecord(
            id=uuid4(),
            stored_name=stored_name,
            created_at=now,
            expires_at=now + (ttl or self.config.file_ttl),
            views=0,
            downloads=0,
            **fields,
        )

        try:
            self.db.add(record)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("Failed to save metadata for blob %s: %s", stored_name, e)
            await self._compensate_blob(stored_name)
            raise BaseAppException("Failed to save file metadata", error_code="METADATA_WRITE_FAILED") from e

        logger.info(
            "Stored file %s (%s, %d bytes), expires at %s",
            record.id,
            record.file_type,
            record.file_size,
            record.expires_at.isoformat(),
        )
        return record

    async def _compensate_blob(self, stored_name: str) -> None:
        try:
            await self.store.delete(stored_name)
        except StorageError as e:
            # Residual risk: the blob stays orphaned until removed by hand
            logger.error("Orphaned blob %s after failed metadata write: %s", stored_name, e)

    @staticmethod
    async def _upload_size(upload: UploadFile) -> int:
        if upload.size is not None:
            return upload.size
        upload.file.seek(0, 2)
        size = upload.file.tell()
        await upload.seek(0)
        return size

    # ----- read paths -----

    async def _get_record(self, file_id: UUID) -> FileRecord | None:
        stmt = (
            select(FileRecord)
            .where(FileRecord.id == file_id)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_live_record(self, file_id: UUID) -> FileRecord:
        """Fetch a record, treating expired ones exactly like missing ones."""
        record = await self._get_record(file_id)
        if record is None or self.is_expired(record):
            raise StoredFileNotFoundError()
        return record

    def links(self, file_id: UUID, absolute: bool = False) -> tuple[str, str]:
        base = self.config.frontend_url if absolute else ""
        return f"{base}/preview/{file_id}", f"{base}/download/{file_id}"

    def resolve_url(self, record: FileRecord) -> str:
        """Public URL for remote blobs, otherwise the API's own content route."""
        if record.file_path.startswith(("http://", "https://")):
            return record.file_path
        return f"{self.config.backend_url}/api/file/{record.id}/content"

    def to_metadata(self, record: FileRecord) -> FileMetadataResponse:
        preview_link, download_link = self.links(record.id)
        return FileMetadataResponse(
            original_name=record.original_name,
            file_type=record.file_type,
            file_size=record.file_size,
            created_at=as_utc(record.created_at),
            expires_at=as_utc(record.expires_at),
            ext=file_extension(record.original_name),
            url=self.resolve_url(record),
            views=record.views or 0,
            downloads=record.downloads or 0,
            preview_link=preview_link,
            download_link=download_link,
            preview_kind=preview_kind(record.original_name, record.file_type),
        )

    async def get_metadata(self, file_id: UUID) -> FileMetadataResponse:
        """Read-only projection; does not count a view."""
        return self.to_metadata(await self.get_live_record(file_id))

    async def _increment(self, file_id: UUID, column) -> int | None:
        """``column = column + 1`` in one statement; None when no live record matched."""
        stmt = (
            update(FileRecord)
            .where(FileRecord.id == file_id, not_(self.expired_clause(self.clock())))
            .values({column: column + 1})
            .returning(column)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        value = result.scalar_one_or_none()
        await self.db.commit()
        return value

    async def record_view(self, file_id: UUID) -> int:
        """Count one view and return the new total."""
        views = await self._increment(file_id, FileRecord.views)
        if views is None:
            raise StoredFileNotFoundError()
        return views

    async def _open_blob(self, record: FileRecord, range_header: str | None) -> BlobStream:
        try:
            return await self.store.open(record.stored_name, record.file_path, range_header)
        except BlobNotFoundError:
            logger.warning("Blob %s for file %s is missing", record.stored_name, record.id)
            raise StoredFileNotFoundError("File content is no longer available")

    async def open_content(self, file_id: UUID, range_header: str | None = None) -> FileContent:
        """Anonymous preview content: streamed when local, redirected when remote."""
        record = await self.get_live_record(file_id)
        if not self.store.serves_locally and record.file_path.startswith(("http://", "https://")):
            return FileContent(record=record, redirect_url=record.file_path)
        return FileContent(record=record, stream=await self._open_blob(record, range_header))

    async def read_spreadsheet(self, file_id: UUID) -> SpreadsheetPreviewResponse:
        """First sheet of a CSV or XLSX file as a table. Does not count a view."""
        record = await self.get_live_record(file_id)
        if preview_kind(record.original_name, record.file_type) != PreviewKind.spreadsheet:
            raise FileValidationError("File is not a spreadsheet")

        max_bytes = self.config.spreadsheet_preview_max_bytes
        if record.file_size > max_bytes:
            raise FileTooLargeError(max_bytes)

        stream = await self._open_blob(record, None)
        data = bytearray()
        try:
            async for chunk in stream.chunks:
                data.extend(chunk)
                if len(data) > max_bytes:
                    raise FileTooLargeError(max_bytes)
        finally:
            await stream.aclose()

        try:
            table = await run_in_threadpool(
                read_table,
                bytes(data),
                file_extension(record.original_name),
                record.file_type,
                self.config.spreadsheet_preview_max_rows,
                self.config.spreadsheet_preview_max_columns,
            )
        except UnsupportedSpreadsheetError:
            raise FileValidationError("Spreadsheet preview supports CSV and XLSX files")
        except UnreadableSpreadsheetError as e:
            logger.warning("Could not read spreadsheet %s: %s", file_id, e)
            raise FileValidationError("Spreadsheet could not be read")

        return SpreadsheetPreviewResponse(
            original_name=record.original_name,
            sheet_name=table.sheet_name,
            rows=table.rows,
            truncated=table.truncated,
        )

    async def download_with_password(
        self, file_id: UUID, password: str | None, range_header: str | None = None
    ) -> FileContent:
        """
        Verify the password and open the original bytes.

        Unknown ids fail NotFound, expired ones Gone, wrong passwords
        Unauthorized. Only a request starting at byte 0 counts as a download,
        so media scrubbing through ranges is not double counted.
        """
        if not password:
            raise FileValidationError("Password is required")

        record = await self._get_record(file_id)
        if record is None:
            raise StoredFileNotFoundError("File not found or expired")
        if self.is_expired(record):
            raise FileExpiredError()

        if not await run_in_threadpool(verify_password, password, record.password_hash):
            logger.info("Rejected download of %s: incorrect password", file_id)
            raise InvalidFilePasswordError()

        stream = await self._open_blob(record, range_header)
        if stream.content_range is None or stream.content_range.startswith("bytes 0-"):
            try:
                downloads = await self._increment(file_id, FileRecord.downloads)
            except Exception:
                await stream.aclose()
                raise
            if downloads is None:
                await stream.aclose()
                raise StoredFileNotFoundError("File not found or expired")

        return FileContent(record=record, stream=stream)

    # ----- delete -----

    async def _delete_blob(self, stored_name: str, file_id: UUID, strict: bool) -> bool:
        """Remove a blob; an already absent blob is only a warning.

        With ``strict`` any other storage failure propagates; otherwise it is
        logged and reported as False.
        """
        try:
            removed = await self.store.delete(stored_name)
        except StorageError as e:
            if strict:
                raise
            logger.error("Failed to delete blob %s of file %s: %s", stored_name, file_id, e)
            return False

        if not removed:
            logger.warning("Blob %s of file %s was already absent", stored_name, file_id)
        return True

    async def _delete_row(self, file_id: UUID) -> bool:
        result = await self.db.execute(
            delete(FileRecord)
            .where(FileRecord.id == file_id)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        return bool(result.rowcount)

    async def delete_file(self, file_id: UUID) -> None:
        """Remove blob and record. Expired but unswept records can be deleted too."""
        record = await self._get_record(file_id)
        if record is None:
            raise StoredFileNotFoundError()

        await self._delete_blob(record.stored_name, record.id, strict=True)
        await self._delete_row(record.id)
        logger.info("Deleted file %s", file_id)

    async def delete_files(self, file_ids: Iterable[UUID]) -> int:
        """Best-effort delete of many records; returns how many were removed."""
        ids = list(dict.fromkeys(file_ids))
        if not ids:
            return 0

        result = await self.db.execute(
            select(FileRecord.id, FileRecord.stored_name).where(FileRecord.id.in_(ids))
        )
        stats = await self._remove_rows(result.all())
        return stats["deleted"]

    async def _remove_rows(self, rows: list) -> dict[str, int]:
        stats = {"scanned": len(rows), "deleted": 0, "blob_failures": 0, "record_failures": 0}
        for file_id, stored_name in rows:
            try:
                blob_removed = await self._delete_blob(stored_name, file_id, strict=False)
            except Exception:
                logger.exception("Unexpected failure deleting blob %s of file %s", stored_name, file_id)
                blob_removed = False
            if not blob_removed:
                stats["blob_failures"] += 1
            try:
                if await self._delete_row(file_id):
                    stats["deleted"] += 1
            except SQLAlchemyError as e:
                await self.db.rollback()
                stats["record_failures"] += 1
                logger.error("Failed to delete record %s: %s", file_id, e)
        return stats

    async def purge_expired(self) -> dict[str, int]:
        """
        Delete every expired record and its blob.

        Each record is handled on its own: a failing blob delete is logged and
        the record is still removed, and a failing record delete does not stop
        the rest of the batch.
        """
        now = self.clock()
        result = await self.db.execute(
            select(FileRecord.id, FileRecord.stored_name)
            .where(self.expired_clause(now))
            .order_by(FileRecord.created_at)
        )
        rows = result.all()

        stats = await self._remove_rows(rows)
        if rows:
            logger.info("Expiry sweep removed %d of %d expired files", stats["deleted"], len(rows))
        return stats
