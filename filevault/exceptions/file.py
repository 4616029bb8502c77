# ruff: noqa: D107
"""Exceptions raised by the file lifecycle service."""

from typing import Any

from .base import BaseAppException, NotFoundError, ValidationError


class StoredFileNotFoundError(NotFoundError):
    """Raised when a file id is unknown or its link has expired."""

    def __init__(self, message: str = "File not found"):
        super().__init__(message=message, error_code="FILE_NOT_FOUND")


class FileExpiredError(BaseAppException):
    """Raised on the password-gated download path once a link has expired."""

    def __init__(self, message: str = "Link has expired"):
        super().__init__(message=message, status_code=410, error_code="FILE_EXPIRED")


class InvalidFilePasswordError(BaseAppException):
    """Raised when the download password does not match."""

    def __init__(self, message: str = "Incorrect password"):
        super().__init__(message=message, status_code=401, error_code="INVALID_PASSWORD")


class FileValidationError(ValidationError):
    """Raised when an upload or download request is missing required input."""


class FileTooLargeError(BaseAppException):
    """Raised when an upload exceeds the configured size limit."""

    def __init__(self, max_size: int):
        super().__init__(
            message=f"File exceeds the maximum allowed size of {max_size // (1024 * 1024)} MB",
            status_code=413,
            error_code="FILE_TOO_LARGE",
            details={"max_size": max_size},
        )


class RangeNotSatisfiableError(BaseAppException):
    """Raised when a Range header cannot be served for the blob size."""

    def __init__(self, size: int):
        super().__init__(
            message="Requested range not satisfiable",
            status_code=416,
            error_code="RANGE_NOT_SATISFIABLE",
            headers={"Content-Range": f"bytes */{size}"},
        )


class StorageError(BaseAppException):
    """Raised when the blob store is unreachable or answers with an error."""

    def __init__(self, message: str = "File storage error", details: dict[str, Any] | None = None):
        super().__init__(
            message=message, status_code=500, error_code="STORAGE_ERROR", details=details
        )
