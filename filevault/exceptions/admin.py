# ruff: noqa: D107
"""Admin access exceptions."""

from .base import AppPermissionError, BaseAppException


class InvalidAdminCredentialsError(BaseAppException):
    """Raised when the admin login pair does not match."""

    def __init__(self, message: str = "Invalid credentials"):
        super().__init__(message=message, status_code=401, error_code="INVALID_CREDENTIALS")


class AdminAccessDeniedError(AppPermissionError):
    """Raised when an admin route is called without a valid bearer token."""

    def __init__(self, message: str = "Missing or invalid token"):
        super().__init__(
            message=message,
            error_code="ADMIN_ACCESS_DENIED",
            headers={"WWW-Authenticate": "Bearer"},
        )
