"""
FileRecord model: metadata for one shared file (bytes live in the blob store).
"""

from sqlalchemy import BigInteger, Column, DateTime, Integer, String

from .base import BaseModel


class FileRecord(BaseModel):
    """
    Represents an uploaded, password-protected file.

    ``stored_name`` is the blob store key and ``file_path`` the resolved
    address (public URL or local path). Both are written once at creation.
    ``views`` and ``downloads`` are only changed through atomic increments.
    """

    __tablename__ = "file_records"

    original_name = Column(String(500), nullable=False)
    stored_name = Column(String(500), nullable=False)
    file_path = Column(String(1000), nullable=False)
    file_type = Column(String(255), nullable=False, default="application/octet-stream")
    file_size = Column(BigInteger, nullable=False, default=0)
    password_hash = Column(String(255), nullable=False)
    expires_at = Column(DateTime, nullable=True, index=True)

    views = Column(Integer, nullable=False, default=0, server_default="0")
    downloads = Column(Integer, nullable=False, default=0, server_default="0")

    def __repr__(self) -> str:
        return f"<FileRecord id={self.id} name={self.original_name!r}>"
