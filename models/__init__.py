"""
Models package initialization.
"""

from .base import Base, BaseModel, utcnow
from .file_record import FileRecord

__all__ = [
    "Base",
    "BaseModel",
    "FileRecord",
    "utcnow",
]
