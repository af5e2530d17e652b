"""SQLAlchemy ORM models for mountgate."""

from mountgate.models.base import Base
from mountgate.models.file_mount import FileMount
from mountgate.models.machine import Machine

__all__ = [
    "Base",
    "FileMount",
    "Machine",
]
