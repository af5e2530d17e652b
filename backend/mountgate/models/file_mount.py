"""File mount model: a named root path on one machine."""

from datetime import datetime
from typing import Optional

from sqlalchemy import String, DateTime, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from mountgate.models.base import Base

MOUNT_TYPE_DIRECTORY = 1
MOUNT_TYPE_FILE = 2


class FileMount(Base):
    __tablename__ = "machine_files"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    machine_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    path: Mapped[str] = mapped_column(Text, nullable=False)  # authorization root
    type: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    creator: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    creator_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    modifier: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    modifier_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    create_time: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False
    )
    update_time: Mapped[Optional[datetime]] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now(), nullable=True
    )

    def __repr__(self) -> str:
        return f"<FileMount(id={self.id}, machine_id={self.machine_id}, path='{self.path}')>"
