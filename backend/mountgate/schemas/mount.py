"""File mount schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class FileMountSave(BaseModel):
    """Create (no id) or update a file mount."""
    id: int | None = None
    name: str = Field(min_length=1, max_length=200)
    path: str = Field(min_length=1)
    type: int | None = None  # 1 = directory, 2 = file


class FileMountOut(BaseModel):
    """File mount configuration."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    machine_id: int
    name: str
    path: str
    type: int | None = None
    creator: str | None = None
    modifier: str | None = None
    create_time: datetime | None = None
    update_time: datetime | None = None


class FileMountPage(BaseModel):
    """One page of file mounts."""
    total: int
    page: int
    page_size: int
    items: list[FileMountOut]
