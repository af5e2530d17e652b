"""File mount persistence: paged queries and CRUD over machine_files."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import load_only

from mountgate.exceptions import RecordNotFound
from mountgate.models.file_mount import FileMount
from mountgate.models.machine import Machine

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class MountQuery:
    machine_id: int | None = None
    name: str | None = None  # substring match


@dataclass
class Page(Generic[T]):
    total: int
    page: int
    page_size: int
    items: list[T] = field(default_factory=list)


class FileMountStore:
    """CRUD for file mount configuration."""

    def __init__(self, db: AsyncSession):
        self._db = db

    def _filtered(self, stmt, query: MountQuery):
        if query.machine_id is not None:
            stmt = stmt.where(FileMount.machine_id == query.machine_id)
        if query.name:
            stmt = stmt.where(FileMount.name.contains(query.name))
        return stmt

    async def page_list(self, query: MountQuery, page: int = 1, page_size: int = 10) -> Page[FileMount]:
        page = max(page, 1)
        page_size = max(page_size, 1)

        total = await self._db.scalar(self._filtered(select(func.count(FileMount.id)), query))
        stmt = (
            self._filtered(select(FileMount), query)
            .order_by(FileMount.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        result = await self._db.execute(stmt)
        return Page(
            total=total or 0,
            page=page,
            page_size=page_size,
            items=list(result.scalars().all()),
        )

    async def get_by_id(self, mount_id: int, *cols: str) -> FileMount | None:
        """Fetch one mount; ``cols`` restricts the loaded columns."""
        stmt = select(FileMount).where(FileMount.id == mount_id)
        if cols:
            stmt = stmt.options(load_only(*(getattr(FileMount, c) for c in cols)))
        result = await self._db.execute(stmt)
        return result.scalar_one_or_none()

    async def create(self, mount: FileMount) -> FileMount:
        self._db.add(mount)
        await self._db.commit()
        await self._db.refresh(mount)
        logger.info("Created file mount %s (%s) on machine %s", mount.id, mount.path, mount.machine_id)
        return mount

    async def update_by_id(
        self, mount_id: int, values: dict[str, Any], machine_id: int | None = None
    ) -> FileMount:
        """Update one mount; with ``machine_id`` only a mount of that machine matches."""
        values = {k: v for k, v in values.items() if k != "id"}
        stmt = update(FileMount).where(FileMount.id == mount_id)
        if machine_id is not None:
            stmt = stmt.where(FileMount.machine_id == machine_id)
        result = await self._db.execute(stmt.values(**values))
        if result.rowcount == 0:
            await self._db.rollback()
            raise RecordNotFound(f"File mount {mount_id} does not exist")
        await self._db.commit()
        mount = await self.get_by_id(mount_id)
        await self._db.refresh(mount)
        return mount

    async def delete_by_id(self, mount_id: int, machine_id: int | None = None) -> None:
        stmt = delete(FileMount).where(FileMount.id == mount_id)
        if machine_id is not None:
            stmt = stmt.where(FileMount.machine_id == machine_id)
        result = await self._db.execute(stmt)
        if result.rowcount == 0:
            await self._db.rollback()
            raise RecordNotFound(f"File mount {mount_id} does not exist")
        await self._db.commit()
        logger.info("Deleted file mount %s", mount_id)

    async def save(
        self,
        values: dict[str, Any],
        user_id: int | None = None,
        username: str | None = None,
    ) -> FileMount:
        """Create (no id) or update a mount after checking its machine exists."""
        machine_id = values.get("machine_id")
        machine = await self._db.get(Machine, machine_id) if machine_id is not None else None
        if machine is None:
            raise RecordNotFound(f"Machine {machine_id} does not exist")

        values = dict(values)
        values["modifier"] = username
        values["modifier_id"] = user_id

        mount_id = values.pop("id", None)
        if mount_id:
            return await self.update_by_id(mount_id, values, machine_id=machine_id)

        return await self.create(FileMount(creator=username, creator_id=user_id, **values))
