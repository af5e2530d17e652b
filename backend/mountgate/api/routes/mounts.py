"""File mount configuration routes."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from mountgate.api.deps import get_current_user, get_mount_store
from mountgate.config import settings
from mountgate.schemas.auth import UserInfo
from mountgate.schemas.mount import FileMountOut, FileMountPage, FileMountSave
from mountgate.services.mount_store import FileMountStore, MountQuery

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/{machine_id}/files", response_model=FileMountPage)
async def list_mounts(
    machine_id: int,
    name: str | None = None,
    page: int = 1,
    page_size: int | None = None,
    store: FileMountStore = Depends(get_mount_store),
    current_user: UserInfo = Depends(get_current_user),
):
    """Paged file mounts of one machine."""
    result = await store.page_list(
        MountQuery(machine_id=machine_id, name=name),
        page=page,
        page_size=page_size or settings.default_page_size,
    )
    return FileMountPage(
        total=result.total,
        page=result.page,
        page_size=result.page_size,
        items=[FileMountOut.model_validate(m) for m in result.items],
    )


@router.post("/{machine_id}/files", response_model=FileMountOut)
async def save_mount(
    machine_id: int,
    body: FileMountSave,
    store: FileMountStore = Depends(get_mount_store),
    current_user: UserInfo = Depends(get_current_user),
):
    """Create or update a file mount."""
    values = body.model_dump()
    values["machine_id"] = machine_id
    mount = await store.save(values, user_id=current_user.id, username=current_user.username)
    logger.info("%s saved file mount %s (%s)", current_user.username, mount.id, mount.path)
    return mount


@router.delete("/{machine_id}/files/{mount_id}")
async def delete_mount(
    machine_id: int,
    mount_id: int,
    store: FileMountStore = Depends(get_mount_store),
    current_user: UserInfo = Depends(get_current_user),
):
    await store.delete_by_id(mount_id, machine_id=machine_id)
    return {"deleted": mount_id}
