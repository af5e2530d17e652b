"""Remote file operation routes."""

from __future__ import annotations

import logging
import posixpath
from dataclasses import asdict
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from mountgate.api.deps import get_current_user, get_file_service
from mountgate.schemas.auth import UserInfo
from mountgate.schemas.files import (
    CopyMoveRequest,
    CreateFileRequest,
    DirectoryEntryOut,
    FileOpResult,
    RemoveFileRequest,
    RenameRequest,
    WriteFileRequest,
)
from mountgate.services.machine_file_service import MachineFileService
from mountgate.services.remote import MachineInfo

logger = logging.getLogger(__name__)
router = APIRouter()


def _done(user: UserInfo, action: str, machine: MachineInfo, *paths: str) -> FileOpResult:
    logger.info("%s %s on %s: %s", user.username, action, machine, " ".join(paths))
    return FileOpResult(machine=str(machine))


@router.get("/{mount_id}/read-dir", response_model=list[DirectoryEntryOut])
async def read_dir(
    mount_id: int,
    path: str | None = None,
    service: MachineFileService = Depends(get_file_service),
    current_user: UserInfo = Depends(get_current_user),
):
    """List a directory (the mount root when no path is given)."""
    _, entries = await service.list_directory(mount_id, path)
    return [DirectoryEntryOut(**asdict(e)) for e in entries]


@router.get("/{mount_id}/dir-size", response_model=FileOpResult)
async def dir_size(
    mount_id: int,
    path: str,
    service: MachineFileService = Depends(get_file_service),
    current_user: UserInfo = Depends(get_current_user),
):
    machine, size = await service.directory_size(mount_id, path)
    return FileOpResult(machine=str(machine), result=size)


@router.get("/{mount_id}/file-stat", response_model=FileOpResult)
async def file_stat(
    mount_id: int,
    path: str,
    service: MachineFileService = Depends(get_file_service),
    current_user: UserInfo = Depends(get_current_user),
):
    machine, output = await service.stat(mount_id, path)
    return FileOpResult(machine=str(machine), result=output)


@router.get("/{mount_id}/read")
async def read_file(
    mount_id: int,
    path: str,
    service: MachineFileService = Depends(get_file_service),
    current_user: UserInfo = Depends(get_current_user),
):
    """Stream a remote file; the SSH connection closes when the response ends."""
    machine, stream = await service.read_file(mount_id, path)
    logger.info("%s read %s on %s", current_user.username, path, machine)
    filename = quote(posixpath.basename(path) or "download")
    return StreamingResponse(
        stream,
        media_type="application/octet-stream",
        headers={"Content-Disposition": f"attachment; filename*=UTF-8''{filename}"},
        background=BackgroundTask(stream.close),
    )


@router.post("/{mount_id}/create", response_model=FileOpResult)
async def create_file(
    mount_id: int,
    body: CreateFileRequest,
    service: MachineFileService = Depends(get_file_service),
    current_user: UserInfo = Depends(get_current_user),
):
    """Create an empty file, or a directory when type is "d"."""
    if body.type == "d":
        machine = await service.mkdir(mount_id, body.path)
        return _done(current_user, "created directory", machine, body.path)
    machine = await service.create_file(mount_id, body.path)
    return _done(current_user, "created file", machine, body.path)


@router.post("/{mount_id}/write", response_model=FileOpResult)
async def write_file(
    mount_id: int,
    body: WriteFileRequest,
    service: MachineFileService = Depends(get_file_service),
    current_user: UserInfo = Depends(get_current_user),
):
    machine = await service.write_file_content(mount_id, body.path, body.content.encode("utf-8"))
    return _done(current_user, "wrote", machine, body.path)


@router.post("/{mount_id}/upload", response_model=FileOpResult)
async def upload_file(
    mount_id: int,
    path: str = Form(...),
    file: UploadFile = File(...),
    service: MachineFileService = Depends(get_file_service),
    current_user: UserInfo = Depends(get_current_user),
):
    filename = posixpath.basename(file.filename or "")
    if not filename:
        filename = "upload"
    try:
        machine = await service.upload_file(mount_id, path, filename, file)
    finally:
        await file.close()
    return _done(current_user, "uploaded", machine, posixpath.join(path, filename))


@router.post("/{mount_id}/remove", response_model=FileOpResult)
async def remove_file(
    mount_id: int,
    body: RemoveFileRequest,
    service: MachineFileService = Depends(get_file_service),
    current_user: UserInfo = Depends(get_current_user),
):
    machine = await service.remove_file(mount_id, *body.paths)
    return _done(current_user, "removed", machine, *body.paths)


@router.post("/{mount_id}/copy", response_model=FileOpResult)
async def copy_files(
    mount_id: int,
    body: CopyMoveRequest,
    service: MachineFileService = Depends(get_file_service),
    current_user: UserInfo = Depends(get_current_user),
):
    machine = await service.copy(mount_id, body.to_path, *body.paths)
    return _done(current_user, f"copied to {body.to_path}", machine, *body.paths)


@router.post("/{mount_id}/mv", response_model=FileOpResult)
async def move_files(
    mount_id: int,
    body: CopyMoveRequest,
    service: MachineFileService = Depends(get_file_service),
    current_user: UserInfo = Depends(get_current_user),
):
    machine = await service.move(mount_id, body.to_path, *body.paths)
    return _done(current_user, f"moved to {body.to_path}", machine, *body.paths)


@router.post("/{mount_id}/rename", response_model=FileOpResult)
async def rename_file(
    mount_id: int,
    body: RenameRequest,
    service: MachineFileService = Depends(get_file_service),
    current_user: UserInfo = Depends(get_current_user),
):
    machine = await service.rename(mount_id, body.old_name, body.new_name)
    return _done(current_user, f"renamed to {body.new_name}", machine, body.old_name)
