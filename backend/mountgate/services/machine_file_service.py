"""File operations on machine file mounts over SSH (commands) and SFTP (transfer).

Every operation authorizes its paths against the mount root, obtains a fresh
machine handle from the injected resolver, performs the action and releases
the handle again. The machine descriptor is returned with the result and is
attached to any gateway error raised after the handle was obtained.
"""

from __future__ import annotations

import asyncio
import logging
import shlex
from contextlib import asynccontextmanager
from typing import AsyncIterator, Protocol

from mountgate.config import settings
from mountgate.exceptions import MountGateError, RecordNotFound, RemoteCommandError
from mountgate.models.file_mount import FileMount
from mountgate.services.mount_store import FileMountStore
from mountgate.services.path_guard import authorize
from mountgate.services.remote import (
    DirectoryEntry,
    MachineHandle,
    MachineInfo,
    MachineResolver,
    RemoteFile,
    sort_entries,
)

logger = logging.getLogger(__name__)


class AsyncReader(Protocol):
    async def read(self, size: int = -1) -> bytes:
        ...


def _dir_path(path: str) -> str:
    return path if path.endswith("/") else path + "/"


def _quote_all(paths) -> str:
    return " ".join(shlex.quote(p) for p in paths)


def parse_du_output(output: str, ok: bool, path: str = "") -> str:
    """Extract the size column from ``du -sh`` output.

    du may print "cannot access" warnings for vanished entries (e.g. under
    /proc) and exit non-zero although the summary line is still there:

        du: cannot access '/proc/19087/fd/3': No such file or directory
        18G\t/

    On error the second-to-last line (the last one is the empty string after
    the trailing newline) is taken as the summary. Only one trailing blank
    line is expected.
    """
    paths = [path] if path else []
    if not ok:
        if not output:
            raise RemoteCommandError("Failed to get directory size", paths=paths, output="")
        lines = output.split("\n")
        if len(lines) < 2:
            raise RemoteCommandError(output, paths=paths)
        line = lines[-2]
        if "\t" not in line:
            raise RemoteCommandError(output, paths=paths)
        output = line
    return output.split("\t", 1)[0]


class RemoteFileStream:
    """Readable remote file that owns its machine handle.

    Returned by ``read_file``; the caller must close it, which closes the
    file and then the handle.
    """

    def __init__(self, file: RemoteFile, handle: MachineHandle, chunk_size: int | None = None):
        self._file = file
        self._handle = handle
        self._chunk_size = chunk_size or settings.upload_chunk_size
        self._closed = False

    @property
    def machine(self) -> MachineInfo:
        return self._handle.machine

    @property
    def closed(self) -> bool:
        return self._closed

    async def read(self, size: int = -1) -> bytes:
        return await self._file.read(size)

    async def __aiter__(self) -> AsyncIterator[bytes]:
        while chunk := await self._file.read(self._chunk_size):
            yield chunk

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            await self._file.close()
        finally:
            await self._handle.close()

    async def __aenter__(self) -> "RemoteFileStream":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()


class MachineFileService:
    """Gateway for file operations on mounts."""

    def __init__(
        self,
        store: FileMountStore,
        resolver: MachineResolver,
        timeout: float | None = None,
        chunk_size: int | None = None,
    ):
        self._store = store
        self._resolver = resolver
        self._timeout = timeout if timeout is not None else settings.operation_timeout
        self._chunk_size = chunk_size or settings.upload_chunk_size

    async def resolve(self, mount_id: int, *paths: str) -> tuple[MachineHandle, FileMount]:
        """Check ``paths`` against the mount and return a connected handle."""
        if not mount_id or mount_id <= 0:
            raise RecordNotFound("File mount id must not be empty")
        mount = await self._store.get_by_id(mount_id, "id", "machine_id", "path")
        if mount is None:
            raise RecordNotFound(f"File mount {mount_id} does not exist")
        authorize(mount, *paths)
        handle = await self._resolver.get_handle(mount.machine_id)
        return handle, mount

    @staticmethod
    def _attach(exc: MountGateError, handle: MachineHandle) -> None:
        if exc.machine is None:
            exc.machine = handle.machine

    @asynccontextmanager
    async def _session(self, mount_id: int, *paths: str) -> AsyncIterator[tuple[MachineHandle, FileMount]]:
        async with asyncio.timeout(self._timeout):
            handle, mount = await self.resolve(mount_id, *paths)
            try:
                yield handle, mount
            except MountGateError as e:
                self._attach(e, handle)
                raise
            finally:
                await handle.close()

    async def list_directory(
        self, mount_id: int, path: str | None = None
    ) -> tuple[MachineInfo, list[DirectoryEntry]]:
        """List ``path`` (the mount root when omitted), directories first."""
        paths = (path,) if path else ()
        async with self._session(mount_id, *paths) as (handle, mount):
            entries = await handle.read_dir(_dir_path(path or mount.path))
            return handle.machine, sort_entries(entries)

    async def directory_size(self, mount_id: int, path: str) -> tuple[MachineInfo, str]:
        async with self._session(mount_id, path) as (handle, _):
            result = await handle.execute(f"du -sh {shlex.quote(path)}")
            return handle.machine, parse_du_output(result.output, result.ok, path)

    async def stat(self, mount_id: int, path: str) -> tuple[MachineInfo, str]:
        async with self._session(mount_id, path) as (handle, _):
            result = await handle.execute(f"stat -L {shlex.quote(path)}")
            if not result.ok:
                raise RemoteCommandError(result.output, paths=[path])
            return handle.machine, result.output

    async def mkdir(self, mount_id: int, path: str) -> MachineInfo:
        async with self._session(mount_id, path) as (handle, _):
            await handle.mkdir_all(_dir_path(path))
            return handle.machine

    async def create_file(self, mount_id: int, path: str) -> MachineInfo:
        async with self._session(mount_id, path) as (handle, _):
            file = await handle.create(path)
            await file.close()
            return handle.machine

    async def read_file(self, mount_id: int, path: str) -> tuple[MachineInfo, RemoteFileStream]:
        """Open ``path`` for reading. The returned stream must be closed by the caller."""
        async with asyncio.timeout(self._timeout):
            handle, _ = await self.resolve(mount_id, path)
            try:
                file = await handle.open(path)
            except BaseException as e:
                if isinstance(e, MountGateError):
                    self._attach(e, handle)
                await handle.close()
                raise
        return handle.machine, RemoteFileStream(file, handle, self._chunk_size)

    async def write_file_content(self, mount_id: int, path: str, content: bytes) -> MachineInfo:
        async with self._session(mount_id, path) as (handle, _):
            file = await handle.open_read_write(path)
            try:
                await file.write(content)
            finally:
                await file.close()
            return handle.machine

    async def upload_file(
        self, mount_id: int, path: str, filename: str, stream: AsyncReader
    ) -> MachineInfo:
        """Copy ``stream`` into ``path/filename``; both must lie inside the mount."""
        dest = _dir_path(path) + filename
        async with self._session(mount_id, path, dest) as (handle, _):
            file = await handle.create(dest)
            try:
                while chunk := await stream.read(self._chunk_size):
                    await file.write(chunk)
            finally:
                await file.close()
            return handle.machine

    async def remove_file(self, mount_id: int, *paths: str) -> MachineInfo:
        """Remove files and directories recursively.

        ``rm -rf`` is tried first; if it fails each path is removed over SFTP
        in order, stopping at the first failure (earlier removals stay done).
        """
        async with self._session(mount_id, *paths) as (handle, _):
            result = await handle.execute(f"rm -rf {_quote_all(paths)}")
            if result.ok:
                return handle.machine

            logger.error("Failed to remove files with rm on %s: %s", handle.machine, result.output)
            for path in paths:
                await handle.remove_all(path)
            return handle.machine

    async def _run_transfer_command(
        self, mount_id: int, command: str, to_path: str, paths: tuple[str, ...]
    ) -> MachineInfo:
        async with self._session(mount_id, *paths, to_path) as (handle, _):
            result = await handle.execute(f"{command} {_quote_all(paths)} {shlex.quote(to_path)}")
            if not result.ok:
                raise RemoteCommandError(
                    result.output or f"{command} exited with status {result.exit_status}",
                    paths=[*paths, to_path],
                    output=result.output,
                )
            return handle.machine

    async def copy(self, mount_id: int, to_path: str, *paths: str) -> MachineInfo:
        return await self._run_transfer_command(mount_id, "cp -r", to_path, paths)

    async def move(self, mount_id: int, to_path: str, *paths: str) -> MachineInfo:
        return await self._run_transfer_command(mount_id, "mv", to_path, paths)

    async def rename(self, mount_id: int, old_name: str, new_name: str) -> MachineInfo:
        # Only the destination is checked against the mount root.
        async with self._session(mount_id, new_name) as (handle, _):
            await handle.rename(old_name, new_name)
            return handle.machine
