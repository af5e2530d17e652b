"""SSH/SFTP machine handles backed by asyncssh."""

from __future__ import annotations

import logging
import posixpath
import stat
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, AsyncIterator

import asyncssh
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from mountgate.config import settings
from mountgate.exceptions import MachineConnectionError, RecordNotFound, RemoteIOError
from mountgate.models.machine import MACHINE_DISABLED, Machine
from mountgate.services.remote import (
    ENTRY_DIRECTORY,
    ENTRY_FILE,
    ENTRY_OTHER,
    CommandResult,
    DirectoryEntry,
    MachineInfo,
)

if TYPE_CHECKING:
    from asyncssh import SFTPAttrs, SFTPClient, SFTPClientFile, SSHClientConnection

logger = logging.getLogger(__name__)


def _decode(data: Any) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data


def _entry_type(attrs: SFTPAttrs) -> str:
    if attrs.permissions is None:
        return ENTRY_OTHER
    if stat.S_ISDIR(attrs.permissions):
        return ENTRY_DIRECTORY
    if stat.S_ISREG(attrs.permissions):
        return ENTRY_FILE
    return ENTRY_OTHER


def _sftp_message(exc: Exception) -> str:
    if isinstance(exc, asyncssh.SFTPError):
        return exc.reason or str(exc)
    return str(exc) or exc.__class__.__name__


class SshRemoteFile:
    """SFTP file whose failures surface as RemoteIOError."""

    def __init__(self, file: SFTPClientFile, path: str):
        self._file = file
        self.path = path
        self._closed = False

    async def read(self, size: int = -1) -> bytes:
        try:
            return await self._file.read(size)
        except (asyncssh.Error, OSError) as e:
            raise RemoteIOError(f"Read failed: {_sftp_message(e)}", paths=[self.path]) from e

    async def write(self, data: bytes) -> int:
        try:
            return await self._file.write(data)
        except (asyncssh.Error, OSError) as e:
            raise RemoteIOError(f"Write failed: {_sftp_message(e)}", paths=[self.path]) from e

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            await self._file.close()
        except (asyncssh.Error, OSError) as e:
            raise RemoteIOError(f"Close failed: {_sftp_message(e)}", paths=[self.path]) from e

    async def __aenter__(self) -> "SshRemoteFile":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()


class SshMachineHandle:
    """One SSH connection to one machine; the SFTP session is opened lazily."""

    def __init__(self, conn: SSHClientConnection, machine: MachineInfo):
        self._conn = conn
        self._sftp: SFTPClient | None = None
        self.machine = machine

    async def execute(self, command: str) -> CommandResult:
        """Run a shell command; stderr is interleaved into the output.

        A session the server refuses (exec disabled, SFTP-only account) or a
        dropped connection is reported as a failed result, not raised.
        """
        logger.debug("[%s] exec: %s", self.machine, command)
        try:
            result = await self._conn.run(command, check=False, stderr=asyncssh.STDOUT)
        except (asyncssh.Error, OSError) as e:
            logger.warning("[%s] exec failed: %s", self.machine, e)
            return CommandResult(output=_sftp_message(e), exit_status=-1)
        exit_status = result.exit_status if result.exit_status is not None else -1
        return CommandResult(output=_decode(result.stdout), exit_status=exit_status)

    async def _sftp_client(self) -> SFTPClient:
        if self._sftp is None:
            self._sftp = await self._conn.start_sftp_client()
        return self._sftp

    @asynccontextmanager
    async def _transfer(self, action: str, *paths: str) -> AsyncIterator[SFTPClient]:
        try:
            yield await self._sftp_client()
        except (asyncssh.Error, OSError) as e:
            message = _sftp_message(e)
            raise RemoteIOError(
                f"{action} failed: {message}", paths=paths, output=message
            ) from e

    async def read_dir(self, path: str) -> list[DirectoryEntry]:
        async with self._transfer("Read directory", path) as sftp:
            names = await sftp.readdir(path)

        entries = []
        for name in names:
            filename = _decode(name.filename)
            if filename in (".", ".."):
                continue
            attrs = name.attrs
            entries.append(DirectoryEntry(
                name=filename,
                path=posixpath.join(path, filename),
                size=attrs.size or 0,
                type=_entry_type(attrs),
                mode=stat.filemode(attrs.permissions) if attrs.permissions is not None else "",
                mod_time=attrs.mtime,
            ))
        return entries

    async def _open(self, path: str, mode: str) -> SshRemoteFile:
        async with self._transfer("Open file", path) as sftp:
            file = await sftp.open(path, mode)
        return SshRemoteFile(file, path)

    async def open(self, path: str) -> SshRemoteFile:
        return await self._open(path, "rb")

    async def create(self, path: str) -> SshRemoteFile:
        return await self._open(path, "wb")

    async def open_read_write(self, path: str) -> SshRemoteFile:
        return await self._open(path, "wb+")

    async def mkdir_all(self, path: str) -> None:
        async with self._transfer("Create directory", path) as sftp:
            await sftp.makedirs(path, exist_ok=True)

    async def remove_all(self, path: str) -> None:
        """Remove a file or a whole tree."""
        async with self._transfer("Remove", path) as sftp:
            attrs = await sftp.lstat(path)
            if attrs.permissions is not None and stat.S_ISDIR(attrs.permissions):
                await sftp.rmtree(path)
            else:
                await sftp.remove(path)

    async def rename(self, old_path: str, new_path: str) -> None:
        async with self._transfer("Rename", old_path, new_path) as sftp:
            await sftp.rename(old_path, new_path)

    async def close(self) -> None:
        if self._sftp is not None:
            self._sftp.exit()
            try:
                await self._sftp.wait_closed()
            except (asyncssh.Error, OSError) as e:
                logger.debug("[%s] SFTP close error: %s", self.machine, e)
            self._sftp = None
        self._conn.close()
        await self._conn.wait_closed()


class SshMachineRegistry:
    """Looks up machines in the database and opens one SSH connection per call."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def _load_machine(self, machine_id: int) -> Machine:
        async with self._session_factory() as db:
            machine = await db.get(Machine, machine_id)
        if machine is None:
            raise RecordNotFound(f"Machine {machine_id} does not exist")
        return machine

    @staticmethod
    def _connect_options(machine: Machine) -> dict[str, Any]:
        options: dict[str, Any] = {
            "port": machine.port or 22,
            "username": machine.username,
            "known_hosts": settings.ssh_known_hosts or None,
            "connect_timeout": settings.ssh_connect_timeout,
        }
        if machine.password:
            options["password"] = machine.password
        if machine.private_key:
            key = asyncssh.import_private_key(machine.private_key, machine.passphrase)
            options["client_keys"] = [key]
        else:
            options["client_keys"] = []
        return options

    async def get_handle(self, machine_id: int) -> SshMachineHandle:
        machine = await self._load_machine(machine_id)
        info = MachineInfo(
            id=machine.id,
            name=machine.name,
            ip=machine.ip,
            port=machine.port or 22,
            username=machine.username,
        )
        if machine.status == MACHINE_DISABLED:
            raise MachineConnectionError(f"Machine {info} is disabled")

        try:
            conn = await asyncssh.connect(machine.ip, **self._connect_options(machine))
        except (asyncssh.Error, asyncssh.KeyImportError, OSError) as e:
            logger.warning("SSH connection to %s failed: %s", info, e)
            raise MachineConnectionError(
                f"Failed to connect to machine {info}: {e}"
            ) from e

        logger.debug("SSH connection to %s established", info)
        return SshMachineHandle(conn, info)
