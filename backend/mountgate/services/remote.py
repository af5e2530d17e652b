"""Remote channel capability: command execution plus file transfer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Sequence

ENTRY_DIRECTORY = "directory"
ENTRY_FILE = "file"
ENTRY_OTHER = "other"

_TYPE_ORDER = {ENTRY_DIRECTORY: 0, ENTRY_FILE: 1, ENTRY_OTHER: 2}


@dataclass(frozen=True)
class MachineInfo:
    """Machine descriptor returned with every file operation (for logging)."""

    id: int
    name: str
    ip: str
    port: int = 22
    username: str = ""

    def __str__(self) -> str:
        return f"{self.name}({self.ip}:{self.port})"


@dataclass(frozen=True)
class CommandResult:
    output: str  # stdout followed by stderr
    exit_status: int

    @property
    def ok(self) -> bool:
        return self.exit_status == 0


@dataclass(frozen=True)
class DirectoryEntry:
    name: str
    path: str
    size: int
    type: str  # directory, file, other
    mode: str = ""
    mod_time: float | None = None

    @property
    def is_dir(self) -> bool:
        return self.type == ENTRY_DIRECTORY


def sort_entries(entries: Sequence[DirectoryEntry]) -> list[DirectoryEntry]:
    """Directories first, then files, then everything else; by name within a type."""
    return sorted(entries, key=lambda e: (_TYPE_ORDER.get(e.type, len(_TYPE_ORDER)), e.name))


class RemoteFile(Protocol):
    async def read(self, size: int = -1) -> bytes:
        ...

    async def write(self, data: bytes) -> int:
        ...

    async def close(self) -> None:
        ...


class MachineHandle(Protocol):
    """Per-call handle bound to one machine.

    Transfer methods raise RemoteIOError; ``execute`` never raises for a
    non-zero exit, it reports it through ``CommandResult``.
    """

    machine: MachineInfo

    async def execute(self, command: str) -> CommandResult:
        ...

    async def read_dir(self, path: str) -> list[DirectoryEntry]:
        ...

    async def open(self, path: str) -> RemoteFile:
        ...

    async def create(self, path: str) -> RemoteFile:
        ...

    async def open_read_write(self, path: str) -> RemoteFile:
        ...

    async def mkdir_all(self, path: str) -> None:
        ...

    async def remove_all(self, path: str) -> None:
        ...

    async def rename(self, old_path: str, new_path: str) -> None:
        ...

    async def close(self) -> None:
        ...


class MachineResolver(Protocol):
    """Machine registry collaborator: hands out connected handles."""

    async def get_handle(self, machine_id: int) -> MachineHandle:
        ...
