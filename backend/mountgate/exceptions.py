"""Typed failures raised by the file gateway.

Every error keeps the raw remote text (``output``) and the paths the caller
asked for, so operators can see what actually happened on the machine. Once a
machine handle has been obtained the failing operation also attaches the
machine descriptor as ``machine``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:
    from mountgate.services.remote import MachineInfo


class MountGateError(Exception):
    """Base class for all gateway failures."""

    status_code = 500

    def __init__(
        self,
        message: str,
        *,
        paths: Iterable[str] = (),
        output: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.paths = list(paths)
        self.output = output
        self.machine: MachineInfo | None = None

    def to_dict(self) -> dict:
        data: dict = {"detail": self.message}
        if self.paths:
            data["paths"] = self.paths
        if self.machine is not None:
            data["machine"] = str(self.machine)
        return data


class AccessDenied(MountGateError):
    """A path escapes the mount's root."""

    status_code = 403

    def __init__(self, path: str):
        super().__init__(f"No permission to access this directory or file: {path}", paths=[path])
        self.path = path


class RecordNotFound(MountGateError):
    """Unknown mount (or machine) id."""

    status_code = 404


class MachineConnectionError(MountGateError, ConnectionError):
    """Machine unreachable, disabled, or rejected the credentials."""

    status_code = 503


class RemoteCommandError(MountGateError):
    """A shell command exited non-zero; ``output`` is what it printed."""

    status_code = 400

    def __init__(self, message: str, *, paths: Iterable[str] = (), output: str | None = None):
        super().__init__(message, paths=paths, output=message if output is None else output)


class RemoteIOError(MountGateError):
    """SFTP failure: missing file, permission denied, disk full, ..."""

    status_code = 400
