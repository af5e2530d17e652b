"""Remote file operation schemas."""

from pydantic import BaseModel, Field


class DirectoryEntryOut(BaseModel):
    """One entry of a remote directory listing."""
    name: str
    path: str
    size: int
    type: str  # directory, file, other
    mode: str = ""
    mod_time: float | None = None


class CreateFileRequest(BaseModel):
    path: str = Field(min_length=1)
    type: str = "-"  # "d" creates a directory


class WriteFileRequest(BaseModel):
    path: str = Field(min_length=1)
    content: str = ""


class RemoveFileRequest(BaseModel):
    paths: list[str] = Field(min_length=1)


class CopyMoveRequest(BaseModel):
    to_path: str = Field(min_length=1)
    paths: list[str] = Field(min_length=1)


class RenameRequest(BaseModel):
    old_name: str = Field(min_length=1)
    new_name: str = Field(min_length=1)


class FileOpResult(BaseModel):
    """Result of a remote file operation, with the machine it ran on."""
    machine: str
    result: str | None = None
