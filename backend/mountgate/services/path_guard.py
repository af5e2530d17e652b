"""Confines operation paths to a mount's root directory."""

from __future__ import annotations

import posixpath

from mountgate.exceptions import AccessDenied
from mountgate.models.file_mount import FileMount


def normalize(path: str) -> str:
    """Collapse ``.``/``..`` segments and duplicate separators."""
    return posixpath.normpath(path) if path else ""


def is_within(root: str, path: str) -> bool:
    """True if ``path`` equals ``root`` or lies below it."""
    root = normalize(root)
    path = normalize(path)
    if not root or not path:
        return False
    if path == root:
        return True
    prefix = root if root.endswith("/") else root + "/"
    return path.startswith(prefix)


def authorize(mount: FileMount, *paths: str) -> None:
    """Raise AccessDenied for the first path outside the mount's root.

    No paths means the operation works on the mount root itself.
    """
    for path in paths:
        if not is_within(mount.path, path):
            raise AccessDenied(path)
