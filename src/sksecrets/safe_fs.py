"""
Safe filesystem primitives.

safe_write never silently overwrites: an existing file is accepted only
when it already holds exactly the bytes meant to be written. This is
what makes re-running an import idempotent without ever clobbering a
manually modified target file.
"""

from __future__ import annotations

import logging
import os
import stat
from dataclasses import dataclass
from pathlib import Path

from .errors import ContentMismatch, FileAccessError, MetadataError, PathError

logger = logging.getLogger("sksecrets.safe_fs")

NEW_FILE_MODE = 0o600


def safe_write(path: Path, content: bytes) -> bool:
    """Write content to path unless it exists with different content.

    Args:
        path: Destination file.
        content: Bytes to write.

    Returns:
        bool: True if the file was created, False if it already held
        identical content.

    Raises:
        ContentMismatch: If the file exists with different content.
        FileAccessError: On any I/O failure.
    """
    path = Path(path)

    if path.exists():
        try:
            existing = path.read_bytes()
        except OSError as exc:
            raise FileAccessError(path, "read existing file", exc) from exc
        if existing != content:
            raise ContentMismatch(path)
        logger.debug("Unchanged, skipping write: %s", path)
        return False

    try:
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, NEW_FILE_MODE)
        with os.fdopen(fd, "wb") as f:
            f.write(content)
    except OSError as exc:
        raise FileAccessError(path, "write", exc) from exc

    logger.debug("Wrote %d bytes: %s", len(content), path)
    return True


def read_bytes(path: Path) -> bytes:
    """Read a file, wrapping I/O failures in FileAccessError."""
    try:
        return Path(path).read_bytes()
    except OSError as exc:
        raise FileAccessError(path, "read", exc) from exc


def ensure_parent(path: Path, mode: int = 0o700) -> None:
    """Create any missing parent directories of path."""
    parent = Path(path).parent
    try:
        parent.mkdir(mode=mode, parents=True, exist_ok=True)
    except OSError as exc:
        raise FileAccessError(parent, "create directory", exc) from exc


def require_directory(path: Path, role: str) -> Path:
    """Ensure a pipeline root exists and is a directory.

    Args:
        path: Root to check.
        role: Human-readable role for the message ("source", "target").

    Returns:
        Path: The checked path.

    Raises:
        PathError: If the path is missing or not a directory.
    """
    path = Path(path)
    if not path.exists():
        raise PathError(path, f"{role} path does not exist")
    if not path.is_dir():
        raise PathError(path, f"{role} path is not a directory")
    return path


@dataclass(frozen=True)
class FileMetadata:
    """POSIX ownership and permission bits of a file."""

    uid: int
    gid: int
    mode: int

    @classmethod
    def from_path(cls, path: Path) -> "FileMetadata":
        """Read ownership and permissions from disk (symlinks not followed)."""
        try:
            st = os.lstat(path)
        except OSError as exc:
            raise FileAccessError(path, "read metadata of", exc) from exc
        return cls(uid=st.st_uid, gid=st.st_gid, mode=stat.S_IMODE(st.st_mode))

    def apply(self, path: Path) -> None:
        """Give path this ownership and mode.

        chown is only attempted when the owner actually differs, so an
        unprivileged run that keeps its own files never needs root.

        Raises:
            MetadataError: If chown or chmod fails.
        """
        try:
            st = os.lstat(path)
            if (st.st_uid, st.st_gid) != (self.uid, self.gid):
                os.chown(path, self.uid, self.gid)
            if stat.S_IMODE(st.st_mode) != self.mode:
                os.chmod(path, self.mode)
        except OSError as exc:
            raise MetadataError(path, exc) from exc
