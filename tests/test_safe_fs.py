"""Tests for the safe-write guard and filesystem helpers."""

from __future__ import annotations

import os
import stat
from pathlib import Path

import pytest

from sksecrets.errors import ContentMismatch, FileAccessError, PathError
from sksecrets.safe_fs import FileMetadata, require_directory, safe_write


class TestSafeWrite:
    """safe_write never overwrites divergent content."""

    def test_creates_missing_file(self, tmp_path: Path) -> None:
        path = tmp_path / "secret"
        assert safe_write(path, b"X") is True
        assert path.read_bytes() == b"X"

    def test_new_file_is_private(self, tmp_path: Path) -> None:
        path = tmp_path / "secret"
        safe_write(path, b"X")
        assert stat.S_IMODE(path.stat().st_mode) == 0o600

    def test_same_content_twice(self, tmp_path: Path) -> None:
        """Writing identical content again succeeds and changes nothing."""
        path = tmp_path / "secret"
        safe_write(path, b"X")
        mtime = path.stat().st_mtime_ns
        assert safe_write(path, b"X") is False
        assert path.read_bytes() == b"X"
        assert path.stat().st_mtime_ns == mtime

    def test_different_content_refused(self, tmp_path: Path) -> None:
        """Different content fails and leaves the original bytes."""
        path = tmp_path / "secret"
        safe_write(path, b"X")
        with pytest.raises(ContentMismatch) as excinfo:
            safe_write(path, b"Y")
        assert excinfo.value.path == path
        assert path.read_bytes() == b"X"

    def test_missing_parent(self, tmp_path: Path) -> None:
        with pytest.raises(FileAccessError):
            safe_write(tmp_path / "nope" / "secret", b"X")


class TestRequireDirectory:
    def test_ok(self, tmp_path: Path) -> None:
        assert require_directory(tmp_path, "source") == tmp_path

    def test_missing(self, tmp_path: Path) -> None:
        with pytest.raises(PathError, match="does not exist"):
            require_directory(tmp_path / "missing", "source")

    def test_not_a_directory(self, tmp_path: Path) -> None:
        f = tmp_path / "file"
        f.write_text("x")
        with pytest.raises(PathError, match="target path is not a directory"):
            require_directory(f, "target")


class TestFileMetadata:
    def test_roundtrip_mode(self, tmp_path: Path) -> None:
        """Mode and owner are carried from one file to another."""
        src = tmp_path / "src"
        src.write_text("a")
        src.chmod(0o640)
        dst = tmp_path / "dst"
        dst.write_text("b")
        dst.chmod(0o600)

        meta = FileMetadata.from_path(src)
        meta.apply(dst)

        st = dst.stat()
        assert stat.S_IMODE(st.st_mode) == 0o640
        assert (st.st_uid, st.st_gid) == (os.getuid(), os.getgid())
        assert meta == FileMetadata.from_path(dst)
