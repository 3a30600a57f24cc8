"""
Integrity manifest -- SHA-256 checksums for a directory tree.

Each directory carries a ``sha256sums.txt`` listing one
``<hex-digest>  <relative-path>`` line per file, in the same format
``sha256sum`` produces, so an export can also be checked with
``sha256sum -c`` from inside the directory.

Single files additionally get a ``<name>.sha256`` sidecar holding just
their own line. The sidecar travels with the file and is checked right
after the file is written, independent of the directory manifest.

Manifest access is not concurrency-safe: callers serialize writes per
directory.
"""

from __future__ import annotations

import hashlib
import logging
import re
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Iterable

from .errors import (
    MalformedManifest,
    ManifestWriteError,
    Mismatch,
    MissingManifest,
    UnreadableFile,
    UnreadableManifest,
)

logger = logging.getLogger("sksecrets.checksum")

MANIFEST_NAME = "sha256sums.txt"
SIDECAR_SUFFIX = ".sha256"

_LINE_RE = re.compile(r"^([0-9a-f]{64})  (.+)$")


@dataclass(frozen=True)
class ManifestEntry:
    """One manifest line: a content digest and the path it describes."""

    digest: str
    path: str

    def to_line(self) -> str:
        return f"{self.digest}  {self.path}"


def sha256_file(path: Path) -> str:
    """Compute SHA-256 of a file.

    Args:
        path: Path to the file.

    Returns:
        str: Lowercase hex digest.

    Raises:
        UnreadableFile: If the file cannot be read.
    """
    h = hashlib.sha256()
    try:
        with open(path, "rb") as f:
            for chunk in iter(lambda: f.read(8192), b""):
                h.update(chunk)
    except OSError as exc:
        raise UnreadableFile(path, exc) from exc
    return h.hexdigest()


def sidecar_path(path: Path) -> Path:
    """Return the sidecar checksum path for a file (``<name>.sha256``)."""
    path = Path(path)
    return path.with_name(path.name + SIDECAR_SUFFIX)


def _parse_line(line: str, source: Path, line_number: int = 0) -> ManifestEntry:
    match = _LINE_RE.match(line)
    if not match:
        raise MalformedManifest(source, line_number)
    digest, rel = match.groups()
    pure = PurePosixPath(rel)
    if pure.is_absolute() or ".." in pure.parts:
        raise MalformedManifest(source, line_number)
    return ManifestEntry(digest=digest, path=rel)


def _read_text(path: Path) -> str:
    if not path.exists():
        raise MissingManifest(path)
    try:
        return path.read_bytes().decode("utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise UnreadableManifest(path, exc) from exc


def _split_lines(text: str, source: Path) -> list[str]:
    # Only "\n" ends a line; every line, the last included, must end with one.
    if not text:
        return []
    lines = text.split("\n")
    if lines[-1]:
        raise MalformedManifest(source, len(lines))
    return lines[:-1]


def read_manifest(directory: Path) -> list[ManifestEntry]:
    """Parse the manifest of a directory.

    Every line is parsed before anything else happens, so a malformed
    manifest is reported before any listed file is read. Lines end with
    ``\\n`` only, including the last one.

    Args:
        directory: Directory owning the manifest.

    Returns:
        list[ManifestEntry]: Entries in file order.

    Raises:
        MissingManifest: If the manifest does not exist.
        UnreadableManifest: If it cannot be read.
        MalformedManifest: If any line breaks the grammar.
    """
    manifest = Path(directory) / MANIFEST_NAME
    lines = _split_lines(_read_text(manifest), manifest)
    return [
        _parse_line(line, manifest, number)
        for number, line in enumerate(lines, start=1)
    ]


def _write_manifest(directory: Path, entries: list[ManifestEntry]) -> None:
    manifest = Path(directory) / MANIFEST_NAME
    content = "".join(entry.to_line() + "\n" for entry in entries)
    try:
        manifest.write_text(content, encoding="utf-8")
    except OSError as exc:
        raise ManifestWriteError(manifest, exc) from exc


def generate(directory: Path, files: Iterable[str]) -> list[ManifestEntry]:
    """Record digests for files and rewrite the directory manifest.

    Existing entries for other paths keep their position; entries for
    the given paths are replaced and moved to the end, in the order
    given.

    Args:
        directory: Directory owning the manifest.
        files: Paths relative to ``directory``.

    Returns:
        list[ManifestEntry]: The full manifest as written.

    Raises:
        ValueError: If a path names the manifest itself or holds a newline.
        ManifestError: On read, parse or write failure.
    """
    directory = Path(directory)
    new_entries: dict[str, ManifestEntry] = {}
    for rel in files:
        rel = str(PurePosixPath(rel))
        if rel == MANIFEST_NAME:
            raise ValueError("the manifest cannot list itself")
        if "\n" in rel:
            raise ValueError("manifest paths cannot contain a newline")
        new_entries[rel] = ManifestEntry(sha256_file(directory / rel), rel)

    existing: list[ManifestEntry] = []
    if (directory / MANIFEST_NAME).exists():
        existing = read_manifest(directory)

    entries = [e for e in existing if e.path not in new_entries]
    entries.extend(new_entries.values())
    _write_manifest(directory, entries)

    logger.debug(
        "Manifest %s updated (%d new, %d total)",
        directory / MANIFEST_NAME, len(new_entries), len(entries),
    )
    return entries


def write_sidecar(directory: Path, relative_path: str) -> Path:
    """Write the ``<name>.sha256`` sidecar for a single file.

    Args:
        directory: Base directory.
        relative_path: File path relative to ``directory``.

    Returns:
        Path: The sidecar that was written.
    """
    target = Path(directory) / relative_path
    entry = ManifestEntry(sha256_file(target), target.name)
    sidecar = sidecar_path(target)
    try:
        sidecar.write_text(entry.to_line() + "\n", encoding="utf-8")
    except OSError as exc:
        raise ManifestWriteError(sidecar, exc) from exc
    return sidecar


def append(directory: Path, relative_path: str, sidecar: bool = False) -> None:
    """Add or replace a single file's entry in the directory manifest.

    Args:
        directory: Directory owning the manifest.
        relative_path: File path relative to ``directory``.
        sidecar: Also write the file's own ``.sha256`` sidecar.
    """
    if sidecar:
        write_sidecar(directory, relative_path)
    generate(directory, [relative_path])


def verify_all(directory: Path) -> int:
    """Verify every file listed in a directory's manifest.

    Stops at the first mismatch.

    Args:
        directory: Directory owning the manifest.

    Returns:
        int: Number of verified entries.

    Raises:
        MissingManifest, UnreadableManifest, MalformedManifest,
        UnreadableFile, Mismatch.
    """
    directory = Path(directory)
    manifest = directory / MANIFEST_NAME
    entries = read_manifest(directory)

    for entry in entries:
        file_path = directory / entry.path
        if sha256_file(file_path) != entry.digest:
            raise Mismatch(file_path, manifest)

    logger.info("Verified %d checksums in %s", len(entries), manifest)
    return len(entries)


def verify_one(directory: Path, relative_path: str) -> None:
    """Verify a single file against its ``.sha256`` sidecar.

    Args:
        directory: Base directory.
        relative_path: File path relative to ``directory``.

    Raises:
        MissingManifest: If the sidecar does not exist.
        UnreadableManifest, MalformedManifest, UnreadableFile, Mismatch.
    """
    target = Path(directory) / relative_path
    sidecar = sidecar_path(target)
    entry = _parse_line(_read_text(sidecar).strip(), sidecar)

    if sha256_file(target) != entry.digest:
        raise Mismatch(target, sidecar)
