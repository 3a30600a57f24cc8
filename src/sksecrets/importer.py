"""
Import pipeline -- restore a profile's secrets from an export.

The whole export is verified before anything is imported. Then each
secret the profile owns or additionally imports is decrypted, written
with safe_write (never clobbering divergent content), given back its
recorded owner/mode, and checked against its sidecar. Finally the
configured symlinks are reconciled.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from pydantic import BaseModel, Field

from . import checksum, crypto
from .config import ValidatedConfig
from .errors import DecryptError, FileAccessError, SymlinkConflict
from .exporter import encrypted_name
from .safe_fs import (
    FileMetadata,
    ensure_parent,
    read_bytes,
    require_directory,
    safe_write,
)

logger = logging.getLogger("sksecrets.import")


class ImportReport(BaseModel):
    """Outcome of an import run.

    Attributes:
        profile: Profile that was imported.
        target: Secrets root written to.
        written: Secrets newly written in this run.
        unchanged: Secrets already present with identical content.
        linked: Symlinks created.
        already_linked: Symlinks that were already correct.
    """

    profile: str
    target: str
    written: list[str] = Field(default_factory=list)
    unchanged: list[str] = Field(default_factory=list)
    linked: list[str] = Field(default_factory=list)
    already_linked: list[str] = Field(default_factory=list)


def import_file(
    relative_path: str,
    source: Path,
    target: Path,
    passphrase: str,
) -> bool:
    """Import one secret.

    Returns:
        bool: True if the plaintext was written, False if the target
        already held identical content.
    """
    encrypted = source / encrypted_name(relative_path)
    source_sidecar = checksum.sidecar_path(source / relative_path)
    target_file = target / relative_path
    target_sidecar = checksum.sidecar_path(target_file)

    try:
        plaintext = crypto.decrypt(read_bytes(encrypted), passphrase)
    except DecryptError as exc:
        raise DecryptError(f"failed to decrypt '{encrypted}': {exc}") from exc

    ensure_parent(target_file)

    written = safe_write(target_file, plaintext)
    FileMetadata.from_path(encrypted).apply(target_file)

    safe_write(target_sidecar, read_bytes(source_sidecar))
    FileMetadata.from_path(source_sidecar).apply(target_sidecar)

    checksum.verify_one(target, relative_path)
    return written


def reconcile_symlink(link: Path, destination: Path) -> bool:
    """Make ``link`` a symlink to ``destination``.

    Args:
        link: Where the symlink should live.
        destination: Absolute path the symlink should point to.

    Returns:
        bool: True if created, False if it was already correct.

    Raises:
        SymlinkConflict: If something else occupies ``link``.
    """
    if link.is_symlink():
        current = os.readlink(link)
        if current != str(destination):
            raise SymlinkConflict(
                link, f"already a symlink to '{current}' instead of '{destination}'"
            )
        return False

    if link.exists():
        raise SymlinkConflict(link, "a file or directory already exists there")

    ensure_parent(link, mode=0o755)
    try:
        link.symlink_to(destination)
    except OSError as exc:
        raise FileAccessError(link, "create symlink", exc) from exc
    return True


def import_secrets(
    profile: str,
    source: Path,
    target: Path,
    config: ValidatedConfig,
    passphrase: str,
) -> ImportReport:
    """Import a profile's secrets from an export tree.

    Args:
        profile: Active profile.
        source: Export root.
        target: Secrets root to populate.
        config: Validated config.
        passphrase: Decryption passphrase.

    Returns:
        ImportReport: What was written and linked.

    Raises:
        SecretsError: On the first failure; remaining imports are skipped.
    """
    source = require_directory(Path(source), "source")
    target = require_directory(Path(target), "target")
    config.require_profile(profile)

    checksum.verify_all(source)

    report = ImportReport(profile=profile, target=str(target))
    paths = config.import_paths(profile)

    for relative_path in paths:
        if import_file(relative_path, source, target, passphrase):
            report.written.append(relative_path)
            logger.info("Imported %s", relative_path)
        else:
            report.unchanged.append(relative_path)
            logger.info("Already imported %s", relative_path)

    link_dir = config.symlink_dir(profile)
    if link_dir is not None:
        target_abs = target.absolute()
        for relative_path in paths:
            link = link_dir / relative_path
            if reconcile_symlink(link, target_abs / relative_path):
                report.linked.append(relative_path)
                logger.info("Linked %s -> %s", link, target_abs / relative_path)
            else:
                report.already_linked.append(relative_path)
                logger.debug("Symlink already in place: %s", link)

    logger.info(
        "Import of profile %s complete: %d written, %d unchanged",
        profile, len(report.written), len(report.unchanged),
    )
    return report
