"""
Export pipeline -- encrypt a profile's secrets into a portable tree.

For every secret the profile exports:

    1. verify the source against its .sha256 sidecar
    2. read plaintext and owner/mode
    3. create missing target directories
    4. encrypt to <path>.enc, then re-read and decrypt it to prove the
       write (an existing .enc is accepted only if it decrypts to the
       current plaintext)
    5. carry the source owner/mode over to the ciphertext
    6. copy the sidecar alongside
    7. append both files to the target's sha256sums.txt

The executable and the config text are then added, and the whole tree
is verified once more. Any failure aborts; nothing is rolled back.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from . import checksum, crypto
from .config import CONFIG_NAME, ENCRYPTED_SUFFIX, ValidatedConfig, save_config
from .errors import (
    DecryptError,
    ExistingExportDecryptError,
    ExistingExportMismatch,
    WriteVerifyError,
)
from .safe_fs import (
    FileMetadata,
    ensure_parent,
    read_bytes,
    require_directory,
    safe_write,
)

logger = logging.getLogger("sksecrets.export")


class ExportReport(BaseModel):
    """Outcome of an export run.

    Attributes:
        profile: Profile that was exported.
        target: Export root.
        written: Secrets newly encrypted in this run.
        skipped: Secrets already present with matching content.
        additional: Additional artifacts recorded in the manifest.
        verified: Number of manifest entries verified at the end.
    """

    profile: str
    target: str
    written: list[str] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)
    additional: list[str] = Field(default_factory=list)
    verified: int = 0


def encrypted_name(relative_path: str) -> str:
    return relative_path + ENCRYPTED_SUFFIX


def _write_encrypted(endpoint: Path, plaintext: bytes, passphrase: str) -> None:
    """Encrypt and write, then read back and decrypt to prove the write."""
    ciphertext = crypto.encrypt(plaintext, passphrase)
    safe_write(endpoint, ciphertext)

    try:
        roundtrip = crypto.decrypt(read_bytes(endpoint), passphrase)
    except DecryptError as exc:
        raise WriteVerifyError(endpoint) from exc
    if roundtrip != plaintext:
        raise WriteVerifyError(endpoint)


def _check_existing(
    source_file: Path, endpoint: Path, plaintext: bytes, passphrase: str
) -> None:
    try:
        existing = crypto.decrypt(read_bytes(endpoint), passphrase)
    except DecryptError as exc:
        raise ExistingExportDecryptError(endpoint) from exc
    if existing != plaintext:
        raise ExistingExportMismatch(source_file, endpoint)


def export_file(
    relative_path: str,
    source: Path,
    target: Path,
    passphrase: str,
) -> bool:
    """Export one secret.

    Args:
        relative_path: Normalized secret path.
        source: Secrets root.
        target: Export root.
        passphrase: Encryption passphrase.

    Returns:
        bool: True if the ciphertext was written, False if an existing
        export of identical content was kept.
    """
    source_file = source / relative_path
    source_sidecar = checksum.sidecar_path(source_file)
    enc_rel = encrypted_name(relative_path)
    endpoint = target / enc_rel
    sidecar_rel = relative_path + checksum.SIDECAR_SUFFIX

    checksum.verify_one(source, relative_path)

    plaintext = read_bytes(source_file)
    metadata = FileMetadata.from_path(source_file)

    ensure_parent(endpoint, mode=0o755)

    if endpoint.exists():
        _check_existing(source_file, endpoint, plaintext, passphrase)
        written = False
    else:
        _write_encrypted(endpoint, plaintext, passphrase)
        written = True
    metadata.apply(endpoint)

    target_sidecar = target / sidecar_rel
    safe_write(target_sidecar, read_bytes(source_sidecar))
    FileMetadata.from_path(source_sidecar).apply(target_sidecar)

    checksum.append(target, enc_rel)
    checksum.append(target, sidecar_rel)
    return written


def export_additional(
    target: Path,
    config: ValidatedConfig,
    executable: Optional[Path] = None,
) -> list[str]:
    """Export the executable and the config text next to the secrets.

    Both stay unencrypted: they are needed to run the import.

    Returns:
        list[str]: Relative paths added to the manifest.
    """
    added = []

    if executable is not None:
        executable = Path(executable)
        exe_endpoint = target / executable.name
        safe_write(exe_endpoint, read_bytes(executable))
        FileMetadata.from_path(executable).apply(exe_endpoint)
        checksum.append(target, executable.name)
        added.append(executable.name)
        logger.info("Exported executable %s", executable)

    save_config(target / CONFIG_NAME, config)
    checksum.append(target, CONFIG_NAME)
    added.append(CONFIG_NAME)
    logger.info("Exported config as %s", target / CONFIG_NAME)

    return added


def export_secrets(
    profile: str,
    source: Path,
    target: Path,
    config: ValidatedConfig,
    passphrase: str,
    executable: Optional[Path] = None,
) -> ExportReport:
    """Export a profile's secrets into an encrypted, checksummed tree.

    Args:
        profile: Active profile.
        source: Secrets root holding plaintext files and their sidecars.
        target: Export root.
        config: Validated config.
        passphrase: Encryption passphrase.
        executable: Program to ship with the export, if any.

    Returns:
        ExportReport: What was written, skipped and verified.

    Raises:
        SecretsError: On the first failure; the target may be partial.
    """
    source = require_directory(Path(source), "source")
    target = require_directory(Path(target), "target")
    config.require_profile(profile)

    report = ExportReport(profile=profile, target=str(target))

    for relative_path in config.export_paths(profile):
        if export_file(relative_path, source, target, passphrase):
            report.written.append(relative_path)
            logger.info("Exported %s", relative_path)
        else:
            report.skipped.append(relative_path)
            logger.info("Already exported %s", relative_path)

    report.additional = export_additional(target, config, executable)
    report.verified = checksum.verify_all(target)

    logger.info(
        "Export of profile %s complete: %d written, %d unchanged",
        profile, len(report.written), len(report.skipped),
    )
    return report


def verify_export(source: Path) -> int:
    """Verify the integrity of an existing export.

    Returns:
        int: Number of verified manifest entries.
    """
    source = require_directory(Path(source), "source")
    return checksum.verify_all(source)
