"""SKSecrets exceptions.

Every error carries the offending path(s) or profile so the operator
gets a precise, file-qualified diagnostic.
"""

from __future__ import annotations

from pathlib import Path
from typing import Union

PathLike = Union[str, Path]


class SecretsError(Exception):
    """Base exception for all SKSecrets errors."""


class PathError(SecretsError):
    """Raised when a filesystem root is missing or is not a directory."""

    def __init__(self, path: PathLike, reason: str):
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"{reason}: '{path}'")


# ---------------------------------------------------------------------------
# Integrity manifest
# ---------------------------------------------------------------------------


class ManifestError(SecretsError):
    """Base class for integrity manifest failures."""


class MissingManifest(ManifestError):
    """Raised when a manifest or sidecar checksum file does not exist."""

    def __init__(self, manifest: PathLike):
        self.manifest = Path(manifest)
        super().__init__(f"missing checksum file at '{manifest}'")


class MalformedManifest(ManifestError):
    """Raised when a checksum line does not match the two-field grammar."""

    def __init__(self, manifest: PathLike, line_number: int = 0):
        self.manifest = Path(manifest)
        self.line_number = line_number
        msg = f"ill-formatted checksum file at '{manifest}'"
        if line_number:
            msg += f" (line {line_number})"
        super().__init__(msg)


class UnreadableManifest(ManifestError):
    """Raised when a manifest or sidecar cannot be read."""

    def __init__(self, manifest: PathLike, cause: OSError):
        self.manifest = Path(manifest)
        self.cause = cause
        super().__init__(f"failed to read checksum file at '{manifest}': {cause}")


class UnreadableFile(ManifestError):
    """Raised when a file listed in a manifest cannot be read."""

    def __init__(self, path: PathLike, cause: OSError):
        self.path = Path(path)
        self.cause = cause
        super().__init__(f"failed to read file at '{path}': {cause}")


class ManifestWriteError(ManifestError):
    """Raised when a manifest or sidecar cannot be written."""

    def __init__(self, manifest: PathLike, cause: OSError):
        self.manifest = Path(manifest)
        self.cause = cause
        super().__init__(f"failed to write checksum file at '{manifest}': {cause}")


class Mismatch(ManifestError):
    """Raised when a file's digest diverges from its recorded digest."""

    def __init__(self, path: PathLike, manifest: PathLike):
        self.path = Path(path)
        self.manifest = Path(manifest)
        super().__init__(
            f"file at '{path}' doesn't match its hash in '{manifest}'. "
            "Possible integrity issue"
        )


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class ConfigError(SecretsError):
    """Base class for configuration failures."""


class InvalidSecretPath(ConfigError):
    """Raised when a profile declares a secret path that is not normalized."""

    kind = "secret"

    def __init__(self, profile: str, path: str, reason: str):
        self.profile = profile
        self.path = path
        self.reason = reason
        super().__init__(
            f"profile '{profile}' contains invalid {self.kind} path '{path}': {reason}"
        )


class InvalidImportPath(InvalidSecretPath):
    """Raised when a profile declares an import path that is not normalized."""

    kind = "import"


class DuplicateSecret(ConfigError):
    """Raised when a profile declares the same secret more than once."""

    def __init__(self, profile: str, path: str):
        self.profile = profile
        self.path = path
        super().__init__(f"profile '{profile}' declares secret '{path}' multiple times")


class OwnershipConflict(ConfigError):
    """Raised when two profiles both declare (own) the same secret."""

    def __init__(self, first: str, second: str, path: str):
        self.first = first
        self.second = second
        self.path = path
        super().__init__(
            f"secret '{path}' is declared (hence owned) by multiple profiles: "
            f"'{first}', '{second}'"
        )


class DuplicateImport(ConfigError):
    """Raised when a profile declares the same additional import twice."""

    def __init__(self, profile: str, path: str):
        self.profile = profile
        self.path = path
        super().__init__(
            f"profile '{profile}' declares additional import '{path}' multiple times"
        )


class DeclaredRedundant(ConfigError):
    """Raised when a profile imports a secret it already owns."""

    def __init__(self, profile: str, path: str):
        self.profile = profile
        self.path = path
        super().__init__(
            f"profile '{profile}' declares additional import '{path}' but it is "
            "already the owner of said secret, so it's redundant"
        )


class DeclaredMissing(ConfigError):
    """Raised when a profile imports a secret no profile owns."""

    def __init__(self, profile: str, path: str):
        self.profile = profile
        self.path = path
        super().__init__(
            f"profile '{profile}' declares additional import '{path}' which is "
            "never declared as a secret by any profile"
        )


class UnknownProfile(ConfigError):
    """Raised when the active profile appears nowhere in the config."""

    def __init__(self, profile: str):
        self.profile = profile
        super().__init__(f"profile '{profile}' is not declared in the config")


class UndeclaredSymlinkProfile(ConfigError):
    """Raised when ``symlinks`` names a profile with no secrets or imports."""

    def __init__(self, profile: str):
        self.profile = profile
        super().__init__(
            f"profile '{profile}' has a symlink directory but neither owns "
            f"nor imports any secrets"
        )


class ConfigNotFound(ConfigError):
    """Raised when no config file can be located."""

    def __init__(self, searched: list[Path]):
        self.searched = searched
        locations = ", ".join(f"'{p}'" for p in searched)
        super().__init__(f"could not find any config file (searched {locations})")


class ConfigReadError(ConfigError):
    """Raised when the config file cannot be read."""

    def __init__(self, path: PathLike, cause: OSError):
        self.path = Path(path)
        self.cause = cause
        super().__init__(f"failed to read config file at '{path}': {cause}")


class ConfigParseError(ConfigError):
    """Raised when the config file is not valid YAML or has the wrong shape."""

    def __init__(self, path: PathLike, detail: str):
        self.path = Path(path)
        self.detail = detail
        super().__init__(f"failed to parse config file at '{path}'\n{detail}")


class InvalidConfigFile(ConfigError):
    """Raised when a parsed config file fails validation."""

    def __init__(self, path: PathLike, cause: ConfigError):
        self.path = Path(path)
        self.cause = cause
        super().__init__(f"invalid config file at '{path}'\n{cause}")


# ---------------------------------------------------------------------------
# Cryptography
# ---------------------------------------------------------------------------


class CryptoError(SecretsError):
    """Base class for encryption and decryption failures."""


class EncryptError(CryptoError):
    """Raised when plaintext cannot be encrypted."""


class DecryptError(CryptoError):
    """Raised on a wrong passphrase or corrupted/tampered ciphertext.

    The two causes are indistinguishable with authenticated encryption.
    """


class ExistingExportDecryptError(DecryptError):
    """Raised when an already exported file cannot be decrypted on re-export."""

    def __init__(self, path: PathLike):
        self.path = Path(path)
        super().__init__(
            f"failed to decrypt existing exported file at '{path}' while checking "
            "that it matches the source. The export was possibly created with a "
            "different passphrase than the current one"
        )


# ---------------------------------------------------------------------------
# Pipelines and filesystem
# ---------------------------------------------------------------------------


class ExportError(SecretsError):
    """Base class for export-specific failures."""


class WriteVerifyError(ExportError):
    """Raised when a freshly written ciphertext does not decrypt to its source."""

    def __init__(self, path: PathLike):
        self.path = Path(path)
        super().__init__(
            f"exported file at '{path}' does not decrypt back to the source content"
        )


class ExistingExportMismatch(ExportError):
    """Raised when an existing export decrypts to different content."""

    def __init__(self, source: PathLike, endpoint: PathLike):
        self.source = Path(source)
        self.endpoint = Path(endpoint)
        super().__init__(
            f"exported file at '{endpoint}' already exists and decrypts correctly "
            f"but does not contain the content of '{source}'. Refusing to override it"
        )


class ContentMismatch(SecretsError):
    """Raised when a safe write meets an existing file with other content."""

    def __init__(self, path: PathLike):
        self.path = Path(path)
        super().__init__(
            f"file at '{path}' already exists and its content does not match the "
            "content meant to be written to it. Refusing to override it"
        )


class FileAccessError(SecretsError):
    """Raised when a file cannot be read, written or created."""

    def __init__(self, path: PathLike, action: str, cause: OSError):
        self.path = Path(path)
        self.action = action
        self.cause = cause
        super().__init__(f"failed to {action} '{path}': {cause}")


class MetadataError(SecretsError):
    """Raised when ownership or permissions cannot be applied."""

    def __init__(self, path: PathLike, cause: OSError):
        self.path = Path(path)
        self.cause = cause
        super().__init__(f"failed to assign ownership/permissions to '{path}': {cause}")


class SymlinkConflict(SecretsError):
    """Raised when a symlink destination is occupied by something else."""

    def __init__(self, link: PathLike, reason: str):
        self.link = Path(link)
        self.reason = reason
        super().__init__(f"cannot create symlink at '{link}': {reason}")
