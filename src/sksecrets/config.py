"""
Configuration -- profiles, owned secrets, and additional imports.

The config file is YAML:

    secrets:
      alice: [db.key, ssh/id_ed25519]
      shared: [wifi.psk]
    additional_imports:
      bob: [ssh/id_ed25519]
    symlinks:
      alice: /root/.secrets-$profile

It is loaded once, proven well-formed by validate_config(), and from
then on only the immutable ValidatedConfig reaches the pipelines. The
original text is kept so an export can carry it byte-for-byte.
"""

from __future__ import annotations

import logging
import os
import unicodedata
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from . import SHARED_PROFILE
from .checksum import MANIFEST_NAME, SIDECAR_SUFFIX
from .errors import (
    ConfigError,
    ConfigNotFound,
    ConfigParseError,
    ConfigReadError,
    DeclaredMissing,
    DeclaredRedundant,
    DuplicateImport,
    DuplicateSecret,
    InvalidConfigFile,
    InvalidImportPath,
    InvalidSecretPath,
    OwnershipConflict,
    UndeclaredSymlinkProfile,
    UnknownProfile,
)
from .safe_fs import safe_write

logger = logging.getLogger("sksecrets.config")

CONFIG_NAME = "sksecrets.yaml"
ENCRYPTED_SUFFIX = ".enc"
PROFILE_PLACEHOLDER = "$profile"


class RawConfig(BaseModel):
    """Config file contents exactly as declared, before validation."""

    model_config = ConfigDict(extra="forbid")

    secrets: dict[str, list[str]] = Field(default_factory=dict)
    additional_imports: dict[str, list[str]] = Field(default_factory=dict)
    symlinks: dict[str, str] = Field(default_factory=dict)


class ValidatedConfig(BaseModel):
    """A config proven to satisfy every ownership invariant.

    The mappings are read-only views: once validated, ownership can no
    longer be edited.

    Attributes:
        source: Original config text, re-exported verbatim.
        secrets: Profile -> owned secret paths, in declaration order.
        additional_imports: Profile -> secrets imported from other owners.
        symlinks: Profile -> symlink destination directory template.
    """

    model_config = ConfigDict(frozen=True)

    source: str = ""
    secrets: Mapping[str, tuple[str, ...]] = Field(default_factory=dict)
    additional_imports: Mapping[str, tuple[str, ...]] = Field(default_factory=dict)
    symlinks: Mapping[str, str] = Field(default_factory=dict)

    @field_validator("secrets", "additional_imports", "symlinks", mode="after")
    @classmethod
    def read_only(cls, v: Mapping) -> Mapping:
        return MappingProxyType(dict(v))

    def profiles(self) -> list[str]:
        """Profiles owning or importing secrets, in first-seen order."""
        names: list[str] = []
        for mapping in (self.secrets, self.additional_imports):
            for name in mapping:
                if name not in names:
                    names.append(name)
        return names

    def require_profile(self, profile: str) -> None:
        if profile not in self.profiles():
            raise UnknownProfile(profile)

    def secrets_for(self, profile: str) -> tuple[str, ...]:
        return self.secrets.get(profile, ())

    def imports_for(self, profile: str) -> tuple[str, ...]:
        return self.additional_imports.get(profile, ())

    def export_paths(self, profile: str) -> list[str]:
        """Secrets exported by a profile: its own, then the shared ones."""
        paths = list(self.secrets_for(profile))
        if profile != SHARED_PROFILE:
            paths.extend(self.secrets_for(SHARED_PROFILE))
        return paths

    def import_paths(self, profile: str) -> list[str]:
        """Secrets imported by a profile: its own, then additional imports."""
        return list(self.secrets_for(profile)) + list(self.imports_for(profile))

    def symlink_dir(self, profile: str) -> Optional[Path]:
        template = self.symlinks.get(profile)
        if not template:
            return None
        return Path(template.replace(PROFILE_PLACEHOLDER, profile)).expanduser()


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def normalize_path(path: str) -> str:
    """Normalize a declared relative path.

    Repeated and trailing separators are collapsed. Root, ``.``, ``..``,
    control characters and reserved names are rejected. A path must fit
    on one manifest line.

    Args:
        path: Path as declared in the config.

    Returns:
        str: Normalized POSIX path.

    Raises:
        ValueError: With the reason the path is rejected.
    """
    if path.startswith("/"):
        raise ValueError("paths must be relative, but it references the root directory")
    for char in path:
        if unicodedata.category(char) in ("Cc", "Zl", "Zp"):
            raise ValueError(f"control character {char!r} is not allowed in paths")

    parts = [part for part in path.split("/") if part]
    if not parts:
        raise ValueError("path is empty")
    if "." in parts:
        raise ValueError("paths must be normalized, but it contains '.'")
    if ".." in parts:
        raise ValueError("paths must be normalized, but it contains '..'")

    name = parts[-1]
    if name == MANIFEST_NAME or name.endswith((SIDECAR_SUFFIX, ENCRYPTED_SUFFIX)):
        raise ValueError(f"'{name}' is reserved for export bookkeeping files")

    return "/".join(parts)


def _normalize_all(
    declared: dict[str, list[str]],
    error: type[InvalidSecretPath],
) -> dict[str, list[str]]:
    normalized: dict[str, list[str]] = {}
    for profile, paths in declared.items():
        items = []
        for path in paths:
            try:
                items.append(normalize_path(path))
            except ValueError as exc:
                raise error(profile, path, str(exc)) from exc
        normalized[profile] = items
    return normalized


def _first_duplicate(paths: list[str]) -> Optional[str]:
    seen: set[str] = set()
    for path in paths:
        if path in seen:
            return path
        seen.add(path)
    return None


def validate_config(raw: RawConfig, source: str = "") -> ValidatedConfig:
    """Prove a raw config well-formed and free of ownership conflicts.

    Checks run in order and stop at the first failure:

    1. every secret path is normalized
    2. no profile declares a secret twice
    3. no two profiles own the same secret
    4. additional imports are normalized, unique, not owned by the
       importer, and owned by some profile
    5. every ``symlinks`` profile owns or imports secrets

    Args:
        raw: Parsed config.
        source: Original config text.

    Returns:
        ValidatedConfig: Immutable, validated config.

    Raises:
        ConfigError: The first violated rule.
    """
    secrets = _normalize_all(raw.secrets, InvalidSecretPath)

    for profile, paths in secrets.items():
        dup = _first_duplicate(paths)
        if dup is not None:
            raise DuplicateSecret(profile, dup)

    # Pairwise scan; profile counts are small.
    owned = [(profile, set(paths)) for profile, paths in secrets.items()]
    for i, (first, first_set) in enumerate(owned):
        for second, second_set in owned[i + 1:]:
            for path in secrets[first]:
                if path in second_set:
                    raise OwnershipConflict(first, second, path)

    owners = {path: profile for profile, paths in secrets.items() for path in paths}

    imports = _normalize_all(raw.additional_imports, InvalidImportPath)
    for profile, paths in imports.items():
        dup = _first_duplicate(paths)
        if dup is not None:
            raise DuplicateImport(profile, dup)
        for path in paths:
            if owners.get(path) == profile:
                raise DeclaredRedundant(profile, path)
            if path not in owners:
                raise DeclaredMissing(profile, path)

    for profile in raw.symlinks:
        if profile not in secrets and profile not in imports:
            raise UndeclaredSymlinkProfile(profile)

    config = ValidatedConfig(
        source=source,
        secrets={profile: tuple(paths) for profile, paths in secrets.items()},
        additional_imports={profile: tuple(paths) for profile, paths in imports.items()},
        symlinks=dict(raw.symlinks),
    )
    logger.debug(
        "Config validated: %d profiles, %d secrets",
        len(config.profiles()), len(owners),
    )
    return config


# ---------------------------------------------------------------------------
# Loading and saving
# ---------------------------------------------------------------------------


def config_search_paths() -> list[Path]:
    """Candidate config locations, most specific first."""
    candidates = []
    env_path = os.environ.get("SKSECRETS_CONFIG")
    if env_path:
        candidates.append(Path(env_path).expanduser())

    xdg = os.environ.get("XDG_CONFIG_HOME") or "~/.config"
    candidates.append(Path(xdg).expanduser() / "sksecrets" / CONFIG_NAME)
    candidates.append(Path.cwd() / CONFIG_NAME)
    return candidates


def find_config_file(path: Optional[Path] = None) -> Path:
    """Locate the config file.

    Args:
        path: Explicit path; when given it is the only candidate.

    Returns:
        Path: Existing config file.

    Raises:
        ConfigNotFound: If no candidate exists.
    """
    candidates = [Path(path).expanduser()] if path else config_search_paths()
    for candidate in candidates:
        if candidate.is_file():
            return candidate
    raise ConfigNotFound(candidates)


def parse_config(text: str, path: Path) -> RawConfig:
    """Parse YAML text into a RawConfig.

    Raises:
        ConfigParseError: On invalid YAML or an unexpected structure.
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigParseError(path, str(exc)) from exc

    try:
        return RawConfig.model_validate(data or {})
    except ValidationError as exc:
        raise ConfigParseError(path, str(exc)) from exc


def load_config(path: Optional[Path] = None) -> ValidatedConfig:
    """Find, read, parse and validate the config file.

    Args:
        path: Explicit config path; searched for when omitted.

    Returns:
        ValidatedConfig: The validated config with its original text.
    """
    config_path = find_config_file(path)
    try:
        text = config_path.read_bytes().decode("utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigReadError(config_path, exc) from exc

    raw = parse_config(text, config_path)
    try:
        config = validate_config(raw, source=text)
    except ConfigError as exc:
        raise InvalidConfigFile(config_path, exc) from exc

    logger.info("Loaded config from %s", config_path)
    return config


def save_config(path: Path, config: ValidatedConfig) -> bool:
    """Write the config's original text verbatim (never re-serialized).

    Returns:
        bool: True if written, False if an identical copy already existed.
    """
    return safe_write(Path(path), config.source.encode("utf-8"))
