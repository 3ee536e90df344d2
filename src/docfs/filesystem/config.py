"""
Configuration for sandboxed filesystem access.
"""

import logging
import os
from pathlib import Path
from typing import Iterable, Union

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from docfs.filesystem.cache import MetadataCache

logger = logging.getLogger(__name__)


def _absolute(path: Union[str, Path]) -> Path:
    return Path(os.path.normpath(os.path.abspath(Path(path).expanduser())))


def validate_roots(paths: Iterable[Union[str, Path]]) -> list[Path]:
    """
    Keep the root directories that exist.

    Missing roots are logged and dropped.

    Raises:
        ValueError: If no valid root remains
    """
    valid: list[Path] = []
    for raw in paths:
        root = _absolute(raw)
        if root.is_dir():
            if root not in valid:
                valid.append(root)
                logger.info(f"Added root directory: {root}")
        else:
            logger.warning(f"Root directory does not exist: {root}")

    if not valid:
        raise ValueError("No valid root directories found")
    return valid


class FileSystemAccessConfig(BaseModel):
    """
    Configuration for read-only, sandboxed filesystem access.

    Defines the root directories every request is confined to, plus
    limits and defaults applied by the tool layer.

    Example:
        ```python
        config = FileSystemAccessConfig(
            roots=["~/docs", "/srv/handbook"],
            max_file_size_bytes=512_000,
        )
        ```
    """

    roots: list[Path] = Field(
        description="Root directories (absolute, must exist); the order is the resolution order",
    )

    resolve_symlinks: bool = Field(
        default=True,
        description="Resolve symbolic links before the sandbox check (closes symlink escapes)",
    )

    follow_symlinks: bool = Field(
        default=False,
        description="Descend into symlinked directories while walking",
    )

    max_file_size_bytes: int = Field(
        default=1024 * 1024,  # 1 MB
        ge=1024,
        description="Default maximum file size that can be read (bytes)",
    )

    max_read_paths: int = Field(
        default=10,
        ge=1,
        description="Maximum number of files read in one request",
    )

    ignore_file_name: str = Field(
        default=".gitignore",
        description="Name of the per-root ignore file",
    )

    default_max_depth: int = Field(
        default=10,
        ge=1,
        description="Traversal depth used when a request does not specify one",
    )

    operation_timeout_seconds: float = Field(
        default=30.0,
        ge=1.0,
        le=300.0,
        description="Timeout for a single tool operation (seconds)",
    )

    @field_validator("roots", mode="before")
    @classmethod
    def normalize_roots(cls, v):
        """Expand and absolutize roots, dropping duplicates."""
        if not v:
            raise ValueError("At least one root directory is required")
        roots: list[Path] = []
        for p in v:
            root = _absolute(p)
            if root not in roots:
                roots.append(root)
        return roots

    @field_validator("roots")
    @classmethod
    def roots_must_exist(cls, v: list[Path]) -> list[Path]:
        """Every root must be an existing directory."""
        for root in v:
            if not root.is_dir():
                raise ValueError(f"Root directory does not exist: {root}")
        return v

    def __repr__(self) -> str:
        """Short representation."""
        return (
            f"FileSystemAccessConfig("
            f"roots={len(self.roots)}, "
            f"resolve_symlinks={self.resolve_symlinks}, "
            f"max_size={self.max_file_size_bytes})"
        )


class CacheSettings(BaseSettings):
    """
    Metadata cache tunables.

    Read from the environment once, when the settings object is created:

        DOCFS_METADATA_CACHE_SIZE - Maximum number of cached entries
        DOCFS_METADATA_CACHE_TTL - Entry lifetime in milliseconds
    """

    model_config = SettingsConfigDict(env_prefix="DOCFS_", extra="ignore")

    metadata_cache_size: int = Field(
        default=1000,
        ge=1,
        description="Maximum number of cached metadata entries",
    )
    metadata_cache_ttl: float = Field(
        default=30_000,
        ge=0,
        description="Metadata entry lifetime in milliseconds",
    )

    @property
    def ttl_seconds(self) -> float:
        return self.metadata_cache_ttl / 1000.0

    def create_cache(self) -> MetadataCache:
        """Build a MetadataCache sized by these settings."""
        return MetadataCache(
            max_entries=self.metadata_cache_size,
            ttl_seconds=self.ttl_seconds,
        )
