"""
DocFS configuration.

This module provides configuration management for DocFS: the sandboxed
filesystem settings plus the metadata cache tunables, loadable from a
YAML/JSON file or from environment variables.
"""

import json
import os
from pathlib import Path
from typing import Union

import yaml
from pydantic import BaseModel, Field

from docfs.filesystem.config import CacheSettings, FileSystemAccessConfig


class DocFSConfig(BaseModel):
    """
    Complete DocFS configuration.

    Example:
        ```python
        config = DocFSConfig(
            filesystem=FileSystemAccessConfig(roots=["~/docs"]),
        )

        # Load from file
        config = DocFSConfig.from_file("~/.docfs/config.yaml")
        ```
    """

    model_config = {"extra": "forbid"}

    filesystem: FileSystemAccessConfig = Field(
        description="Sandboxed filesystem access settings"
    )
    cache: CacheSettings = Field(
        default_factory=CacheSettings,
        description="Metadata cache settings",
    )

    def __str__(self) -> str:
        """Short string representation."""
        roots = ", ".join(str(r) for r in self.filesystem.roots)
        return f"DocFSConfig(roots=[{roots}])"

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "DocFSConfig":
        """
        Load configuration from a YAML or JSON file.

        File format (YAML):
            ```yaml
            filesystem:
              roots:
                - ~/docs
                - /srv/handbook
              max_file_size_bytes: 524288
              resolve_symlinks: true

            cache:
              metadata_cache_size: 2000
              metadata_cache_ttl: 60000
            ```

        Args:
            path: Path to configuration file

        Returns:
            Loaded DocFSConfig instance

        Raises:
            FileNotFoundError: If the config file doesn't exist
        """
        path = Path(path).expanduser().resolve()

        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        content = path.read_text()

        if path.suffix in (".yaml", ".yml"):
            data = yaml.safe_load(content)
        elif path.suffix == ".json":
            data = json.loads(content)
        else:
            # Try YAML first, then JSON
            try:
                data = yaml.safe_load(content)
            except yaml.YAMLError:
                data = json.loads(content)

        return cls.from_dict(data or {})

    @classmethod
    def from_dict(cls, data: dict) -> "DocFSConfig":
        """
        Create configuration from a dictionary.

        Args:
            data: Configuration dictionary

        Returns:
            DocFSConfig instance
        """
        return cls(**data)

    @classmethod
    def from_env(cls, prefix: str = "DOCFS_") -> "DocFSConfig":
        """
        Load configuration from environment variables.

        Environment variables:
            DOCFS_ROOTS - Root directories, separated by os.pathsep
            DOCFS_MAX_FILE_SIZE - Default maximum readable file size (bytes)
            DOCFS_RESOLVE_SYMLINKS - Resolve symlinks before sandbox checks
            DOCFS_METADATA_CACHE_SIZE - Maximum cached metadata entries
            DOCFS_METADATA_CACHE_TTL - Metadata lifetime in milliseconds

        Args:
            prefix: Environment variable prefix

        Returns:
            DocFSConfig instance

        Raises:
            ValueError: If required environment variables are missing
        """
        roots = os.environ.get(f"{prefix}ROOTS")
        if not roots:
            raise ValueError(f"Missing required environment variable: {prefix}ROOTS")

        filesystem: dict = {"roots": [r for r in roots.split(os.pathsep) if r]}

        max_size = os.environ.get(f"{prefix}MAX_FILE_SIZE")
        if max_size:
            filesystem["max_file_size_bytes"] = int(max_size)

        resolve_symlinks = os.environ.get(f"{prefix}RESOLVE_SYMLINKS")
        if resolve_symlinks:
            filesystem["resolve_symlinks"] = resolve_symlinks.lower() in ("1", "true", "yes")

        return cls(
            filesystem=FileSystemAccessConfig(**filesystem),
            cache=CacheSettings(_env_prefix=prefix),
        )
