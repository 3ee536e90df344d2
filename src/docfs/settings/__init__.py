"""
DocFS settings.

Provides the top-level configuration object combining filesystem access
and metadata cache settings.
"""

from docfs.filesystem.config import CacheSettings, FileSystemAccessConfig
from docfs.settings.config import DocFSConfig

__all__ = [
    "CacheSettings",
    "DocFSConfig",
    "FileSystemAccessConfig",
]
