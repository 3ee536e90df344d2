"""
DocFS - sandboxed, read-only access to local directory trees.

This package lists, walks, searches and reads files below a fixed set of
root directories, with ignore-file support and a metadata cache.
"""

__version__ = "0.1.0"

from docfs.filesystem import (
    DirTreeNode,
    DocFSTools,
    FileEntry,
    FileSystemAccessConfig,
    FileSystemError,
    MetadataCache,
    PathSandbox,
    SearchMatch,
    ToolName,
)

from docfs.settings import (
    CacheSettings,
    DocFSConfig,
)

__all__ = [
    # Version
    "__version__",
    # Filesystem
    "DocFSTools",
    "ToolName",
    "FileSystemAccessConfig",
    "FileSystemError",
    "MetadataCache",
    "PathSandbox",
    "FileEntry",
    "DirTreeNode",
    "SearchMatch",
    # Settings
    "CacheSettings",
    "DocFSConfig",
]
