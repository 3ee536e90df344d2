"""
Sandboxed, read-only filesystem access.

This module provides path sandboxing against configured roots, cached
file metadata, ignore-aware directory traversal, text search with
context windows and line-ranged file reading.
"""

from docfs.filesystem.cache import CacheEntry, MetadataCache
from docfs.filesystem.config import (
    CacheSettings,
    FileSystemAccessConfig,
    validate_roots,
)
from docfs.filesystem.exceptions import (
    FileIOError,
    FileSizeLimitExceededError,
    FileSystemError,
    InvalidArgumentsError,
    InvalidPathError,
    InvalidRangeError,
    OperationTimeoutError,
    OutsideSandboxError,
    PathIsDirectoryError,
    PathNotFoundError,
)
from docfs.filesystem.ignore import IgnoreMatcher, IgnoreMatcherRegistry
from docfs.filesystem.models import DirTreeNode, FileEntry, SearchMatch
from docfs.filesystem.reader import RangeReader, validate_line_range
from docfs.filesystem.sandbox import PathSandbox, validate_path
from docfs.filesystem.search import TextSearchEngine, compile_query
from docfs.filesystem.tools import DocFSTools, ToolName
from docfs.filesystem.walker import DirectoryWalker, compile_name_pattern

__all__ = [
    # Config
    "CacheSettings",
    "FileSystemAccessConfig",
    "validate_roots",
    # Exceptions
    "FileSystemError",
    "OutsideSandboxError",
    "PathNotFoundError",
    "PathIsDirectoryError",
    "FileSizeLimitExceededError",
    "InvalidRangeError",
    "FileIOError",
    "InvalidPathError",
    "InvalidArgumentsError",
    "OperationTimeoutError",
    # Models
    "FileEntry",
    "DirTreeNode",
    "SearchMatch",
    # Core
    "PathSandbox",
    "validate_path",
    "CacheEntry",
    "MetadataCache",
    "IgnoreMatcher",
    "IgnoreMatcherRegistry",
    "DirectoryWalker",
    "compile_name_pattern",
    "TextSearchEngine",
    "compile_query",
    "RangeReader",
    "validate_line_range",
    # Tools
    "DocFSTools",
    "ToolName",
]
