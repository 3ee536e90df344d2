"""
Filesystem data models.

This module defines Pydantic models for file metadata, directory trees
and search matches returned by the filesystem core.
"""

import os
import stat
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class FileEntry(BaseModel):
    """Metadata for a single file or directory, identified by its absolute path."""

    model_config = ConfigDict(frozen=True)

    path: str = Field(description="Absolute path")
    name: str = Field(description="Base name")
    size: int = Field(description="Size in bytes")
    modified: datetime = Field(description="Last modification time (UTC)")
    is_directory: bool = Field(description="Whether the entry is a directory")
    extension: Optional[str] = Field(
        default=None, description="File extension without the dot (files only)"
    )

    @classmethod
    def from_stat(cls, path: str, stat_result: os.stat_result) -> "FileEntry":
        """Build an entry from an ``os.stat`` result."""
        name = os.path.basename(path) or path
        is_directory = stat.S_ISDIR(stat_result.st_mode)
        extension = None
        if not is_directory:
            extension = os.path.splitext(name)[1][1:] or None
        return cls(
            path=path,
            name=name,
            size=stat_result.st_size,
            modified=datetime.fromtimestamp(stat_result.st_mtime, tz=timezone.utc),
            is_directory=is_directory,
            extension=extension,
        )


def entry_sort_key(entry: FileEntry) -> tuple[bool, str]:
    """Directories first, then lexicographic by name."""
    return (not entry.is_directory, entry.name)


class DirTreeNode(FileEntry):
    """
    A FileEntry with its sorted children.

    ``children`` is None for files and for directories whose depth budget
    is exhausted; enumerated directories always carry a list.
    """

    children: Optional[list["DirTreeNode"]] = Field(
        default=None, description="Sorted child nodes (directories only)"
    )

    @classmethod
    def from_entry(
        cls, entry: FileEntry, children: Optional[list["DirTreeNode"]] = None
    ) -> "DirTreeNode":
        """Wrap an entry as a tree node."""
        return cls(**entry.model_dump(), children=children)


class SearchMatch(BaseModel):
    """A single matching line with its surrounding context window."""

    model_config = ConfigDict(frozen=True)

    file_path: str = Field(description="Absolute path of the file")
    line_number: int = Field(ge=1, description="1-based line number")
    line_content: str = Field(description="Content of the matching line")
    context_before: list[str] = Field(
        default_factory=list, description="Lines immediately preceding the match"
    )
    context_after: list[str] = Field(
        default_factory=list, description="Lines immediately following the match"
    )

    def __str__(self) -> str:
        return f"{self.file_path}:{self.line_number}: {self.line_content}"
