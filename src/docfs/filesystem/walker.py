"""
Depth-bounded directory traversal honoring hidden-file and ignore rules.
"""

import logging
import os
import re
from pathlib import Path
from typing import Callable, Optional

from docfs.filesystem.cache import MetadataCache
from docfs.filesystem.exceptions import FileIOError, InvalidPathError
from docfs.filesystem.ignore import IgnoreMatcher, IgnoreMatcherRegistry
from docfs.filesystem.models import DirTreeNode, FileEntry, entry_sort_key

logger = logging.getLogger(__name__)

HIDDEN_PREFIX = "."


def compile_name_pattern(pattern: str) -> re.Pattern:
    """
    Compile a simple glob into a case-insensitive regex.

    ``*`` matches any run of characters and ``?`` any single character;
    everything else is literal. The whole name must match.
    """
    parts = []
    for char in pattern:
        if char == "*":
            parts.append(".*")
        elif char == "?":
            parts.append(".")
        else:
            parts.append(re.escape(char))
    return re.compile("".join(parts), re.IGNORECASE | re.DOTALL)


class DirectoryWalker:
    """
    Walks directory trees as flat listings or nested trees.

    Metadata for each visited entry is read through the MetadataCache, and
    entries excluded by the root's ignore rules are pruned together with
    their subtrees. Directories that cannot be enumerated are skipped with
    a warning.

    Usage:
        walker = DirectoryWalker(MetadataCache(), IgnoreMatcherRegistry())

        entries = walker.walk(Path("/srv/docs"), name_pattern="*.md")
        tree = walker.tree(Path("/srv/docs"), max_depth=2)
    """

    def __init__(
        self,
        cache: MetadataCache,
        ignore_registry: IgnoreMatcherRegistry,
        follow_symlinks: bool = False,
        link_filter: Optional[Callable[[Path], bool]] = None,
    ):
        """
        Initialize the walker.

        Args:
            cache: Metadata cache consulted for every visited entry
            ignore_registry: Source of per-root ignore matchers
            follow_symlinks: Descend into symlinked directories
            link_filter: Predicate a symlinked entry must pass to be listed,
                searched or followed (e.g. ``PathSandbox.contains_target``)
        """
        self.cache = cache
        self.ignore_registry = ignore_registry
        self.follow_symlinks = follow_symlinks
        self.link_filter = link_filter

    def get_file_entry(self, path: Path) -> FileEntry:
        """
        Get metadata for a path, using the cache when possible.

        Raises:
            FileIOError: If the path cannot be stat-ed
        """
        key = str(path)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        try:
            stat_result = os.stat(key)
        except OSError as e:
            raise FileIOError(key, e, operation="get info for")

        entry = FileEntry.from_stat(key, stat_result)
        self.cache.set(key, entry)
        return entry

    def walk(
        self,
        root: Path,
        recursive: bool = True,
        max_depth: int = 10,
        include_hidden: bool = False,
        name_pattern: Optional[str] = None,
        ignore_root: Optional[Path] = None,
    ) -> list[FileEntry]:
        """
        List entries below a directory as a flat, sorted sequence.

        Args:
            root: Directory to walk
            recursive: Descend into subdirectories
            max_depth: Deepest level listed (0 = direct children only)
            include_hidden: Include dot-files and dot-directories
            name_pattern: Glob filtering files by name (directories always pass)
            ignore_root: Root whose ignore file applies (default: ``root``)

        Returns:
            Entries sorted directories first, then by name

        Raises:
            FileIOError: If ``root`` cannot be stat-ed
            InvalidPathError: If ``root`` is not a directory
        """
        root = Path(root)
        root_entry = self.get_file_entry(root)
        if not root_entry.is_directory:
            raise InvalidPathError(str(root), "Path is not a directory")

        base = Path(ignore_root) if ignore_root is not None else root
        matcher = self.ignore_registry.for_root(base)
        name_regex = compile_name_pattern(name_pattern) if name_pattern else None
        visited = {os.path.realpath(root)} if self.follow_symlinks else None

        results: list[FileEntry] = []
        self._walk_directory(
            root,
            depth=0,
            results=results,
            recursive=recursive,
            max_depth=max_depth,
            include_hidden=include_hidden,
            name_regex=name_regex,
            matcher=matcher,
            base=base,
            visited=visited,
        )

        results.sort(key=entry_sort_key)
        logger.debug(f"Walked {root}: {len(results)} entries")
        return results

    def tree(
        self,
        root: Path,
        max_depth: int = 10,
        include_hidden: bool = False,
        ignore_root: Optional[Path] = None,
    ) -> DirTreeNode:
        """
        Build a nested directory tree.

        The root's direct children are depth 0; a directory at depth
        ``max_depth`` is included without children.

        Raises:
            FileIOError: If ``root`` cannot be stat-ed
        """
        root = Path(root)
        root_entry = self.get_file_entry(root)
        if not root_entry.is_directory:
            return DirTreeNode.from_entry(root_entry)

        base = Path(ignore_root) if ignore_root is not None else root
        matcher = self.ignore_registry.for_root(base)
        visited = {os.path.realpath(root)} if self.follow_symlinks else None

        children = self._tree_children(
            root, 0, max_depth, include_hidden, matcher, base, visited
        )
        return DirTreeNode.from_entry(root_entry, children)

    def _walk_directory(
        self,
        directory: Path,
        depth: int,
        results: list[FileEntry],
        recursive: bool,
        max_depth: int,
        include_hidden: bool,
        name_regex: Optional[re.Pattern],
        matcher: IgnoreMatcher,
        base: Path,
        visited: Optional[set[str]],
    ) -> None:
        if depth > max_depth:
            return

        for path, entry, is_symlink in self._iter_children(
            directory, include_hidden, matcher, base
        ):
            if entry.is_directory:
                # Directories are never filtered by name so matching
                # descendants stay reachable.
                results.append(entry)
                if recursive and self._should_descend(path, is_symlink, visited):
                    self._walk_directory(
                        path,
                        depth + 1,
                        results,
                        recursive,
                        max_depth,
                        include_hidden,
                        name_regex,
                        matcher,
                        base,
                        visited,
                    )
                continue

            if name_regex is not None and not name_regex.fullmatch(entry.name):
                continue
            results.append(entry)

    def _tree_children(
        self,
        directory: Path,
        depth: int,
        max_depth: int,
        include_hidden: bool,
        matcher: IgnoreMatcher,
        base: Path,
        visited: Optional[set[str]],
    ) -> list[DirTreeNode]:
        nodes = []
        for path, entry, is_symlink in self._iter_children(
            directory, include_hidden, matcher, base
        ):
            children = None
            if (
                entry.is_directory
                and depth + 1 <= max_depth
                and self._should_descend(path, is_symlink, visited)
            ):
                children = self._tree_children(
                    path, depth + 1, max_depth, include_hidden, matcher, base, visited
                )
            nodes.append(DirTreeNode.from_entry(entry, children))

        nodes.sort(key=entry_sort_key)
        return nodes

    def _iter_children(
        self,
        directory: Path,
        include_hidden: bool,
        matcher: IgnoreMatcher,
        base: Path,
    ):
        """Yield ``(path, entry, is_symlink)`` for visible, non-ignored children."""
        try:
            with os.scandir(directory) as it:
                dir_entries = list(it)
        except OSError as e:
            logger.warning(f"Failed to read directory '{directory}': {e}")
            return

        for dir_entry in dir_entries:
            if not include_hidden and dir_entry.name.startswith(HIDDEN_PREFIX):
                continue

            path = directory / dir_entry.name
            try:
                is_dir = dir_entry.is_dir()
                is_symlink = dir_entry.is_symlink()
            except OSError:
                is_dir, is_symlink = False, False

            if matcher.excludes(path.relative_to(base), is_dir=is_dir):
                continue

            if is_symlink and self.link_filter is not None and not self.link_filter(path):
                logger.warning(f"Skipping symlink '{path}': target is outside allowed directories")
                continue

            try:
                entry = self.get_file_entry(path)
            except FileIOError as e:
                logger.warning(f"Skipping entry: {e}")
                continue

            yield path, entry, is_symlink

    def _should_descend(
        self, path: Path, is_symlink: bool, visited: Optional[set[str]]
    ) -> bool:
        if visited is None:
            return not is_symlink

        real = os.path.realpath(path)
        if real in visited:
            logger.debug(f"Not revisiting {path} (already seen as {real})")
            return False
        visited.add(real)
        return True
