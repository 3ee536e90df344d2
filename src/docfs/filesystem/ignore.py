"""
Per-root ignore rules compiled from an ignore file (``.gitignore``).
"""

import logging
import threading
from pathlib import Path, PurePath
from typing import Iterable, Optional, Union

import pathspec

logger = logging.getLogger(__name__)


class IgnoreMatcher:
    """
    Decides whether a path relative to its root is excluded.

    Matching uses gitignore semantics as implemented by ``pathspec``:
    wildcards, ``**``, anchored patterns, directory-only patterns and
    negation. A matcher without rules excludes nothing.
    """

    def __init__(self, root: Path, spec: Optional[pathspec.PathSpec] = None):
        self.root = root
        self._spec = spec

    @classmethod
    def from_lines(cls, root: Path, lines: Iterable[str]) -> "IgnoreMatcher":
        """Compile a matcher from ignore-file lines."""
        patterns = [line.rstrip("\r") for line in lines]
        if not any(p.strip() and not p.lstrip().startswith("#") for p in patterns):
            return cls(root)
        return cls(root, pathspec.GitIgnoreSpec.from_lines(patterns))

    @property
    def is_empty(self) -> bool:
        return self._spec is None

    def excludes(self, relative_path: Union[str, PurePath], is_dir: bool = False) -> bool:
        """
        Check whether a root-relative path is ignored.

        Args:
            relative_path: Path relative to the matcher's root
            is_dir: Whether the path names a directory (enables ``dir/`` patterns)
        """
        if self._spec is None:
            return False

        rel = PurePath(relative_path).as_posix().strip("/")
        if not rel or rel == ".":
            return False

        if self._spec.match_file(rel):
            return True
        return is_dir and self._spec.match_file(f"{rel}/")


class IgnoreMatcherRegistry:
    """
    Memoizes one IgnoreMatcher per root.

    The ignore file is read the first time a root is requested and
    reused until ``clear()`` is called.
    """

    def __init__(self, ignore_file_name: str = ".gitignore"):
        self.ignore_file_name = ignore_file_name
        self._matchers: dict[Path, IgnoreMatcher] = {}
        self._lock = threading.Lock()

    def for_root(self, root: Path) -> IgnoreMatcher:
        """Return the (memoized) matcher for a root directory."""
        root = Path(root)
        with self._lock:
            matcher = self._matchers.get(root)
            if matcher is None:
                matcher = self._load(root)
                self._matchers[root] = matcher
            return matcher

    def clear(self) -> None:
        """Forget all memoized matchers."""
        with self._lock:
            self._matchers.clear()

    def _load(self, root: Path) -> IgnoreMatcher:
        ignore_file = root / self.ignore_file_name
        try:
            content = ignore_file.read_text(encoding="utf-8")
        except FileNotFoundError:
            return IgnoreMatcher(root)
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Failed to read ignore file {ignore_file}: {e}")
            return IgnoreMatcher(root)

        matcher = IgnoreMatcher.from_lines(root, content.splitlines())
        logger.debug(f"Loaded ignore rules for {root} from {ignore_file}")
        return matcher
