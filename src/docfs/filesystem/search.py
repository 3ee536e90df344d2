"""
Line-oriented text search over the files of one or more roots.
"""

import logging
import re
from pathlib import Path
from typing import Iterator, Optional, Sequence

from docfs.filesystem.exceptions import FileSystemError
from docfs.filesystem.models import SearchMatch
from docfs.filesystem.walker import DirectoryWalker

logger = logging.getLogger(__name__)


def compile_query(
    query: str, case_sensitive: bool = False, whole_word: bool = False
) -> re.Pattern:
    """
    Compile a literal query into a regex.

    Special characters are escaped so the query matches literally;
    ``whole_word`` adds word-boundary anchors.
    """
    pattern = re.escape(query)
    if whole_word:
        pattern = rf"\b{pattern}\b"
    flags = 0 if case_sensitive else re.IGNORECASE
    return re.compile(pattern, flags)


def split_lines(content: str) -> list[str]:
    """Split text on newlines, dropping ``\\r`` and the empty tail after a final newline."""
    lines = content.split("\n")
    if len(lines) > 1 and lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


class TextSearchEngine:
    """
    Searches file contents for a literal query with context windows.

    Files come from the DirectoryWalker, so hidden files and ignored
    subtrees are never searched. Files that cannot be read or decoded are
    skipped with a warning.

    Usage:
        engine = TextSearchEngine(walker)

        matches = engine.search(
            [Path("/srv/docs")],
            query="install",
            file_pattern="*.md",
            context_lines=2,
        )
    """

    def __init__(self, walker: DirectoryWalker, encoding: str = "utf-8"):
        """
        Initialize the search engine.

        Args:
            walker: Walker used to enumerate candidate files
            encoding: Encoding used to decode searched files
        """
        self.walker = walker
        self.encoding = encoding

    def search(
        self,
        roots: Sequence[Path],
        query: str,
        file_pattern: Optional[str] = None,
        case_sensitive: bool = False,
        whole_word: bool = False,
        context_lines: int = 2,
        max_depth: int = 10,
        ignore_roots: Optional[Sequence[Path]] = None,
    ) -> list[SearchMatch]:
        """
        Search every file below the given roots.

        Args:
            roots: Directories to search, in order
            query: Literal text to look for
            file_pattern: Glob restricting which files are searched
            case_sensitive: Match case exactly
            whole_word: Only match the query as a whole word
            context_lines: Lines of context before and after each match
            max_depth: Deepest directory level searched
            ignore_roots: Root whose ignore file applies, per entry of ``roots``

        Returns:
            Matches ordered by root, file, then line number
        """
        regex = compile_query(query, case_sensitive, whole_word)
        context_lines = max(0, context_lines)
        results: list[SearchMatch] = []

        for index, root in enumerate(roots):
            ignore_root = ignore_roots[index] if ignore_roots else None
            try:
                entries = self.walker.walk(
                    root,
                    recursive=True,
                    max_depth=max_depth,
                    name_pattern=file_pattern,
                    ignore_root=ignore_root,
                )
            except FileSystemError as e:
                logger.warning(f"Failed to search in directory '{root}': {e}")
                continue

            for entry in entries:
                if entry.is_directory:
                    continue
                results.extend(
                    self._search_file_safe(Path(entry.path), regex, context_lines)
                )

        logger.info(f"Search for {query!r} found {len(results)} matches")
        return results

    def search_file(
        self, path: Path, regex: re.Pattern, context_lines: int = 2
    ) -> list[SearchMatch]:
        """
        Search a single file.

        Raises:
            OSError: If the file cannot be read
            UnicodeDecodeError: If the file is not valid text in ``encoding``
        """
        with open(path, "r", encoding=self.encoding, newline="") as f:
            content = f.read()
        return list(self._iter_matches(str(path), split_lines(content), regex, context_lines))

    def _search_file_safe(
        self, path: Path, regex: re.Pattern, context_lines: int
    ) -> list[SearchMatch]:
        try:
            return self.search_file(path, regex, context_lines)
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Failed to search in file '{path}': {e}")
            return []

    @staticmethod
    def _iter_matches(
        file_path: str, lines: list[str], regex: re.Pattern, context_lines: int
    ) -> Iterator[SearchMatch]:
        for index, line in enumerate(lines):
            if not regex.search(line):
                continue
            yield SearchMatch(
                file_path=file_path,
                line_number=index + 1,
                line_content=line,
                context_before=lines[max(0, index - context_lines) : index],
                context_after=lines[index + 1 : index + 1 + context_lines],
            )
