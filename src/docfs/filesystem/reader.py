"""
Line-ranged file reader.
"""

import logging
from pathlib import Path
from typing import Optional

from docfs.filesystem.exceptions import FileIOError, InvalidRangeError

logger = logging.getLogger(__name__)


def validate_line_range(start_line: Optional[int], end_line: Optional[int]) -> None:
    """
    Check a requested line range before any file is touched.

    Raises:
        InvalidRangeError: If both bounds are given and start exceeds end
    """
    if start_line is not None and end_line is not None and start_line > end_line:
        raise InvalidRangeError(start_line, end_line)


class RangeReader:
    """
    Reads decoded file content, optionally restricted to a line range.

    Usage:
        reader = RangeReader()

        whole = reader.read(Path("/srv/docs/guide.md"))
        excerpt = reader.read(Path("/srv/docs/guide.md"), start_line=10, end_line=20)
    """

    def read(
        self,
        path: Path,
        start_line: Optional[int] = None,
        end_line: Optional[int] = None,
        encoding: str = "utf-8",
    ) -> str:
        """
        Read a file.

        Args:
            path: File to read
            start_line: First line to return (1-based, inclusive)
            end_line: Last line to return (1-based, inclusive)
            encoding: Text encoding

        Returns:
            The whole content, or the requested lines (without ``\\r``) joined by ``\\n``

        Raises:
            FileIOError: If the file cannot be read or decoded
        """
        try:
            with open(path, "r", encoding=encoding, newline="") as f:
                content = f.read()
        except (OSError, UnicodeDecodeError, LookupError) as e:
            logger.debug(f"Failed to read file {path}: {e}")
            raise FileIOError(str(path), e)

        if start_line is None and end_line is None:
            return content

        lines = content.split("\n")
        start = max(0, (start_line or 1) - 1)
        end = min(len(lines), end_line if end_line is not None else len(lines))
        selected = [line[:-1] if line.endswith("\r") else line for line in lines[start:end]]
        return "\n".join(selected)
