"""
Exceptions for filesystem operations.
"""

from typing import Optional, Sequence


class FileSystemError(Exception):
    """Base exception for filesystem operations."""

    pass


class OutsideSandboxError(FileSystemError):
    """Raised when a path resolves outside every configured root."""

    def __init__(self, path: str, roots: Sequence[str] = ()):
        self.path = path
        self.roots = list(roots)
        super().__init__(f"Path '{path}' is outside allowed directories")


class PathNotFoundError(FileSystemError):
    """Raised when a path does not exist or cannot be resolved against any root."""

    def __init__(self, path: str, attempted_roots: Optional[Sequence[str]] = None):
        self.path = path
        self.attempted_roots = list(attempted_roots) if attempted_roots else []
        if self.attempted_roots:
            message = (
                f"Path '{path}' not found within allowed roots. "
                f"Provide an absolute path or a path relative to one of: "
                f"{', '.join(self.attempted_roots)}"
            )
        else:
            message = f"Path not found: {path}"
        super().__init__(message)


class PathIsDirectoryError(FileSystemError):
    """Raised when file content is requested for a directory."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Cannot read directory: {path}")


class FileSizeLimitExceededError(FileSystemError):
    """Raised when a file exceeds the size limit."""

    def __init__(self, path: str, size: int, limit: int):
        self.path = path
        self.size = size
        self.limit = limit
        super().__init__(f"File too large ({size} bytes > {limit} bytes): {path}")


class InvalidRangeError(FileSystemError):
    """Raised when a requested line range is inverted."""

    def __init__(self, start_line: int, end_line: int):
        self.start_line = start_line
        self.end_line = end_line
        super().__init__(
            f"Start line cannot be greater than end line ({start_line} > {end_line})"
        )


class FileIOError(FileSystemError):
    """Raised when reading, stat-ing or enumerating a path fails."""

    def __init__(self, path: str, cause: BaseException, operation: str = "read"):
        self.path = path
        self.cause = cause
        self.operation = operation
        super().__init__(f"Failed to {operation} '{path}': {cause}")


class InvalidPathError(FileSystemError):
    """Raised when a path is invalid or malformed."""

    def __init__(self, path: str, reason: str = "Invalid path"):
        self.path = path
        self.reason = reason
        super().__init__(f"{reason}: {path}")


class InvalidArgumentsError(FileSystemError):
    """Raised when tool arguments fail validation."""

    pass


class OperationTimeoutError(FileSystemError):
    """Raised when an operation does not finish within the configured timeout."""

    def __init__(self, operation: str, timeout: float):
        self.operation = operation
        self.timeout = timeout
        super().__init__(f"Operation '{operation}' timed out after {timeout} seconds")
