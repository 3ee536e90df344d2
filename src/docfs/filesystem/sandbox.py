"""
Path sandboxing against a fixed set of allowed root directories.
"""

import logging
import os
from pathlib import Path
from typing import Optional, Sequence, Union

from docfs.filesystem.exceptions import (
    InvalidPathError,
    OutsideSandboxError,
    PathNotFoundError,
)

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def canonicalize(path: PathLike, resolve_symlinks: bool = True) -> Path:
    """
    Normalize a path to an absolute, canonical form.

    ``~`` is expanded and ``.``/``..`` segments are collapsed. Symbolic
    links are resolved only when ``resolve_symlinks`` is set.

    Raises:
        InvalidPathError: If the path cannot be resolved
    """
    try:
        expanded = Path(path).expanduser()
        if resolve_symlinks:
            return expanded.resolve()
        return Path(os.path.normpath(os.path.abspath(expanded)))
    except (OSError, RuntimeError, ValueError) as e:
        raise InvalidPathError(str(path), f"Cannot resolve path: {e}")


def is_within_directory(path: Path, directory: Path) -> bool:
    """Check if path equals or lies below directory (component-wise)."""
    try:
        path.relative_to(directory)
        return True
    except ValueError:
        return False


def validate_path(
    candidate: PathLike,
    allowed_roots: Sequence[PathLike],
    resolve_symlinks: bool = True,
) -> Path:
    """
    Validate that a path lies within one of the allowed roots.

    Args:
        candidate: Path to check (absolute, or relative to the working directory)
        allowed_roots: Root directories access is restricted to
        resolve_symlinks: Resolve symlinks before the containment check

    Returns:
        The canonical absolute path

    Raises:
        OutsideSandboxError: If the path escapes every root
        InvalidPathError: If the path cannot be resolved
    """
    normalized = canonicalize(candidate, resolve_symlinks)
    for root in allowed_roots:
        if is_within_directory(normalized, canonicalize(root, resolve_symlinks)):
            return normalized

    raise OutsideSandboxError(str(candidate), [str(r) for r in allowed_roots])


class PathSandbox:
    """
    Resolves untrusted paths against the configured roots.

    Absolute paths are validated directly. Relative paths are tried
    against each root in configured order.

    Usage:
        sandbox = PathSandbox([Path("/srv/docs"), Path("/srv/notes")])

        path = sandbox.resolve("guide/intro.md")
    """

    def __init__(self, roots: Sequence[PathLike], resolve_symlinks: bool = True):
        self.resolve_symlinks = resolve_symlinks
        self.roots: tuple[Path, ...] = tuple(
            canonicalize(root, resolve_symlinks) for root in roots
        )

    def validate(self, candidate: PathLike) -> Path:
        """Validate a path against all roots (no existence check)."""
        return validate_path(candidate, self.roots, self.resolve_symlinks)

    def contains_target(self, path: PathLike) -> bool:
        """Check whether the real location of ``path`` (links resolved) lies inside a root."""
        real = Path(os.path.realpath(path))
        return any(is_within_directory(real, root) for root in self.roots)

    def root_for(self, path: PathLike) -> Path:
        """
        Return the configured root containing ``path``.

        Raises:
            OutsideSandboxError: If no root contains the path
        """
        normalized = canonicalize(path, self.resolve_symlinks)
        for root in self.roots:
            if is_within_directory(normalized, root):
                return root
        raise OutsideSandboxError(str(path), [str(r) for r in self.roots])

    def resolve(self, candidate: PathLike) -> Path:
        """
        Resolve a path to an existing location inside the sandbox.

        Relative paths resolve against the first root under which they
        exist.

        Raises:
            OutsideSandboxError: If an absolute path escapes every root
            PathNotFoundError: If no existing location is found
        """
        if Path(candidate).expanduser().is_absolute():
            validated = self.validate(candidate)
            if not validated.exists():
                raise PathNotFoundError(str(validated))
            return validated

        for root in self.roots:
            resolved = self._resolve_under(root, candidate)
            if resolved is not None:
                return resolved

        raise PathNotFoundError(str(candidate), [str(r) for r in self.roots])

    def resolve_candidates(self, candidate: PathLike) -> list[Path]:
        """
        Resolve a path against every root it exists under.

        An absolute path yields a single-element list.

        Raises:
            OutsideSandboxError: If an absolute path escapes every root
            PathNotFoundError: If no root yields an existing location
        """
        if Path(candidate).expanduser().is_absolute():
            return [self.resolve(candidate)]

        candidates = []
        for root in self.roots:
            resolved = self._resolve_under(root, candidate)
            if resolved is not None and resolved not in candidates:
                candidates.append(resolved)

        if not candidates:
            raise PathNotFoundError(str(candidate), [str(r) for r in self.roots])
        return candidates

    def _resolve_under(self, root: Path, candidate: PathLike) -> Optional[Path]:
        try:
            resolved = validate_path(root / candidate, [root], self.resolve_symlinks)
        except (OutsideSandboxError, InvalidPathError) as e:
            logger.debug(f"Skipping root {root} for '{candidate}': {e}")
            return None
        if not resolved.exists():
            return None
        return resolved
