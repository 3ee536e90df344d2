"""
Unified filesystem tools interface.

Exposes the four read-only operations (list, tree, search, read) through
a closed set of named tools with validated inputs, in the OpenAI function
calling format.
"""

import asyncio
import codecs
import logging
from collections import Counter
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from pydantic.alias_generators import to_camel

from docfs.filesystem.cache import MetadataCache
from docfs.filesystem.config import CacheSettings, FileSystemAccessConfig
from docfs.filesystem.exceptions import (
    FileSizeLimitExceededError,
    FileSystemError,
    InvalidArgumentsError,
    OperationTimeoutError,
    PathIsDirectoryError,
)
from docfs.filesystem.ignore import IgnoreMatcherRegistry
from docfs.filesystem.models import FileEntry
from docfs.filesystem.reader import RangeReader, validate_line_range
from docfs.filesystem.sandbox import PathSandbox
from docfs.filesystem.search import TextSearchEngine
from docfs.filesystem.walker import DirectoryWalker

logger = logging.getLogger(__name__)


class ToolName(str, Enum):
    """The closed set of available tools."""

    LIST_FILES = "list_files"
    DIR_TREE = "dir_tree"
    SEARCH_FILES = "search_files"
    READ_FILES = "read_files"


class ToolInput(BaseModel):
    """Base for tool inputs; accepts camelCase and snake_case keys."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )


class ListFilesInput(ToolInput):
    """Arguments of ``list_files``."""

    path: Optional[str] = Field(
        default=None,
        description="Optional path within the root directories to list",
    )
    pattern: Optional[str] = Field(
        default=None,
        description='Optional glob pattern to filter files (e.g., "*.js", "*.md")',
    )
    recursive: bool = Field(
        default=True, description="Whether to list files recursively"
    )
    max_depth: Optional[int] = Field(
        default=None, description="Maximum directory depth to traverse (default: 10)"
    )
    include_hidden: bool = Field(
        default=False, description="Whether to include hidden files and directories"
    )

    @field_validator("max_depth")
    @classmethod
    def floor_depth(cls, v: Optional[int]) -> Optional[int]:
        return None if v is None else max(1, v)


class DirTreeInput(ToolInput):
    """Arguments of ``dir_tree``."""

    path: Optional[str] = Field(
        default=None,
        description="Optional path within the root directories to list",
    )
    max_depth: Optional[int] = Field(
        default=None, description="Maximum directory depth to traverse (default: 10)"
    )
    include_hidden: bool = Field(
        default=False, description="Whether to include hidden files and directories"
    )

    @field_validator("max_depth")
    @classmethod
    def floor_depth(cls, v: Optional[int]) -> Optional[int]:
        return None if v is None else max(1, v)


class SearchFilesInput(ToolInput):
    """Arguments of ``search_files``."""

    query: str = Field(description="The text to search for within files")
    file_pattern: Optional[str] = Field(
        default=None,
        description='Optional glob pattern to filter files to search (e.g., "*.md")',
    )
    case_sensitive: bool = Field(
        default=False, description="Whether the search should be case sensitive"
    )
    whole_word: bool = Field(
        default=False, description="Whether to match whole words only"
    )
    context_lines: int = Field(
        default=2, description="Lines of context around matches (0-10)"
    )
    max_results: int = Field(
        default=100, description="Maximum number of results to return (1-1000)"
    )
    max_depth: Optional[int] = Field(
        default=None, description="Maximum directory depth to traverse (default: 10)"
    )

    @field_validator("query")
    @classmethod
    def query_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Query parameter is required and must be a non-empty string")
        return v

    @field_validator("context_lines")
    @classmethod
    def clamp_context(cls, v: int) -> int:
        return max(0, min(10, v))

    @field_validator("max_results")
    @classmethod
    def clamp_results(cls, v: int) -> int:
        return max(1, min(1000, v))

    @field_validator("max_depth")
    @classmethod
    def floor_depth(cls, v: Optional[int]) -> Optional[int]:
        return None if v is None else max(1, v)


class ReadFilesInput(ToolInput):
    """Arguments of ``read_files``; ``path`` is accepted as a single-path shorthand."""

    paths: list[str] = Field(
        min_length=1, description="File paths to read (absolute or relative to a root)"
    )
    start_line: Optional[int] = Field(
        default=None, description="Starting line number (1-based)"
    )
    end_line: Optional[int] = Field(
        default=None, description="Ending line number (1-based, inclusive)"
    )
    encoding: str = Field(default="utf-8", description="File encoding")
    max_file_size: Optional[int] = Field(
        default=None, description="Maximum file size to read in bytes (min 1024)"
    )

    @model_validator(mode="before")
    @classmethod
    def collect_paths(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        single = data.pop("path", None)
        if isinstance(single, str):
            data["paths"] = [single]
        elif isinstance(data.get("paths"), str):
            data["paths"] = [data["paths"]]
        elif "paths" not in data:
            raise ValueError('Either "path" or "paths" parameter is required')
        return data

    @field_validator("start_line", "end_line")
    @classmethod
    def floor_line(cls, v: Optional[int]) -> Optional[int]:
        return None if v is None else max(1, v)

    @field_validator("max_file_size")
    @classmethod
    def floor_size(cls, v: Optional[int]) -> Optional[int]:
        return None if v is None else max(1024, v)

    @field_validator("encoding")
    @classmethod
    def known_encoding(cls, v: str) -> str:
        try:
            codecs.lookup(v)
        except LookupError:
            raise ValueError(f"Unsupported encoding: {v}")
        return v


TOOL_INPUTS: dict[ToolName, type[ToolInput]] = {
    ToolName.LIST_FILES: ListFilesInput,
    ToolName.DIR_TREE: DirTreeInput,
    ToolName.SEARCH_FILES: SearchFilesInput,
    ToolName.READ_FILES: ReadFilesInput,
}

TOOL_DESCRIPTIONS: dict[ToolName, str] = {
    ToolName.LIST_FILES: "Lists files and directories in the configured root directories "
    "with optional filtering.",
    ToolName.DIR_TREE: "Returns a nested directory tree for the specified path "
    "or for every root directory.",
    ToolName.SEARCH_FILES: "Searches for text content within files in the configured "
    "root directories. Returns matching lines with context.",
    ToolName.READ_FILES: "Reads content from one or more files with optional line range "
    "selection.",
}


def summarize_entries(entries: Sequence[FileEntry]) -> dict[str, Any]:
    """File and directory counts, total size and the five most common extensions."""
    files = [e for e in entries if not e.is_directory]
    extensions = Counter(e.extension.lower() for e in files if e.extension)
    return {
        "files": len(files),
        "directories": len(entries) - len(files),
        "total_size": sum(e.size for e in files),
        "file_types": dict(extensions.most_common(5)),
    }


class DocFSTools:
    """
    Unified read-only filesystem interface for tool calling.

    Owns one sandbox, metadata cache, ignore registry, walker, search
    engine and reader, shared by every call.

    Usage:
        config = FileSystemAccessConfig(roots=[Path("/srv/docs")])
        tools = DocFSTools(config)

        # Get tool schemas for LLM
        schemas = tools.get_tool_schemas()

        # Execute tool call
        result = await tools.execute_tool(
            tool_name="search_files",
            arguments={"query": "install", "filePattern": "*.md"},
        )
    """

    def __init__(
        self,
        config: FileSystemAccessConfig,
        cache: Optional[MetadataCache] = None,
        ignore_registry: Optional[IgnoreMatcherRegistry] = None,
    ):
        """
        Initialize filesystem tools.

        Args:
            config: Filesystem access configuration
            cache: Metadata cache (default: sized from DOCFS_* environment settings)
            ignore_registry: Ignore matcher registry (default: one per instance)
        """
        self.config = config
        self.cache = cache if cache is not None else CacheSettings().create_cache()
        self.ignore_registry = ignore_registry or IgnoreMatcherRegistry(
            config.ignore_file_name
        )
        self.sandbox = PathSandbox(config.roots, resolve_symlinks=config.resolve_symlinks)
        self.walker = DirectoryWalker(
            self.cache,
            self.ignore_registry,
            follow_symlinks=config.follow_symlinks,
            link_filter=self.sandbox.contains_target if config.resolve_symlinks else None,
        )
        self.search = TextSearchEngine(self.walker)
        self.reader = RangeReader()

        self._handlers: dict[ToolName, Callable[[Any], dict[str, Any]]] = {
            ToolName.LIST_FILES: self._list_files,
            ToolName.DIR_TREE: self._dir_tree,
            ToolName.SEARCH_FILES: self._search_files,
            ToolName.READ_FILES: self._read_files,
        }

    def get_tool_schemas(self) -> list[dict[str, Any]]:
        """
        Get OpenAI function calling schemas for all available tools.

        Returns:
            List of tool schemas in OpenAI format
        """
        schemas = []
        for name, input_model in TOOL_INPUTS.items():
            parameters = input_model.model_json_schema(by_alias=True)
            parameters.pop("title", None)
            schemas.append(
                {
                    "type": "function",
                    "function": {
                        "name": name.value,
                        "description": TOOL_DESCRIPTIONS[name],
                        "parameters": parameters,
                    },
                }
            )
        return schemas

    async def execute_tool(
        self, tool_name: str, arguments: Optional[dict[str, Any]] = None
    ) -> dict[str, Any]:
        """
        Execute a tool call.

        The operation runs in a worker thread and is bounded by
        ``operation_timeout_seconds``. A timed-out call is not cancelled:
        its thread runs to completion in the background and may still
        populate the metadata cache.

        Args:
            tool_name: Name of the tool to execute
            arguments: Tool arguments (camelCase or snake_case keys)

        Returns:
            Tool execution result as a dict

        Raises:
            ValueError: If tool name is unknown
            FileSystemError: If the request as a whole fails
        """
        try:
            name = ToolName(tool_name)
        except ValueError:
            raise ValueError(f"Unknown tool: {tool_name}")

        try:
            params = TOOL_INPUTS[name].model_validate(arguments or {})
        except ValidationError as e:
            raise InvalidArgumentsError(f"Invalid arguments for {name.value}: {e}")

        timeout = self.config.operation_timeout_seconds
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self._handlers[name], params), timeout=timeout
            )
        except asyncio.TimeoutError:
            logger.error(f"{name.value} timed out after {timeout}s")
            raise OperationTimeoutError(name.value, timeout)

    def _targets(self, path: Optional[str]) -> list[Path]:
        if path:
            return self.sandbox.resolve_candidates(path)
        return list(self.sandbox.roots)

    def _list_files(self, params: ListFilesInput) -> dict[str, Any]:
        """List files tool implementation."""
        results = []
        for target in self._targets(params.path):
            try:
                entries = self.walker.walk(
                    target,
                    recursive=params.recursive,
                    max_depth=params.max_depth or self.config.default_max_depth,
                    include_hidden=params.include_hidden,
                    name_pattern=params.pattern,
                    ignore_root=self.sandbox.root_for(target),
                )
                results.append(
                    {
                        "root": str(target),
                        "entries": [e.model_dump(mode="json") for e in entries],
                        "summary": summarize_entries(entries),
                    }
                )
            except FileSystemError as e:
                logger.warning(f"list_files failed for {target}: {e}")
                results.append(
                    {"root": str(target), "error": str(e), "error_type": type(e).__name__}
                )

        return {"success": True, "results": results}

    def _dir_tree(self, params: DirTreeInput) -> dict[str, Any]:
        """Dir tree tool implementation."""
        results = []
        for target in self._targets(params.path):
            try:
                tree = self.walker.tree(
                    target,
                    max_depth=params.max_depth or self.config.default_max_depth,
                    include_hidden=params.include_hidden,
                    ignore_root=self.sandbox.root_for(target),
                )
                results.append({"root": str(target), "tree": tree.model_dump(mode="json")})
            except FileSystemError as e:
                logger.warning(f"dir_tree failed for {target}: {e}")
                results.append(
                    {"root": str(target), "error": str(e), "error_type": type(e).__name__}
                )

        return {"success": True, "results": results}

    def _search_files(self, params: SearchFilesInput) -> dict[str, Any]:
        """Search files tool implementation."""
        roots = list(self.sandbox.roots)
        matches = self.search.search(
            roots,
            query=params.query,
            file_pattern=params.file_pattern,
            case_sensitive=params.case_sensitive,
            whole_word=params.whole_word,
            context_lines=params.context_lines,
            max_depth=params.max_depth or self.config.default_max_depth,
            ignore_roots=roots,
        )

        limited = matches[: params.max_results]
        if len(matches) > len(limited):
            logger.info(
                f"Results limited to {params.max_results} matches "
                f"({len(matches)} total found)"
            )

        return {
            "success": True,
            "query": params.query,
            "matches": [m.model_dump(mode="json") for m in limited],
            "count": len(limited),
            "total_matches": len(matches),
            "truncated": len(matches) > len(limited),
        }

    def _read_files(self, params: ReadFilesInput) -> dict[str, Any]:
        """Read files tool implementation."""
        validate_line_range(params.start_line, params.end_line)

        if len(params.paths) > self.config.max_read_paths:
            raise InvalidArgumentsError(
                f"Maximum of {self.config.max_read_paths} files can be read at once"
            )

        # A single path is not a batch: its failure is the request's failure.
        if len(params.paths) == 1:
            return {
                "success": True,
                "results": [self._read_single(params.paths[0], params)],
                "read_count": 1,
                "error_count": 0,
            }

        results = []
        error_count = 0
        for path in params.paths:
            try:
                results.append(self._read_single(path, params))
            except FileSystemError as e:
                logger.warning(f"read_files failed for {path}: {e}")
                results.append(
                    {"path": path, "error": str(e), "error_type": type(e).__name__}
                )
                error_count += 1

        return {
            "success": True,
            "results": results,
            "read_count": len(results) - error_count,
            "error_count": error_count,
        }

    def _read_single(self, path: str, params: ReadFilesInput) -> dict[str, Any]:
        resolved = self.sandbox.resolve(path)
        entry = self.walker.get_file_entry(resolved)

        if entry.is_directory:
            raise PathIsDirectoryError(str(resolved))

        limit = params.max_file_size or self.config.max_file_size_bytes
        if entry.size > limit:
            raise FileSizeLimitExceededError(str(resolved), entry.size, limit)

        content = self.reader.read(
            resolved,
            start_line=params.start_line,
            end_line=params.end_line,
            encoding=params.encoding,
        )
        return {
            "path": path,
            "resolved_path": str(resolved),
            "content": content,
            "size": entry.size,
            "modified": entry.modified.isoformat(),
            "start_line": params.start_line,
            "end_line": params.end_line,
        }

    def get_summary(self) -> dict[str, Any]:
        """
        Get a summary of the filesystem access configuration.

        Returns:
            Dict with configuration summary
        """
        return {
            "roots": [str(r) for r in self.sandbox.roots],
            "resolve_symlinks": self.config.resolve_symlinks,
            "follow_symlinks": self.config.follow_symlinks,
            "max_file_size_mb": self.config.max_file_size_bytes / (1024 * 1024),
            "max_read_paths": self.config.max_read_paths,
            "ignore_file_name": self.config.ignore_file_name,
            "operation_timeout_seconds": self.config.operation_timeout_seconds,
            "tools": [name.value for name in ToolName],
            "cache": self.cache.stats(),
        }
