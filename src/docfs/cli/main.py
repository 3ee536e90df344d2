"""
CLI for docfs.

Runs the read-only filesystem tools (list, tree, search, read) against
one or more root directories and prints the JSON results.
"""

import asyncio
import json
import logging
import sys
from typing import Any, Optional

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler

from docfs.filesystem.config import CacheSettings, FileSystemAccessConfig, validate_roots
from docfs.filesystem.exceptions import FileSystemError
from docfs.filesystem.tools import DocFSTools, ToolName
from docfs.settings.config import DocFSConfig

# Load environment variables
load_dotenv()

console = Console()
err_console = Console(stderr=True)


def setup_logging(verbose: bool = False) -> None:
    """Setup rich logging on stderr."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, rich_tracebacks=True)],
    )


def build_tools(roots: tuple[str, ...], config_file: Optional[str]) -> DocFSTools:
    """Create the tools from a config file or from ``--root`` options."""
    if config_file:
        config = DocFSConfig.from_file(config_file)
        if roots:
            config = config.model_copy(
                update={
                    "filesystem": config.filesystem.model_copy(
                        update={"roots": validate_roots(roots)}
                    )
                }
            )
        return DocFSTools(config.filesystem, cache=config.cache.create_cache())

    filesystem = FileSystemAccessConfig(roots=validate_roots(roots or (".",)))
    return DocFSTools(filesystem, cache=CacheSettings().create_cache())


def run_tool(ctx: click.Context, tool: ToolName, arguments: dict[str, Any]) -> None:
    """Execute a tool and print its result, exiting non-zero on failure."""
    try:
        tools = build_tools(ctx.obj["roots"], ctx.obj["config"])
        result = asyncio.run(tools.execute_tool(tool.value, arguments))
    except (FileSystemError, ValueError, FileNotFoundError) as e:
        err_console.print(f"[bold red]Error:[/bold red] {e}")
        sys.exit(1)

    console.print_json(json.dumps(result))


@click.group()
@click.version_option(version="0.1.0")
@click.option(
    "--root",
    "-r",
    "roots",
    multiple=True,
    type=click.Path(file_okay=False),
    help="Root directory to expose (repeatable, default: current directory)",
)
@click.option(
    "--config",
    "-c",
    "config_file",
    type=click.Path(dir_okay=False),
    default=None,
    help="YAML or JSON configuration file",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, roots: tuple[str, ...], config_file: Optional[str], verbose: bool):
    """DocFS - read-only access to local directory trees."""
    setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["roots"] = roots
    ctx.obj["config"] = config_file


@cli.command("list")
@click.argument("path", required=False)
@click.option("--pattern", "-p", default=None, help="Glob filtering file names (e.g. '*.md')")
@click.option("--recursive/--no-recursive", default=True, help="Descend into subdirectories")
@click.option("--max-depth", "-d", type=int, default=None, help="Maximum traversal depth")
@click.option("--hidden", is_flag=True, help="Include hidden files and directories")
@click.pass_context
def list_command(
    ctx: click.Context,
    path: Optional[str],
    pattern: Optional[str],
    recursive: bool,
    max_depth: Optional[int],
    hidden: bool,
):
    """
    List files below the roots (or below PATH).

    Examples:

        docfs -r ~/docs list --pattern '*.md'
    """
    run_tool(
        ctx,
        ToolName.LIST_FILES,
        {
            "path": path,
            "pattern": pattern,
            "recursive": recursive,
            "maxDepth": max_depth,
            "includeHidden": hidden,
        },
    )


@cli.command()
@click.argument("path", required=False)
@click.option("--max-depth", "-d", type=int, default=None, help="Maximum traversal depth")
@click.option("--hidden", is_flag=True, help="Include hidden files and directories")
@click.pass_context
def tree(ctx: click.Context, path: Optional[str], max_depth: Optional[int], hidden: bool):
    """Print the nested directory tree of the roots (or of PATH)."""
    run_tool(
        ctx,
        ToolName.DIR_TREE,
        {"path": path, "maxDepth": max_depth, "includeHidden": hidden},
    )


@cli.command()
@click.argument("query")
@click.option("--file-pattern", "-f", default=None, help="Glob restricting searched files")
@click.option("--case-sensitive", "-s", is_flag=True, help="Match case exactly")
@click.option("--whole-word", "-w", is_flag=True, help="Match whole words only")
@click.option("--context", "-C", "context_lines", type=int, default=2, help="Context lines (0-10)")
@click.option("--max-results", "-n", type=int, default=100, help="Maximum matches (1-1000)")
@click.option("--max-depth", "-d", type=int, default=None, help="Maximum traversal depth")
@click.pass_context
def search(
    ctx: click.Context,
    query: str,
    file_pattern: Optional[str],
    case_sensitive: bool,
    whole_word: bool,
    context_lines: int,
    max_results: int,
    max_depth: Optional[int],
):
    """
    Search file contents for QUERY.

    Examples:

        docfs -r ~/docs search install -f '*.md' -C 1
    """
    run_tool(
        ctx,
        ToolName.SEARCH_FILES,
        {
            "query": query,
            "filePattern": file_pattern,
            "caseSensitive": case_sensitive,
            "wholeWord": whole_word,
            "contextLines": context_lines,
            "maxResults": max_results,
            "maxDepth": max_depth,
        },
    )


@cli.command()
@click.argument("paths", nargs=-1, required=True)
@click.option("--start-line", type=int, default=None, help="First line (1-based)")
@click.option("--end-line", type=int, default=None, help="Last line (1-based, inclusive)")
@click.option("--encoding", "-e", default="utf-8", help="File encoding")
@click.option("--max-file-size", type=int, default=None, help="Maximum file size in bytes")
@click.pass_context
def read(
    ctx: click.Context,
    paths: tuple[str, ...],
    start_line: Optional[int],
    end_line: Optional[int],
    encoding: str,
    max_file_size: Optional[int],
):
    """Read one or more files, optionally restricted to a line range."""
    run_tool(
        ctx,
        ToolName.READ_FILES,
        {
            "paths": list(paths),
            "startLine": start_line,
            "endLine": end_line,
            "encoding": encoding,
            "maxFileSize": max_file_size,
        },
    )


@cli.command()
@click.pass_context
def info(ctx: click.Context):
    """Show the active configuration and tool schemas."""
    try:
        tools = build_tools(ctx.obj["roots"], ctx.obj["config"])
    except (ValueError, FileNotFoundError) as e:
        err_console.print(f"[bold red]Error:[/bold red] {e}")
        sys.exit(1)

    console.print_json(
        json.dumps({"summary": tools.get_summary(), "tools": tools.get_tool_schemas()})
    )


if __name__ == "__main__":
    cli()
