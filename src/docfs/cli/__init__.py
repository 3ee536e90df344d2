"""
CLI module for docfs.

Provides a command-line interface to the read-only filesystem tools.
"""

from docfs.cli.main import cli

__all__ = ["cli"]
