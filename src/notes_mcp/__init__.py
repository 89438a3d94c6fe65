"""
Notes MCP - A file-backed note store exposed as an MCP server.
This package implements a Model Context Protocol (MCP) server that lets an
assistant search, list, read, create, delete and append to plain-text notes
kept in a single confined directory.

This version uses synchronous operations.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("notes-mcp")
except PackageNotFoundError:
    __version__ = "0.1.0"
