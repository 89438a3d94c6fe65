"""Storage layer for the Notes MCP server."""

from notes_mcp.storage.note_store import NoteStore

__all__ = [
    "NoteStore",
]
