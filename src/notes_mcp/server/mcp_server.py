"""MCP server implementation for the note store."""

import json
import logging
import uuid
from typing import Callable, Dict, List, NamedTuple, Optional

from mcp.server.fastmcp import FastMCP

from notes_mcp.config import NotesConfig, config as default_config
from notes_mcp.exceptions import NotesError
from notes_mcp.observability import MetricsCollector, metrics as default_metrics
from notes_mcp.services.notes_service import NotesService
from notes_mcp.storage.note_store import NoteStore

logger = logging.getLogger(__name__)


class ToolDefinition(NamedTuple):
    """Name and description under which a handler is exposed."""

    name: str
    description: str


# Every tool the server exposes. Handlers are paired by name in
# NotesMcpServer._build_handlers(); their signatures are the tool schemas.
TOOL_DEFINITIONS = (
    ToolDefinition(
        "search_notes",
        "Search notes by filename. Returns a list of note filenames that "
        "contain the given search term. Useful for locating existing notes.",
    ),
    ToolDefinition(
        "list_notes",
        "Lists all available notes in the notes directory. Returns filenames "
        "of all notes.",
    ),
    ToolDefinition(
        "read_note",
        "Reads and returns the full content of a note file. Useful for viewing "
        "what's written in a note.",
    ),
    ToolDefinition(
        "create_note",
        "Creates a new note file with the given name and content. Fails if the "
        "note already exists.",
    ),
    ToolDefinition(
        "delete_note",
        "Deletes a note file by name. Returns success or failure message.",
    ),
    ToolDefinition(
        "append_to_note",
        "Appends content to an existing note file. Fails if the note does not "
        "exist.",
    ),
    ToolDefinition(
        "notes_status",
        "Reports the notes directory, the number of notes and operation "
        "metrics for this server.",
    ),
)


class NotesMcpServer:
    """MCP server exposing the note operations as tools."""

    def __init__(
        self,
        store: Optional[NoteStore] = None,
        settings: Optional[NotesConfig] = None,
        collector: Optional[MetricsCollector] = None,
    ):
        """Initialize the MCP server.

        Args:
            store: Pre-built note store. When None, one is created from
                   ``settings`` (the storage root is resolved here, once).
            settings: Configuration; defaults to the module-level config.
            collector: Metrics collector; defaults to the global one.
        """
        self.settings = settings or default_config
        self.metrics = collector or default_metrics
        if store is None:
            store = NoteStore(
                self.settings.get_notes_dir(),
                max_note_size_bytes=self.settings.max_note_size_bytes,
                max_name_length=self.settings.max_name_length,
                extension=self.settings.note_extension,
            )
        self.store = store
        self.notes_service = NotesService(store, collector=self.metrics)
        self.mcp = FastMCP(
            self.settings.server_name,
            instructions=(
                "Plain-text notes stored as .txt files. Note names are "
                "sanitized: characters other than letters, digits, '-' and "
                "'_' become '_'."
            ),
        )
        self._register_tools()
        logger.info(f"Notes MCP server initialized (notes dir: {store.notes_dir})")

    def format_error_response(self, error: Exception) -> str:
        """Format an unexpected error without leaking paths or internals."""
        error_id = str(uuid.uuid4())[:8]

        if isinstance(error, NotesError):
            logger.error(
                f"[{error.code.name}] [{error_id}]: {error.message}",
                extra={"error_details": error.details},
            )
            return error.legacy_message
        elif isinstance(error, (IOError, OSError)):
            logger.error(f"File system error [{error_id}]: {str(error)}", exc_info=True)
            return f"Error: A file system error occurred (ref: {error_id})"
        else:
            logger.error(f"Unexpected error [{error_id}]: {str(error)}", exc_info=True)
            return f"Error: An unexpected error occurred (ref: {error_id})"

    def _build_handlers(self) -> Dict[str, Callable]:
        """Create the tool handler functions, keyed by tool name."""
        service = self.notes_service

        def search_notes(search_term: str = "") -> List[str]:
            """Search notes by filename.
            Args:
                search_term: Partial or full note filename to search (case-insensitive)
            """
            try:
                return service.search_notes(search_term)
            except Exception as e:
                self.format_error_response(e)
                return []

        def list_notes() -> List[str]:
            """List all notes, sorted by filename."""
            try:
                return service.list_notes()
            except Exception as e:
                self.format_error_response(e)
                return []

        def read_note(note_name: str) -> str:
            """Read a note.
            Args:
                note_name: Name of the note to read (without extension)
            """
            try:
                return service.read_note(note_name)
            except Exception as e:
                return self.format_error_response(e)

        def create_note(note_name: str, content: str = "") -> str:
            """Create a new note.
            Args:
                note_name: Name of the note (without extension)
                content: Content to write into the note
            """
            try:
                return service.create_note(content, note_name)
            except Exception as e:
                return self.format_error_response(e)

        def delete_note(note_name: str) -> str:
            """Delete a note.
            Args:
                note_name: Name of the note to delete (without extension)
            """
            try:
                return service.delete_note(note_name)
            except Exception as e:
                return self.format_error_response(e)

        def append_to_note(note_name: str, content: str) -> str:
            """Append to an existing note.
            Args:
                note_name: Name of the note to update (without extension)
                content: Content to append to the note
            """
            try:
                return service.append_to_note(content, note_name)
            except Exception as e:
                return self.format_error_response(e)

        def notes_status() -> str:
            """Report storage location, note count and metrics."""
            try:
                status = {
                    "notes_dir": str(self.store.notes_dir),
                    "note_count": len(self.store.list_all()),
                    "max_note_size_bytes": self.store.max_note_size_bytes,
                    "metrics": self.metrics.get_summary(),
                }
                return json.dumps(status, indent=2)
            except Exception as e:
                return self.format_error_response(e)

        return {
            "search_notes": search_notes,
            "list_notes": list_notes,
            "read_note": read_note,
            "create_note": create_note,
            "delete_note": delete_note,
            "append_to_note": append_to_note,
            "notes_status": notes_status,
        }

    def _register_tools(self) -> None:
        """Register every entry of TOOL_DEFINITIONS with FastMCP."""
        handlers = self._build_handlers()
        self.tools: Dict[str, Callable] = {}
        for definition in TOOL_DEFINITIONS:
            handler = handlers[definition.name]
            self.mcp.tool(name=definition.name, description=definition.description)(handler)
            self.tools[definition.name] = handler
        logger.debug(f"Registered tools: {', '.join(self.tools)}")

    def run(self) -> None:
        """Run the MCP server on stdio; blocks until the transport closes."""
        self.mcp.run()
