"""Service layer for note operations.

Wraps :class:`NoteStore` and turns every outcome into the plain-text
result that MCP callers pattern-match on (``"Note created: "``,
``"Note not found: "``, ``"Error: "`` and so on).
"""

import logging
from typing import List, Optional

from notes_mcp.exceptions import NotesError, PathConfinementError, StorageError
from notes_mcp.observability import MetricsCollector, timed_operation
from notes_mcp.storage.note_store import NoteStore

logger = logging.getLogger(__name__)


class NotesService:
    """Text-result facade over a NoteStore."""

    def __init__(self, store: NoteStore, collector: Optional[MetricsCollector] = None):
        self.store = store
        self.collector = collector

    def _failure(self, operation: str, identifier: Optional[str], error: NotesError) -> str:
        """Log a failed operation and return its plain-text outcome."""
        if isinstance(error, PathConfinementError):
            # Security-relevant: someone tried to leave the storage root
            logger.error(
                f"[{error.code.name}] {operation} rejected for {identifier!r}",
                extra={"error_details": error.details},
            )
        elif isinstance(error, StorageError):
            logger.error(f"[{error.code.name}] {operation} failed: {error}")
        else:
            logger.warning(f"[{error.code.name}] {operation}: {error.message}")
        return error.legacy_message

    def search_notes(self, search_term: Optional[str] = "") -> List[str]:
        """Return note file names containing the term (case-insensitive)."""
        with timed_operation("search_notes", self.collector, term=search_term) as op:
            results = self.store.search(search_term)
            op["result_count"] = len(results)
            return results

    def list_notes(self) -> List[str]:
        """Return all note file names, sorted."""
        with timed_operation("list_notes", self.collector) as op:
            notes = self.store.list_all()
            op["result_count"] = len(notes)
            return notes

    def read_note(self, note_name: Optional[str]) -> str:
        """Return the note content, or an error line."""
        with timed_operation("read_note", self.collector, note_name=note_name) as op:
            try:
                return self.store.read(note_name)
            except NotesError as e:
                op["error"] = e.code.name
                return self._failure("read_note", note_name, e)

    def create_note(self, content: Optional[str], note_name: Optional[str]) -> str:
        """Create a note; never overwrites an existing one."""
        with timed_operation("create_note", self.collector, note_name=note_name) as op:
            try:
                file_name = self.store.create(content, note_name)
            except NotesError as e:
                op["error"] = e.code.name
                return self._failure("create_note", note_name, e)
            op["file_name"] = file_name
            return f"Note created: {file_name}"

    def delete_note(self, note_name: Optional[str]) -> str:
        """Delete a note."""
        with timed_operation("delete_note", self.collector, note_name=note_name) as op:
            try:
                name = self.store.delete(note_name)
            except NotesError as e:
                op["error"] = e.code.name
                return self._failure("delete_note", note_name, e)
            return f"Note deleted: {name}"

    def append_to_note(self, content: Optional[str], note_name: Optional[str]) -> str:
        """Append content to an existing note; never creates one."""
        with timed_operation("append_to_note", self.collector, note_name=note_name) as op:
            try:
                name = self.store.append(content, note_name)
            except NotesError as e:
                op["error"] = e.code.name
                return self._failure("append_to_note", note_name, e)
            return f"Content added to note: {name}"
