"""Tests for the text-result NotesService."""

import logging
from pathlib import Path
from unittest.mock import patch

import pytest

from notes_mcp.exceptions import PathConfinementError


class TestNoteLifecycle:
    """End-to-end lifecycle through the service."""

    def test_demo_scenario(self, notes_service):
        """create, read, append, read, delete, read."""
        assert notes_service.create_note("Hello", "demo") == "Note created: demo.txt"
        assert notes_service.read_note("demo") == "Hello"
        assert notes_service.append_to_note("World", "demo") == "Content added to note: demo"

        content = notes_service.read_note("demo")
        assert "Hello" in content
        assert "World" in content
        assert content.index("Hello") < content.index("World")

        assert notes_service.delete_note("demo") == "Note deleted: demo"
        assert notes_service.read_note("demo") == "Note not found: demo"

    def test_search_and_list(self, notes_service):
        """Search and list return file names."""
        notes_service.create_note("x", "MyNotes")
        notes_service.create_note("x", "groceries")
        assert notes_service.list_notes() == ["MyNotes.txt", "groceries.txt"]
        assert notes_service.search_notes("mynotes") == ["MyNotes.txt"]
        assert sorted(notes_service.search_notes("")) == ["MyNotes.txt", "groceries.txt"]

    def test_longest_name_lifecycle(self, notes_service):
        """Names cut to the length limit work end to end."""
        long_name = "a" * 300
        stem = "a" * 251
        assert notes_service.create_note("Hello", long_name) == f"Note created: {stem}.txt"
        assert notes_service.read_note(long_name) == "Hello"
        assert notes_service.append_to_note("World", long_name) == f"Content added to note: {stem}"
        assert notes_service.delete_note(long_name) == f"Note deleted: {stem}"
        assert notes_service.read_note(long_name) == f"Note not found: {stem}"

    def test_list_empty(self, notes_service):
        """No notes is an empty list, not an error."""
        assert notes_service.list_notes() == []
        assert notes_service.search_notes("anything") == []


class TestFailureMessages:
    """Every expected failure maps to its plain-text outcome."""

    @pytest.mark.parametrize("name", ["", "   ", None])
    def test_invalid_name(self, notes_service, name):
        """Blank names are rejected by every single-note operation."""
        assert notes_service.read_note(name) == "Error: Invalid note name"
        assert notes_service.create_note("Content", name) == "Error: Invalid note name"
        assert notes_service.delete_note(name) == "Error: Invalid note name"
        assert notes_service.append_to_note("Content", name) == "Error: Invalid note name"

    def test_already_exists(self, notes_service):
        """Second create reports the existing file."""
        notes_service.create_note("First content", "existing-note")
        result = notes_service.create_note("Second content", "existing-note")
        assert result == "Note already exists: existing-note.txt"
        assert notes_service.read_note("existing-note") == "First content"

    def test_not_found(self, notes_service):
        """Missing notes report the sanitized name."""
        assert notes_service.read_note("missing note") == "Note not found: missing_note"
        assert notes_service.delete_note("missing") == "Note not found: missing"
        assert notes_service.append_to_note("x", "missing") == "Note not found: missing"

    def test_too_large(self, notes_service):
        """Oversized content is rejected with the 1MB message."""
        result = notes_service.create_note("x" * (1024 * 1024 + 1), "large-note")
        assert result == "Error: Note content exceeds maximum size of 1MB"

    def test_append_too_large(self, notes_service):
        """An append past the limit is rejected with its own message."""
        notes_service.create_note("x" * (1024 * 1024), "full")
        result = notes_service.append_to_note("y", "full")
        assert result == "Error: Adding this content would exceed maximum note size of 1MB"

    def test_traversal_name_is_sanitized(self, notes_service):
        """Traversal characters are replaced, not rejected."""
        result = notes_service.create_note("Content", "my../../../etc/passwd")
        assert result.startswith("Note created: my_")
        assert result.endswith("etc_passwd.txt")

    def test_confinement_failure_is_logged_as_error(self, notes_service, note_store, caplog):
        """A confinement failure returns 'Invalid file path' and logs an error."""
        with patch.object(note_store, "is_confined", return_value=False):
            with caplog.at_level(logging.ERROR, logger="notes_mcp"):
                result = notes_service.read_note("demo")
        assert result == "Error: Invalid file path"
        assert any(
            PathConfinementError.__name__ in r.getMessage()
            or "PATH_TRAVERSAL_DETECTED" in r.getMessage()
            for r in caplog.records
        )

    def test_storage_failure_is_text(self, notes_service, note_store):
        """Filesystem errors come back as text, never raise."""
        notes_service.create_note("Hello", "demo")
        with patch(
            "notes_mcp.storage.note_store.open",
            side_effect=PermissionError(13, "Permission denied"),
            create=True,
        ):
            result = notes_service.read_note("demo")
        assert result == "Error reading note: Permission denied"

    def test_existence_check_failure_is_text(self, notes_service):
        """An OS error while checking for the note is a text outcome."""
        with patch.object(Path, "exists", side_effect=OSError(36, "File name too long")):
            assert notes_service.read_note("demo") == "Error reading note: File name too long"
            assert notes_service.create_note("x", "demo") == (
                "Error creating note: File name too long"
            )

    def test_append_reaching_limit_exactly(self, notes_service):
        """An append that lands exactly on 1 MiB is accepted."""
        notes_service.create_note("x" * (1024 * 1024 - 5), "nearly-full")
        result = notes_service.append_to_note("12345", "nearly-full")
        assert result == "Content added to note: nearly-full"


class TestMetrics:
    """Operations are recorded in the metrics collector."""

    def test_success_and_failure_counted(self, notes_service, metrics_collector):
        """Expected failures count as errors without raising."""
        notes_service.create_note("Hello", "demo")
        notes_service.create_note("Hello", "demo")
        notes_service.list_notes()

        data = metrics_collector.get_metrics()
        assert data["create_note"]["count"] == 2
        assert data["create_note"]["success_count"] == 1
        assert data["create_note"]["error_count"] == 1
        assert data["create_note"]["last_error"] == "NOTE_ALREADY_EXISTS"
        assert data["list_notes"]["success_count"] == 1
