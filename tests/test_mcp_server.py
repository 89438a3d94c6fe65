# tests/test_mcp_server.py
"""Tests for the MCP server implementation."""
import json
from unittest.mock import MagicMock, patch

from notes_mcp.server.mcp_server import TOOL_DEFINITIONS, NotesMcpServer


class TestMcpServer:
    """Tests for the NotesMcpServer class with FastMCP mocked out."""

    def setup_method(self):
        """Set up test environment before each test."""
        # Capture the tool decorator functions when registering
        self.registered_tools = {}
        self.descriptions = {}

        self.mock_mcp = MagicMock()

        def mock_tool_decorator(*args, **kwargs):
            def tool_wrapper(func):
                name = kwargs.get('name')
                self.registered_tools[name] = func
                self.descriptions[name] = kwargs.get('description')
                return func
            return tool_wrapper
        self.mock_mcp.tool = mock_tool_decorator

        self.mock_store = MagicMock()
        self.mock_store.notes_dir = "/tmp/notes"
        self.mock_store.max_note_size_bytes = 1024 * 1024
        self.mock_collector = MagicMock()
        self.mock_collector.get_summary.return_value = {"total_operations": 0}

        self.mcp_patcher = patch('notes_mcp.server.mcp_server.FastMCP', return_value=self.mock_mcp)
        self.mcp_patcher.start()

        self.server = NotesMcpServer(store=self.mock_store, collector=self.mock_collector)

    def teardown_method(self):
        """Clean up after each test."""
        self.mcp_patcher.stop()

    def test_all_tools_registered(self):
        """Every definition in the registry is exposed with its description."""
        assert set(self.registered_tools) == {d.name for d in TOOL_DEFINITIONS}
        for definition in TOOL_DEFINITIONS:
            assert self.descriptions[definition.name] == definition.description
        assert self.server.tools.keys() == self.registered_tools.keys()

    def test_create_note_tool(self):
        """create_note forwards content and name to the store."""
        self.mock_store.create.return_value = "test-note.txt"
        result = self.registered_tools['create_note'](note_name="test-note", content="Test content")
        assert result == "Note created: test-note.txt"
        self.mock_store.create.assert_called_once_with("Test content", "test-note")

    def test_read_note_tool(self):
        """read_note returns the store content verbatim."""
        self.mock_store.read.return_value = "Test content"
        assert self.registered_tools['read_note'](note_name="demo") == "Test content"
        self.mock_store.read.assert_called_once_with("demo")

    def test_delete_note_tool(self):
        """delete_note reports the sanitized name."""
        self.mock_store.delete.return_value = "demo"
        assert self.registered_tools['delete_note'](note_name="demo") == "Note deleted: demo"

    def test_append_to_note_tool(self):
        """append_to_note forwards content and name to the store."""
        self.mock_store.append.return_value = "demo"
        result = self.registered_tools['append_to_note'](note_name="demo", content="more")
        assert result == "Content added to note: demo"
        self.mock_store.append.assert_called_once_with("more", "demo")

    def test_search_and_list_tools(self):
        """search_notes and list_notes return file name lists."""
        self.mock_store.search.return_value = ["MyNotes.txt"]
        self.mock_store.list_all.return_value = ["a.txt", "b.txt"]
        assert self.registered_tools['search_notes'](search_term="my") == ["MyNotes.txt"]
        assert self.registered_tools['list_notes']() == ["a.txt", "b.txt"]
        self.mock_store.search.assert_called_once_with("my")

    def test_unexpected_error_is_formatted(self):
        """Unexpected exceptions become an error line with a reference id."""
        self.mock_store.read.side_effect = RuntimeError("boom")
        result = self.registered_tools['read_note'](note_name="demo")
        assert result.startswith("Error: An unexpected error occurred (ref: ")
        assert "boom" not in result

    def test_os_error_is_formatted_without_path(self):
        """File system errors do not leak paths."""
        self.mock_store.delete.side_effect = OSError("/secret/path/demo.txt: I/O error")
        result = self.registered_tools['delete_note'](note_name="demo")
        assert result.startswith("Error: A file system error occurred (ref: ")
        assert "/secret" not in result

    def test_listing_error_returns_empty(self):
        """Listing tools degrade to an empty list on unexpected failures."""
        self.mock_store.list_all.side_effect = PermissionError("denied")
        assert self.registered_tools['list_notes']() == []

    def test_status_tool(self):
        """notes_status reports directory, count and metrics as JSON."""
        self.mock_store.list_all.return_value = ["a.txt", "b.txt"]
        status = json.loads(self.registered_tools['notes_status']())
        assert status["notes_dir"] == "/tmp/notes"
        assert status["note_count"] == 2
        assert status["metrics"] == {"total_operations": 0}

    def test_run_delegates_to_fastmcp(self):
        """run() blocks in FastMCP.run()."""
        self.server.run()
        self.mock_mcp.run.assert_called_once_with()
