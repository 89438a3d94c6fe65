"""Common test fixtures for the Notes MCP server."""

import pytest

from notes_mcp.config import config
from notes_mcp.observability import MetricsCollector
from notes_mcp.server.mcp_server import NotesMcpServer
from notes_mcp.services.notes_service import NotesService
from notes_mcp.storage.note_store import NoteStore


@pytest.fixture(params=["asyncio"])
def anyio_backend(request):
    """Restrict anyio tests to asyncio only (trio is not installed)."""
    return request.param


@pytest.fixture
def notes_dir(tmp_path):
    """An empty notes directory."""
    path = tmp_path / "notes"
    path.mkdir()
    return path


@pytest.fixture
def test_config(notes_dir, monkeypatch):
    """Point the global config at the temp notes directory (auto-restored)."""
    monkeypatch.setattr(config, "notes_dir", notes_dir)
    yield config


@pytest.fixture
def note_store(notes_dir):
    """Create a test note store."""
    return NoteStore(notes_dir)


@pytest.fixture
def metrics_collector(tmp_path):
    """A metrics collector that persists inside the temp directory."""
    return MetricsCollector(metrics_file=tmp_path / "metrics.json")


@pytest.fixture
def notes_service(note_store, metrics_collector):
    """Create a test NotesService."""
    return NotesService(note_store, collector=metrics_collector)


@pytest.fixture
def mcp_server(note_store, test_config, metrics_collector):
    """A real NotesMcpServer backed by the temp notes directory."""
    return NotesMcpServer(
        store=note_store, settings=test_config, collector=metrics_collector
    )
