"""Configuration module for the Notes MCP server."""

import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

from notes_mcp import __version__

# Load environment variables from the project root .env file.
# Anchored to __file__ so it works regardless of the process CWD
# (e.g. when launched as an MCP subprocess by the assistant host).
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
load_dotenv(_PROJECT_ROOT / ".env")

# User-level config: survives reinstalls
_USER_ENV = Path.home() / ".notes-mcp" / ".env"
load_dotenv(_USER_ENV)


logger = logging.getLogger(__name__)

# 1 MiB, measured in UTF-8 bytes
DEFAULT_MAX_NOTE_SIZE_BYTES = 1024 * 1024
# Most filesystems cap a single path component at 255 bytes
DEFAULT_MAX_NAME_LENGTH = 255
NOTE_EXTENSION = "txt"


class NotesConfig(BaseModel):
    """Configuration for the Notes server."""

    # Storage root for note files
    notes_dir: Path = Field(
        default_factory=lambda: Path(
            os.getenv("NOTES_PATH", str(Path.home() / "notes"))
        )
    )
    max_note_size_bytes: int = Field(
        default_factory=lambda: int(
            os.getenv("NOTES_MAX_SIZE_BYTES", str(DEFAULT_MAX_NOTE_SIZE_BYTES))
        )
    )
    max_name_length: int = Field(
        default_factory=lambda: int(
            os.getenv("NOTES_MAX_NAME_LENGTH", str(DEFAULT_MAX_NAME_LENGTH))
        )
    )
    note_extension: str = Field(default=NOTE_EXTENSION)
    # Server configuration
    server_name: str = Field(default=os.getenv("NOTES_SERVER_NAME", "notes-mcp"))
    server_version: str = Field(default=__version__)
    # Logging configuration
    log_level: str = Field(
        default_factory=lambda: os.getenv("NOTES_LOG_LEVEL", "INFO").upper()
    )
    log_dir: Optional[Path] = Field(
        default_factory=lambda: (
            Path(os.getenv("NOTES_LOG_DIR")) if os.getenv("NOTES_LOG_DIR") else None
        )
    )

    @model_validator(mode="after")
    def _validate_limits(self) -> "NotesConfig":
        """Reject limits that would make every note unwritable."""
        if self.max_note_size_bytes < 1:
            raise ValueError("max_note_size_bytes must be >= 1")
        if not 1 <= self.max_name_length <= DEFAULT_MAX_NAME_LENGTH:
            raise ValueError(
                f"max_name_length must be between 1 and {DEFAULT_MAX_NAME_LENGTH}"
            )
        if self.max_note_size_bytes != DEFAULT_MAX_NOTE_SIZE_BYTES:
            logger.warning(
                "Note size limit overridden: %d bytes (default %d)",
                self.max_note_size_bytes,
                DEFAULT_MAX_NOTE_SIZE_BYTES,
            )
        return self

    def get_absolute_path(self, path: Path) -> Path:
        """Expand ``~`` and convert a relative path to an absolute one."""
        path = Path(path).expanduser()
        if path.is_absolute():
            return path
        return Path.cwd() / path

    def get_notes_dir(self) -> Path:
        """Get the absolute path to the notes storage root."""
        return self.get_absolute_path(self.notes_dir)


# Create a global config instance
config = NotesConfig()
