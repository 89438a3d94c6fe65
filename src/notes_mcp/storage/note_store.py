"""File-backed note storage confined to a single directory.

Each note is one UTF-8 text file named ``{sanitized_name}.txt`` directly
inside the storage root. There is no index or cache: the directory listing
is the source of truth and every call goes back to the filesystem.
"""

import logging
import os
import re
from pathlib import Path
from typing import List, Optional, Tuple, Union

from notes_mcp.config import (
    DEFAULT_MAX_NAME_LENGTH,
    DEFAULT_MAX_NOTE_SIZE_BYTES,
    NOTE_EXTENSION,
)
from notes_mcp.exceptions import (
    ErrorCode,
    InvalidNoteNameError,
    NoteAlreadyExistsError,
    NoteNotFoundError,
    NoteTooLargeError,
    PathConfinementError,
    StorageError,
)

logger = logging.getLogger(__name__)

# Anything outside ASCII letters, digits, hyphen and underscore
UNSAFE_NAME_CHARS = re.compile(r"[^a-zA-Z0-9\-_]")


class NoteStore:
    """Note CRUD operations over a confined storage root.

    The storage root is resolved once in the constructor and never changes
    afterwards. Expected failures (bad names, missing notes, size limits,
    traversal attempts) raise :class:`~notes_mcp.exceptions.NotesError`
    subclasses; filesystem failures are wrapped in ``StorageError``.
    """

    def __init__(
        self,
        notes_dir: Union[str, Path],
        max_note_size_bytes: int = DEFAULT_MAX_NOTE_SIZE_BYTES,
        max_name_length: int = DEFAULT_MAX_NAME_LENGTH,
        extension: str = NOTE_EXTENSION,
    ):
        """Resolve the storage root and create it if it is missing.

        Args:
            notes_dir: Directory holding the note files
            max_note_size_bytes: Maximum UTF-8 size of a single note
            max_name_length: Maximum length of a sanitized note name. Capped
                so that the name plus ``.extension`` fits in 255 bytes.
            extension: File extension for note files (without the dot)

        Raises:
            StorageError: If the directory cannot be created or is not a
                directory. This is fatal for the owning process.
        """
        self.max_note_size_bytes = max_note_size_bytes
        self.extension = extension.lstrip(".")
        # Sanitized names are ASCII, so characters and bytes coincide
        self.max_name_length = min(
            max_name_length, DEFAULT_MAX_NAME_LENGTH - len(self.extension) - 1
        )

        try:
            root = Path(notes_dir).expanduser().resolve()
            if not root.exists():
                root.mkdir(parents=True, exist_ok=True)
                logger.info(f"Created notes directory: {root}")
        except OSError as e:
            logger.error(f"Failed to create notes directory {notes_dir}: {e}")
            raise StorageError(
                "Failed to create notes directory",
                operation="init",
                path=str(notes_dir),
                code=ErrorCode.STORAGE_INIT_FAILED,
                original_error=e,
            ) from e

        if not root.is_dir():
            raise StorageError(
                "Notes path is not a directory",
                operation="init",
                path=str(root),
                code=ErrorCode.STORAGE_INIT_FAILED,
            )

        self._notes_dir = root
        logger.info(f"Notes store initialized with path: {root}")

    @property
    def notes_dir(self) -> Path:
        """The absolute, resolved storage root."""
        return self._notes_dir

    # ------------------------------------------------------------------
    # Name and path safety
    # ------------------------------------------------------------------

    def sanitize(self, identifier: Optional[str]) -> str:
        """Turn a caller-supplied identifier into a safe file stem.

        Every character outside ``[a-zA-Z0-9-_]`` becomes ``_`` and the
        result is cut to ``max_name_length`` characters (251 with the
        default ``txt`` extension).

        Raises:
            InvalidNoteNameError: If the identifier is None, not a string,
                or blank.
        """
        if not isinstance(identifier, str) or not identifier.strip():
            raise InvalidNoteNameError(identifier)
        sanitized = UNSAFE_NAME_CHARS.sub("_", identifier)
        return sanitized[: self.max_name_length]

    def resolve(self, sanitized_name: str) -> Path:
        """Build the candidate file path for a sanitized name."""
        return self._notes_dir / f"{sanitized_name}.{self.extension}"

    def is_confined(self, path: Path) -> bool:
        """Check that ``path`` resolves to the storage root or below it.

        Symlinks are followed, so a link pointing outside the root fails
        the check even though its own name is safe.
        """
        try:
            resolved = Path(path).resolve()
        except (OSError, RuntimeError) as e:
            logger.error(f"Error validating path: {e}")
            return False
        return resolved == self._notes_dir or self._notes_dir in resolved.parents

    def _note_path(self, identifier: Optional[str]) -> Tuple[str, Path]:
        """Sanitize, resolve and confinement-check a note identifier."""
        name = self.sanitize(identifier)
        path = self.resolve(name)
        if not self.is_confined(path):
            logger.error(f"Path traversal attempt detected: {identifier!r}")
            raise PathConfinementError(str(identifier))
        return name, path

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    def _file_names(self) -> List[str]:
        """Names of the regular files directly inside the storage root."""
        if not self._notes_dir.is_dir():
            logger.warning(f"Notes directory does not exist: {self._notes_dir}")
            return []
        try:
            return [entry.name for entry in self._notes_dir.iterdir() if entry.is_file()]
        except FileNotFoundError:
            logger.warning(f"Notes directory disappeared: {self._notes_dir}")
            return []

    def search(self, term: Optional[str] = "") -> List[str]:
        """Return file names containing ``term``, case-insensitively.

        Results keep directory enumeration order. An empty term matches
        every note.
        """
        needle = (term or "").lower()
        results = [name for name in self._file_names() if needle in name.lower()]
        logger.info(f"Found {len(results)} notes matching '{term}'")
        return results

    def list_all(self) -> List[str]:
        """Return every note file name, sorted lexicographically."""
        notes = sorted(self._file_names())
        logger.info(f"Listed {len(notes)} total notes")
        return notes

    # ------------------------------------------------------------------
    # Single-note operations
    # ------------------------------------------------------------------

    def read(self, identifier: Optional[str]) -> str:
        """Return the full text of a note.

        Raises:
            InvalidNoteNameError, PathConfinementError, NoteNotFoundError,
            StorageError
        """
        name, path = self._note_path(identifier)
        if not self._exists(name, path, "read"):
            raise NoteNotFoundError(name)

        try:
            # newline="" keeps the stored line endings untouched
            with open(path, "r", encoding="utf-8", newline="") as f:
                content = f.read()
        except FileNotFoundError as e:
            raise NoteNotFoundError(name) from e
        except (OSError, UnicodeDecodeError) as e:
            raise StorageError(
                f"Failed to read note {name}",
                operation="read",
                path=path.name,
                code=ErrorCode.STORAGE_READ_FAILED,
                original_error=e,
                note_name=name,
            ) from e

        logger.info(f"Successfully read note: {name}")
        return content

    def create(self, content: Optional[str], identifier: Optional[str]) -> str:
        """Create a new note and return its file name.

        Never overwrites: the file is opened in exclusive-create mode, so a
        note created concurrently by someone else is reported as existing.

        Raises:
            InvalidNoteNameError, PathConfinementError,
            NoteAlreadyExistsError, NoteTooLargeError, StorageError
        """
        name, path = self._note_path(identifier)
        if self._exists(name, path, "create"):
            raise NoteAlreadyExistsError(name, path.name)

        text = content if content is not None else ""
        size = len(text.encode("utf-8"))
        if size > self.max_note_size_bytes:
            logger.warning(f"Note content too large: {size} bytes")
            raise NoteTooLargeError(size, self.max_note_size_bytes)

        opened = False
        try:
            with open(path, "x", encoding="utf-8", newline="") as f:
                opened = True
                f.write(text)
        except FileExistsError as e:
            raise NoteAlreadyExistsError(name, path.name) from e
        except OSError as e:
            if opened:
                self._remove_partial(path)
            raise StorageError(
                f"Failed to create note {name}",
                operation="create",
                path=path.name,
                code=ErrorCode.STORAGE_WRITE_FAILED,
                original_error=e,
                note_name=name,
            ) from e

        logger.info(f"Created note: {path.name}")
        return path.name

    def delete(self, identifier: Optional[str]) -> str:
        """Delete a note and return its sanitized name.

        Raises:
            InvalidNoteNameError, PathConfinementError, NoteNotFoundError,
            StorageError
        """
        name, path = self._note_path(identifier)
        if not self._exists(name, path, "delete"):
            raise NoteNotFoundError(name)

        try:
            path.unlink()
        except FileNotFoundError as e:
            raise NoteNotFoundError(name) from e
        except OSError as e:
            raise StorageError(
                f"Failed to delete note {name}",
                operation="delete",
                path=path.name,
                code=ErrorCode.STORAGE_DELETE_FAILED,
                original_error=e,
                note_name=name,
            ) from e

        logger.info(f"Deleted note: {name}")
        return name

    def append(self, content: Optional[str], identifier: Optional[str]) -> str:
        """Append a line separator and ``content`` to an existing note.

        The combined size (current file size plus the new content) is
        checked before anything is written; on failure the note is left
        untouched. Returns the sanitized name.

        Raises:
            InvalidNoteNameError, PathConfinementError, NoteNotFoundError,
            NoteTooLargeError, StorageError
        """
        name, path = self._note_path(identifier)
        if not self._exists(name, path, "append"):
            raise NoteNotFoundError(name)

        text = content if content is not None else ""
        try:
            current_size = path.stat().st_size
        except FileNotFoundError as e:
            raise NoteNotFoundError(name) from e
        except OSError as e:
            raise self._write_error(name, path, e) from e

        append_size = len(text.encode("utf-8"))
        if current_size + append_size > self.max_note_size_bytes:
            logger.warning(
                f"Append would exceed size limit. Current: {current_size}, "
                f"Append: {append_size}"
            )
            raise NoteTooLargeError(
                current_size + append_size, self.max_note_size_bytes, appending=True
            )

        try:
            # No O_CREAT: a note removed since the existence check stays removed
            fd = os.open(path, os.O_WRONLY | os.O_APPEND)
        except FileNotFoundError as e:
            raise NoteNotFoundError(name) from e
        except OSError as e:
            raise self._write_error(name, path, e) from e

        try:
            f = os.fdopen(fd, "a", encoding="utf-8", newline="")
        except OSError as e:
            # The file object never took ownership of the descriptor
            os.close(fd)
            raise self._write_error(name, path, e) from e

        try:
            with f:
                f.write(os.linesep + text)
        except OSError as e:
            raise self._write_error(name, path, e) from e

        logger.info(f"Appended content to note: {name}")
        return name

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _exists(name: str, path: Path, operation: str) -> bool:
        """Existence check that reports OS errors as StorageError."""
        try:
            return path.exists()
        except OSError as e:
            code = {
                "read": ErrorCode.STORAGE_READ_FAILED,
                "delete": ErrorCode.STORAGE_DELETE_FAILED,
            }.get(operation, ErrorCode.STORAGE_WRITE_FAILED)
            raise StorageError(
                f"Failed to check note {name}",
                operation=operation,
                path=path.name,
                code=code,
                original_error=e,
                note_name=name,
            ) from e

    @staticmethod
    def _write_error(name: str, path: Path, error: OSError) -> StorageError:
        return StorageError(
            f"Failed to write to note {name}",
            operation="append",
            path=path.name,
            code=ErrorCode.STORAGE_WRITE_FAILED,
            original_error=error,
            note_name=name,
        )

    @staticmethod
    def _remove_partial(path: Path) -> None:
        """Remove a note file left half-written by a failed create."""
        try:
            path.unlink()
        except OSError as e:
            logger.warning(f"Failed to remove partially written note {path.name}: {e}")
