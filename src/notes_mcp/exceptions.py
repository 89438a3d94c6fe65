"""Custom exceptions for the Notes MCP server.

Provides a structured exception hierarchy with error codes and
machine-readable error information. Every exception also knows the
plain-text outcome that MCP callers of the note tools match on.
"""
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    """Error codes for machine-readable error identification."""

    # Note errors (1xxx)
    NOTE_NOT_FOUND = 1001
    NOTE_ALREADY_EXISTS = 1003
    NOTE_TOO_LARGE = 1006

    # Storage errors (4xxx)
    STORAGE_READ_FAILED = 4001
    STORAGE_WRITE_FAILED = 4002
    STORAGE_DELETE_FAILED = 4003
    STORAGE_INIT_FAILED = 4004

    # Validation errors (7xxx)
    VALIDATION_FAILED = 7001
    INVALID_NOTE_NAME = 7002
    PATH_TRAVERSAL_DETECTED = 7005


class NotesError(Exception):
    """Base exception for all note store errors.

    Attributes:
        message: Human-readable error message
        code: Machine-readable error code
        details: Additional context about the error
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.VALIDATION_FAILED,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)

    @property
    def legacy_message(self) -> str:
        """The plain-text outcome returned to tool callers."""
        return f"Error: {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to a dictionary for serialization."""
        return {
            "error": self.__class__.__name__,
            "code": self.code.value,
            "code_name": self.code.name,
            "message": self.message,
            "details": self.details
        }

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"[{self.code.name}] {self.message} ({detail_str})"
        return f"[{self.code.name}] {self.message}"


class InvalidNoteNameError(NotesError):
    """Raised when a note name is missing, blank or cannot be sanitized."""

    def __init__(self, value: Optional[Any] = None):
        details = {}
        if value is not None:
            details["value"] = str(value)[:100]  # Truncate for safety
        super().__init__(
            "Invalid note name", code=ErrorCode.INVALID_NOTE_NAME, details=details
        )
        self.value = value


class PathConfinementError(NotesError):
    """Raised when a resolved note path falls outside the storage root."""

    def __init__(self, note_name: str):
        super().__init__(
            "Invalid file path",
            code=ErrorCode.PATH_TRAVERSAL_DETECTED,
            details={"note_name": note_name[:100]},
        )
        self.note_name = note_name


class NoteNotFoundError(NotesError):
    """Raised when a note cannot be found."""

    def __init__(self, note_name: str, message: Optional[str] = None):
        super().__init__(
            message or f"Note '{note_name}' not found",
            code=ErrorCode.NOTE_NOT_FOUND,
            details={"note_name": note_name}
        )
        self.note_name = note_name

    @property
    def legacy_message(self) -> str:
        return f"Note not found: {self.note_name}"


class NoteAlreadyExistsError(NotesError):
    """Raised when creating a note whose file is already present."""

    def __init__(self, note_name: str, file_name: str):
        super().__init__(
            f"Note '{note_name}' already exists",
            code=ErrorCode.NOTE_ALREADY_EXISTS,
            details={"note_name": note_name, "file_name": file_name},
        )
        self.note_name = note_name
        self.file_name = file_name

    @property
    def legacy_message(self) -> str:
        return f"Note already exists: {self.file_name}"


class NoteTooLargeError(NotesError):
    """Raised when content, alone or combined with an existing note, is too big.

    Attributes:
        size: Size in bytes the note would have had
        limit: Maximum allowed size in bytes
        appending: Whether the size includes existing note content
    """

    def __init__(self, size: int, limit: int, appending: bool = False):
        limit_text = _format_size(limit)
        if appending:
            message = (
                f"Adding this content would exceed maximum note size of {limit_text}"
            )
        else:
            message = f"Note content exceeds maximum size of {limit_text}"
        super().__init__(
            message,
            code=ErrorCode.NOTE_TOO_LARGE,
            details={"size": size, "limit": limit},
        )
        self.size = size
        self.limit = limit
        self.appending = appending


class StorageError(NotesError):
    """Raised for filesystem failures while reading or writing notes."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        path: Optional[str] = None,
        code: ErrorCode = ErrorCode.STORAGE_READ_FAILED,
        original_error: Optional[Exception] = None,
        note_name: Optional[str] = None
    ):
        details = {}
        if note_name:
            details["note_name"] = note_name
        if operation:
            details["operation"] = operation
        if path:
            # Don't expose full paths in error messages for security
            details["path_hint"] = path.split("/")[-1] if "/" in path else path
        if original_error:
            details["original_error"] = str(original_error)[:200]

        super().__init__(message, code=code, details=details)
        self.operation = operation
        self.path = path
        self.original_error = original_error
        self.note_name = note_name

    @property
    def legacy_message(self) -> str:
        reason = _strerror(self.original_error)
        if self.operation == "delete":
            return f"Could not delete note: {self.note_name}"
        if self.operation == "read":
            return f"Error reading note: {reason}"
        if self.operation == "create":
            return f"Error creating note: {reason}"
        if self.operation == "init":
            return f"Error: {self.message}"
        return f"Error writing to note: {reason}"


def _format_size(num_bytes: int) -> str:
    if num_bytes % (1024 * 1024) == 0:
        return f"{num_bytes // (1024 * 1024)}MB"
    if num_bytes % 1024 == 0:
        return f"{num_bytes // 1024}KB"
    return f"{num_bytes} bytes"


def _strerror(error: Optional[Exception]) -> str:
    if error is None:
        return "unknown error"
    if isinstance(error, OSError) and error.strerror:
        # Drop the filename so absolute paths never reach the caller
        return error.strerror
    return str(error)
