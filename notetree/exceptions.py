"""Exceptions raised by the note tree core.

Every error carries a machine-readable code and a details mapping so the HTTP
layer and the relocation report can surface it without string parsing.
"""

from enum import Enum
from typing import Any


class ErrorCode(Enum):
    """Error codes for machine-readable error identification."""

    # Graph errors (1xxx)
    DUPLICATE_EDGE = 1001
    CYCLE_DETECTED = 1002
    UNKNOWN_BRANCH = 1003
    UNKNOWN_NOTE = 1004

    # Path errors (2xxx)
    PATH_NOT_FOUND = 2001
    BROKEN_PATH = 2002

    # Cache / backing store errors (3xxx)
    NOTE_NOT_FOUND = 3001
    BACKING_STORE_FAILED = 3002


class NoteTreeError(Exception):
    """Base exception for all note tree errors.

    Attributes:
        message: Human-readable error message
        code: Machine-readable error code
        details: Additional context about the error
    """

    code: ErrorCode = ErrorCode.BACKING_STORE_FAILED

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    @property
    def reason(self) -> str:
        """Short name used in per-item relocation statuses."""
        return self.__class__.__name__

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.reason,
            "code": self.code.value,
            "code_name": self.code.name,
            "message": self.message,
            "details": self.details,
        }

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"[{self.code.name}] {self.message} ({detail_str})"
        return f"[{self.code.name}] {self.message}"


class DuplicateEdge(NoteTreeError):
    """Raised when a note is already attached under the requested parent."""

    code = ErrorCode.DUPLICATE_EDGE

    def __init__(self, note_id: str, parent_note_id: str, branch_id: str):
        super().__init__(
            f"Note '{note_id}' is already placed under '{parent_note_id}'",
            details={"note_id": note_id, "parent_note_id": parent_note_id, "branch_id": branch_id},
        )
        self.note_id = note_id
        self.parent_note_id = parent_note_id
        self.branch_id = branch_id


class CycleDetected(NoteTreeError):
    """Raised when attaching a note would make it its own ancestor."""

    code = ErrorCode.CYCLE_DETECTED

    def __init__(self, note_id: str, parent_note_id: str, message: str | None = None):
        super().__init__(
            message or f"Placing '{note_id}' under '{parent_note_id}' would create a cycle",
            details={"note_id": note_id, "parent_note_id": parent_note_id},
        )
        self.note_id = note_id
        self.parent_note_id = parent_note_id


class UnknownBranch(NoteTreeError):
    """Raised when a branch id does not exist or does not belong where expected."""

    code = ErrorCode.UNKNOWN_BRANCH

    def __init__(self, branch_id: str, message: str | None = None):
        super().__init__(
            message or f"Branch '{branch_id}' not found",
            details={"branch_id": branch_id},
        )
        self.branch_id = branch_id


class UnknownNote(NoteTreeError):
    """Raised when a branch would reference a note the graph does not know."""

    code = ErrorCode.UNKNOWN_NOTE

    def __init__(self, note_id: str):
        super().__init__(f"Note '{note_id}' is not part of the tree", details={"note_id": note_id})
        self.note_id = note_id


class PathNotFound(NoteTreeError):
    """Raised when a destination note path cannot be turned into a target note."""

    code = ErrorCode.PATH_NOT_FOUND

    def __init__(self, note_path: str, message: str | None = None):
        super().__init__(
            message or f"Note path '{note_path}' could not be resolved",
            details={"note_path": note_path},
        )
        self.note_path = note_path


class BrokenPath(NoteTreeError):
    """Raised when two consecutive notes of a path are not connected by a branch."""

    code = ErrorCode.BROKEN_PATH

    def __init__(self, parent_note_id: str, note_id: str):
        super().__init__(
            f"No branch connects '{parent_note_id}' to '{note_id}'",
            details={"parent_note_id": parent_note_id, "note_id": note_id},
        )
        self.parent_note_id = parent_note_id
        self.note_id = note_id


class NoteNotFound(NoteTreeError):
    """Raised when the backing store has no note with the requested id."""

    code = ErrorCode.NOTE_NOT_FOUND

    def __init__(self, note_id: str):
        super().__init__(f"Note with ID '{note_id}' not found", details={"note_id": note_id})
        self.note_id = note_id


class BackingStoreError(NoteTreeError):
    """Raised when the backing store could not answer. Retry later."""

    code = ErrorCode.BACKING_STORE_FAILED

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        original_error: Exception | None = None,
    ):
        details = {}
        if operation:
            details["operation"] = operation
        if original_error:
            details["original_error"] = str(original_error)[:200]
        super().__init__(message, details=details)
        self.operation = operation
        self.original_error = original_error
