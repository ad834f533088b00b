"""Player exception hierarchy.

Exception Hierarchy:
    PlayerError (base)
    ├── ImportFailure - a single file could not be imported
    │   ├── UnknownFormatError - extension not recognized
    │   ├── NoDurationError - duration unrecoverable, file moved to Problem
    │   ├── IoFailureError - filesystem operation failed
    │   └── TagParseError - embedded tags missing or malformed
    ├── TagWriteError - a duration could not be written back into a tag
    ├── ManifestCorruptionError - one manifest line could not be parsed
    └── DataInvariantViolation - a parsed entry has an impossible value

File-level errors never escape a batch operation; they are collected as
outcomes. ``DataInvariantViolation`` is the only error that aborts a
manifest load.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any


class PlayerError(Exception):
    """Base exception for all Player errors."""

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        """
        Initialize the exception.

        Args:
            message: Human-readable error message
            details: Optional structured error details for logging/debugging
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


# =============================================================================
# Import Errors
# =============================================================================


class ImportFailure(PlayerError):
    """A single file failed to import. The batch continues."""

    def __init__(
        self,
        message: str,
        *,
        path: Path | str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if path is not None:
            details["path"] = str(path)
        super().__init__(message, details=details)
        self.path = Path(path) if path is not None else None


class UnknownFormatError(ImportFailure):
    """The file extension is not a recognized audio format."""

    def __init__(self, path: Path | str) -> None:
        super().__init__(f"Unknown audio format: {path}", path=path)


class NoDurationError(ImportFailure):
    """Duration could not be determined; the file was moved to Problem.

    ``moved_to`` is where the file now lives, so callers can report it.
    """

    def __init__(self, path: Path | str, moved_to: Path | str) -> None:
        super().__init__(
            f"Could not determine duration: {path} (moved to {moved_to})",
            path=path,
            details={"moved_to": str(moved_to)},
        )
        self.moved_to = Path(moved_to)


class IoFailureError(ImportFailure):
    """A filesystem operation failed while importing a file."""

    def __init__(self, path: Path | str, error: OSError, *, operation: str = "I/O") -> None:
        super().__init__(
            f"{operation} error for {path}: {error}",
            path=path,
            details={"operation": operation, "errno": error.errno},
        )
        self.error = error
        self.operation = operation


class TagParseError(ImportFailure):
    """Embedded tags are missing or could not be parsed."""

    def __init__(self, path: Path | str, reason: str) -> None:
        super().__init__(f"Tag error for {path}: {reason}", path=path)
        self.reason = reason


# =============================================================================
# Tag Writing
# =============================================================================


class TagWriteError(PlayerError):
    """A computed duration could not be written back into the file's tag."""

    def __init__(self, path: Path | str, reason: str) -> None:
        super().__init__(
            f"Failed to write duration to {path}: {reason}",
            details={"path": str(path)},
        )
        self.path = Path(path)
        self.reason = reason


# =============================================================================
# Manifest Errors
# =============================================================================


class ManifestCorruptionError(PlayerError):
    """One manifest line failed to parse. Reported, never fatal."""

    def __init__(self, line_number: int, reason: str) -> None:
        super().__init__(
            f"line {line_number}: {reason}",
            details={"line_number": line_number},
        )
        self.line_number = line_number
        self.reason = reason


class DataInvariantViolation(PlayerError):
    """A structurally valid entry holds an impossible value.

    Raised when a duration is zero, negative, or above the sanity ceiling.
    Aborts the whole manifest load: the file cannot be trusted.
    """

    def __init__(self, message: str, *, line_number: int | None = None) -> None:
        details = {"line_number": line_number} if line_number is not None else None
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message, details=details)
        self.line_number = line_number
