"""
Interchange exception hierarchy.

All domain-specific exceptions inherit from InterchangeError, so a caller can
catch every engine failure with one base class while still handling the
per-file and run-level cases separately.

Hierarchy::

    InterchangeError
    ├── ConfigurationError        - config loading, parsing, validation
    ├── ConnectionError_          - database or transfer endpoint unreachable
    ├── TransferError             - list/upload/download/move exhausted retries
    ├── ValidationError           - malformed inbound line (fails the whole file)
    ├── PersistenceError          - insert/update failure, transaction rolled back
    └── ExportError               - outbound batch could not be produced
"""

from __future__ import annotations


class InterchangeError(Exception):
    """Base exception for all Interchange errors."""

    def __init__(self, message: str, *, details: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


# --- Configuration -----------------------------------------------------------


class ConfigurationError(InterchangeError):
    """Raised when configuration loading, parsing, or validation fails."""


# --- Connections -------------------------------------------------------------


class ConnectionError_(InterchangeError):
    """Raised when the database or the transfer endpoint cannot be reached.

    Named with trailing underscore to avoid shadowing the builtin
    ``ConnectionError``; the public alias ``InterchangeConnectionError``
    is preferred for external use.
    """


# Public alias so callers don't need the underscore
InterchangeConnectionError = ConnectionError_


# --- Transfer ----------------------------------------------------------------


class TransferError(InterchangeError):
    """Raised when a remote operation fails after all retry attempts."""

    def __init__(
        self,
        operation: str,
        target: str,
        *,
        cause: BaseException | None = None,
        attempts: int | None = None,
    ) -> None:
        reason = f": {cause}" if cause is not None else ""
        details = {"operation": operation, "target": target}
        if attempts is not None:
            details["attempts"] = attempts
        super().__init__(f"Remote {operation} failed for '{target}'{reason}", details=details)
        self.operation = operation
        self.target = target
        self.attempts = attempts
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause


# --- Records -----------------------------------------------------------------


class ValidationError(InterchangeError):
    """Raised when an inbound line cannot be parsed.

    A validation failure rejects the containing file as a whole.
    """

    def __init__(self, message: str, *, file_name: str | None = None, line_number: int | None = None) -> None:
        where = ""
        if file_name is not None:
            where = f" ({file_name}" + (f", line {line_number}" if line_number is not None else "") + ")"
        super().__init__(f"{message}{where}", details={"file": file_name, "line": line_number})
        self.file_name = file_name
        self.line_number = line_number


class PersistenceError(InterchangeError):
    """Raised when a database write fails; the current transaction is rolled back."""


class ExportError(InterchangeError):
    """Raised when an outbound batch file cannot be produced or verified."""
