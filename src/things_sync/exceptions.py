"""
Things Sync Exceptions.

All errors raised by the bridge, the document layer and the sync service
derive from ThingsSyncError. The reconciliation engine and the line codec
never raise for ordinary input; divergence between the two stores is
expressed as actions, and lines that are not sync-managed are skipped.
"""

from __future__ import annotations

from typing import Any


class ThingsSyncError(Exception):
    """Base class for all Things Sync errors."""

    def __init__(
        self,
        message: str,
        *,
        operation: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.details = details or {}

    def __str__(self) -> str:
        if self.operation:
            return f"{self.message} (operation: {self.operation})"
        return self.message


class ThingsConfigurationError(ThingsSyncError):
    """Raised when required configuration is missing or invalid."""


class ThingsValidationError(ThingsSyncError):
    """Raised when a value fails validation before reaching Things."""


class ThingsUnavailableError(ThingsSyncError):
    """
    Raised when the remote snapshot cannot be read.

    This is distinct from an empty snapshot: callers must skip the write
    phase of a cycle instead of treating every tracked task as missing.
    """


class ThingsNotRunningError(ThingsUnavailableError):
    """Raised when Things 3 is not running."""

    def __init__(self, message: str = "Things 3 is not running", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)


class ThingsScriptError(ThingsSyncError):
    """Raised when an AppleScript write primitive reports an error."""

    def __init__(
        self,
        message: str,
        *,
        stderr: str = "",
        operation: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, operation=operation, details=details)
        self.stderr = stderr


class DocumentConflictError(ThingsSyncError):
    """
    Raised when a document line no longer holds the expected task.

    Line numbers come from the scan at the start of the cycle; if the
    document was edited since, the line is left untouched.
    """

    def __init__(
        self,
        message: str,
        *,
        file_path: str,
        line: int,
        operation: str | None = None,
    ) -> None:
        super().__init__(
            message,
            operation=operation,
            details={"file_path": file_path, "line": line},
        )
        self.file_path = file_path
        self.line = line
