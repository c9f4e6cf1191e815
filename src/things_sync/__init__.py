"""
Things Sync - two-way sync between Markdown checkbox tasks and Things 3.

This package keeps tagged checkbox lines in a folder of Markdown notes
consistent with to-dos in Things 3, and exposes the sync loop and a few
task tools over the Model Context Protocol.

Architecture:
    MCP Tools Layer
         │
         ▼
    SyncService (one cycle at a time, polling loop)
         │
    ┌────┴──────────────┐
    ▼                   ▼
  Reconciliation     Collaborators
  Engine + Filter    (Vault, StateStore, ThingsClient)
  (pure functions)       │
                         ▼
                     osascript bridge
"""

__version__ = "0.1.0"
__author__ = "Things Sync Contributors"

from things_sync.exceptions import (
    ThingsSyncError,
    ThingsConfigurationError,
    ThingsValidationError,
    ThingsUnavailableError,
    ThingsNotRunningError,
    ThingsScriptError,
    DocumentConflictError,
)

__all__ = [
    "__version__",
    "ThingsSyncError",
    "ThingsConfigurationError",
    "ThingsValidationError",
    "ThingsUnavailableError",
    "ThingsNotRunningError",
    "ThingsScriptError",
    "DocumentConflictError",
]
