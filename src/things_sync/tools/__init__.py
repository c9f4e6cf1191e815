"""
Things Sync MCP Tools Package.

Input models and response formatting for the MCP server tools:
    - Sync tools (run now, preview)
    - Task tools (list with query, get, complete, reopen, update)
"""

from things_sync.tools.inputs import (
    ResponseFormat,
    SyncInput,
    TaskQueryInput,
    TaskGetInput,
    TaskStatusInput,
    TaskUpdateInput,
)

__all__ = [
    "ResponseFormat",
    "SyncInput",
    "TaskQueryInput",
    "TaskGetInput",
    "TaskStatusInput",
    "TaskUpdateInput",
]
