"""
Things Sync Data Models.

This package provides the Pydantic models shared by every component.

Models:
    - ScannedTask: checkbox line parsed from a document
    - ThingsTask: to-do read from Things 3
    - TrackedTask: baseline entry for one uuid
    - SyncState: baseline map plus the hysteresis missing set
    - ReconcileAction: discriminated union of engine actions
"""

from things_sync.models.task import ScannedTask, ThingsTask, TrackedTask
from things_sync.models.state import SyncState
from things_sync.models.action import (
    ActionList,
    CompleteInLocal,
    CompleteInRemote,
    CreateInRemote,
    ReconcileAction,
    ReopenInLocal,
    ReopenInRemote,
    UnlinkFromLocal,
    UpdateInLocal,
)

__all__ = [
    "ScannedTask",
    "ThingsTask",
    "TrackedTask",
    "SyncState",
    "ReconcileAction",
    "ActionList",
    "CreateInRemote",
    "CompleteInRemote",
    "ReopenInRemote",
    "CompleteInLocal",
    "ReopenInLocal",
    "UpdateInLocal",
    "UnlinkFromLocal",
]
