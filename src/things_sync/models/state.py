"""Cross-cycle sync state: the baseline map and the hysteresis missing set."""

from __future__ import annotations

from pydantic import BaseModel, Field

from things_sync.models.task import TrackedTask


class SyncState(BaseModel):
    """
    Everything the sync loop carries from one cycle to the next.

    Attributes:
        last_sync_timestamp: Epoch seconds of the last completed cycle
        tasks: Baseline entries keyed by Things uuid
        missing: Uuids whose open to-do was absent from the last snapshot
    """

    last_sync_timestamp: float = 0.0
    tasks: dict[str, TrackedTask] = Field(default_factory=dict)
    missing: set[str] = Field(default_factory=set)
