"""Baseline persistence: SyncState as a JSON file."""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import ValidationError

from things_sync.models import SyncState
from things_sync.vault import atomic_write

logger = logging.getLogger(__name__)


class StateStore:
    """Loads and saves the sync state between cycles."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def load(self) -> SyncState:
        """
        Load the last saved state.

        A missing file is a first run. A corrupt file is logged and treated
        as an empty baseline: linked lines are then skipped for one cycle
        and re-adopted, never unlinked.
        """
        if not self.path.exists():
            return SyncState()
        try:
            return SyncState.model_validate_json(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, ValidationError) as e:
            logger.error("Could not read sync state %s, starting fresh: %s", self.path, e)
            return SyncState()

    def save(self, state: SyncState) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        atomic_write(self.path, state.model_dump_json(indent=2))
        logger.debug("Saved sync state with %d tracked tasks", len(state.tasks))
