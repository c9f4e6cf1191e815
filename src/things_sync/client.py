"""
Things client.

A thin async facade over the reader and writer modules that carries the
per-installation configuration (script timeout, auth token). The sync
service and the MCP tools talk to Things only through this class.
"""

from __future__ import annotations

import logging
from datetime import date

from things_sync import bridge, reader, writer
from things_sync.models import ThingsTask
from things_sync.settings import Settings, get_settings

logger = logging.getLogger(__name__)


class ThingsClient:
    """
    Read and write Things 3 to-dos.

    Usage:
        client = ThingsClient.from_settings()
        tasks = await client.read_all_tasks()
        uuid = await client.create_task("Buy milk")
        await client.complete_task(uuid)
    """

    def __init__(self, *, auth_token: str = "", timeout: float = bridge.DEFAULT_TIMEOUT) -> None:
        self._auth_token = auth_token
        self._timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> ThingsClient:
        settings = settings or get_settings()
        return cls(auth_token=settings.things_auth_token, timeout=settings.script_timeout)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def is_running(self) -> bool:
        return await bridge.is_things_running(self._timeout)

    async def launch(self) -> None:
        if await self.is_running():
            return
        logger.info("Launching Things in the background")
        await bridge.launch_things_in_background()

    # =========================================================================
    # Reads
    # =========================================================================

    async def read_all_tasks(self) -> list[ThingsTask]:
        """
        Full snapshot of Things to-dos.

        Raises:
            ThingsUnavailableError: If Things could not be read
        """
        return await reader.read_all_tasks(self._timeout)

    async def get_task(self, uuid: str) -> ThingsTask | None:
        bridge.validate_uuid(uuid)
        for task in await self.read_all_tasks():
            if task.uuid == uuid:
                return task
        return None

    # =========================================================================
    # Writes
    # =========================================================================

    async def create_task(self, title: str, project: str | None = None) -> str:
        return await writer.create_task(title, project, self._timeout)

    async def complete_task(self, uuid: str) -> None:
        await writer.complete_task(uuid, self._timeout)

    async def reopen_task(self, uuid: str) -> None:
        await writer.reopen_task(uuid, self._timeout)

    async def update_task_title(self, uuid: str, title: str) -> None:
        await writer.update_task_title(uuid, title, self._timeout)

    async def update_task_notes(self, uuid: str, notes: str) -> None:
        await writer.update_task_notes(uuid, notes, self._timeout)

    async def update_task_tags(self, uuid: str, tags: list[str]) -> None:
        await writer.update_task_tags(uuid, tags, self._timeout)

    async def update_task_dates(
        self,
        uuid: str,
        start_date: date | None | object = writer.UNCHANGED,
        deadline: date | None | object = writer.UNCHANGED,
    ) -> None:
        await writer.update_task_dates(
            self._auth_token,
            uuid,
            start_date=start_date,
            deadline=deadline,
            timeout=self._timeout,
        )

    async def delete_task(self, uuid: str) -> None:
        await writer.delete_task(uuid, self._timeout)
