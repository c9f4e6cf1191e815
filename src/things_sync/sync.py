"""
Sync service.

Runs reconcile cycles between the vault and Things:

    read Things snapshot ─► load state ─► scan vault ─► reconcile
        ─► hold back premature unlinks ─► apply actions ─► save new baseline

Only one cycle runs at a time; triggers that arrive during a cycle are
dropped rather than queued. Nothing is carried over from a failed action:
the next cycle re-derives whatever is still needed from fresh state.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone

from pydantic import BaseModel, Field

from things_sync.client import ThingsClient
from things_sync.codec import ParsedLine, build_plain_task_line, build_task_line
from things_sync.engine import filter_premature_unlinks, reconcile
from things_sync.exceptions import ThingsSyncError, ThingsUnavailableError
from things_sync.models import (
    CompleteInLocal,
    CompleteInRemote,
    CreateInRemote,
    ReconcileAction,
    ReopenInLocal,
    ReopenInRemote,
    ScannedTask,
    SyncState,
    ThingsTask,
    TrackedTask,
    UnlinkFromLocal,
    UpdateInLocal,
)
from things_sync.settings import Settings
from things_sync.store import StateStore
from things_sync.vault import Vault

logger = logging.getLogger(__name__)


class ActionFailure(BaseModel):
    """One action that could not be applied."""

    type: str
    uuid: str | None = None
    title: str | None = None
    error: str


class SyncReport(BaseModel):
    """Summary of one cycle."""

    started_at: datetime
    finished_at: datetime | None = None
    remote_count: int = 0
    scanned_count: int = 0
    actions: list[ReconcileAction] = Field(default_factory=list)
    applied: int = 0
    failures: list[ActionFailure] = Field(default_factory=list)
    deferred_unlinks: list[str] = Field(default_factory=list)
    skipped: bool = False
    skip_reason: str | None = None
    dry_run: bool = False

    @property
    def ok(self) -> bool:
        return not self.skipped and not self.failures


@dataclass
class CycleOutcome:
    """What actually happened while applying one cycle's actions."""

    failed: set[str] = field(default_factory=set)
    unlinked: set[str] = field(default_factory=set)
    created: dict[str, TrackedTask] = field(default_factory=dict)
    # uuid -> fields of the line as rewritten this cycle
    rewritten: dict[str, dict[str, object]] = field(default_factory=dict)


class SyncService:
    """
    Owns the sync state and runs cycles against a vault and Things.

    Usage:
        service = SyncService(client, vault, store, settings)
        report = await service.run_cycle()
    """

    def __init__(
        self,
        client: ThingsClient,
        vault: Vault,
        store: StateStore,
        settings: Settings,
    ) -> None:
        self._client = client
        self._vault = vault
        self._store = store
        self._settings = settings
        self._lock = asyncio.Lock()
        self.last_report: SyncReport | None = None

    @classmethod
    def from_settings(cls, settings: Settings, client: ThingsClient | None = None) -> SyncService:
        return cls(
            client=client or ThingsClient.from_settings(settings),
            vault=Vault(settings.vault_path),
            store=StateStore(settings.resolved_state_path),
            settings=settings,
        )

    @property
    def is_syncing(self) -> bool:
        return self._lock.locked()

    # =========================================================================
    # Entry Points
    # =========================================================================

    async def run_cycle(self) -> SyncReport | None:
        """
        Run one cycle unless one is already in flight.

        Returns:
            The cycle report, or None when the trigger was coalesced
        """
        if self._lock.locked():
            logger.info("Sync already in progress, ignoring trigger")
            return None

        async with self._lock:
            report = await self._run_cycle()

        self.last_report = report
        return report

    async def plan(self) -> list[ReconcileAction]:
        """
        Compute the actions the next cycle would apply, without applying them.

        Raises:
            ThingsUnavailableError: If Things could not be read
        """
        remote = await self._client.read_all_tasks()
        state = self._store.load()
        scanned = self._vault.scan(self._settings.sync_tag)
        actions = reconcile(scanned, remote, state.tasks, self._settings.conflict_resolution)
        return filter_premature_unlinks(actions, state.missing).filtered

    async def run_forever(
        self,
        interval: float | None = None,
        *,
        run_immediately: bool = True,
    ) -> None:
        """Poll until cancelled. A failing cycle does not stop the loop."""
        interval = interval or self._settings.sync_interval_seconds
        logger.info("Polling every %ss", interval)
        if not run_immediately:
            await asyncio.sleep(interval)
        while True:
            try:
                await self.run_cycle()
            except Exception:
                logger.exception("Sync cycle failed")
            await asyncio.sleep(interval)

    # =========================================================================
    # Cycle
    # =========================================================================

    async def _run_cycle(self) -> SyncReport:
        report = SyncReport(started_at=_utc_now(), dry_run=self._settings.dry_run)
        logger.debug("Starting sync")

        try:
            remote = await self._client.read_all_tasks()
        except ThingsUnavailableError as e:
            logger.warning("Things unavailable, skipping sync: %s", e)
            report.skipped = True
            report.skip_reason = str(e)
            report.finished_at = _utc_now()
            return report

        state = self._store.load()
        scanned = self._vault.scan(self._settings.sync_tag)
        report.remote_count = len(remote)
        report.scanned_count = len(scanned)

        actions = reconcile(scanned, remote, state.tasks, self._settings.conflict_resolution)
        filtered, currently_missing = filter_premature_unlinks(actions, state.missing)
        report.actions = filtered
        report.deferred_unlinks = sorted(currently_missing - state.missing)
        logger.debug(
            "Reconciled %d remote / %d scanned tasks: %d actions",
            len(remote),
            len(scanned),
            len(filtered),
        )

        if self._settings.dry_run:
            for action in filtered:
                logger.info("[DRY RUN] Would %s: %s", action.type, _describe(action))
            report.finished_at = _utc_now()
            return report

        now = time.time()
        outcome = CycleOutcome()
        for action in filtered:
            try:
                applied = await self._apply(action, outcome, now)
            except (ThingsSyncError, OSError) as e:
                logger.error("Failed to %s %s: %s", action.type, _describe(action), e)
                if action.uuid is not None:
                    outcome.failed.add(action.uuid)
                report.failures.append(
                    ActionFailure(
                        type=action.type,
                        uuid=action.uuid,
                        title=_action_title(action),
                        error=str(e),
                    )
                )
                continue
            if applied:
                report.applied += 1

        self._store.save(next_state(state, scanned, outcome, currently_missing, now))
        report.finished_at = _utc_now()
        logger.info(
            "Sync complete: %d applied, %d failed, %d unlinks deferred",
            report.applied,
            len(report.failures),
            len(report.deferred_unlinks),
        )
        return report

    # =========================================================================
    # Applying Actions
    # =========================================================================

    async def _apply(self, action: ReconcileAction, outcome: CycleOutcome, now: float) -> bool:
        if isinstance(action, CreateInRemote):
            return await self._create_in_remote(action, outcome, now)

        if isinstance(action, CompleteInRemote):
            logger.info("Completing task in Things: %s", action.uuid)
            await self._client.complete_task(action.uuid)
        elif isinstance(action, ReopenInRemote):
            logger.info("Reopening task in Things: %s", action.uuid)
            await self._client.reopen_task(action.uuid)
        elif isinstance(action, (CompleteInLocal, ReopenInLocal)):
            checked = isinstance(action, CompleteInLocal)
            logger.info(
                "%s task in %s: %s",
                "Completing" if checked else "Reopening",
                action.file_path,
                action.uuid,
            )
            parsed = self._rewrite(
                action.file_path,
                action.line,
                action.uuid,
                lambda p: build_task_line(checked, p.title, action.uuid, self._tag, p.indent),
            )
            outcome.rewritten.setdefault(action.uuid, {}).update(checked=checked, title=parsed.title)
        elif isinstance(action, UpdateInLocal):
            title = action.remote_task.title
            logger.info("Renaming task in %s: %s -> %r", action.file_path, action.uuid, title)
            parsed = self._rewrite(
                action.file_path,
                action.line,
                action.uuid,
                lambda p: build_task_line(p.checked, title, action.uuid, self._tag, p.indent),
            )
            entry = outcome.rewritten.setdefault(action.uuid, {})
            entry.setdefault("checked", parsed.checked)
            entry["title"] = title
        elif isinstance(action, UnlinkFromLocal):
            logger.info("Unlinking task deleted from Things: %s", action.uuid)
            self._rewrite(
                action.file_path,
                action.line,
                action.uuid,
                lambda p: build_plain_task_line(p.checked, p.title, p.indent),
            )
            outcome.unlinked.add(action.uuid)
        return True

    async def _create_in_remote(self, action: CreateInRemote, outcome: CycleOutcome, now: float) -> bool:
        if not self._settings.auto_create:
            logger.debug("Auto-create disabled, leaving %r unlinked", action.title)
            return False

        logger.info("Creating task in Things: %s", action.title)
        uuid = await self._client.create_task(action.title, self._settings.default_project)

        tags = self._settings.default_tag_list
        if tags:
            try:
                await self._client.update_task_tags(uuid, tags)
            except ThingsSyncError as e:
                # The uuid must still be written back or the next cycle creates a duplicate
                logger.warning("Could not tag new task %s: %s", uuid, e)

        # A line that starts out checked must not be reopened by the next cycle
        completed = False
        if action.scanned_task.checked:
            try:
                await self._client.complete_task(uuid)
                completed = True
            except ThingsSyncError as e:
                logger.warning("Could not complete new task %s: %s", uuid, e)

        try:
            self._vault.rewrite_line(
                action.file_path,
                action.line,
                lambda p: build_task_line(p.checked, p.title, uuid, self._tag, p.indent),
                tag=self._tag,
                expected_title=action.title,
            )
        except (ThingsSyncError, OSError):
            # An unlinked to-do would be created again next cycle
            await self._discard_created(uuid)
            raise

        linked = action.scanned_task.model_copy(update={"uuid": uuid})
        # An open baseline lets the next cycle derive complete-in-remote
        outcome.created[uuid] = TrackedTask.from_scanned(linked, now, checked=linked.checked and completed)
        return True

    async def _discard_created(self, uuid: str) -> None:
        logger.info("Deleting unlinked new task from Things: %s", uuid)
        try:
            await self._client.delete_task(uuid)
        except ThingsSyncError as e:
            logger.error("Could not delete unlinked new task %s: %s", uuid, e)

    def _rewrite(
        self,
        file_path: str,
        line: int,
        uuid: str,
        render: Callable[[ParsedLine], str],
    ) -> ParsedLine:
        return self._vault.rewrite_line(
            file_path,
            line,
            render,
            tag=self._tag,
            expected_uuid=uuid,
        )

    @property
    def _tag(self) -> str:
        return self._settings.sync_tag


def next_state(
    state: SyncState,
    scanned: list[ScannedTask],
    outcome: CycleOutcome,
    currently_missing: set[str],
    now: float,
) -> SyncState:
    """
    Recompute the baseline after a cycle.

    Every linked line scanned this cycle becomes the new baseline for its
    uuid, with three exceptions: a uuid whose write failed keeps its old
    entry so the next cycle derives the same action again; lines rewritten
    this cycle are recorded as rewritten; confirmed unlinks are dropped.
    """
    tasks = dict(state.tasks)

    for task in scanned:
        if task.uuid is None or task.uuid in outcome.failed or task.uuid in outcome.unlinked:
            continue
        rewritten = outcome.rewritten.get(task.uuid, {})
        tasks[task.uuid] = TrackedTask.from_scanned(
            task,
            now,
            checked=rewritten.get("checked"),  # type: ignore[arg-type]
            title=rewritten.get("title"),  # type: ignore[arg-type]
        )

    for uuid in outcome.unlinked:
        tasks.pop(uuid, None)
    tasks.update(outcome.created)

    return SyncState(
        last_sync_timestamp=now,
        tasks=tasks,
        missing=currently_missing - outcome.unlinked,
    )


def _describe(action: ReconcileAction) -> str:
    return action.uuid or _action_title(action) or "?"


def _action_title(action: ReconcileAction) -> str | None:
    if isinstance(action, CreateInRemote):
        return action.title
    remote: ThingsTask | None = getattr(action, "remote_task", None)
    if remote is not None:
        return remote.title
    scanned: ScannedTask | None = getattr(action, "scanned_task", None)
    return scanned.title if scanned is not None else None


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)
