"""
Reconciliation engine.

Three-way diff between the tasks scanned from documents, the current Things
snapshot and the baseline recorded at the end of the previous cycle. The
baseline is what lets the engine tell "only local changed" from "only
Things changed" from "both changed"; server-side modification dates are
never compared.

Both functions here are pure: no I/O, no hidden state, no exceptions for
divergent task data. The only error raised is for an unknown conflict
policy. Cross-cycle state (baseline, missing set) is passed in and handed
back explicitly.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import NamedTuple

from things_sync.constants import ActionType, ConflictPolicy
from things_sync.models import (
    CompleteInLocal,
    CompleteInRemote,
    CreateInRemote,
    ReconcileAction,
    ReopenInLocal,
    ReopenInRemote,
    ScannedTask,
    ThingsTask,
    TrackedTask,
    UnlinkFromLocal,
    UpdateInLocal,
)

logger = logging.getLogger(__name__)


class UnlinkFilterResult(NamedTuple):
    filtered: list[ReconcileAction]
    currently_missing: set[str]


def reconcile(
    scanned_tasks: Iterable[ScannedTask],
    remote_tasks: Iterable[ThingsTask],
    tracked_tasks: Mapping[str, TrackedTask],
    policy: ConflictPolicy | str = ConflictPolicy.REMOTE_WINS,
) -> list[ReconcileAction]:
    """
    Compute the actions that bring documents and Things back in line.

    Args:
        scanned_tasks: Tasks parsed from documents this cycle
        remote_tasks: Full Things snapshot
        tracked_tasks: Baseline keyed by uuid
        policy: Which side wins when both changed since the baseline

    Returns:
        Actions in scan order. At most one status action and one title
        action per uuid.

    Raises:
        ValueError: If policy is not a ConflictPolicy value
    """
    policy = ConflictPolicy(policy)
    remote_by_uuid = {task.uuid: task for task in remote_tasks}
    actions: list[ReconcileAction] = []

    for scanned in scanned_tasks:
        if scanned.uuid is None:
            actions.append(
                CreateInRemote(
                    title=scanned.title,
                    file_path=scanned.file_path,
                    line=scanned.line,
                    scanned_task=scanned,
                )
            )
            continue

        tracked = tracked_tasks.get(scanned.uuid)
        if tracked is None:
            # Pasted or not-yet-tracked uuid: no history to diff against
            continue

        remote = remote_by_uuid.get(scanned.uuid)
        if remote is None:
            # Completed to-dos drop out of the active snapshot without being
            # deleted, so only open lines are unlink candidates.
            if not scanned.checked:
                actions.append(
                    UnlinkFromLocal(
                        uuid=scanned.uuid,
                        file_path=scanned.file_path,
                        line=scanned.line,
                        scanned_task=scanned,
                    )
                )
            continue

        actions.extend(_reconcile_linked(scanned, remote, tracked, policy))

    return actions


def _reconcile_linked(
    scanned: ScannedTask,
    remote: ThingsTask,
    tracked: TrackedTask,
    policy: ConflictPolicy,
) -> list[ReconcileAction]:
    local_changed = scanned.checked != tracked.checked

    if local_changed:
        remote_status_changed = (tracked.checked and remote.is_open) or (
            not tracked.checked and remote.is_completed
        )
        remote_title_changed = remote.title != tracked.title

        if (remote_status_changed or remote_title_changed) and policy == ConflictPolicy.REMOTE_WINS:
            logger.debug("Conflict on %s resolved for Things", scanned.uuid)
            status = _local_status_action(scanned, remote)
            return [status] if status else []

        # Local-only change, or a conflict resolved for the document.
        # No title rewrite in this branch: it would clobber a fresh local edit.
        if scanned.checked:
            if remote.is_completed:
                return []
            return [CompleteInRemote(uuid=remote.uuid, remote_task=remote)]
        if remote.is_open:
            return []
        return [ReopenInRemote(uuid=remote.uuid, remote_task=remote)]

    actions: list[ReconcileAction] = []
    status = _local_status_action(scanned, remote)
    if status:
        actions.append(status)
    if remote.title != tracked.title:
        actions.append(
            UpdateInLocal(
                uuid=remote.uuid,
                file_path=scanned.file_path,
                line=scanned.line,
                remote_task=remote,
                scanned_task=scanned,
            )
        )
    return actions


def _local_status_action(
    scanned: ScannedTask,
    remote: ThingsTask,
) -> ReconcileAction | None:
    if remote.is_completed and not scanned.checked:
        return CompleteInLocal(
            uuid=remote.uuid,
            file_path=scanned.file_path,
            line=scanned.line,
            remote_task=remote,
        )
    if remote.is_open and scanned.checked:
        return ReopenInLocal(
            uuid=remote.uuid,
            file_path=scanned.file_path,
            line=scanned.line,
            remote_task=remote,
        )
    return None


def filter_premature_unlinks(
    actions: Iterable[ReconcileAction],
    previously_missing: set[str],
) -> UnlinkFilterResult:
    """
    Hold back unlinks until a to-do has been missing for two cycles in a row.

    A snapshot read can transiently omit a live to-do. Every unlink
    candidate is recorded in `currently_missing`; it passes through only if
    its uuid was also missing in the previous cycle. Feed the returned set
    into the next call.

    Args:
        actions: Output of reconcile()
        previously_missing: `currently_missing` from the previous cycle

    Returns:
        UnlinkFilterResult(filtered, currently_missing)
    """
    filtered: list[ReconcileAction] = []
    currently_missing: set[str] = set()

    for action in actions:
        if action.type == ActionType.UNLINK_FROM_LOCAL.value:
            currently_missing.add(action.uuid)
            if action.uuid not in previously_missing:
                logger.debug("Deferring unlink of %s until next cycle", action.uuid)
                continue
        filtered.append(action)

    return UnlinkFilterResult(filtered, currently_missing)
