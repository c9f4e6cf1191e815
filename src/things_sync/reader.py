"""
Things snapshot reader.

Reads every to-do from Things 3 in a single JXA round trip and returns
ThingsTask models. Failing to read is reported as ThingsUnavailableError,
which callers must keep apart from an empty list.
"""

from __future__ import annotations

import json
import logging

from things_sync.bridge import DEFAULT_TIMEOUT, run_jxa
from things_sync.exceptions import ThingsNotRunningError, ThingsUnavailableError
from things_sync.models import ThingsTask

logger = logging.getLogger(__name__)

# Properties are fetched column-wise (one Apple event per property) instead
# of per to-do, which keeps large libraries readable within the timeout.
READ_ALL_TASKS_JXA = """(function() {
    var app = Application("Things3");
    var todos = app.toDos;
    var count = todos.length;
    if (count === 0) return "[]";

    var ids = todos.id();
    var names = todos.name();
    var statuses = todos.status();
    var notes = todos.notes();
    var tagNames = todos.tagNames();
    var activation = todos.activationDate();
    var due = todos.dueDate();
    var completion = todos.completionDate();
    var creation = todos.creationDate();
    var modification = todos.modificationDate();

    function index(container) {
        var out = {};
        for (var i = 0; i < container.length; i++) {
            var id = container[i].id();
            var name = container[i].name();
            var todoIds = container[i].toDos.id();
            for (var j = 0; j < todoIds.length; j++) out[todoIds[j]] = [id, name];
        }
        return out;
    }

    function members(listName) {
        var out = {};
        var listIds = app.lists.byName(listName).toDos.id();
        for (var i = 0; i < listIds.length; i++) out[listIds[i]] = true;
        return out;
    }

    function day(d) {
        var m = String(d.getMonth() + 1);
        var dd = String(d.getDate());
        return d.getFullYear() + "-" + (m.length < 2 ? "0" + m : m) + "-" + (dd.length < 2 ? "0" + dd : dd);
    }

    function epoch(d) {
        return d ? Math.floor(d.getTime() / 1000) : null;
    }

    var projects = index(app.projects);
    var areas = index(app.areas);
    var inbox = members("Inbox");
    var someday = members("Someday");
    var today = members("Today");

    var result = [];
    for (var i = 0; i < count; i++) {
        var id = ids[i];
        var proj = projects[id];
        var area = areas[id];
        var s = statuses[i];
        result.push({
            uuid: id,
            title: names[i],
            status: s === "completed" ? 3 : s === "canceled" ? 2 : 0,
            notes: notes[i] || "",
            project: proj ? proj[0] : null,
            projectTitle: proj ? proj[1] : null,
            area: area ? area[0] : null,
            areaTitle: area ? area[1] : null,
            tags: tagNames[i] ? tagNames[i].split(", ") : [],
            startDate: activation[i] ? day(activation[i]) : null,
            deadline: due[i] ? day(due[i]) : null,
            stopDate: epoch(completion[i]),
            creationDate: epoch(creation[i]),
            modificationDate: epoch(modification[i]),
            start: inbox[id] ? 0 : someday[id] ? 2 : 1,
            inTodayList: !!today[id]
        });
    }
    return JSON.stringify(result);
})()"""

NOT_RUNNING_MARKERS = ("not running", "isn't running")


def parse_snapshot(payload: str) -> list[ThingsTask]:
    """
    Turn the JSON printed by the snapshot script into tasks.

    Raises:
        ThingsUnavailableError: If the payload is not a JSON list of records
    """
    try:
        raw = json.loads(payload)
    except json.JSONDecodeError as e:
        raise ThingsUnavailableError(
            f"Unreadable snapshot from Things: {e}",
            operation="read_all_tasks",
        ) from e

    if not isinstance(raw, list):
        raise ThingsUnavailableError(
            "Snapshot from Things is not a list",
            operation="read_all_tasks",
        )

    try:
        return [ThingsTask.from_jxa(record) for record in raw]
    except (KeyError, TypeError, ValueError) as e:
        raise ThingsUnavailableError(
            f"Malformed task record in snapshot: {e}",
            operation="read_all_tasks",
        ) from e


async def read_all_tasks(timeout: float = DEFAULT_TIMEOUT) -> list[ThingsTask]:
    """
    Read the full Things snapshot.

    Returns:
        All to-dos; an empty list means Things has no to-dos

    Raises:
        ThingsNotRunningError: If Things 3 is not running
        ThingsUnavailableError: If the snapshot could not be read
    """
    result = await run_jxa(READ_ALL_TASKS_JXA, timeout)

    if result.code != 0:
        if any(marker in result.stderr for marker in NOT_RUNNING_MARKERS):
            raise ThingsNotRunningError(operation="read_all_tasks")
        raise ThingsUnavailableError(
            f"JXA error: {result.stderr}",
            operation="read_all_tasks",
        )

    tasks = parse_snapshot(result.stdout)
    logger.debug("Read %d tasks from Things", len(tasks))
    return tasks
