"""
Task query language.

A small line-oriented filter language for listing Things to-dos:

    today
    project: Work
    tag: urgent
    sort: deadline
    limit: 10

A bare word selects a Things list (today, inbox, upcoming, someday,
logbook); `key: value` lines add filters. Unknown keys are ignored.
"""

from __future__ import annotations

from datetime import date
from typing import Literal

from pydantic import BaseModel

from things_sync.constants import ThingsStart, ThingsStatus
from things_sync.models import ThingsTask

ViewMode = Literal["list", "kanban", "table"]

LISTS = ("today", "inbox", "upcoming", "someday", "logbook")

STATUS_NAMES = {
    "open": ThingsStatus.OPEN,
    "completed": ThingsStatus.COMPLETED,
    "canceled": ThingsStatus.CANCELED,
}


class ParsedQuery(BaseModel):
    list: str | None = None
    project: str | None = None
    area: str | None = None
    tag: str | None = None
    status: str | None = None
    deadline: str | None = None
    sort: str | None = None
    limit: int | None = None
    group: str | None = None
    view: ViewMode = "list"


def parse_query(source: str) -> ParsedQuery:
    query = ParsedQuery()

    for line in (l.strip() for l in source.strip().splitlines()):
        if not line:
            continue
        if ":" not in line:
            query.list = line.lower()
            continue

        key, value = (part.strip() for part in line.split(":", 1))
        key = key.lower()

        if key in ("project", "area", "tag", "deadline"):
            setattr(query, key, value)
        elif key in ("status", "sort", "group"):
            setattr(query, key, value.lower())
        elif key == "limit":
            try:
                query.limit = int(value) or None
            except ValueError:
                query.limit = None
        elif key == "view" and value in ("list", "kanban", "table"):
            query.view = value  # type: ignore[assignment]

    return query


def filter_tasks(
    tasks: list[ThingsTask],
    query: ParsedQuery,
    today: date | None = None,
) -> list[ThingsTask]:
    """Apply list, property, sort and limit clauses of a query."""
    today = today or date.today()
    result = list(tasks)

    if query.list == "today":
        result = [t for t in result if t.in_today_list or t.start_date == today]
    elif query.list == "inbox":
        result = [t for t in result if t.start == ThingsStart.INBOX]
    elif query.list == "upcoming":
        result = [
            t for t in result
            if t.start_date is not None and t.start_date > today and t.is_open
        ]
    elif query.list == "someday":
        result = [t for t in result if t.start == ThingsStart.SOMEDAY]
    elif query.list == "logbook":
        result = [t for t in result if t.is_completed]

    if query.project:
        result = [t for t in result if t.project_title == query.project]
    if query.area:
        result = [t for t in result if t.area_title == query.area]
    if query.tag:
        result = [t for t in result if query.tag in t.tags]
    if query.status in STATUS_NAMES:
        status = STATUS_NAMES[query.status]
        result = [t for t in result if t.status == status]
    if query.deadline:
        result = _filter_deadline(result, query.deadline, today)

    if query.sort == "deadline":
        result.sort(key=lambda t: t.deadline or date.max)
    elif query.sort == "title":
        result.sort(key=lambda t: t.title.lower())
    elif query.sort == "project":
        result.sort(key=lambda t: t.project_title or "")
    elif query.sort == "area":
        result.sort(key=lambda t: t.area_title or "")

    if query.limit:
        result = result[: query.limit]

    return result


def _filter_deadline(tasks: list[ThingsTask], value: str, today: date) -> list[ThingsTask]:
    """`deadline: overdue`, `deadline: today`, or an exact YYYY-MM-DD."""
    value = value.lower()
    if value == "overdue":
        return [t for t in tasks if t.deadline is not None and t.deadline < today and t.is_open]
    if value == "today":
        return [t for t in tasks if t.deadline == today]
    if value == "any":
        return [t for t in tasks if t.deadline is not None]
    try:
        target = date.fromisoformat(value)
    except ValueError:
        return tasks
    return [t for t in tasks if t.deadline == target]


def group_tasks(tasks: list[ThingsTask], group: str | None) -> dict[str, list[ThingsTask]]:
    """Group tasks for kanban-style output. Without a group, one bucket."""
    if group not in ("project", "area", "status"):
        return {"Tasks": list(tasks)}

    groups: dict[str, list[ThingsTask]] = {}
    for task in tasks:
        if group == "project":
            key = task.project_title or "No Project"
        elif group == "area":
            key = task.area_title or "No Area"
        else:
            key = task.status.name.title()
        groups.setdefault(key, []).append(task)
    return groups
