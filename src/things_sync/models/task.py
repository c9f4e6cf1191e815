"""
Task models.

Three views of the same to-do:
    - ScannedTask: a checkbox line found in a Markdown document this cycle
    - ThingsTask: the to-do as Things 3 reports it (read-only snapshot)
    - TrackedTask: the last state both sides agreed on (the baseline)
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from things_sync.constants import ThingsItemType, ThingsStart, ThingsStatus


class ScannedTask(BaseModel):
    """A sync-managed checkbox line parsed out of a document."""

    model_config = ConfigDict(frozen=True)

    file_path: str
    line: int = Field(ge=0)
    checked: bool
    title: str
    uuid: str | None = None
    raw_line: str = ""
    indent: str = ""


class ThingsTask(BaseModel):
    """A to-do as read from Things 3."""

    model_config = ConfigDict(frozen=True)

    uuid: str
    title: str
    status: ThingsStatus = ThingsStatus.OPEN
    type: ThingsItemType = ThingsItemType.TODO
    notes: str = ""
    project: str | None = None
    project_title: str | None = None
    area: str | None = None
    area_title: str | None = None
    tags: list[str] = Field(default_factory=list)
    start_date: date | None = None
    deadline: date | None = None
    stop_date: datetime | None = None
    creation_date: datetime | None = None
    last_modified: datetime | None = None
    start: ThingsStart = ThingsStart.ANYTIME
    in_today_list: bool = False
    trashed: bool = False

    @field_validator("tags")
    @classmethod
    def sort_tags(cls, v: list[str]) -> list[str]:
        return sorted(v)

    @property
    def is_open(self) -> bool:
        return self.status == ThingsStatus.OPEN

    @property
    def is_completed(self) -> bool:
        return self.status == ThingsStatus.COMPLETED

    @classmethod
    def from_jxa(cls, raw: dict[str, Any]) -> ThingsTask:
        """
        Build a task from one record of the JXA snapshot payload.

        The payload uses camelCase keys, dates as YYYY-MM-DD strings and
        timestamps as epoch seconds.
        """
        return cls(
            uuid=raw["uuid"],
            title=raw.get("title") or "",
            status=ThingsStatus(raw.get("status", ThingsStatus.OPEN)),
            notes=raw.get("notes") or "",
            project=raw.get("project"),
            project_title=raw.get("projectTitle"),
            area=raw.get("area"),
            area_title=raw.get("areaTitle"),
            tags=raw.get("tags") or [],
            start_date=_parse_date(raw.get("startDate")),
            deadline=_parse_date(raw.get("deadline")),
            stop_date=_from_timestamp(raw.get("stopDate")),
            creation_date=_from_timestamp(raw.get("creationDate")),
            last_modified=_from_timestamp(raw.get("modificationDate")),
            start=ThingsStart(raw.get("start", ThingsStart.ANYTIME)),
            in_today_list=bool(raw.get("inTodayList", False)),
            trashed=bool(raw.get("trashed", False)),
        )


class TrackedTask(BaseModel):
    """Baseline entry: what was last synced for one uuid."""

    model_config = ConfigDict(frozen=True)

    uuid: str
    file_path: str
    line: int = Field(ge=0)
    checked: bool
    title: str
    last_sync_timestamp: float = 0.0

    @classmethod
    def from_scanned(
        cls,
        scanned: ScannedTask,
        timestamp: float,
        *,
        checked: bool | None = None,
        title: str | None = None,
    ) -> TrackedTask:
        """
        Record a scanned line as synced.

        `checked` and `title` override the scanned values when the line was
        rewritten during the cycle.
        """
        if scanned.uuid is None:
            raise ValueError("Only linked tasks can be tracked")
        return cls(
            uuid=scanned.uuid,
            file_path=scanned.file_path,
            line=scanned.line,
            checked=scanned.checked if checked is None else checked,
            title=scanned.title if title is None else title,
            last_sync_timestamp=timestamp,
        )


def _parse_date(value: str | None) -> date | None:
    if not value:
        return None
    return date.fromisoformat(value)


def _from_timestamp(value: float | None) -> datetime | None:
    # JXA reports 0 for a missing creation date
    if not value:
        return None
    return datetime.fromtimestamp(value, tz=timezone.utc)
