"""
Reconcile actions.

One frozen model per action kind, joined into the ReconcileAction
discriminated union on the `type` field. Actions live for one cycle only.
"""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from things_sync.models.task import ScannedTask, ThingsTask


class _Action(BaseModel):
    model_config = ConfigDict(frozen=True)


class CreateInRemote(_Action):
    """Local line has no uuid yet; create it in Things."""

    type: Literal["create-in-remote"] = "create-in-remote"
    title: str
    file_path: str
    line: int
    scanned_task: ScannedTask

    @property
    def uuid(self) -> None:
        return None


class CompleteInRemote(_Action):
    type: Literal["complete-in-remote"] = "complete-in-remote"
    uuid: str
    remote_task: ThingsTask | None = None


class ReopenInRemote(_Action):
    type: Literal["reopen-in-remote"] = "reopen-in-remote"
    uuid: str
    remote_task: ThingsTask | None = None


class CompleteInLocal(_Action):
    type: Literal["complete-in-local"] = "complete-in-local"
    uuid: str
    file_path: str
    line: int
    remote_task: ThingsTask


class ReopenInLocal(_Action):
    type: Literal["reopen-in-local"] = "reopen-in-local"
    uuid: str
    file_path: str
    line: int
    remote_task: ThingsTask


class UpdateInLocal(_Action):
    """Push a title renamed in Things into the document."""

    type: Literal["update-in-local"] = "update-in-local"
    uuid: str
    file_path: str
    line: int
    remote_task: ThingsTask
    scanned_task: ScannedTask


class UnlinkFromLocal(_Action):
    """Things no longer reports this open to-do; candidate for unlinking."""

    type: Literal["unlink-from-local"] = "unlink-from-local"
    uuid: str
    file_path: str
    line: int
    scanned_task: ScannedTask


ReconcileAction = Annotated[
    Union[
        CreateInRemote,
        CompleteInRemote,
        ReopenInRemote,
        CompleteInLocal,
        ReopenInLocal,
        UpdateInLocal,
        UnlinkFromLocal,
    ],
    Field(discriminator="type"),
]

ActionList = TypeAdapter(list[ReconcileAction])
