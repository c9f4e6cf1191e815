"""
Things write primitives.

Script builders are pure and return the AppleScript (or things:/// URL) for
one change; the async executors run them and raise ThingsScriptError when
Things reports a problem. Dates can only be changed through the URL scheme,
which needs the user's auth token.
"""

from __future__ import annotations

import logging
from datetime import date
from urllib.parse import urlencode

from things_sync.bridge import (
    DEFAULT_TIMEOUT,
    ScriptResult,
    escape_applescript,
    run_applescript,
    run_command,
    validate_uuid,
)
from things_sync.constants import DEFAULT_PROJECT, THINGS_APP_NAME, THINGS_URL_SCHEME
from things_sync.exceptions import ThingsConfigurationError, ThingsScriptError

logger = logging.getLogger(__name__)

_TELL = f'tell application "{THINGS_APP_NAME}" to'

# Sentinel: leave the field unchanged. None clears it.
UNCHANGED = object()


# =============================================================================
# Script Builders
# =============================================================================


def build_create_script(title: str, project: str | None = None) -> str:
    props = f'name:"{escape_applescript(title)}"'
    if project and project != DEFAULT_PROJECT:
        props += f', project:project "{escape_applescript(project)}"'
    return f"{_TELL} make new to do with properties {{{props}}}"


def build_complete_script(uuid: str) -> str:
    validate_uuid(uuid)
    return f'{_TELL} set status of to do id "{uuid}" to completed'


def build_reopen_script(uuid: str) -> str:
    validate_uuid(uuid)
    return f'{_TELL} set status of to do id "{uuid}" to open'


def build_update_title_script(uuid: str, title: str) -> str:
    validate_uuid(uuid)
    return f'{_TELL} set name of to do id "{uuid}" to "{escape_applescript(title)}"'


def build_update_notes_script(uuid: str, notes: str) -> str:
    validate_uuid(uuid)
    if notes == "":
        return f'{_TELL} set notes of to do id "{uuid}" to ""'
    # AppleScript string literals have no \n escape
    expr = " & linefeed & ".join(f'"{escape_applescript(line)}"' for line in notes.split("\n"))
    return f'{_TELL} set notes of to do id "{uuid}" to {expr}'


def build_update_tags_script(uuid: str, tags: list[str]) -> str:
    validate_uuid(uuid)
    tag_names = ", ".join(escape_applescript(tag) for tag in tags)
    return f'{_TELL} set tag names of to do id "{uuid}" to "{tag_names}"'


def build_delete_script(uuid: str) -> str:
    validate_uuid(uuid)
    return f'{_TELL} delete to do id "{uuid}"'


def build_update_url(auth_token: str, uuid: str, params: dict[str, str]) -> str:
    validate_uuid(uuid)
    query = urlencode({"auth-token": auth_token, "id": uuid, **params})
    return f"{THINGS_URL_SCHEME}update?{query}"


# =============================================================================
# Executors
# =============================================================================


def _check(result: ScriptResult, operation: str) -> ScriptResult:
    if not result.ok:
        raise ThingsScriptError(
            f"AppleScript error: {result.stderr or f'exit code {result.code}'}",
            stderr=result.stderr,
            operation=operation,
        )
    return result


async def create_task(
    title: str,
    project: str | None = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> str:
    """
    Create a to-do and return its uuid.

    Args:
        title: To-do title
        project: Project name; None or "Inbox" creates in the Inbox
    """
    result = _check(
        await run_applescript(build_create_script(title, project), timeout),
        "create_task",
    )
    # osascript prints the new object reference: to do id XXXX of application "Things3"
    uuid = result.stdout.strip()
    if uuid.startswith("to do id "):
        uuid = uuid[len("to do id "):]
    uuid = uuid.partition(" of ")[0].strip('"')
    validate_uuid(uuid)
    logger.info("Created Things to-do %s", uuid)
    return uuid


async def complete_task(uuid: str, timeout: float = DEFAULT_TIMEOUT) -> None:
    _check(await run_applescript(build_complete_script(uuid), timeout), "complete_task")


async def reopen_task(uuid: str, timeout: float = DEFAULT_TIMEOUT) -> None:
    _check(await run_applescript(build_reopen_script(uuid), timeout), "reopen_task")


async def update_task_title(uuid: str, title: str, timeout: float = DEFAULT_TIMEOUT) -> None:
    _check(
        await run_applescript(build_update_title_script(uuid, title), timeout),
        "update_task_title",
    )


async def update_task_notes(uuid: str, notes: str, timeout: float = DEFAULT_TIMEOUT) -> None:
    _check(
        await run_applescript(build_update_notes_script(uuid, notes), timeout),
        "update_task_notes",
    )


async def update_task_tags(uuid: str, tags: list[str], timeout: float = DEFAULT_TIMEOUT) -> None:
    _check(
        await run_applescript(build_update_tags_script(uuid, tags), timeout),
        "update_task_tags",
    )


async def delete_task(uuid: str, timeout: float = DEFAULT_TIMEOUT) -> None:
    """Move a to-do to the Things Trash."""
    _check(await run_applescript(build_delete_script(uuid), timeout), "delete_task")


async def update_task_dates(
    auth_token: str,
    uuid: str,
    start_date: date | str | None | object = UNCHANGED,
    deadline: date | str | None | object = UNCHANGED,
    timeout: float = DEFAULT_TIMEOUT,
) -> None:
    """
    Change the scheduled date and/or deadline of a to-do.

    Pass None to clear a date; leave an argument out to keep it.

    Raises:
        ThingsConfigurationError: If no auth token is configured
    """
    if not auth_token:
        raise ThingsConfigurationError(
            "Things auth token not configured. Set THINGS_SYNC_THINGS_AUTH_TOKEN.",
            operation="update_task_dates",
        )

    params: dict[str, str] = {}
    if start_date is not UNCHANGED:
        params["when"] = str(start_date) if start_date else ""
    if deadline is not UNCHANGED:
        params["deadline"] = str(deadline) if deadline else ""
    if not params:
        return

    url = build_update_url(auth_token, uuid, params)
    result = await run_command("open", "-g", url, timeout=timeout)
    if result.code != 0:
        raise ThingsScriptError(
            f"Failed to open Things URL: {result.stderr}",
            stderr=result.stderr,
            operation="update_task_dates",
        )
