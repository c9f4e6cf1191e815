#!/usr/bin/env python3
"""
Things Sync MCP Server.

This server keeps tagged Markdown checkbox tasks in sync with Things 3 and
exposes the sync loop plus a few Things task tools over MCP.

Features:
    - Background sync on a polling interval
    - Manual sync and dry-run preview
    - Task listing with the query language
    - Complete, reopen and edit Things to-dos

Environment Variables:
    THINGS_SYNC_VAULT_PATH          Root of the Markdown notes (required)
    THINGS_SYNC_SYNC_TAG            Tag marking synced checkboxes (default #things)
    THINGS_SYNC_SYNC_INTERVAL_SECONDS
    THINGS_SYNC_CONFLICT_RESOLUTION remote | local
    THINGS_SYNC_THINGS_AUTH_TOKEN   Needed to change dates
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from contextlib import asynccontextmanager
from datetime import date
from typing import Any, AsyncIterator

from mcp.server.fastmcp import FastMCP, Context

from things_sync.client import ThingsClient
from things_sync.exceptions import (
    DocumentConflictError,
    ThingsConfigurationError,
    ThingsNotRunningError,
    ThingsScriptError,
    ThingsUnavailableError,
    ThingsValidationError,
)
from things_sync.query import filter_tasks, parse_query
from things_sync.settings import get_settings
from things_sync.sync import SyncService
from things_sync.tools.inputs import (
    ResponseFormat,
    SyncInput,
    TaskQueryInput,
    TaskGetInput,
    TaskStatusInput,
    TaskUpdateInput,
)
from things_sync.tools.formatting import (
    format_actions_json,
    format_actions_markdown,
    format_report_json,
    format_report_markdown,
    format_task_json,
    format_task_markdown,
    format_tasks_json,
    format_tasks_markdown,
    success_message,
    error_message,
)
from things_sync.writer import UNCHANGED

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# =============================================================================
# Lifespan Management
# =============================================================================


@asynccontextmanager
async def lifespan(mcp: FastMCP) -> AsyncIterator[dict[str, Any]]:
    """
    Manage the sync service lifecycle.

    Builds the client and service on startup, optionally launches Things,
    and runs the polling loop as a background task until shutdown.
    """
    logger.info("Initializing Things Sync MCP Server...")

    settings = get_settings()
    if settings.debug_logging:
        logging.getLogger("things_sync").setLevel(logging.DEBUG)

    client = ThingsClient.from_settings(settings)
    service = SyncService.from_settings(settings, client=client)

    if settings.launch_things_on_startup:
        try:
            await client.launch()
        except ThingsUnavailableError as e:
            logger.warning("Could not launch Things: %s", e)

    poller: asyncio.Task[None] | None = None
    if settings.sync_interval_seconds > 0:
        poller = asyncio.create_task(
            service.run_forever(run_immediately=settings.sync_on_startup)
        )
    elif settings.sync_on_startup:
        await service.run_cycle()

    try:
        yield {"client": client, "service": service}
    finally:
        if poller is not None:
            poller.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await poller
        logger.info("Things Sync stopped")


# Initialize FastMCP server
mcp = FastMCP(
    "things_sync_mcp",
    lifespan=lifespan,
)


def get_client(ctx: Context) -> ThingsClient:
    """Get the Things client from context."""
    return ctx.request_context.lifespan_context["client"]


def get_service(ctx: Context) -> SyncService:
    """Get the sync service from context."""
    return ctx.request_context.lifespan_context["service"]


# =============================================================================
# Error Handling
# =============================================================================


def handle_error(e: Exception, operation: str) -> str:
    """Handle exceptions and return user-friendly error messages."""
    logger.exception("Error in %s: %s", operation, e)

    if isinstance(e, ThingsNotRunningError):
        return error_message(
            "Things 3 is not running.",
            "Start Things 3 or enable THINGS_SYNC_LAUNCH_THINGS_ON_STARTUP.",
        )
    elif isinstance(e, ThingsUnavailableError):
        return error_message(
            f"Could not read Things: {e}",
            "Check that automation access to Things 3 is granted in System Settings.",
        )
    elif isinstance(e, ThingsValidationError):
        return error_message(f"Invalid input: {e}")
    elif isinstance(e, ThingsConfigurationError):
        return error_message(
            f"Configuration error: {e}",
            "Check your THINGS_SYNC_* environment variables.",
        )
    elif isinstance(e, ThingsScriptError):
        return error_message(f"Things rejected the change: {e}")
    elif isinstance(e, DocumentConflictError):
        return error_message(
            f"Document changed during sync: {e}",
            "Run the sync again.",
        )
    else:
        return error_message(f"Unexpected error: {e}")


# =============================================================================
# Sync Tools
# =============================================================================


@mcp.tool(
    name="things_sync_now",
    annotations={
        "title": "Sync Now",
        "readOnlyHint": False,
        "destructiveHint": False,
        "idempotentHint": False,
        "openWorldHint": True,
    },
)
async def things_sync_now(params: SyncInput, ctx: Context) -> str:
    """
    Run one sync cycle between the Markdown vault and Things 3.

    New tagged lines are created in Things, status changes flow both ways,
    titles renamed in Things are written back, and lines whose to-do was
    deleted are unlinked after two consecutive misses.

    Returns:
        Cycle summary, or a note that a sync was already running.
    """
    try:
        service = get_service(ctx)
        report = await service.run_cycle()

        if report is None:
            return success_message("A sync is already running; this request was merged into it.")

        if params.response_format == ResponseFormat.MARKDOWN:
            return format_report_markdown(report)
        else:
            return json.dumps(format_report_json(report), indent=2)

    except Exception as e:
        return handle_error(e, "sync_now")


@mcp.tool(
    name="things_preview_sync",
    annotations={
        "title": "Preview Sync",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": True,
    },
)
async def things_preview_sync(params: SyncInput, ctx: Context) -> str:
    """
    Show what the next sync would do without changing anything.

    Returns:
        List of pending actions or error message.
    """
    try:
        service = get_service(ctx)
        actions = await service.plan()

        if params.response_format == ResponseFormat.MARKDOWN:
            return format_actions_markdown(actions)
        else:
            return json.dumps({"actions": format_actions_json(actions)}, indent=2)

    except Exception as e:
        return handle_error(e, "preview_sync")


# =============================================================================
# Task Tools
# =============================================================================


@mcp.tool(
    name="things_list_tasks",
    annotations={
        "title": "List Things Tasks",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": True,
    },
)
async def things_list_tasks(params: TaskQueryInput, ctx: Context) -> str:
    """
    List Things to-dos matching a query.

    Args:
        params: Query parameters including:
            - query (str): newline separated clauses, e.g. "today",
              "project: Work", "tag: urgent", "sort: deadline", "limit: 10"

    Returns:
        Formatted list of tasks or error message.

    Examples:
        - Today list: query="today"
        - Overdue work: query="project: Work\\ndeadline: overdue"
        - Board by project: query="status: open\\ngroup: project"
    """
    try:
        client = get_client(ctx)
        query = parse_query(params.query)
        tasks = filter_tasks(await client.read_all_tasks(), query)

        if params.response_format == ResponseFormat.MARKDOWN:
            return format_tasks_markdown(tasks, query.group)
        else:
            return json.dumps(format_tasks_json(tasks), indent=2)

    except Exception as e:
        return handle_error(e, "list_tasks")


@mcp.tool(
    name="things_get_task",
    annotations={
        "title": "Get Things Task",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": True,
    },
)
async def things_get_task(params: TaskGetInput, ctx: Context) -> str:
    """Get a Things to-do by uuid."""
    try:
        client = get_client(ctx)
        task = await client.get_task(params.uuid)

        if task is None:
            return error_message(
                f"Task not found: {params.uuid}",
                "Completed to-dos leave the snapshot once they move to the Logbook.",
            )

        if params.response_format == ResponseFormat.MARKDOWN:
            return format_task_markdown(task)
        else:
            return json.dumps(format_task_json(task), indent=2)

    except Exception as e:
        return handle_error(e, "get_task")


@mcp.tool(
    name="things_complete_task",
    annotations={
        "title": "Complete Things Task",
        "readOnlyHint": False,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": True,
    },
)
async def things_complete_task(params: TaskStatusInput, ctx: Context) -> str:
    """
    Mark a Things to-do as completed.

    The linked Markdown line is updated by the next sync cycle.
    """
    try:
        client = get_client(ctx)
        await client.complete_task(params.uuid)
        return success_message(f"Task `{params.uuid}` completed.")

    except Exception as e:
        return handle_error(e, "complete_task")


@mcp.tool(
    name="things_reopen_task",
    annotations={
        "title": "Reopen Things Task",
        "readOnlyHint": False,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": True,
    },
)
async def things_reopen_task(params: TaskStatusInput, ctx: Context) -> str:
    """Mark a completed Things to-do as open again."""
    try:
        client = get_client(ctx)
        await client.reopen_task(params.uuid)
        return success_message(f"Task `{params.uuid}` reopened.")

    except Exception as e:
        return handle_error(e, "reopen_task")


@mcp.tool(
    name="things_update_task",
    annotations={
        "title": "Update Things Task",
        "readOnlyHint": False,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": True,
    },
)
async def things_update_task(params: TaskUpdateInput, ctx: Context) -> str:
    """
    Edit a Things to-do.

    Args:
        params: Fields to change including:
            - uuid (str): To-do identifier (required)
            - title (str): New title
            - notes (str): New notes
            - tags (list): New tag list (replaces existing)
            - start_date / deadline (str): YYYY-MM-DD, or "none" to clear

    Returns:
        Summary of the changed fields or error message.
    """
    try:
        client = get_client(ctx)
        changed: list[str] = []

        if params.title is not None:
            await client.update_task_title(params.uuid, params.title)
            changed.append("title")
        if params.notes is not None:
            await client.update_task_notes(params.uuid, params.notes)
            changed.append("notes")
        if params.tags is not None:
            await client.update_task_tags(params.uuid, params.tags)
            changed.append("tags")
        if params.start_date is not None or params.deadline is not None:
            await client.update_task_dates(
                params.uuid,
                start_date=_date_arg(params.start_date),
                deadline=_date_arg(params.deadline),
            )
            changed.extend(
                name for name, value in (("start date", params.start_date), ("deadline", params.deadline))
                if value is not None
            )

        if not changed:
            return error_message("Nothing to update.", "Pass at least one field to change.")
        return success_message(f"Updated {', '.join(changed)} of `{params.uuid}`.")

    except Exception as e:
        return handle_error(e, "update_task")


def _date_arg(value: str | None) -> date | None | object:
    if value is None:
        return UNCHANGED
    if value == "none":
        return None
    return date.fromisoformat(value)


# =============================================================================
# Main Entry Point
# =============================================================================


def main():
    """Main entry point for the Things Sync MCP server."""
    mcp.run()


if __name__ == "__main__":
    main()
