"""
Response formatting for Things Sync MCP tools.

Each result type has a Markdown rendering for people and a JSON-ready dict
rendering for machines.
"""

from __future__ import annotations

from typing import Any

from things_sync.constants import ThingsStatus
from things_sync.models import ActionList, ReconcileAction, ThingsTask
from things_sync.query import group_tasks
from things_sync.sync import SyncReport

STATUS_BOXES = {
    ThingsStatus.OPEN: "[ ]",
    ThingsStatus.COMPLETED: "[x]",
    ThingsStatus.CANCELED: "[-]",
}


# =============================================================================
# Tasks
# =============================================================================


def format_task_markdown(task: ThingsTask) -> str:
    lines = [f"## {STATUS_BOXES[task.status]} {task.title}", "", f"- **UUID**: `{task.uuid}`"]
    lines.append(f"- **Status**: {task.status.name.title()}")
    if task.project_title:
        lines.append(f"- **Project**: {task.project_title}")
    if task.area_title:
        lines.append(f"- **Area**: {task.area_title}")
    if task.start_date:
        lines.append(f"- **Start**: {task.start_date.isoformat()}")
    if task.deadline:
        lines.append(f"- **Deadline**: {task.deadline.isoformat()}")
    if task.tags:
        lines.append(f"- **Tags**: {', '.join(task.tags)}")
    if task.in_today_list:
        lines.append("- **Today**: yes")
    if task.notes:
        lines.extend(["", task.notes])
    return "\n".join(lines)


def format_task_json(task: ThingsTask) -> dict[str, Any]:
    data = task.model_dump(mode="json")
    data["status"] = task.status.name.lower()
    data["start"] = task.start.name.lower()
    data.pop("type", None)
    return data


def format_task_line(task: ThingsTask) -> str:
    parts = [f"- {STATUS_BOXES[task.status]} {task.title}"]
    if task.project_title:
        parts.append(f"({task.project_title})")
    if task.deadline:
        parts.append(f"due {task.deadline.isoformat()}")
    if task.tags:
        parts.append(" ".join(f"#{tag}" for tag in task.tags))
    parts.append(f"`{task.uuid}`")
    return " ".join(parts)


def format_tasks_markdown(tasks: list[ThingsTask], group: str | None = None) -> str:
    if not tasks:
        return "No tasks found."

    lines = [f"# Tasks ({len(tasks)})"]
    for name, bucket in group_tasks(tasks, group).items():
        if group:
            lines.extend(["", f"## {name} ({len(bucket)})"])
        lines.append("")
        lines.extend(format_task_line(task) for task in bucket)
    return "\n".join(lines)


def format_tasks_json(tasks: list[ThingsTask]) -> dict[str, Any]:
    return {"count": len(tasks), "tasks": [format_task_json(task) for task in tasks]}


# =============================================================================
# Sync
# =============================================================================


def format_action_line(action: ReconcileAction) -> str:
    if action.uuid is None:
        return f"- **{action.type}**: {getattr(action, 'title', '')}"
    location = ""
    if hasattr(action, "file_path"):
        location = f" ({action.file_path}:{action.line + 1})"
    return f"- **{action.type}**: `{action.uuid}`{location}"


def format_actions_markdown(actions: list[ReconcileAction]) -> str:
    if not actions:
        return "# Sync Preview\n\nEverything is in sync."
    lines = [f"# Sync Preview ({len(actions)} actions)", ""]
    lines.extend(format_action_line(action) for action in actions)
    return "\n".join(lines)


def format_actions_json(actions: list[ReconcileAction]) -> list[dict[str, Any]]:
    return ActionList.dump_python(actions, mode="json")


def format_report_markdown(report: SyncReport) -> str:
    if report.skipped:
        return error_message(
            f"Sync skipped: {report.skip_reason}",
            "Make sure Things 3 is running and automation access is granted.",
        )

    title = "# Sync Dry Run" if report.dry_run else "# Sync Complete"
    lines = [
        title,
        "",
        f"- **Things tasks**: {report.remote_count}",
        f"- **Tagged lines**: {report.scanned_count}",
        f"- **Actions**: {len(report.actions)}",
    ]
    if not report.dry_run:
        lines.append(f"- **Applied**: {report.applied}")
    if report.deferred_unlinks:
        lines.append(f"- **Missing from Things (waiting one more cycle)**: {len(report.deferred_unlinks)}")

    if report.actions:
        lines.extend(["", "## Actions", ""])
        lines.extend(format_action_line(action) for action in report.actions)

    if report.failures:
        lines.extend(["", "## Failures", ""])
        for failure in report.failures:
            subject = failure.uuid or failure.title or "?"
            lines.append(f"- **{failure.type}** `{subject}`: {failure.error}")

    return "\n".join(lines)


def format_report_json(report: SyncReport) -> dict[str, Any]:
    return report.model_dump(mode="json")


# =============================================================================
# Messages
# =============================================================================


def success_message(message: str) -> str:
    return f"**Success**: {message}"


def error_message(message: str, suggestion: str | None = None) -> str:
    text = f"**Error**: {message}"
    if suggestion:
        text += f"\n\n*Suggestion*: {suggestion}"
    return text
