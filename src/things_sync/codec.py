"""
Task line codec.

Parses a single Markdown line into a sync-managed task and serializes a
task back into its canonical line. A line is sync-managed when it is a
checkbox item whose body carries the sync tag as a whole token:

    - [ ] Buy milk #things <!-- things:6XQ2mCQZ1vnPqYq8Mq1VnV -->
      - [x] Nested item #things (Project) 📅 2026-03-01 [Area] %%things:ABC-1%%

Lines that do not match are not errors; parse_line returns None and
scanning moves on.
"""

from __future__ import annotations

import re
from datetime import date
from functools import lru_cache
from typing import NamedTuple

from things_sync.constants import (
    DEADLINE_MARKER,
    UUID_MARKER_TEMPLATE,
)
from things_sync.models.task import ScannedTask

CHECKBOX_PATTERN = re.compile(r"^(?P<indent>[ \t]*)- \[(?P<mark>[ xX])\] (?P<body>.*)$")

UUID_MARKER_PATTERN = re.compile(
    r"\s*(?:<!--\s*things:(?P<uuid>[A-Za-z0-9-]+)\s*-->"
    r"|%%things:(?P<legacy>[A-Za-z0-9-]+)%%)"
)

# Inline metadata older builds wrote after the tag: (Project) 📅 date [Area]
METADATA_PATTERN = re.compile(
    r"\([^()]*\)"
    rf"|{DEADLINE_MARKER}\s*\d{{4}}-\d{{2}}-\d{{2}}"
    r"|\[[^\[\]]*\]"
)


class ParsedLine(NamedTuple):
    checked: bool
    title: str
    uuid: str | None
    indent: str


@lru_cache(maxsize=32)
def _tag_pattern(tag: str) -> re.Pattern[str]:
    return re.compile(rf"(?<!\S){re.escape(tag)}(?!\S)")


def is_valid_tag(tag: str) -> bool:
    return bool(tag) and not any(ch.isspace() for ch in tag)


def parse_line(line: str, tag: str) -> ParsedLine | None:
    """
    Parse one line of text.

    Args:
        line: Line without its trailing newline
        tag: Sync tag, e.g. "#things"

    Returns:
        ParsedLine, or None when the line is not a sync-managed task
    """
    if not is_valid_tag(tag):
        return None

    match = CHECKBOX_PATTERN.match(line.rstrip("\r\n"))
    if not match:
        return None

    body = match.group("body")

    uuid: str | None = None
    marker = UUID_MARKER_PATTERN.search(body)
    if marker:
        uuid = marker.group("uuid") or marker.group("legacy")
        body = UUID_MARKER_PATTERN.sub("", body)

    tag_re = _tag_pattern(tag)
    tag_match = tag_re.search(body)
    if not tag_match:
        return None

    before = body[: tag_match.start()]
    after = METADATA_PATTERN.sub(" ", tag_re.sub(" ", body[tag_match.end():]))
    title = " ".join(f"{before} {after}".split())
    if not title:
        return None

    return ParsedLine(
        checked=match.group("mark") in ("x", "X"),
        title=title,
        uuid=uuid,
        indent=match.group("indent"),
    )


def build_task_line(
    checked: bool,
    title: str,
    uuid: str | None,
    tag: str,
    indent: str = "",
    *,
    project_title: str | None = None,
    deadline: date | str | None = None,
    area_title: str | None = None,
) -> str:
    """
    Serialize a task into its canonical line.

    The tag always follows the title and the uuid marker always comes last.
    Optional metadata is written only when non-empty. Whole-token
    occurrences of the tag inside the title are dropped, since parsing
    would read them as the tag.
    """
    checkbox = "[x]" if checked else "[ ]"
    title = " ".join(_tag_pattern(tag).sub(" ", title).split())
    parts = [f"{indent}- {checkbox} {title} {tag}"]

    if project_title:
        parts.append(f"({project_title})")
    if deadline:
        parts.append(f"{DEADLINE_MARKER} {deadline}")
    if area_title:
        parts.append(f"[{area_title}]")
    if uuid:
        parts.append(UUID_MARKER_TEMPLATE.format(uuid=uuid))

    return " ".join(parts)


def build_plain_task_line(checked: bool, title: str, indent: str = "") -> str:
    """Serialize a checkbox line with neither tag nor uuid marker."""
    checkbox = "[x]" if checked else "[ ]"
    return f"{indent}- {checkbox} {title.strip()}"


def scan_file_content(content: str, file_path: str, tag: str) -> list[ScannedTask]:
    """
    Find every sync-managed task in a document.

    Args:
        content: Full document text
        file_path: Identifier recorded on each task
        tag: Sync tag

    Returns:
        Tasks in document order, with 0-based line numbers
    """
    tasks: list[ScannedTask] = []

    for index, raw in enumerate(content.split("\n")):
        raw = raw.rstrip("\r")
        parsed = parse_line(raw, tag)
        if parsed is None:
            continue
        tasks.append(
            ScannedTask(
                file_path=file_path,
                line=index,
                checked=parsed.checked,
                title=parsed.title,
                uuid=parsed.uuid,
                raw_line=raw,
                indent=parsed.indent,
            )
        )

    return tasks
