"""
Markdown vault access.

Scans a folder of Markdown documents for sync-managed tasks and rewrites
single lines in place. A rewrite re-reads the document and refuses to
touch a line that no longer holds the task the cycle scanned, since line
numbers go stale as soon as the user edits the note.
"""

from __future__ import annotations

import logging
import os
import tempfile
from collections.abc import Callable
from pathlib import Path

from things_sync.codec import ParsedLine, parse_line, scan_file_content
from things_sync.exceptions import DocumentConflictError
from things_sync.models import ScannedTask

logger = logging.getLogger(__name__)

MARKDOWN_SUFFIX = ".md"


class Vault:
    """A folder of Markdown documents addressed by vault-relative paths."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def iter_documents(self) -> list[Path]:
        """Markdown files under the root, skipping dot-directories."""
        documents: list[Path] = []
        for dirpath, dirnames, filenames in os.walk(self.root):
            dirnames[:] = sorted(d for d in dirnames if not d.startswith("."))
            for name in sorted(filenames):
                if name.endswith(MARKDOWN_SUFFIX) and not name.startswith("."):
                    documents.append(Path(dirpath) / name)
        return documents

    def relative(self, path: Path) -> str:
        return path.relative_to(self.root).as_posix()

    def resolve(self, file_path: str) -> Path:
        return self.root / file_path

    def scan(self, tag: str) -> list[ScannedTask]:
        """
        Parse every document for tagged tasks.

        Unreadable documents are logged and skipped.
        """
        tasks: list[ScannedTask] = []
        for path in self.iter_documents():
            try:
                content = read_document(path)
            except (OSError, UnicodeDecodeError) as e:
                logger.warning("Skipping unreadable document %s: %s", path, e)
                continue
            tasks.extend(scan_file_content(content, self.relative(path), tag))
        logger.debug("Scanned %d tagged tasks in %s", len(tasks), self.root)
        return tasks

    def rewrite_line(
        self,
        file_path: str,
        line: int,
        render: Callable[[ParsedLine], str],
        *,
        tag: str,
        expected_uuid: str | None = None,
        expected_title: str | None = None,
    ) -> ParsedLine:
        """
        Replace one line of a document after checking it is still the same task.

        Args:
            file_path: Vault-relative document path
            line: 0-based line index from the scan
            render: Builds the replacement line (no newline) from the line
                as it reads now
            tag: Sync tag used to re-parse the current line
            expected_uuid: Uuid the line must carry
            expected_title: For unlinked lines, the title the line must carry

        Returns:
            The line as parsed before the rewrite

        Raises:
            DocumentConflictError: If the line moved or changed
            OSError: If the document cannot be read or written
        """
        path = self.resolve(file_path)
        lines = read_document(path).split("\n")

        if not 0 <= line < len(lines):
            raise DocumentConflictError(
                f"Line {line} is out of range",
                file_path=file_path,
                line=line,
                operation="rewrite_line",
            )

        current = lines[line]
        parsed = parse_line(current, tag)
        if parsed is None or not _matches(parsed.uuid, parsed.title, expected_uuid, expected_title):
            raise DocumentConflictError(
                f"Line {line} no longer holds the expected task",
                file_path=file_path,
                line=line,
                operation="rewrite_line",
            )

        ending = "\r" if current.endswith("\r") else ""
        lines[line] = render(parsed) + ending
        atomic_write(path, "\n".join(lines))
        logger.debug("Rewrote %s:%d", file_path, line)
        return parsed


def _matches(
    uuid: str | None,
    title: str,
    expected_uuid: str | None,
    expected_title: str | None,
) -> bool:
    if expected_uuid is not None:
        return uuid == expected_uuid
    return uuid is None and title == expected_title


def read_document(path: Path) -> str:
    """Read a document keeping its line endings untranslated."""
    with path.open(encoding="utf-8", newline="") as f:
        return f.read()


def atomic_write(target_path: Path, content: str) -> None:
    """Write a file through a temp file in the same directory."""
    temp_path: Path | None = None
    try:
        with tempfile.NamedTemporaryFile(
            "w", encoding="utf-8", dir=target_path.parent, delete=False, newline=""
        ) as temp_file:
            temp_path = Path(temp_file.name)
            temp_file.write(content)
            temp_file.flush()
            os.fsync(temp_file.fileno())
        os.replace(temp_path, target_path)
    finally:
        if temp_path is not None and temp_path.exists():
            try:
                temp_path.unlink()
            except OSError:
                pass
