"""
osascript bridge.

Runs AppleScript and JXA snippets in a child `osascript` process and
returns what it printed. Callers decide what a non-empty stderr or a
non-zero exit code means for their operation.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import re
from dataclasses import dataclass

from things_sync.constants import THINGS_APP_NAME
from things_sync.exceptions import ThingsUnavailableError, ThingsValidationError

logger = logging.getLogger(__name__)

OSASCRIPT = "osascript"
DEFAULT_TIMEOUT = 30.0

UUID_PATTERN = re.compile(r"^[A-Za-z0-9-]{1,64}$")


@dataclass(frozen=True)
class ScriptResult:
    stdout: str
    stderr: str
    code: int

    @property
    def ok(self) -> bool:
        return self.code == 0 and not self.stderr


def escape_applescript(text: str) -> str:
    """Escape a value for use inside an AppleScript string literal."""
    return text.replace("\\", "\\\\").replace('"', '\\"')


def validate_uuid(uuid: str) -> str:
    """
    Check that a uuid is safe to splice into a script.

    Raises:
        ThingsValidationError: If the value is not a Things identifier
    """
    if not UUID_PATTERN.match(uuid):
        raise ThingsValidationError(f"Invalid Things UUID: {uuid!r}")
    return uuid


async def run_applescript(script: str, timeout: float = DEFAULT_TIMEOUT) -> ScriptResult:
    """Run an AppleScript snippet."""
    return await _run_osascript(["-e", script], timeout)


async def run_jxa(script: str, timeout: float = DEFAULT_TIMEOUT) -> ScriptResult:
    """Run a JavaScript for Automation snippet."""
    return await _run_osascript(["-l", "JavaScript", "-e", script], timeout)


async def run_command(*cmd: str, timeout: float = DEFAULT_TIMEOUT) -> ScriptResult:
    """Run an arbitrary helper command (e.g. `open`)."""
    return await _run(list(cmd), timeout)


async def is_things_running(timeout: float = DEFAULT_TIMEOUT) -> bool:
    result = await run_applescript(
        'tell application "System Events" to return '
        f'(name of processes) contains "{THINGS_APP_NAME}"',
        timeout,
    )
    return result.stdout == "true"


async def launch_things_in_background() -> None:
    """Start Things 3 without bringing it to the front. Failures are logged."""
    try:
        result = await run_command("open", "-g", "-a", THINGS_APP_NAME)
    except ThingsUnavailableError as e:
        logger.warning("Failed to launch Things: %s", e)
        return
    if result.code != 0:
        logger.warning("Failed to launch Things: %s", result.stderr)


async def _run_osascript(args: list[str], timeout: float) -> ScriptResult:
    return await _run([OSASCRIPT, *args], timeout)


async def _run(cmd: list[str], timeout: float) -> ScriptResult:
    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        raise ThingsUnavailableError(
            f"Could not start {cmd[0]}: {e}",
            operation="run_script",
        ) from e

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError as e:
        with contextlib.suppress(ProcessLookupError):
            proc.kill()
        await proc.wait()
        raise ThingsUnavailableError(
            f"{cmd[0]} timed out after {timeout:.0f}s",
            operation="run_script",
        ) from e

    return ScriptResult(
        stdout=stdout.decode("utf-8", errors="replace").strip(),
        stderr=stderr.decode("utf-8", errors="replace").strip(),
        code=proc.returncode if proc.returncode is not None else 1,
    )
