"""
Things Sync Constants.

Enumerations shared across the package and the inline marker syntax used
to link a Markdown line to a Things to-do.
"""

from __future__ import annotations

from enum import Enum, IntEnum


class ThingsStatus(IntEnum):
    """To-do status as reported by Things 3."""

    OPEN = 0
    CANCELED = 2
    COMPLETED = 3


class ThingsItemType(IntEnum):
    """Kind of Things item."""

    TODO = 0
    PROJECT = 1
    HEADING = 2


class ThingsStart(IntEnum):
    """Which Things list a to-do starts in."""

    INBOX = 0
    ANYTIME = 1
    SOMEDAY = 2


class ConflictPolicy(str, Enum):
    """Which side wins when both changed since the last sync."""

    REMOTE_WINS = "remote"
    LOCAL_WINS = "local"


class ActionType(str, Enum):
    """Tags of the actions produced by the reconciliation engine."""

    CREATE_IN_REMOTE = "create-in-remote"
    COMPLETE_IN_REMOTE = "complete-in-remote"
    REOPEN_IN_REMOTE = "reopen-in-remote"
    COMPLETE_IN_LOCAL = "complete-in-local"
    REOPEN_IN_LOCAL = "reopen-in-local"
    UPDATE_IN_LOCAL = "update-in-local"
    UNLINK_FROM_LOCAL = "unlink-from-local"


# =============================================================================
# Markers & Defaults
# =============================================================================

# Canonical marker: hidden in rendered Markdown as an HTML comment.
UUID_MARKER_TEMPLATE = "<!-- things:{uuid} -->"

DEADLINE_MARKER = "\U0001F4C5"

DEFAULT_SYNC_TAG = "#things"
DEFAULT_PROJECT = "Inbox"

THINGS_APP_NAME = "Things3"
THINGS_URL_SCHEME = "things:///"
