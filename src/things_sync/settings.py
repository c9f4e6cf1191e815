"""
Things Sync Settings.

Configuration is read from environment variables prefixed with
THINGS_SYNC_ (or a .env file in the working directory).

Example:
    THINGS_SYNC_VAULT_PATH=~/Notes
    THINGS_SYNC_SYNC_TAG=#things
    THINGS_SYNC_CONFLICT_RESOLUTION=remote
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from things_sync.constants import ConflictPolicy, DEFAULT_PROJECT, DEFAULT_SYNC_TAG

STATE_DIR_NAME = ".things-sync"
STATE_FILE_NAME = "state.json"


class Settings(BaseSettings):
    """Runtime configuration for the sync loop and the MCP server."""

    model_config = SettingsConfigDict(
        env_prefix="THINGS_SYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Documents
    vault_path: Path = Field(
        default=Path("."),
        description="Root folder of the Markdown notes to sync",
    )
    state_path: Path | None = Field(
        default=None,
        description="Baseline state file (defaults to <vault>/.things-sync/state.json)",
    )
    sync_tag: str = Field(
        default=DEFAULT_SYNC_TAG,
        description="Tag that marks a checkbox for sync",
    )

    # Schedule
    sync_interval_seconds: int = Field(
        default=30,
        description="Polling interval in seconds (0 disables polling)",
    )
    sync_on_startup: bool = True
    launch_things_on_startup: bool = True

    # Behaviour
    conflict_resolution: ConflictPolicy = ConflictPolicy.REMOTE_WINS
    auto_create: bool = Field(
        default=True,
        description="Create Things to-dos for new tagged lines",
    )
    default_project: str = DEFAULT_PROJECT
    default_tags: str = Field(
        default="",
        description="Comma separated Things tags applied to created to-dos",
    )
    dry_run: bool = False

    # Bridge
    things_auth_token: str = Field(
        default="",
        description="Things URL scheme auth token, required to change dates",
    )
    script_timeout: float = Field(default=30.0, gt=0)

    debug_logging: bool = False

    @field_validator("vault_path", "state_path")
    @classmethod
    def expand_user(cls, v: Path | None) -> Path | None:
        return v.expanduser() if v is not None else None

    @field_validator("sync_tag")
    @classmethod
    def validate_sync_tag(cls, v: str) -> str:
        v = v.strip()
        if not v or any(ch.isspace() for ch in v):
            raise ValueError("sync_tag must be a single non-empty token")
        return v

    @field_validator("sync_interval_seconds")
    @classmethod
    def validate_interval(cls, v: int) -> int:
        if v != 0 and not 10 <= v <= 300:
            raise ValueError("sync_interval_seconds must be 0 or between 10 and 300")
        return v

    @property
    def resolved_state_path(self) -> Path:
        if self.state_path is not None:
            return self.state_path
        return self.vault_path / STATE_DIR_NAME / STATE_FILE_NAME

    @property
    def default_tag_list(self) -> list[str]:
        return [tag.strip() for tag in self.default_tags.split(",") if tag.strip()]


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()
