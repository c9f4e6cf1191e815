"""
Pydantic Input Models for Things Sync MCP Tools.

This module defines the input validation models used by the MCP tools.
"""

from __future__ import annotations

from datetime import date
from enum import Enum
from typing import Optional, List

from pydantic import BaseModel, Field, ConfigDict, field_validator

UUID_FIELD_PATTERN = r"^[A-Za-z0-9-]{1,64}$"


class ResponseFormat(str, Enum):
    """Output format for tool responses."""

    MARKDOWN = "markdown"
    JSON = "json"


class BaseMCPInput(BaseModel):
    """Base input model with common configuration."""

    model_config = ConfigDict(
        str_strip_whitespace=True,
        validate_assignment=True,
        extra="forbid",
    )


# =============================================================================
# Sync Input Models
# =============================================================================


class SyncInput(BaseMCPInput):
    """Input for running or previewing a sync cycle."""

    response_format: ResponseFormat = Field(
        default=ResponseFormat.MARKDOWN,
        description="Output format: 'markdown' for human-readable, 'json' for machine-readable",
    )


# =============================================================================
# Task Input Models
# =============================================================================


class TaskQueryInput(BaseMCPInput):
    """Input for listing Things to-dos with the query language."""

    query: str = Field(
        default="",
        description=(
            "Query lines, e.g. 'today', 'project: Work', 'tag: urgent', "
            "'status: open', 'deadline: overdue', 'sort: deadline', 'limit: 10', "
            "'group: project'. Separate lines with newlines."
        ),
        max_length=2000,
    )
    response_format: ResponseFormat = Field(
        default=ResponseFormat.MARKDOWN,
        description="Output format",
    )


class TaskGetInput(BaseMCPInput):
    """Input for getting a to-do by uuid."""

    uuid: str = Field(
        ...,
        description="Things to-do identifier",
        pattern=UUID_FIELD_PATTERN,
    )
    response_format: ResponseFormat = Field(
        default=ResponseFormat.MARKDOWN,
        description="Output format",
    )


class TaskStatusInput(BaseMCPInput):
    """Input for completing or reopening a to-do."""

    uuid: str = Field(
        ...,
        description="Things to-do identifier",
        pattern=UUID_FIELD_PATTERN,
    )


class TaskUpdateInput(BaseMCPInput):
    """Input for editing a to-do. Omitted fields are left unchanged."""

    uuid: str = Field(
        ...,
        description="Things to-do identifier",
        pattern=UUID_FIELD_PATTERN,
    )
    title: Optional[str] = Field(
        default=None,
        description="New title",
        min_length=1,
        max_length=500,
    )
    notes: Optional[str] = Field(
        default=None,
        description="New notes (replaces existing; empty string clears)",
        max_length=10000,
    )
    tags: Optional[List[str]] = Field(
        default=None,
        description="New list of Things tags (replaces existing)",
        max_length=20,
    )
    start_date: Optional[str] = Field(
        default=None,
        description="Scheduled date YYYY-MM-DD, or 'none' to clear",
    )
    deadline: Optional[str] = Field(
        default=None,
        description="Deadline YYYY-MM-DD, or 'none' to clear",
    )

    @field_validator("start_date", "deadline")
    @classmethod
    def validate_date(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        if v.lower() == "none":
            return "none"
        # Raises ValueError for anything that is not YYYY-MM-DD
        date.fromisoformat(v)
        return v

    @field_validator("tags")
    @classmethod
    def strip_tags(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        if v is None:
            return None
        return [tag.strip() for tag in v if tag.strip()]
