"""
Memory system data models.

Defines MemoryRecord, ActivitySummary and the persisted summary state.
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

GLOBAL_SCOPE = "global"
PROJECT_SCOPE_PREFIX = "project:"


def project_scope(name: str) -> str:
    """Scope string for a named project."""
    return f"{PROJECT_SCOPE_PREFIX}{name}"


class MemorySource(BaseModel):
    """Provenance of a memory (not part of its identity)."""

    agent: str = Field(..., description="Tool or agent that wrote the memory")
    action: Optional[str] = Field(None, description="e.g. 'explicit', 'auto'")


class MemoryRecord(BaseModel):
    """
    A single atomic memory.

    Scopes partition records into namespaces:
    - global: shared across every project
    - project:<name>: one project's working memory

    Records are append/delete only; nothing edits them in place.
    """

    id: str = Field(..., description="Unique identifier (UUID4)")
    content: str = Field(..., description="Free-text memory body")
    scope: str = Field(GLOBAL_SCOPE, description="'global' or 'project:<name>'")
    tags: List[str] = Field(default_factory=list, description="Ordered tags")
    source: MemorySource
    created_at: datetime
    updated_at: datetime

    class Config:
        json_schema_extra = {
            "example": {
                "id": "4f1c2a9e-1b7d-4c36-9a51-2f0e6f7d8a10",
                "content": "Decided to keep the sync client retry-less.",
                "scope": "project:memkeep",
                "tags": ["decision", "sync"],
                "source": {"agent": "assistant", "action": "explicit"},
                "created_at": "2025-01-01T12:00:00.000Z",
                "updated_at": "2025-01-01T12:00:00.000Z",
            }
        }

    @field_validator("scope")
    @classmethod
    def _scope_not_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("scope must be non-empty")
        return v

    @model_validator(mode="after")
    def _timestamps_ordered(self) -> "MemoryRecord":
        if self.updated_at < self.created_at:
            raise ValueError("updated_at must not precede created_at")
        return self

    def snippet(self, max_chars: int = 100) -> str:
        """Get truncated content for display."""
        if len(self.content) <= max_chars:
            return self.content
        return self.content[:max_chars - 3] + "..."


class ActivitySummary(BaseModel):
    """Compacted view of a scope's records over a period."""

    model_config = ConfigDict(populate_by_name=True)

    content: str
    scope: str
    period_start: str = Field(..., alias="periodStart")
    period_end: str = Field(..., alias="periodEnd")
    memory_count: int = Field(..., alias="memoryCount")
    timestamp: str
    remote_id: Optional[str] = Field(None, alias="remoteId")


class SummaryState(BaseModel):
    """
    Per-scope activity counters, persisted as
    {"activityCounts": {scope: int}, "lastSummaryTime": {scope: iso}}.
    """

    model_config = ConfigDict(populate_by_name=True)

    activity_counts: Dict[str, int] = Field(default_factory=dict, alias="activityCounts")
    last_summary_time: Dict[str, str] = Field(default_factory=dict, alias="lastSummaryTime")

    def to_file_dict(self) -> dict:
        return self.model_dump(by_alias=True)


class DateRange(BaseModel):
    oldest: Optional[str] = None
    newest: Optional[str] = None


class MemoryStats(BaseModel):
    """Aggregate counts for health/reporting."""

    total: int = 0
    by_scope: Dict[str, int] = Field(default_factory=dict)
    by_tag: Dict[str, int] = Field(default_factory=dict)
    date_range: DateRange = Field(default_factory=DateRange)


class SummaryOutcome(BaseModel):
    """Result of notifying the summary engine about a new record."""

    summarized: bool = False
    summary: Optional[ActivitySummary] = None


class AddOutcome(BaseModel):
    """Result of a dual-write add."""

    record: MemoryRecord
    summarized: bool = False
    summary: Optional[ActivitySummary] = None
