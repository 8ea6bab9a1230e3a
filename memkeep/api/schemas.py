"""
Pydantic schemas for FastAPI endpoints.
"""

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from memkeep.memory.schemas import ActivitySummary, MemoryRecord
from memkeep.profile.schemas import InferredPreference, OnboardingQuestion


class HealthResponse(BaseModel):
    """Response model for /health endpoint."""

    status: str = Field(..., description="Service status")
    components: Dict[str, bool] = Field(default_factory=dict, description="Component availability")
    records: int = Field(default=0, description="Records in the local store")
    background: Dict[str, int] = Field(default_factory=dict, description="Background tasks by state")


# ===== Memory =====


class AddMemoryRequest(BaseModel):
    """Request to add a new memory."""

    content: str = Field(..., description="Memory text", min_length=1)
    scope: Optional[str] = Field(None, description="'global' or 'project:<name>' (default scope if omitted)")
    tags: List[str] = Field(default_factory=list, description="Tags for categorization")
    action: Optional[str] = Field("explicit", description="Provenance action, e.g. 'explicit' or 'auto'")

    class Config:
        json_schema_extra = {
            "example": {
                "content": "Prefers small PRs with one concern each.",
                "scope": "project:memkeep",
                "tags": ["preference", "review"],
            }
        }


class AddMemoryResponse(BaseModel):
    """Response after adding a memory."""

    record: MemoryRecord
    summarized: bool = Field(False, description="Whether this add triggered a summary")
    summary: Optional[ActivitySummary] = None


class SearchMemoryRequest(BaseModel):
    """Request to search memories."""

    query: str = Field(..., description="Substring to look for")
    scope: Optional[str] = Field(None, description="Restrict to this scope (global always included)")
    limit: int = Field(10, description="Maximum number of results", ge=1, le=100)


class MemoryListResponse(BaseModel):
    """Matched or listed memories."""

    memories: List[MemoryRecord]
    count: int


class DeleteMemoryRequest(BaseModel):
    id: str = Field(..., description="Memory ID to delete")


class DeleteMemoryResponse(BaseModel):
    deleted: bool = Field(..., description="Whether a record was deleted")
    message: str


class SummaryStatusResponse(BaseModel):
    """Summary engine state for one scope."""

    scope: str
    activity_count: int
    last_summary_time: Optional[str] = None
    threshold: int
    should_summarize: bool


class TriggerSummaryRequest(BaseModel):
    scope: str = Field(..., description="Scope to summarize", min_length=1)


class TriggerSummaryResponse(BaseModel):
    summarized: bool
    summary: Optional[ActivitySummary] = None


# ===== Profile =====


class SetFieldRequest(BaseModel):
    """Write one profile field by dot-path."""

    field: str = Field(..., description="Dot-path, e.g. 'technical.languages'")
    value: Union[str, List[str]]
    mode: Literal["set", "append"] = Field("set", description="'append' merges into an array field")

    class Config:
        json_schema_extra = {
            "example": {"field": "technical.languages", "value": ["Python"], "mode": "append"}
        }


class SyncResponse(BaseModel):
    action: Literal["pulled", "pushed", "skipped"]
    profile: Dict[str, Any]


class OnboardingResponse(BaseModel):
    complete: bool
    should_prompt: bool
    questions: List[OnboardingQuestion]


class InferenceListResponse(BaseModel):
    inferences: List[InferredPreference]
    count: int


class InferenceActionResponse(BaseModel):
    id: str
    ok: bool = Field(..., description="False if the inference is missing or already resolved")
    status: Optional[str] = None
