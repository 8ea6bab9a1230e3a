"""
Memory API endpoints.

Local-first CRUD over memory records plus the summary engine's status
and manual trigger.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from memkeep.memory.schemas import MemoryStats
from memkeep.persist.clock import to_iso
from .deps import Components, get_components
from .schemas import (
    AddMemoryRequest,
    AddMemoryResponse,
    DeleteMemoryRequest,
    DeleteMemoryResponse,
    MemoryListResponse,
    SearchMemoryRequest,
    SummaryStatusResponse,
    TriggerSummaryRequest,
    TriggerSummaryResponse,
)

router = APIRouter(prefix="/memory", tags=["memory"])


def _summaries(components: Components):
    summaries = components.memory.summaries
    if summaries is None:
        raise HTTPException(status_code=503, detail="Summary engine disabled")
    return summaries


@router.post("/add", response_model=AddMemoryResponse)
async def add_memory(request: AddMemoryRequest, components: Components = Depends(get_components)):
    """
    Add a memory.

    Stored locally before the response; mirrored to the remote service in
    the background. May generate a summary for the scope.

    Example:
        POST /memory/add
        {"content": "Prefers small PRs", "scope": "project:memkeep", "tags": ["preference"]}
    """
    try:
        outcome = await components.memory.add(
            request.content,
            scope=request.scope,
            tags=request.tags,
            action=request.action,
        )
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to add memory: {str(e)}")

    return AddMemoryResponse(record=outcome.record, summarized=outcome.summarized, summary=outcome.summary)


@router.post("/search", response_model=MemoryListResponse)
async def search_memories(request: SearchMemoryRequest, components: Components = Depends(get_components)):
    """Substring search, local first, topped up from the remote mirror."""
    try:
        memories = await components.memory.search(request.query, scope=request.scope, limit=request.limit)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Memory search failed: {str(e)}")

    return MemoryListResponse(memories=memories, count=len(memories))


@router.get("/list", response_model=MemoryListResponse)
async def list_memories(
    scope: Optional[str] = None,
    tags: Optional[str] = None,  # Comma-separated
    since: Optional[datetime] = None,
    limit: Optional[int] = None,
    components: Components = Depends(get_components),
):
    """
    List memories newest first.

    Example:
        GET /memory/list?scope=global&tags=decision,sync&limit=10
    """
    tag_list = [t.strip() for t in tags.split(",") if t.strip()] if tags else None

    try:
        memories = components.memory.list(scope=scope, tags=tag_list, since=since, limit=limit)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to list memories: {str(e)}")

    return MemoryListResponse(memories=memories, count=len(memories))


@router.delete("/delete", response_model=DeleteMemoryResponse)
async def delete_memory(request: DeleteMemoryRequest, components: Components = Depends(get_components)):
    """Delete a memory by ID. Unknown IDs answer deleted=false."""
    try:
        deleted = await components.memory.delete(request.id)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to delete memory: {str(e)}")

    if deleted:
        return DeleteMemoryResponse(deleted=True, message="Memory deleted")
    return DeleteMemoryResponse(deleted=False, message=f"Memory {request.id} not found")


@router.get("/stats", response_model=MemoryStats)
async def memory_stats(components: Components = Depends(get_components)):
    return components.memory.stats()


@router.get("/summary/status", response_model=SummaryStatusResponse)
async def summary_status(scope: str, components: Components = Depends(get_components)):
    """Activity counter and last summary time for a scope."""
    summaries = _summaries(components)
    last = summaries.get_last_summary_time(scope)

    return SummaryStatusResponse(
        scope=scope,
        activity_count=summaries.get_activity_count(scope),
        last_summary_time=to_iso(last) if last else None,
        threshold=summaries.policy.activity_threshold,
        should_summarize=summaries.should_generate_summary(scope),
    )


@router.post("/summary/trigger", response_model=TriggerSummaryResponse)
async def trigger_summary(request: TriggerSummaryRequest, components: Components = Depends(get_components)):
    """Generate a summary now, ignoring thresholds."""
    summaries = _summaries(components)

    try:
        summary = await summaries.trigger_summary(request.scope)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Summary generation failed: {str(e)}")

    return TriggerSummaryResponse(summarized=summary is not None, summary=summary)
