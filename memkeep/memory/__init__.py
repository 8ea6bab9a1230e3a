"""
Memory subsystem: local records, remote mirroring, rolling summaries.

Provides:
- SQLite record store (scope/tag/substring/date-range queries)
- Dual-threshold summary trigger policy
- Per-scope summary manager with persisted counters
- Dual-write service tying the pieces together
"""

from .schemas import (
    ActivitySummary,
    AddOutcome,
    GLOBAL_SCOPE,
    MemoryRecord,
    MemorySource,
    MemoryStats,
    SummaryOutcome,
    SummaryState,
    project_scope,
)
from .store import RecordStore
from .policy import SummaryPolicy
from .summarizer import SummaryManager, build_summary_content, top_tags
from .integrate import MemoryService

__all__ = [
    "ActivitySummary",
    "AddOutcome",
    "GLOBAL_SCOPE",
    "MemoryRecord",
    "MemorySource",
    "MemoryStats",
    "SummaryOutcome",
    "SummaryState",
    "project_scope",
    "RecordStore",
    "SummaryPolicy",
    "SummaryManager",
    "build_summary_content",
    "top_tags",
    "MemoryService",
]
