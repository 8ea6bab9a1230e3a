"""
Dual-write memory service.

Local SQLite first (synchronous durability), remote mirror second
(best-effort, in the background), then the summary engine.
"""

from datetime import datetime
from typing import List, Optional

import structlog

from memkeep.ops.background import BackgroundQueue
from .schemas import AddOutcome, GLOBAL_SCOPE, MemoryRecord, MemorySource, MemoryStats
from .store import RecordStore
from .summarizer import SummaryManager

logger = structlog.get_logger(__name__)


class MemoryService:
    """
    Facade over the record store, remote mirror and summary engine.

    Remote writes are submitted to the background queue and never awaited
    by the caller. Remote reads (search) are awaited, and their failures
    degrade to local-only results.
    """

    def __init__(
        self,
        store: RecordStore,
        summaries: Optional[SummaryManager] = None,
        mirror=None,
        background: Optional[BackgroundQueue] = None,
        default_scope: str = GLOBAL_SCOPE,
        auto_summarize: bool = True,
        source_agent: str = "assistant",
    ):
        """
        Initialize memory service.

        Args:
            store: Local record store
            summaries: Summary engine (None disables summaries)
            mirror: Remote mirror client (None = local-only)
            background: Queue for fire-and-forget mirror writes
            default_scope: Scope used when a caller passes none
            auto_summarize: Notify the summary engine on each add
            source_agent: Agent name recorded as provenance
        """
        self.store = store
        self.summaries = summaries
        self.mirror = mirror
        self.background = background or BackgroundQueue()
        self.default_scope = default_scope
        self.auto_summarize = auto_summarize
        self.source_agent = source_agent

    @classmethod
    def from_settings(cls, settings, mirror=None) -> "MemoryService":
        """Wire the store, summary engine and queue from Settings."""
        store = RecordStore(settings.paths.local_db_path)
        return cls(
            store=store,
            summaries=SummaryManager.from_settings(settings, store, mirror=mirror),
            mirror=mirror,
            background=BackgroundQueue(timeout_s=settings.mirror.timeout_s * 2),
            default_scope=settings.default_scope,
            auto_summarize=settings.auto_summarize,
            source_agent=settings.source_agent,
        )

    async def add(
        self,
        content: str,
        scope: Optional[str] = None,
        tags: Optional[List[str]] = None,
        action: Optional[str] = "explicit",
    ) -> AddOutcome:
        """
        Store a memory locally, mirror it, and feed the summary engine.

        Args:
            content: Memory text
            scope: "global" or "project:<name>" (default scope if None)
            tags: Optional tags
            action: Provenance action recorded with the record

        Returns:
            AddOutcome with the stored record and any generated summary
        """
        scope = scope or self.default_scope
        record = self.store.add(
            content=content,
            scope=scope,
            tags=tags or [],
            source=MemorySource(agent=self.source_agent, action=action),
        )

        if self.mirror is not None:
            metadata = {
                "scope": record.scope,
                "tags": record.tags,
                "source_agent": record.source.agent,
                "source_action": record.source.action,
            }
            self.background.submit(
                "mirror.add",
                lambda: self.mirror.add(record.content, metadata),
            )

        outcome = AddOutcome(record=record)
        if self.summaries is not None and self.auto_summarize:
            result = await self.summaries.on_memory_added(scope)
            outcome.summarized = result.summarized
            outcome.summary = result.summary

        return outcome

    async def search(
        self,
        query: str,
        scope: Optional[str] = None,
        limit: int = 10,
    ) -> List[MemoryRecord]:
        """
        Search local records, topping up from the remote mirror.

        Remote results are merged by content equality: ids differ across
        the two stores, so two distinct records with identical text
        collapse into one.
        """
        results = self.store.search(query, scope=scope, limit=limit)

        if self.mirror is not None and len(results) < limit:
            try:
                remote = await self.mirror.search(query, limit)
            except Exception as e:
                logger.warning("remote_search_failed", query=query, error=str(e))
                remote = []

            seen = {r.content for r in results}
            for r in remote:
                if r.content not in seen:
                    results.append(r)
                    seen.add(r.content)

        if scope:
            results = [r for r in results if r.scope in (scope, GLOBAL_SCOPE)]

        return results[:limit]

    def list(
        self,
        scope: Optional[str] = None,
        tags: Optional[List[str]] = None,
        since: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> List[MemoryRecord]:
        return self.store.list(scope=scope, tags=tags, since=since, limit=limit)

    async def delete(self, record_id: str) -> bool:
        """
        Delete locally; the remote delete runs in the background.

        The remote call uses the local id, which the remote log does not
        know (ids differ across the two stores), so the remote copy
        usually stays. Mem0Mirror.delete reports that miss as False.
        """
        deleted = self.store.delete(record_id)

        if self.mirror is not None:
            self.background.submit("mirror.delete", lambda: self.mirror.delete(record_id))

        return deleted

    def stats(self) -> MemoryStats:
        return self.store.get_stats()

    async def aclose(self) -> None:
        """Flush background work and release resources."""
        await self.background.drain()
        if self.mirror is not None:
            await self.mirror.aclose()
        self.store.close()
