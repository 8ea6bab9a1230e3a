"""
Mem0 REST adapter for the remote memory log.

The remote log is append-only from our side: profile snapshots and
activity summaries are always new items, never updates. Raw calls raise
MirrorError; the typed profile/summary helpers fail soft and log.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx

from memkeep.memory.schemas import ActivitySummary, MemoryRecord
from memkeep.persist.clock import to_iso, utcnow
from memkeep.profile.schemas import PROFILE_VERSION, ProfileSnapshot, UserProfile
from .records import (
    ACTIVITY_SUMMARY_TYPE,
    PROFILE_SNAPSHOT_TYPE,
    RemoteMemory,
    RemoteProfileSnapshot,
    RemoteSummary,
    decode_items,
    extract_results,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.mem0.ai"


class MirrorError(RuntimeError):
    """Raised when a remote memory request fails."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class MirrorRateLimitError(MirrorError):
    """Raised on HTTP 429 from the remote service."""


class Mem0Mirror:
    """
    Client for the Mem0 platform API.

    Supports add/search/list/delete of generic memories plus two typed
    log views: profile snapshots and activity summaries.
    """

    def __init__(
        self,
        api_key: str,
        user_id: str = "default",
        base_url: str = DEFAULT_BASE_URL,
        timeout_s: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize mirror client.

        Args:
            api_key: Mem0 API key
            user_id: Remote user the log belongs to
            base_url: API base URL
            timeout_s: Per-request timeout in seconds
            transport: Optional httpx transport (tests use MockTransport)
        """
        self.user_id = user_id
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Authorization": f"Token {api_key}"},
            timeout=timeout_s,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings) -> Optional["Mem0Mirror"]:
        """Build from Settings; None when no API key is configured."""
        cfg = settings.mirror
        if not cfg.enabled:
            return None
        return cls(
            api_key=cfg.api_key,
            user_id=cfg.user_id,
            base_url=cfg.base_url,
            timeout_s=cfg.timeout_s,
        )

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            raise MirrorError(f"Mem0 request timed out: {method} {path}") from e
        except httpx.HTTPError as e:
            raise MirrorError(f"Mem0 request failed: {e}") from e

        if response.status_code == 429:
            raise MirrorRateLimitError("Mem0 rate limit exceeded", status_code=429)
        if response.status_code >= 400:
            raise MirrorError(
                f"Mem0 API returned status {response.status_code}: {response.text}",
                status_code=response.status_code,
            )

        if not response.content:
            return None
        return response.json()

    @staticmethod
    def _first_id(result: Any) -> Optional[str]:
        # Sync adds return "id"; queued adds return "event_id"
        first = (extract_results(result) or [{}])[0]
        for candidate in (first, result if isinstance(result, dict) else {}):
            value = candidate.get("id") or candidate.get("event_id")
            if value:
                return str(value)
        return None

    async def add(
        self,
        content: str,
        metadata: Optional[Dict[str, Any]] = None,
        infer: bool = True,
    ) -> str:
        """
        Append a memory to the remote log.

        Returns:
            Remote id (or async event id), "" if the service returned none

        Raises:
            MirrorError: On network or API failure
        """
        result = await self._request(
            "POST",
            "/v1/memories/",
            json={
                "messages": [{"role": "user", "content": content}],
                "user_id": self.user_id,
                "metadata": metadata or {},
                "infer": infer,
            },
        )
        return self._first_id(result) or ""

    async def _items(self) -> list:
        response = await self._request("GET", "/v1/memories/", params={"user_id": self.user_id})
        return decode_items(response)

    async def search(self, query: str, limit: int = 10) -> List[MemoryRecord]:
        """Semantic search over plain memories."""
        response = await self._request(
            "POST",
            "/v1/memories/search/",
            json={"query": query, "user_id": self.user_id, "limit": limit},
        )
        items = decode_items(response)
        return [i.to_record() for i in items if isinstance(i, RemoteMemory)][:limit]

    async def get_all(self) -> List[MemoryRecord]:
        """All plain memories (typed log entries are excluded)."""
        items = await self._items()
        return [i.to_record() for i in items if isinstance(i, RemoteMemory)]

    async def delete(self, memory_id: str) -> bool:
        """Delete a remote memory. False on any failure."""
        try:
            await self._request("DELETE", f"/v1/memories/{memory_id}/")
            return True
        except MirrorError as e:
            logger.debug(f"Mem0 delete of {memory_id} failed: {e}")
            return False

    # --- Profile snapshots ---

    async def _snapshots(self) -> List[RemoteProfileSnapshot]:
        items = await self._items()
        snapshots = [i for i in items if isinstance(i, RemoteProfileSnapshot)]
        snapshots.sort(key=lambda s: s.timestamp, reverse=True)
        return snapshots

    async def get_latest_profile(self) -> Optional[ProfileSnapshot]:
        """Most recent readable profile snapshot by ISO timestamp, None if there is none."""
        try:
            snapshots = await self._snapshots()
        except MirrorError as e:
            logger.warning(f"Failed to fetch profile from Mem0: {e}")
            return None

        for raw in snapshots:
            try:
                return raw.to_snapshot()
            except ValueError as e:
                logger.warning(f"Failed to parse profile snapshot from Mem0: {e}")
        return None

    async def save_profile_snapshot(self, profile: UserProfile) -> Optional[str]:
        """Append a new snapshot (stored raw, no semantic extraction)."""
        try:
            remote_id = await self.add(
                profile.to_json(),
                metadata={
                    "type": PROFILE_SNAPSHOT_TYPE,
                    "timestamp": to_iso(utcnow()),
                    "version": profile.version or PROFILE_VERSION,
                    "scope": "global",
                },
                infer=False,
            )
            return remote_id or None
        except MirrorError as e:
            logger.warning(f"Failed to save profile snapshot to Mem0: {e}")
            return None

    async def get_profile_history(
        self,
        since: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> List[ProfileSnapshot]:
        """All readable snapshots, newest first."""
        try:
            raw_snapshots = await self._snapshots()
        except MirrorError as e:
            logger.warning(f"Failed to fetch profile history from Mem0: {e}")
            return []

        snapshots = []
        for raw in raw_snapshots:
            try:
                snapshots.append(raw.to_snapshot())
            except ValueError:
                continue

        if since is not None:
            since_iso = to_iso(since)
            snapshots = [s for s in snapshots if s.timestamp >= since_iso]
        if limit and limit > 0:
            snapshots = snapshots[:limit]
        return snapshots

    # --- Activity summaries ---

    async def save_summary(
        self,
        scope: str,
        content: str,
        period_start: datetime,
        period_end: datetime,
        memory_count: int,
    ) -> Optional[str]:
        """Append an activity summary to the log."""
        try:
            remote_id = await self.add(
                content,
                metadata={
                    "type": ACTIVITY_SUMMARY_TYPE,
                    "scope": scope,
                    "period_start": to_iso(period_start),
                    "period_end": to_iso(period_end),
                    "memory_count": memory_count,
                    "timestamp": to_iso(utcnow()),
                },
            )
            return remote_id or None
        except MirrorError as e:
            logger.warning(f"Failed to save activity summary to Mem0: {e}")
            return None

    async def get_summaries(
        self,
        scope: Optional[str] = None,
        since: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> List[ActivitySummary]:
        """Summaries for a scope (or all scopes), newest first."""
        try:
            items = await self._items()
        except MirrorError as e:
            logger.warning(f"Failed to fetch activity summaries from Mem0: {e}")
            return []

        summaries = [
            i.to_summary()
            for i in items
            if isinstance(i, RemoteSummary) and (not scope or i.scope == scope)
        ]
        summaries.sort(key=lambda s: s.timestamp, reverse=True)

        if since is not None:
            since_iso = to_iso(since)
            summaries = [s for s in summaries if s.timestamp >= since_iso]
        if limit and limit > 0:
            summaries = summaries[:limit]
        return summaries

    async def get_latest_summary(self, scope: str) -> Optional[ActivitySummary]:
        summaries = await self.get_summaries(scope, limit=1)
        return summaries[0] if summaries else None

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()
