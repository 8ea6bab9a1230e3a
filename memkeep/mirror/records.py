"""
Typed views over the remote memory log.

Every remote item is one generic memory; specialized kinds carry a
"type" discriminator in metadata. decode_item() turns a raw API item into
one explicit variant; unknown types become UnrecognizedItem instead of
passing through untyped.
"""

import json
import logging
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, ValidationError

from memkeep.memory.schemas import ActivitySummary, GLOBAL_SCOPE, MemoryRecord, MemorySource
from memkeep.persist.clock import parse_iso, utcnow
from memkeep.profile.schemas import ProfileSnapshot, UserProfile

logger = logging.getLogger(__name__)

PROFILE_SNAPSHOT_TYPE = "profile-snapshot"
ACTIVITY_SUMMARY_TYPE = "activity-summary"
MALFORMED_TYPE = "malformed"


class RemoteMemory(BaseModel):
    kind: Literal["memory"] = "memory"
    id: str
    content: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    def to_record(self) -> MemoryRecord:
        """Convert to a MemoryRecord (ids are remote ids, not local ones)."""
        created = _parse_or_now(self.created_at)
        updated = _parse_or_now(self.updated_at) if self.updated_at else created
        return MemoryRecord(
            id=self.id,
            content=self.content,
            scope=self.metadata.get("scope") or GLOBAL_SCOPE,
            tags=_tags(self.metadata.get("tags")),
            source=MemorySource(
                agent=self.metadata.get("source_agent") or "unknown",
                action=self.metadata.get("source_action"),
            ),
            created_at=created,
            updated_at=max(created, updated),
        )


class RemoteProfileSnapshot(BaseModel):
    kind: Literal["profile-snapshot"] = "profile-snapshot"
    id: str
    raw: str
    timestamp: str

    def to_snapshot(self) -> ProfileSnapshot:
        """
        Parse the stored JSON document.

        Raises:
            ValueError: If the stored text is not a valid profile
        """
        try:
            profile = UserProfile.model_validate(json.loads(self.raw))
        except (json.JSONDecodeError, ValidationError) as e:
            raise ValueError(f"Invalid profile snapshot {self.id}: {e}") from e
        return ProfileSnapshot(profile=profile, timestamp=self.timestamp, remote_id=self.id)


class RemoteSummary(BaseModel):
    kind: Literal["activity-summary"] = "activity-summary"
    id: str
    content: str
    scope: str
    period_start: str
    period_end: str
    memory_count: int
    timestamp: str

    def to_summary(self) -> ActivitySummary:
        return ActivitySummary(
            content=self.content,
            scope=self.scope,
            period_start=self.period_start,
            period_end=self.period_end,
            memory_count=self.memory_count,
            timestamp=self.timestamp,
            remote_id=self.id,
        )


class UnrecognizedItem(BaseModel):
    kind: Literal["unrecognized"] = "unrecognized"
    id: str
    type_tag: str
    raw: Dict[str, Any] = Field(default_factory=dict)


RemoteItem = Union[RemoteMemory, RemoteProfileSnapshot, RemoteSummary, UnrecognizedItem]


def _tags(value: Any) -> List[str]:
    """Tags from remote metadata: a list of strings, or one bare string."""
    if isinstance(value, str):
        return [value] if value else []
    if isinstance(value, list):
        return [t for t in value if isinstance(t, str)]
    return []


def _parse_or_now(text: Optional[str]):
    try:
        return parse_iso(text) or utcnow()
    except ValueError:
        return utcnow()


def extract_results(response: Any) -> List[Dict[str, Any]]:
    """API responses are either a bare list or {"results": [...]}."""
    if isinstance(response, list):
        return response
    if isinstance(response, dict):
        results = response.get("results")
        if isinstance(results, list):
            return results
    return []


def decode_item(raw: Dict[str, Any]) -> RemoteItem:
    """
    Decode one raw remote item into its typed variant.

    Items other tools wrote with unexpected shapes come back as
    UnrecognizedItem so one bad entry never breaks a whole log read.
    """
    try:
        item = _decode(raw)
        if isinstance(item, RemoteMemory):
            item.to_record()
        return item
    except (ValueError, TypeError, ValidationError) as e:
        item_id = str(raw.get("id", ""))
        logger.warning(f"Skipping malformed remote item {item_id}: {e}")
        return UnrecognizedItem(id=item_id, type_tag=MALFORMED_TYPE, raw=raw)


def _decode(raw: Dict[str, Any]) -> RemoteItem:
    metadata = raw.get("metadata")
    if not isinstance(metadata, dict):
        metadata = {}
    type_tag = metadata.get("type")
    item_id = str(raw.get("id", ""))
    text = raw.get("memory") or ""
    fallback_ts = raw.get("created_at") or ""

    if type_tag is None:
        return RemoteMemory(
            id=item_id,
            content=text,
            metadata=metadata,
            created_at=raw.get("created_at"),
            updated_at=raw.get("updated_at"),
        )

    if type_tag == PROFILE_SNAPSHOT_TYPE:
        return RemoteProfileSnapshot(
            id=item_id,
            raw=text,
            timestamp=metadata.get("timestamp") or fallback_ts,
        )

    if type_tag == ACTIVITY_SUMMARY_TYPE:
        return RemoteSummary(
            id=item_id,
            content=text,
            scope=metadata.get("scope") or GLOBAL_SCOPE,
            period_start=metadata.get("period_start") or "",
            period_end=metadata.get("period_end") or "",
            memory_count=int(metadata.get("memory_count") or 0),
            timestamp=metadata.get("timestamp") or fallback_ts,
        )

    return UnrecognizedItem(id=item_id, type_tag=str(type_tag), raw=raw)


def decode_items(response: Any) -> List[RemoteItem]:
    return [decode_item(r) for r in extract_results(response) if isinstance(r, dict)]
