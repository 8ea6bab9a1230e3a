"""
Activity-triggered summary generation.

Summaries are triggered by:
- Activity threshold: after N records added to a scope
- Time ceiling: forced after the max interval if there is any activity
- Manual trigger

Content is a plain aggregation (top tags + most recent items), no LLM.
"""

import asyncio
import logging
from collections import Counter, defaultdict
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, Dict, List, Optional

from memkeep.persist.clock import parse_iso, to_date, to_iso, utcnow
from memkeep.persist.jsonfile import read_json, write_json
from .policy import SummaryPolicy
from .schemas import ActivitySummary, MemoryRecord, SummaryOutcome, SummaryState
from .store import RecordStore

logger = logging.getLogger(__name__)

DEFAULT_PERIOD = timedelta(days=7)
TOP_TAGS = 5
KEY_ITEMS = 5
KEY_ITEM_CHARS = 100


def top_tags(records: List[MemoryRecord], n: int = TOP_TAGS) -> List[str]:
    """Most frequent tags; ties keep first-seen order."""
    counts = Counter()
    for record in records:
        counts.update(record.tags)
    return [tag for tag, _ in counts.most_common(n)]


def build_summary_content(
    scope: str,
    records: List[MemoryRecord],
    period_start: datetime,
    period_end: datetime,
) -> str:
    """
    Render the summary text.

    Args:
        scope: Scope being summarized
        records: Records in the period, newest first
        period_start: Start of the period
        period_end: End of the period

    Returns:
        Header line, optional "Top themes" line, optional "Key items" block
    """
    period = f"{to_date(period_start)} to {to_date(period_end)}"
    parts = [f"Activity summary for {scope} ({len(records)} memories, {period})"]

    themes = top_tags(records)
    if themes:
        parts.append(f"Top themes: {', '.join(themes)}")

    key_items = "\n".join(f"- {r.snippet(KEY_ITEM_CHARS)}" for r in records[:KEY_ITEMS])
    if key_items:
        parts.append(f"\nKey items:\n{key_items}")

    return "\n".join(parts)


class SummaryManager:
    """
    Per-scope activity counters and summary generation.

    State is loaded lazily once per process and written to disk after
    every mutation. Each scope's read-modify-write runs under its own
    asyncio lock so concurrent adds in one process never interleave.
    """

    def __init__(
        self,
        store: RecordStore,
        state_path: Path,
        mirror=None,
        policy: Optional[SummaryPolicy] = None,
        default_period: timedelta = DEFAULT_PERIOD,
        max_lookback: Optional[timedelta] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Initialize summary manager.

        Args:
            store: Local record store (source of records to summarize)
            state_path: JSON file holding counters and last summary times
            mirror: Optional remote mirror for summary replication
            policy: Trigger policy (default thresholds if omitted)
            default_period: Lookback for a scope's first summary
            max_lookback: Optional cap on the summarized window
            clock: Time source (tests pin it)
        """
        self.store = store
        self.state_path = Path(state_path)
        self.mirror = mirror
        self.policy = policy or SummaryPolicy()
        self.default_period = default_period
        self.max_lookback = max_lookback
        self.clock = clock

        self._state = SummaryState()
        self._loaded = False
        self._locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    @classmethod
    def from_settings(cls, settings, store: RecordStore, mirror=None) -> "SummaryManager":
        cfg = settings.summary
        return cls(
            store=store,
            state_path=settings.paths.summary_state_path,
            mirror=mirror,
            policy=SummaryPolicy.from_config(cfg),
            default_period=cfg.default_period,
            max_lookback=cfg.max_lookback,
        )

    # --- State ---

    def load_state(self) -> SummaryState:
        """Load state from disk once; unreadable state starts empty."""
        if self._loaded:
            return self._state

        raw = read_json(self.state_path, default={})
        try:
            self._state = SummaryState.model_validate(raw)
        except ValueError as e:
            logger.warning(f"Invalid summary state in {self.state_path}, starting fresh: {e}")
            self._state = SummaryState()

        self._loaded = True
        return self._state

    def save_state(self) -> None:
        write_json(self.state_path, self._state.to_file_dict())

    def get_activity_count(self, scope: str) -> int:
        return self.load_state().activity_counts.get(scope, 0)

    def get_last_summary_time(self, scope: str) -> Optional[datetime]:
        value = self.load_state().last_summary_time.get(scope)
        try:
            return parse_iso(value)
        except ValueError:
            logger.warning(f"Ignoring malformed lastSummaryTime for {scope}: {value!r}")
            return None

    # --- Triggering ---

    async def record_activity(self, scope: str) -> int:
        """Increment a scope's counter and persist. Returns the new count."""
        async with self._locks[scope]:
            return self._increment(scope)

    def _increment(self, scope: str) -> int:
        state = self.load_state()
        state.activity_counts[scope] = state.activity_counts.get(scope, 0) + 1
        self.save_state()
        return state.activity_counts[scope]

    async def on_memory_added(self, scope: str) -> SummaryOutcome:
        """
        Called after every record is added.

        Tracks activity and generates a summary if thresholds are met.
        """
        async with self._locks[scope]:
            self._increment(scope)

            if not self.should_generate_summary(scope):
                return SummaryOutcome(summarized=False)

            summary = await self._generate(scope)
            return SummaryOutcome(summarized=True, summary=summary)

    def should_generate_summary(self, scope: str) -> bool:
        """Check if a summary should be generated for this scope now."""
        return self.policy.should_summarize(
            count=self.get_activity_count(scope),
            last_summary_time=self.get_last_summary_time(scope),
            now=self.clock(),
        )

    # --- Generation ---

    async def generate_summary(self, scope: str) -> Optional[ActivitySummary]:
        """
        Generate and store a summary for a scope.

        Returns:
            The summary, or None if the period holds no records (counters
            are left untouched in that case)
        """
        async with self._locks[scope]:
            return await self._generate(scope)

    async def trigger_summary(self, scope: str) -> Optional[ActivitySummary]:
        """Manual trigger, ignores thresholds."""
        return await self.generate_summary(scope)

    def _period_start(self, scope: str, now: datetime) -> datetime:
        start = self.get_last_summary_time(scope) or (now - self.default_period)
        if self.max_lookback is not None:
            start = max(start, now - self.max_lookback)
        return start

    async def _generate(self, scope: str) -> Optional[ActivitySummary]:
        period_end = self.clock()
        period_start = self._period_start(scope, period_end)

        records = self.store.get_by_date_range(scope, period_start, period_end)
        if not records:
            return None

        content = build_summary_content(scope, records, period_start, period_end)

        remote_id = None
        if self.mirror is not None:
            try:
                remote_id = await self.mirror.save_summary(
                    scope, content, period_start, period_end, len(records)
                )
            except Exception as e:
                # Mirror failure never blocks the local reset
                logger.warning(f"Summary mirror failed for {scope}: {e}")

        state = self.load_state()
        state.activity_counts[scope] = 0
        state.last_summary_time[scope] = to_iso(period_end)
        self.save_state()

        logger.info(f"Generated summary for {scope}: {len(records)} memories")

        return ActivitySummary(
            content=content,
            scope=scope,
            period_start=to_iso(period_start),
            period_end=to_iso(period_end),
            memory_count=len(records),
            timestamp=to_iso(period_end),
            remote_id=remote_id,
        )
