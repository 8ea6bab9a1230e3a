"""
Summary trigger policy.

Determines when a scope's accumulated activity should be compacted.
"""

from datetime import datetime, timedelta
from typing import Optional

ACTIVITY_THRESHOLD = 12
MIN_INTERVAL = timedelta(days=1)
MAX_INTERVAL = timedelta(days=7)


class SummaryPolicy:
    """
    Dual-threshold trigger evaluated per scope.

    Rules:
    - first summary: count >= threshold
    - time ceiling: elapsed >= max_interval and any activity
    - activity threshold: count >= threshold, only past the min_interval floor

    The ceiling is checked first and does not need the threshold.
    """

    def __init__(
        self,
        activity_threshold: int = ACTIVITY_THRESHOLD,
        min_interval: timedelta = MIN_INTERVAL,
        max_interval: timedelta = MAX_INTERVAL,
    ):
        """
        Initialize summary policy.

        Args:
            activity_threshold: Records needed before a summary is eligible
            min_interval: Floor between summaries
            max_interval: Ceiling forcing a summary when there is activity
        """
        if activity_threshold < 1:
            raise ValueError("activity_threshold must be >= 1")
        self.activity_threshold = activity_threshold
        self.min_interval = min_interval
        self.max_interval = max_interval

    @classmethod
    def from_config(cls, cfg) -> "SummaryPolicy":
        """Build from a SummaryCfg."""
        return cls(
            activity_threshold=cfg.activity_threshold,
            min_interval=cfg.min_interval,
            max_interval=cfg.max_interval,
        )

    def should_summarize(
        self,
        count: int,
        last_summary_time: Optional[datetime],
        now: datetime,
    ) -> bool:
        """
        Determine if a scope should be summarized.

        Args:
            count: Records added since the last summary
            last_summary_time: When the last summary ran (None if never)
            now: Current time

        Returns:
            True if a summary should be generated
        """
        if last_summary_time is None:
            return count >= self.activity_threshold

        elapsed = now - last_summary_time

        if elapsed >= self.max_interval and count > 0:
            return True

        if count >= self.activity_threshold and elapsed >= self.min_interval:
            return True

        return False
