"""
Timestamp helpers.

All timestamps on disk and on the wire are UTC ISO-8601 strings with
millisecond precision and a trailing "Z", e.g. 2025-01-01T12:00:00.000Z.
Fixed width means string order equals time order, which the record
table and the remote snapshot log both rely on.
"""

from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_iso(dt: datetime) -> str:
    """Format a datetime as fixed-width UTC ISO-8601 with milliseconds."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def parse_iso(text: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 string into an aware UTC datetime.
    
    Accepts a trailing "Z" or an explicit offset. Naive values are
    treated as UTC. Returns None for empty input.
    
    Raises:
        ValueError: If the text is not a valid ISO-8601 timestamp
    """
    if not text:
        return None
    
    value = text.strip()
    if value.endswith("Z") or value.endswith("z"):
        value = value[:-1] + "+00:00"
    
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_date(dt: datetime) -> str:
    """YYYY-MM-DD portion of the UTC timestamp."""
    return to_iso(dt).split("T")[0]
