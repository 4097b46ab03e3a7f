"""External activity records used for automatic verification."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class Activity:
    """A dated activity from an external fitness feed."""
    activity_id: str
    activity_type: str
    start_timestamp: str

    def started_at(self) -> datetime:
        """Parse start_timestamp as an aware datetime (naive means UTC)."""
        ts = datetime.fromisoformat(self.start_timestamp.replace("Z", "+00:00"))
        if ts.tzinfo is None:
            ts = ts.replace(tzinfo=timezone.utc)
        return ts

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> Activity:
        """Accept both feed-shaped (start_date) and camelCase keys.

        Raises:
            ValueError: If id, type or start timestamp is missing.
        """
        if not isinstance(data, dict):
            raise ValueError(f"Activity record must be a JSON object, got {type(data).__name__}")
        start = data.get("startTimestamp") or data.get("start_date")
        if "id" not in data or not data.get("type") or not start:
            raise ValueError(f"Malformed activity record: {data!r}")
        return Activity(
            activity_id=str(data["id"]),
            activity_type=str(data["type"]),
            start_timestamp=str(start),
        )


@dataclass(frozen=True)
class FetchResult:
    """Tagged outcome of an upstream activity fetch.

    Exactly one of activities / error is meaningful: error is None on
    success.
    """
    activities: List[Activity] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class SyncResult:
    """Outcome of a verification sync. Never raised, always returned."""
    success: bool
    days_verified: List[int] = field(default_factory=list)
    error: Optional[str] = None
