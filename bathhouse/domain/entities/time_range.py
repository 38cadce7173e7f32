from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, order=True)
class TimeRange:
    """Half-open interval [start, end) between two absolute instants."""

    start: datetime
    end: datetime

    def overlaps(self, other: TimeRange) -> bool:
        """Strict overlap: ranges that only touch do not overlap."""
        return self.start < other.end and other.start < self.end

    def touches_or_overlaps(self, other: TimeRange) -> bool:
        return self.start <= other.end and other.start <= self.end

    def contains(self, other: TimeRange) -> bool:
        return self.start <= other.start and other.end <= self.end

    @property
    def duration_minutes(self) -> int:
        return int((self.end - self.start).total_seconds() // 60)

    @property
    def is_empty(self) -> bool:
        return self.end <= self.start
