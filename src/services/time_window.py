from dataclasses import dataclass
from datetime import datetime, timedelta

from src.services.errors import ValidationError


@dataclass(frozen=True)
class TimeWindow:
    """Half-open interval [start, end) occupied by an appointment."""
    start: datetime
    end: datetime

    def __post_init__(self):
        if self.end <= self.start:
            raise ValidationError("end_datetime must be after start_datetime")

    @classmethod
    def from_duration(cls, start: datetime, minutes: int) -> "TimeWindow":
        return cls(start, start + timedelta(minutes=minutes))

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def overlaps(self, other: "TimeWindow") -> bool:
        return overlaps(self, other)

    def widened(self, minutes: int) -> "TimeWindow":
        if not minutes:
            return self
        pad = timedelta(minutes=minutes)
        return TimeWindow(self.start - pad, self.end + pad)


def overlaps(a: TimeWindow, b: TimeWindow) -> bool:
    # touching endpoints do not overlap
    return a.start < b.end and a.end > b.start
