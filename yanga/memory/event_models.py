"""
YANGA Event Models

Data structures for consumption history.

Philosophy:
- Events are facts: never edited, never removed
- All times are timezone-aware
- Stored form is the same shape the mobile app wrote
"""

from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo

from yanga.config import REFERENCE_ZONE


def truncate_to_millis(value: datetime) -> datetime:
    """Drop sub-millisecond precision so stored times round-trip exactly"""
    return value.replace(microsecond=value.microsecond // 1000 * 1000)


def utc_now() -> datetime:
    """Current time, aware, in UTC, millisecond precision"""
    return truncate_to_millis(datetime.now(timezone.utc))


def format_timestamp(value: datetime) -> str:
    """
    Format a datetime as ISO-8601 UTC with millisecond precision.

    Example:
        2024-01-01T10:00:00.000Z
    """
    if value.tzinfo is None:
        raise ValueError("Cannot format naive datetime")
    text = value.astimezone(timezone.utc).isoformat(timespec="milliseconds")
    return text.replace("+00:00", "Z")


def parse_timestamp(text: str, default_zone: Optional[tzinfo] = None) -> datetime:
    """
    Parse an ISO-8601 timestamp into an aware datetime.

    Naive values were written as local time by the mobile app, so they
    are read in the reference zone. Sub-millisecond digits are dropped
    so the value formats back to the same instant.

    Args:
        text: ISO-8601 string ('Z' suffix, offset or naive)
        default_zone: Zone for naive values (default: Europe/Paris)

    Raises:
        ValueError: If text is not a timestamp
    """
    if not isinstance(text, str) or not text.strip():
        raise ValueError("Empty timestamp")

    text = text.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"

    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=default_zone or ZoneInfo(REFERENCE_ZONE))
    return truncate_to_millis(parsed)


@dataclass(frozen=True)
class Event:
    """
    One recorded consumption.

    Attributes:
        label: Flavor, one of the configured set
        occurred_at: Aware datetime of recording
    """
    label: str
    occurred_at: datetime

    def __post_init__(self):
        """Validate event data"""
        if not self.label:
            raise ValueError("Event label cannot be empty")
        if not isinstance(self.occurred_at, datetime):
            raise TypeError("occurred_at must be datetime")
        if self.occurred_at.tzinfo is None:
            raise ValueError("occurred_at must be timezone-aware")

    @property
    def timestamp(self) -> str:
        """Stored/exported form of occurred_at"""
        return format_timestamp(self.occurred_at)

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict"""
        return {
            'flavor': self.label,
            'timestamp': self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict, default_zone: Optional[tzinfo] = None) -> 'Event':
        """Create Event from dict"""
        return cls(
            label=data['flavor'],
            occurred_at=parse_timestamp(data['timestamp'], default_zone),
        )
