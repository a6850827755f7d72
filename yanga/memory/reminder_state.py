"""
YANGA Reminder State

The single pending countdown.

Lifecycle:
- absent: nothing pending, ready now
- set: due_at in the future
- set but past: treated exactly like absent
"""

from datetime import datetime, timedelta, tzinfo
from typing import Optional, Union

from .event_models import format_timestamp, parse_timestamp


class _Ready:
    """Sentinel for 'no countdown left'"""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "READY"

    def __bool__(self) -> bool:
        return False


READY = _Ready()

Remaining = Union[timedelta, _Ready]


class ReminderState:
    """
    Holds at most one due time.

    start() overwrites: recording again resets the countdown rather than
    stacking a second one.
    """

    def __init__(self, due_at: Optional[datetime] = None):
        if due_at is not None and due_at.tzinfo is None:
            raise ValueError("due_at must be timezone-aware")
        self._due_at = due_at

    @property
    def due_at(self) -> Optional[datetime]:
        return self._due_at

    def start(self, now: datetime, cooldown: timedelta) -> datetime:
        """
        Begin a countdown of cooldown from now.

        Returns:
            The new due time
        """
        if now.tzinfo is None:
            raise ValueError("now must be timezone-aware")
        self._due_at = now + cooldown
        return self._due_at

    def remaining(self, now: datetime) -> Remaining:
        """
        Time left until due.

        Returns:
            READY if absent or due_at <= now, else due_at - now
        """
        if self._due_at is None or self._due_at <= now:
            return READY
        return self._due_at - now

    def is_expired(self, now: datetime) -> bool:
        return self.remaining(now) is READY

    def copy(self) -> 'ReminderState':
        return ReminderState(self._due_at)

    def serialize(self) -> str:
        """ISO-8601 due time, or '' when absent"""
        if self._due_at is None:
            return ""
        return format_timestamp(self._due_at)

    @classmethod
    def deserialize(cls, text: Optional[str], default_zone: Optional[tzinfo] = None) -> 'ReminderState':
        """
        Inverse of serialize().

        Raises:
            ValueError: If text is neither empty nor a timestamp
        """
        if text is None or not text.strip():
            return cls()
        return cls(parse_timestamp(text, default_zone))

    def __eq__(self, other) -> bool:
        if not isinstance(other, ReminderState):
            return NotImplemented
        return self._due_at == other._due_at

    def __repr__(self) -> str:
        return f"ReminderState(due_at={self.serialize() or None})"
