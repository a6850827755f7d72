"""
YANGA Event Log - Append-Only History

Ordered record of every consumption.

Design:
- Append only, no edits or deletes
- Insertion order is the order of record
- Clock jumps are tolerated, never corrected
"""

import logging
from datetime import datetime, tzinfo
from typing import Callable, Iterator, List, Optional, Tuple

from .event_models import Event, utc_now

logger = logging.getLogger(__name__)


class EventLog:
    """
    Append-only sequence of Events.

    Not thread-safe on its own: the ReminderScheduler owns the log and
    guards it with its lock.
    """

    def __init__(
        self,
        events: Optional[List[Event]] = None,
        clock: Callable[[], datetime] = utc_now
    ):
        """
        Initialize event log.

        Args:
            events: Existing history, oldest first
            clock: Time source for append (injected for testability)
        """
        self._events: List[Event] = list(events or [])
        self._clock = clock

    def append(self, label: str, now: Optional[datetime] = None) -> Event:
        """
        Record a new event at now (default: clock()).

        Label validity is the caller's concern.

        Returns:
            The appended Event
        """
        event = Event(label=label, occurred_at=now or self._clock())
        self._events.append(event)
        logger.debug(f"Appended event: {event.label} at {event.timestamp} (size: {len(self._events)})")
        return event

    def all(self) -> Tuple[Event, ...]:
        """Snapshot of all events, oldest first"""
        return tuple(self._events)

    def last(self) -> Optional[Event]:
        """Most recent event, or None if empty"""
        return self._events[-1] if self._events else None

    def to_rows(self) -> Iterator[Tuple[str, str]]:
        """Lazily yield (label, iso_timestamp) pairs for export"""
        for event in self.all():
            yield event.label, event.timestamp

    def to_list(self) -> List[dict]:
        """Serializable form, one dict per event"""
        return [event.to_dict() for event in self._events]

    @classmethod
    def from_list(
        cls,
        data: List[dict],
        default_zone: Optional[tzinfo] = None,
        clock: Callable[[], datetime] = utc_now
    ) -> 'EventLog':
        """
        Rebuild a log from its serialized form.

        Invalid entries are skipped so the rest of the history survives.
        """
        events = []
        for entry in data:
            try:
                events.append(Event.from_dict(entry, default_zone))
            except Exception as e:
                logger.warning(f"Skipping invalid event: {e}")
        return cls(events, clock=clock)

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[Event]:
        return iter(self.all())

    def __eq__(self, other) -> bool:
        if not isinstance(other, EventLog):
            return NotImplemented
        return self._events == other._events

    def __repr__(self) -> str:
        return f"EventLog(size={len(self._events)})"
