"""
YANGA Memory - History and Pending Countdown

Append-only consumption log, the single reminder slot, and their storage.
"""

from .event_models import Event, format_timestamp, parse_timestamp, utc_now
from .event_log import EventLog
from .reminder_state import READY, ReminderState
from .state_store import (
    KeyValueStore,
    PersistenceError,
    PersistenceGateway,
    PersistenceReadCorruption,
    PersistenceReadFailure,
    PersistenceWriteFailure,
    PreferencesGateway,
)

__all__ = [
    'Event',
    'format_timestamp',
    'parse_timestamp',
    'utc_now',
    'EventLog',
    'READY',
    'ReminderState',
    'KeyValueStore',
    'PersistenceError',
    'PersistenceGateway',
    'PersistenceReadCorruption',
    'PersistenceReadFailure',
    'PersistenceWriteFailure',
    'PreferencesGateway',
]
