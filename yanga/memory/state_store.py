"""
YANGA State Store - Persistent Key-Value Storage

Handles reading and writing tracker state to ~/.yanga/preferences.json

Design:
- String-to-string key-value file, same shape as mobile preferences
- Two keys: 'entries' (JSON list) and 'nextTime' (ISO-8601 or '')
- Atomic full-replace writes
- Graceful corruption recovery (backup and start fresh)
"""

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional, Tuple
from zoneinfo import ZoneInfo

from yanga.config import REFERENCE_ZONE

from .event_log import EventLog
from .reminder_state import ReminderState

logger = logging.getLogger(__name__)


ENTRIES_KEY = "entries"
NEXT_TIME_KEY = "nextTime"


class PersistenceError(Exception):
    """Base exception for tracker storage errors"""
    pass


class PersistenceWriteFailure(PersistenceError):
    """Raised when state could not be durably committed"""
    pass


class PersistenceReadCorruption(PersistenceError):
    """Raised when stored data cannot be parsed"""
    pass


class PersistenceReadFailure(PersistenceError):
    """Raised when stored data exists but cannot be read"""
    pass


class PersistenceGateway(ABC):
    """
    Capability interface for durable tracker state.

    Contract: save() then load() with no mutation in between yields an
    equivalent (EventLog, ReminderState).
    """

    @abstractmethod
    def load(self) -> Tuple[EventLog, ReminderState]:
        """
        Load history and pending countdown.

        Returns empty log and absent state when nothing was saved yet.
        Never raises on first run.
        """
        pass

    @abstractmethod
    def save(self, event_log: EventLog, reminder_state: ReminderState):
        """
        Replace stored history and pending countdown.

        Raises:
            PersistenceWriteFailure: If the write did not commit
        """
        pass


class KeyValueStore:
    """
    File-based string key-value storage using JSON.

    Storage location: ~/.yanga/preferences.json

    Philosophy:
    - User can inspect/edit file directly
    - Corruption is handled gracefully
    - No hidden state or caching
    """

    DEFAULT_STORAGE_DIR = Path.home() / ".yanga"
    DEFAULT_STORAGE_FILE = "preferences.json"

    def __init__(self, storage_path: Optional[Path] = None):
        """
        Initialize key-value store.

        Args:
            storage_path: Custom storage file path (default: ~/.yanga/preferences.json)
        """
        if storage_path:
            self.storage_path = Path(storage_path)
        else:
            self.storage_path = self.DEFAULT_STORAGE_DIR / self.DEFAULT_STORAGE_FILE

        logger.info(f"KeyValueStore initialized: {self.storage_path}")

    def read_all(self) -> Dict[str, str]:
        """
        Load every key.

        Returns:
            Dict of stored values ({} if the file does not exist)

        Raises:
            PersistenceReadCorruption: If the file is not a JSON object.
                The corrupt file has already been backed up when this is raised.
            PersistenceReadFailure: If the file exists but cannot be opened.
                It is left in place.
        """
        try:
            with open(self.storage_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except FileNotFoundError:
            logger.info("Storage file not found, starting empty")
            return {}
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.error(f"Corrupted JSON in tracker storage: {e}")
            self._backup_corrupted()
            raise PersistenceReadCorruption(f"Unreadable storage: {e}") from e
        except OSError as e:
            logger.error(f"Failed to read storage: {e}", exc_info=True)
            raise PersistenceReadFailure(f"Cannot read storage: {e}") from e

        if not isinstance(data, dict):
            logger.error(f"Tracker storage is not an object: {type(data).__name__}")
            self._backup_corrupted()
            raise PersistenceReadCorruption("Storage root must be an object")

        return {str(k): v for k, v in data.items()}

    def write_all(self, values: Dict[str, str]):
        """
        Replace the whole store.

        Raises:
            PersistenceWriteFailure: If storage cannot be written
        """
        try:
            self.storage_path.parent.mkdir(parents=True, exist_ok=True)

            # Write atomically (write to temp, then rename)
            temp_path = self.storage_path.with_suffix('.tmp')
            with open(temp_path, 'w', encoding='utf-8') as f:
                json.dump(values, f, indent=2, ensure_ascii=False)

            temp_path.replace(self.storage_path)

            logger.debug(f"Saved {len(values)} keys")

        except OSError as e:
            logger.error(f"Failed to save tracker storage: {e}", exc_info=True)
            raise PersistenceWriteFailure(f"Cannot save tracker state: {e}") from e

    def _backup_corrupted(self):
        """
        Move the corrupted file aside so the next save starts fresh.

        Called when JSON is corrupted or unreadable.
        """
        backup_path = self.storage_path.with_suffix('.json.bak')

        try:
            if self.storage_path.exists():
                self.storage_path.replace(backup_path)
                logger.warning(f"Backed up corrupted storage to: {backup_path}")
        except OSError as e:
            logger.error(f"Failed to back up corrupted storage: {e}", exc_info=True)


class PreferencesGateway(PersistenceGateway):
    """
    PersistenceGateway over a KeyValueStore.

    Corruption never fails startup: whatever cannot be parsed falls back
    to empty history or no pending countdown. A file that cannot be read
    at all is not corruption, so PersistenceReadFailure propagates.
    """

    def __init__(self, store: KeyValueStore, reference_zone: str = REFERENCE_ZONE):
        """
        Args:
            store: Backing key-value store
            reference_zone: Zone used to read naive timestamps
        """
        self.store = store
        self._zone = ZoneInfo(reference_zone)

    def load(self) -> Tuple[EventLog, ReminderState]:
        try:
            values = self.store.read_all()
        except PersistenceReadCorruption as e:
            logger.warning(f"Starting with empty history: {e}")
            return EventLog(), ReminderState()

        event_log = self._decode_entries(values.get(ENTRIES_KEY))
        reminder_state = self._decode_next_time(values.get(NEXT_TIME_KEY))

        logger.info(
            f"Loaded {len(event_log)} events "
            f"(next time: {reminder_state.serialize() or 'none'})"
        )
        return event_log, reminder_state

    def save(self, event_log: EventLog, reminder_state: ReminderState):
        values = {
            ENTRIES_KEY: json.dumps(event_log.to_list(), ensure_ascii=False),
            NEXT_TIME_KEY: reminder_state.serialize(),
        }
        self.store.write_all(values)
        logger.debug(f"Saved {len(event_log)} events")

    def _decode_entries(self, raw) -> EventLog:
        if raw is None or raw == "":
            return EventLog()

        try:
            data = json.loads(raw) if isinstance(raw, str) else raw
            if not isinstance(data, list):
                raise PersistenceReadCorruption("'entries' must be a list")
        except (json.JSONDecodeError, TypeError, PersistenceReadCorruption) as e:
            logger.warning(f"Corrupted entries, starting with empty history: {e}")
            return EventLog()

        return EventLog.from_list(data, default_zone=self._zone)

    def _decode_next_time(self, raw) -> ReminderState:
        if not isinstance(raw, str):
            if raw is not None:
                logger.warning(f"Ignoring non-string next time: {raw!r}")
            return ReminderState()

        try:
            return ReminderState.deserialize(raw, default_zone=self._zone)
        except ValueError as e:
            logger.warning(f"Corrupted next time, no countdown pending: {e}")
            return ReminderState()
