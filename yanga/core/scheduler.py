"""
YANGA Reminder Scheduler - Countdown Orchestration

Responsibilities:
- Record consumption events
- Start, overwrite and recover the single countdown
- Persist state and schedule the notification off the caller's thread
- Answer "time remaining" for the countdown display
- Surface storage and notification failures without rolling back

State machine:
    IDLE -> COUNTING -> EXPIRED -> COUNTING (next event) ...
"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from queue import Queue
from typing import Callable, List, Optional, Tuple

from yanga.config import TrackerConfig
from yanga.memory.event_log import EventLog
from yanga.memory.event_models import Event, truncate_to_millis, utc_now
from yanga.memory.reminder_state import ReminderState, Remaining
from yanga.memory.state_store import (
    PersistenceError,
    PersistenceGateway,
    PersistenceReadFailure,
    PersistenceWriteFailure,
)
from yanga.notify.base import (
    NotificationGateway,
    NotificationRequest,
    NotificationSchedulingFailure,
)
from yanga.tools import csv_export

logger = logging.getLogger(__name__)


class SchedulerState(Enum):
    """Countdown lifecycle states"""
    IDLE = "idle"            # No countdown ever started (or none stored)
    COUNTING = "counting"    # due_at in the future
    EXPIRED = "expired"      # due_at reached, no newer event yet


@dataclass
class _IOJob:
    """Background work for one mutation, built from snapshots"""
    save: Optional[Tuple[EventLog, ReminderState]] = None
    notify: Optional[Tuple[datetime, NotificationRequest]] = None
    done: Optional[threading.Event] = None
    save_held: bool = False


class ReminderScheduler:
    """
    Owner of the event log and the pending countdown.

    Thread-safety:
    - One RLock around every read and write of log and state
    - Storage and notification I/O run on a single worker thread, in
      mutation order, from snapshots taken under the lock
    - tick() never waits on I/O

    Example:
        >>> scheduler = ReminderScheduler(gateway, notifier, config)
        >>> scheduler.recover()
        >>> scheduler.record_event("Citron")
        >>> scheduler.tick()
    """

    def __init__(
        self,
        persistence: PersistenceGateway,
        notifier: NotificationGateway,
        config: Optional[TrackerConfig] = None,
        clock: Callable[[], datetime] = utc_now,
        on_error: Optional[Callable[[Exception], None]] = None,
        reschedule_on_recover: bool = True
    ):
        """
        Initialize scheduler and start its I/O worker.

        Args:
            persistence: Durable storage for log and countdown
            notifier: One-shot notification capability
            config: Tracker settings (default: TrackerConfig())
            clock: Time source, must return aware datetimes
            on_error: Called from the I/O worker with each failure
            reschedule_on_recover: Re-arm the notification for a countdown
                recovered at startup (same id, so never a duplicate)
        """
        self.persistence = persistence
        self.notifier = notifier
        self.config = config or TrackerConfig()
        self._clock = clock
        self._on_error = on_error
        self._reschedule_on_recover = reschedule_on_recover

        self._lock = threading.RLock()
        self._log = EventLog()
        self._reminder = ReminderState()
        self._listeners: List[Callable[[datetime], None]] = []
        self._last_error: Optional[Exception] = None
        # Set when stored state exists but could not be read
        self._storage_unreadable = False

        self._io_queue: Queue = Queue()
        self._closed = threading.Event()
        self._io_thread = threading.Thread(
            target=self._io_worker,
            daemon=True,
            name="YANGA-IO"
        )
        self._io_thread.start()

        logger.info(f"ReminderScheduler initialized (cooldown={self.config.cooldown})")

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def record_event(self, label: str) -> Event:
        """
        Record a consumption and restart the countdown.

        The in-memory update happens immediately; saving and notification
        scheduling are dispatched to the I/O worker and their failures
        reported through last_error / on_error.

        Args:
            label: One of the configured flavors

        Returns:
            The recorded Event

        Raises:
            ValueError: If label is not a configured flavor
            RuntimeError: If the scheduler has been shut down
        """
        if label not in self.config.flavors:
            raise ValueError(f"Unknown flavor: {label}")

        with self._lock:
            if self._closed.is_set():
                raise RuntimeError("Scheduler is shut down")

            now = self._now()
            event = self._log.append(label, now)
            due_at = self._reminder.start(now, self.config.cooldown)

            # Queued under the lock so jobs keep mutation order and never
            # land behind the shutdown sentinel
            if self._storage_unreadable:
                self._io_queue.put(_IOJob(
                    notify=(due_at, self._payload_for(label)),
                    save_held=True,
                ))
            else:
                self._io_queue.put(_IOJob(
                    save=(EventLog(list(self._log.all())), self._reminder.copy()),
                    notify=(due_at, self._payload_for(label)),
                ))

        logger.info(f"Recorded {label} at {event.timestamp}, next at {due_at.isoformat()}")
        self._notify_listeners(due_at)
        return event

    def tick(self, now: Optional[datetime] = None) -> Remaining:
        """
        Read the time left on the countdown.

        No mutation, no persistence: safe to call at any cadence.

        Returns:
            timedelta left, or READY
        """
        with self._lock:
            return self._reminder.remaining(now or self._now())

    def recover(self) -> SchedulerState:
        """
        Load persisted state at startup.

        A countdown that elapsed while the process was down does not fire
        retroactively. If the stored file exists but cannot be read, the
        scheduler starts empty and holds every save until a later
        recover() succeeds, so the unread history is never overwritten.

        Returns:
            State after recovery
        """
        storage_unreadable = False
        try:
            event_log, reminder_state = self.persistence.load()
        except PersistenceReadFailure as e:
            logger.error(f"Storage unreadable, saves held until it loads: {e}")
            self._report(e)
            storage_unreadable = True
            event_log, reminder_state = EventLog(), ReminderState()
        except PersistenceError as e:
            logger.error(f"Recovery failed, starting empty: {e}")
            self._report(e)
            event_log, reminder_state = EventLog(), ReminderState()

        with self._lock:
            self._storage_unreadable = storage_unreadable
            self._log = event_log
            self._reminder = reminder_state
            now = self._now()
            state = self._state_at(now)

            if (state is SchedulerState.COUNTING and self._reschedule_on_recover
                    and not self._closed.is_set()):
                last = self._log.last()
                flavor = last.label if last else ""
                self._io_queue.put(_IOJob(
                    notify=(reminder_state.due_at, self._payload_for(flavor)),
                ))

        logger.info(
            f"Recovered {len(event_log)} events, state={state.value}"
            + (f", due at {reminder_state.serialize()}" if state is SchedulerState.COUNTING else "")
        )

        if state is SchedulerState.COUNTING:
            self._notify_listeners(reminder_state.due_at)
        return state

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def state(self, now: Optional[datetime] = None) -> SchedulerState:
        with self._lock:
            return self._state_at(now or self._now())

    def history(self) -> Tuple[Event, ...]:
        """Snapshot of every recorded event, oldest first"""
        with self._lock:
            return self._log.all()

    @property
    def due_at(self) -> Optional[datetime]:
        with self._lock:
            return self._reminder.due_at

    @property
    def flavors(self) -> Tuple[str, ...]:
        return self.config.flavors

    @property
    def last_error(self) -> Optional[Exception]:
        """Most recent storage or notification failure (None once a job succeeds)"""
        with self._lock:
            return self._last_error

    def export_csv(self, path: Optional[Path] = None) -> Path:
        """
        Export history to CSV.

        Raises:
            ExportWriteFailure: If the target cannot be written
        """
        with self._lock:
            snapshot = EventLog(list(self._log.all()))
        return csv_export.export_csv(
            snapshot,
            path or self.config.export_path,
            header=self.config.csv_header,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def add_countdown_listener(self, callback: Callable[[datetime], None]):
        """Register a callback run with due_at whenever a countdown starts"""
        with self._lock:
            self._listeners.append(callback)

    def flush(self, timeout: Optional[float] = None) -> bool:
        """
        Wait until queued I/O has completed.

        Returns:
            True if the queue drained within timeout
        """
        done: Optional[threading.Event] = threading.Event()
        with self._lock:
            if self._closed.is_set():
                done = None
            else:
                self._io_queue.put(_IOJob(done=done))

        if done is None:
            self._io_thread.join(timeout=timeout)
            return not self._io_thread.is_alive()
        return done.wait(timeout)

    def shutdown(self, timeout: float = 5.0):
        """
        Finish pending I/O and stop the worker.

        Idempotent. The notifier is not shut down here; its owner does that.
        """
        with self._lock:
            if self._closed.is_set():
                return
            # Same lock as record_event: no job can follow the sentinel
            self._closed.set()
            self._io_queue.put(None)

        logger.info("Shutting down ReminderScheduler")

        self._io_thread.join(timeout=timeout)
        if self._io_thread.is_alive():
            logger.warning("I/O worker thread did not stop cleanly")

        logger.info("ReminderScheduler shutdown complete")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _now(self) -> datetime:
        return truncate_to_millis(self._clock())

    def _state_at(self, now: datetime) -> SchedulerState:
        if self._reminder.due_at is None:
            return SchedulerState.IDLE
        if self._reminder.is_expired(now):
            return SchedulerState.EXPIRED
        return SchedulerState.COUNTING

    def _payload_for(self, flavor: str) -> NotificationRequest:
        return NotificationRequest.for_flavor(
            flavor,
            title=self.config.notification_title,
            body=self.config.notification_body,
        )

    def _notify_listeners(self, due_at: datetime):
        with self._lock:
            listeners = list(self._listeners)
        for callback in listeners:
            try:
                callback(due_at)
            except Exception as e:
                logger.error(f"Countdown listener failed: {e}", exc_info=True)

    def _report(self, error: Exception):
        with self._lock:
            self._last_error = error
        if self._on_error:
            try:
                self._on_error(error)
            except Exception as e:
                logger.error(f"on_error callback failed: {e}", exc_info=True)

    def _io_worker(self):
        """
        I/O worker thread - saves state and schedules notifications.

        Runs until the shutdown sentinel is dequeued.
        """
        while True:
            job = self._io_queue.get()
            try:
                if job is None:
                    break
                self._run_job(job)
            finally:
                self._io_queue.task_done()

        logger.debug("I/O worker shutting down")

    def _run_job(self, job: _IOJob):
        if job.done is not None:
            job.done.set()
            return

        failed = False

        if job.save_held:
            logger.error("Tracker state not saved, stored file could not be read at startup")
            self._report(PersistenceWriteFailure(
                "Storage could not be read at startup, not overwriting it"
            ))
            failed = True

        if job.save is not None:
            event_log, reminder_state = job.save
            try:
                self.persistence.save(event_log, reminder_state)
            except PersistenceError as e:
                # Kept in memory; the next mutation rewrites everything
                logger.error(f"Could not persist tracker state: {e}")
                self._report(e)
                failed = True
            except Exception as e:
                logger.error(f"Unexpected persistence error: {e}", exc_info=True)
                self._report(PersistenceWriteFailure(str(e)))
                failed = True

        if job.notify is not None:
            fire_at, payload = job.notify
            try:
                self.notifier.schedule_one_shot(self.config.notification_id, fire_at, payload)
            except NotificationSchedulingFailure as e:
                logger.warning(f"Notification not scheduled, countdown still tracked: {e}")
                self._report(e)
                failed = True
            except Exception as e:
                logger.error(f"Unexpected notification error: {e}", exc_info=True)
                self._report(NotificationSchedulingFailure(str(e)))
                failed = True

        if not failed:
            with self._lock:
                self._last_error = None
