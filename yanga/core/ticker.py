"""
YANGA Countdown Ticker - Periodic Display Refresh

Drives the visible countdown from a background thread.

Lifecycle:
- start() when a countdown begins (record or recovery)
- stops by itself after reporting READY once
- stop() on teardown
"""

import logging
import threading
from datetime import timedelta
from typing import Callable, Optional

from yanga.config import READY_TEXT
from yanga.memory.reminder_state import READY, Remaining

logger = logging.getLogger(__name__)


def format_remaining(value: Remaining, ready_text: str = READY_TEXT) -> str:
    """
    Format a countdown reading for display.

    Whole seconds, rounded down: M:SS, or H:MM:SS from one hour up.

    Example:
        >>> format_remaining(timedelta(minutes=4, seconds=59))
        '4:59'
    """
    if value is READY or value <= timedelta(0):
        return ready_text

    total = int(value.total_seconds())
    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)

    if hours:
        return f"{hours}:{minutes:02d}:{seconds:02d}"
    return f"{minutes}:{seconds:02d}"


class CountdownTicker:
    """
    Cancellable periodic tick over a ReminderScheduler.

    Only reads the scheduler; never mutates or persists anything.
    """

    def __init__(
        self,
        scheduler,
        on_tick: Optional[Callable[[Remaining], None]] = None,
        interval: Optional[float] = None
    ):
        """
        Args:
            scheduler: ReminderScheduler to read
            on_tick: Called with each reading (timedelta or READY)
            interval: Seconds between ticks (default: scheduler config)
        """
        self.scheduler = scheduler
        self.on_tick = on_tick
        self.interval = interval if interval is not None else scheduler.config.tick_interval

        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._stop_event: Optional[threading.Event] = None

    def attach(self):
        """Restart the ticker whenever the scheduler starts a countdown"""
        self.scheduler.add_countdown_listener(lambda due_at: self.start())

    def start(self) -> bool:
        """
        Start ticking if not already running.

        Returns:
            True if a new ticker thread was started
        """
        with self._lock:
            if self._thread is not None and self._thread.is_alive():
                return False

            stop_event = threading.Event()
            self._stop_event = stop_event
            self._thread = threading.Thread(
                target=self._run,
                args=(stop_event,),
                daemon=True,
                name="YANGA-Ticker"
            )
            self._thread.start()

        logger.debug("Countdown ticker started")
        return True

    def stop(self, timeout: float = 2.0):
        """Cancel ticking and wait for the thread to exit"""
        with self._lock:
            thread = self._thread
            if self._stop_event is not None:
                self._stop_event.set()
            self._thread = None
            self._stop_event = None

        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=timeout)
            if thread.is_alive():
                logger.warning("Ticker thread did not stop cleanly")

        logger.debug("Countdown ticker stopped")

    def is_running(self) -> bool:
        with self._lock:
            return self._thread is not None and self._thread.is_alive()

    def _run(self, stop_event: threading.Event):
        while not stop_event.is_set():
            remaining = self.scheduler.tick()

            if remaining is READY:
                with self._lock:
                    # A record may have restarted the countdown meanwhile
                    remaining = self.scheduler.tick()
                    if remaining is READY:
                        if self._stop_event is stop_event:
                            self._thread = None
                            self._stop_event = None
                        finished = True
                    else:
                        finished = False

                if finished:
                    self._emit(READY)
                    logger.debug("Countdown reached ready, ticker exiting")
                    return

            self._emit(remaining)
            stop_event.wait(self.interval)

    def _emit(self, remaining: Remaining):
        if not self.on_tick:
            return
        try:
            self.on_tick(remaining)
        except Exception as e:
            logger.error(f"on_tick callback failed: {e}", exc_info=True)
