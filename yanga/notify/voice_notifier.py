"""
YANGA Voice Notifier - Spoken One-Shot Reminders

Responsibilities:
- Hold one timer per notification id (re-schedule replaces)
- Speak the reminder in a background thread when it fires
- Never block the caller or the countdown
- Handle errors gracefully

Architecture:
- Caller thread: schedules/cancels timers
- Timer threads: queue text when due
- TTS thread: consumes queue and speaks
"""

import logging
import threading
from datetime import datetime
from queue import Empty, Queue
from typing import Callable, Dict, List, Optional

import pyttsx3

from yanga.memory.event_models import utc_now

from .base import NotificationGateway, NotificationRequest, NotificationSchedulingFailure

logger = logging.getLogger(__name__)


class VoiceNotifier(NotificationGateway):
    """
    NotificationGateway that speaks reminders with pyttsx3.

    Design:
    - threading.Timer per pending id
    - Background TTS worker fed by a queue
    - Engine created inside the worker thread
    - TTS failures are logged; the on_fire callback still runs
    """

    def __init__(
        self,
        rate: int = 175,
        on_fire: Optional[Callable[[NotificationRequest], None]] = None,
        clock: Callable[[], datetime] = utc_now
    ):
        """
        Initialize notifier and start the TTS worker.

        Args:
            rate: Speech rate (words per minute, default: 175)
            on_fire: Called with the payload when a notification fires
            clock: Time source used to compute timer delays
        """
        self._rate = rate
        self._on_fire = on_fire
        self._clock = clock

        self._timers: Dict[int, threading.Timer] = {}
        self._timers_lock = threading.Lock()

        self.tts_queue: Queue = Queue()
        self._shutdown = threading.Event()

        self.tts_thread = threading.Thread(
            target=self._tts_worker,
            daemon=True,
            name="YANGA-TTS"
        )
        self.tts_thread.start()

        logger.info(f"VoiceNotifier initialized (rate={rate})")

    def schedule_one_shot(
        self,
        notification_id: int,
        fire_at: datetime,
        payload: NotificationRequest
    ):
        if self._shutdown.is_set():
            raise NotificationSchedulingFailure("Notifier is shut down")

        delay = max((fire_at - self._clock()).total_seconds(), 0.0)

        with self._timers_lock:
            previous = self._timers.pop(notification_id, None)
            if previous is not None:
                previous.cancel()
                logger.debug(f"Replaced pending notification {notification_id}")

            timer = threading.Timer(delay, self._fire, args=(notification_id, payload))
            timer.daemon = True
            timer.name = f"YANGA-Notify-{notification_id}"
            try:
                timer.start()
            except RuntimeError as e:
                raise NotificationSchedulingFailure(f"Cannot start timer: {e}") from e
            self._timers[notification_id] = timer

        logger.info(f"Scheduled notification {notification_id} in {delay:.0f}s ({payload.flavor})")

    def cancel(self, notification_id: int):
        with self._timers_lock:
            timer = self._timers.pop(notification_id, None)

        if timer is None:
            logger.debug(f"No pending notification {notification_id} to cancel")
            return

        timer.cancel()
        logger.info(f"Cancelled notification {notification_id}")

    def pending_ids(self) -> List[int]:
        with self._timers_lock:
            return sorted(self._timers)

    def _fire(self, notification_id: int, payload: NotificationRequest):
        """Timer callback - runs on the timer thread"""
        with self._timers_lock:
            timer = self._timers.get(notification_id)
            if timer is not threading.current_thread():
                # Replaced or cancelled after the timer elapsed
                return
            del self._timers[notification_id]

        logger.info(f"Notification {notification_id} fired: {payload.text}")

        if self._on_fire:
            try:
                self._on_fire(payload)
            except Exception as e:
                logger.error(f"on_fire callback failed: {e}", exc_info=True)

        self.tts_queue.put(payload.text)

    def _tts_worker(self):
        """
        TTS worker thread - consumes queue and speaks.

        Runs continuously until shutdown signal.
        """
        engine = None

        try:
            logger.info("Initializing TTS engine in worker thread...")
            engine = pyttsx3.init()
            engine.setProperty('rate', self._rate)
            logger.info("TTS engine initialized")

            while not self._shutdown.is_set():
                try:
                    # Timeout so shutdown is noticed
                    text = self.tts_queue.get(timeout=0.5)
                except Empty:
                    continue

                try:
                    logger.info(f"Speaking: {text}")
                    engine.say(text)
                    engine.runAndWait()
                except Exception as e:
                    logger.error(f"TTS error: {e}", exc_info=True)

        except Exception as e:
            logger.error(f"TTS worker initialization failed: {e}", exc_info=True)

        finally:
            if engine:
                try:
                    engine.stop()
                except Exception as e:
                    logger.debug(f"Engine stop failed: {e}")
            logger.info("TTS worker shutting down")

    def shutdown(self):
        """
        Cancel pending timers and stop the TTS worker.

        Idempotent.
        """
        logger.info("Shutting down VoiceNotifier")
        self._shutdown.set()

        with self._timers_lock:
            timers = list(self._timers.values())
            self._timers.clear()
        for timer in timers:
            timer.cancel()

        if self.tts_thread.is_alive():
            self.tts_thread.join(timeout=2.0)

            if self.tts_thread.is_alive():
                logger.warning("TTS worker thread did not stop cleanly")

        logger.info("VoiceNotifier shutdown complete")
