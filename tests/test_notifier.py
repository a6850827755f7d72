"""
Tests for YANGA Voice Notifier

pyttsx3 is mocked: no audio device needed.

Covers:
- One-shot firing and speech
- Re-schedule replaces, never duplicates
- Idempotent cancel
- Refusal after shutdown
"""

import logging
import threading
import time
from datetime import timedelta
from unittest.mock import patch

from yanga.memory import utc_now
from yanga.notify import NotificationRequest, NotificationSchedulingFailure, VoiceNotifier

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def wait_for(condition, timeout: float = 2.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if condition():
            return True
        time.sleep(0.01)
    return condition()


def test_fires_and_speaks():
    """A due notification reaches on_fire and the TTS engine"""
    print("\n" + "="*70)
    print("TEST 1: Fire and Speak")
    print("="*70)

    with patch('yanga.notify.voice_notifier.pyttsx3') as mock_tts:
        engine = mock_tts.init.return_value
        fired = []
        notifier = VoiceNotifier(on_fire=fired.append)

        try:
            payload = NotificationRequest.for_flavor("Citron")
            assert payload.body == "Il est temps de boire ta prochaine Yanga (Citron)"

            notifier.schedule_one_shot(0, utc_now() + timedelta(milliseconds=100), payload)
            assert notifier.pending_ids() == [0]

            assert wait_for(lambda: fired == [payload])
            assert wait_for(lambda: engine.say.called)
            engine.say.assert_called_with("Yanga prête ! Il est temps de boire ta prochaine Yanga (Citron)")
            engine.setProperty.assert_called_with('rate', 175)
            assert notifier.pending_ids() == []
            print("✓ Fired once and spoken")
        finally:
            notifier.shutdown()

    print("\n✅ Fire and speak test PASSED")


def test_reschedule_replaces():
    """Same id twice leaves a single notification"""
    print("\n" + "="*70)
    print("TEST 2: Re-schedule Replaces")
    print("="*70)

    with patch('yanga.notify.voice_notifier.pyttsx3'):
        fired = []
        notifier = VoiceNotifier(on_fire=fired.append)

        try:
            first = NotificationRequest.for_flavor("Citron")
            second = NotificationRequest.for_flavor("Cassis")

            notifier.schedule_one_shot(0, utc_now() + timedelta(milliseconds=150), first)
            notifier.schedule_one_shot(0, utc_now() + timedelta(milliseconds=50), second)
            assert notifier.pending_ids() == [0]

            assert wait_for(lambda: len(fired) >= 1)
            time.sleep(0.3)
            assert fired == [second]
            print("✓ Only the replacement fired")
        finally:
            notifier.shutdown()

    print("\n✅ Re-schedule test PASSED")


def test_cancel_is_idempotent():
    """Cancel stops a pending notification and is safe to repeat"""
    print("\n" + "="*70)
    print("TEST 3: Cancel")
    print("="*70)

    with patch('yanga.notify.voice_notifier.pyttsx3'):
        fired = []
        notifier = VoiceNotifier(on_fire=fired.append)

        try:
            notifier.cancel(0)
            print("✓ Cancel with nothing pending is a no-op")

            notifier.schedule_one_shot(0, utc_now() + timedelta(milliseconds=100), NotificationRequest.for_flavor("Pêche"))
            notifier.cancel(0)
            notifier.cancel(0)
            assert notifier.pending_ids() == []

            time.sleep(0.3)
            assert fired == []
            print("✓ Cancelled notification never fires")
        finally:
            notifier.shutdown()

    print("\n✅ Cancel test PASSED")


def test_past_fire_time_and_shutdown():
    """Past times fire immediately; a closed notifier refuses"""
    print("\n" + "="*70)
    print("TEST 4: Past Time and Shutdown")
    print("="*70)

    with patch('yanga.notify.voice_notifier.pyttsx3'):
        done = threading.Event()
        notifier = VoiceNotifier(on_fire=lambda payload: done.set())

        notifier.schedule_one_shot(0, utc_now() - timedelta(minutes=5), NotificationRequest.for_flavor("Cassis"))
        assert done.wait(2.0)
        print("✓ Overdue notification delivered at once")

        notifier.schedule_one_shot(0, utc_now() + timedelta(hours=1), NotificationRequest.for_flavor("Cassis"))
        notifier.shutdown()
        assert notifier.pending_ids() == []

        try:
            notifier.schedule_one_shot(0, utc_now(), NotificationRequest.for_flavor("Cassis"))
            assert False, "Closed notifier should refuse"
        except NotificationSchedulingFailure:
            pass
        print("✓ Shutdown cancels timers and refuses new ones")

        notifier.shutdown()

    print("\n✅ Past time and shutdown test PASSED")


def test_engine_failure_does_not_block_delivery():
    """No TTS engine still delivers through on_fire"""
    print("\n" + "="*70)
    print("TEST 5: Engine Failure")
    print("="*70)

    with patch('yanga.notify.voice_notifier.pyttsx3') as mock_tts:
        mock_tts.init.side_effect = RuntimeError("no speech driver")
        done = threading.Event()
        notifier = VoiceNotifier(on_fire=lambda payload: done.set())

        try:
            notifier.schedule_one_shot(0, utc_now(), NotificationRequest.for_flavor("Citron"))
            assert done.wait(2.0)
            print("✓ Delivered without speech")
        finally:
            notifier.shutdown()

    print("\n✅ Engine failure test PASSED")


def run_all_tests():
    """Run all notifier tests"""
    test_fires_and_speaks()
    test_reschedule_replaces()
    test_cancel_is_idempotent()
    test_past_fire_time_and_shutdown()
    test_engine_failure_does_not_block_delivery()
    print("\n✅ ALL NOTIFIER TESTS PASSED")


if __name__ == "__main__":
    run_all_tests()
