"""
Tests for YANGA Countdown Ticker

Covers:
- Remaining-time formatting
- Ticker start/stop lifecycle
- Self-stop at ready and restart on the next record
"""

import logging
import threading
import time
from datetime import datetime, timedelta, timezone

from yanga.config import TrackerConfig
from yanga.core import CountdownTicker, ReminderScheduler, format_remaining
from yanga.memory import READY

from fakes import FakeClock, InMemoryGateway, RecordingNotifier

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

T0 = datetime(2024, 1, 1, 10, 0, 0, tzinfo=timezone.utc)


def wait_for(condition, timeout: float = 2.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if condition():
            return True
        time.sleep(0.01)
    return condition()


def test_format_remaining():
    """Test countdown text"""
    print("\n" + "="*70)
    print("TEST 1: Format Remaining")
    print("="*70)

    assert format_remaining(timedelta(minutes=4, seconds=59)) == "4:59"
    assert format_remaining(timedelta(minutes=4, seconds=59, milliseconds=900)) == "4:59"
    assert format_remaining(timedelta(minutes=20)) == "20:00"
    assert format_remaining(timedelta(seconds=7)) == "0:07"
    assert format_remaining(timedelta(hours=1, minutes=2, seconds=3)) == "1:02:03"
    print("✓ Minutes and seconds")

    assert format_remaining(READY) == "Prêt pour une Yanga"
    assert format_remaining(timedelta(0)) == "Prêt pour une Yanga"
    assert format_remaining(READY, ready_text="Ready") == "Ready"
    print("✓ Ready text")

    print("\n✅ Format remaining test PASSED")


def test_ticker_lifecycle():
    """Ticker follows the countdown: start, self-stop, restart"""
    print("\n" + "="*70)
    print("TEST 2: Ticker Lifecycle")
    print("="*70)

    clock = FakeClock(T0)
    scheduler = ReminderScheduler(InMemoryGateway(), RecordingNotifier(), TrackerConfig(), clock=clock)

    readings = []
    lock = threading.Lock()

    def on_tick(value):
        with lock:
            readings.append(value)

    ticker = CountdownTicker(scheduler, on_tick=on_tick, interval=0.01)
    ticker.attach()

    try:
        # Nothing pending: one READY and done
        assert ticker.start()
        assert wait_for(lambda: readings == [READY])
        assert wait_for(lambda: not ticker.is_running())
        with lock:
            assert readings == [READY]
            readings.clear()
        print("✓ Idle ticker reports ready and stops")

        scheduler.record_event("Citron")
        assert wait_for(lambda: len(readings) >= 3)
        assert ticker.is_running()
        assert not ticker.start(), "Already running"
        with lock:
            assert all(r == timedelta(minutes=20) for r in readings)
        print("✓ Record starts the ticker")

        clock.advance(minutes=21)
        assert wait_for(lambda: READY in readings)
        assert wait_for(lambda: not ticker.is_running())
        with lock:
            assert readings[-1] is READY
            assert readings.count(READY) == 1
            readings.clear()
        print("✓ Ticker stops itself once ready")

        scheduler.record_event("Cassis")
        assert wait_for(ticker.is_running)
        print("✓ Next record restarts it")

        ticker.stop()
        assert not ticker.is_running()
        with lock:
            count = len(readings)
        time.sleep(0.1)
        with lock:
            assert len(readings) == count, "No ticks after stop"
        print("✓ stop() cancels ticking")

        ticker.stop()
    finally:
        ticker.stop()
        scheduler.shutdown()

    print("\n✅ Ticker lifecycle test PASSED")


def test_ticker_resumes_after_recovery():
    """A recovered countdown starts the ticker"""
    print("\n" + "="*70)
    print("TEST 3: Resume After Recovery")
    print("="*70)

    gateway = InMemoryGateway()
    gateway.entries = [{'flavor': 'Pêche', 'timestamp': '2024-01-01T09:50:00.000Z'}]
    gateway.next_time = "2024-01-01T10:10:00.000Z"

    scheduler = ReminderScheduler(gateway, RecordingNotifier(), TrackerConfig(), clock=FakeClock(T0))
    readings = []
    ticker = CountdownTicker(scheduler, on_tick=readings.append, interval=0.01)
    ticker.attach()

    try:
        scheduler.recover()
        assert wait_for(lambda: len(readings) >= 1)
        assert readings[0] == timedelta(minutes=10)
        assert format_remaining(readings[0]) == "10:00"
        print("✓ Countdown display resumes")
    finally:
        ticker.stop()
        scheduler.shutdown()

    print("\n✅ Resume after recovery test PASSED")


def run_all_tests():
    """Run all ticker tests"""
    test_format_remaining()
    test_ticker_lifecycle()
    test_ticker_resumes_after_recovery()
    print("\n✅ ALL TICKER TESTS PASSED")


if __name__ == "__main__":
    run_all_tests()
