"""PlaybackClock tests against the real background thread"""

import threading
import time

import pytest

from arif_music.playback.clock import PlaybackClock


def wait_until(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


def clock_threads():
    return [t for t in threading.enumerate() if t.name == "arif-playback-clock" and t.is_alive()]


class Counter:
    def __init__(self):
        self.count = 0
        self.lock = threading.Lock()

    def __call__(self):
        with self.lock:
            self.count += 1


@pytest.fixture
def clock():
    clock = PlaybackClock(interval_ms=10)
    yield clock
    clock.stop()
    wait_until(lambda: not clock_threads())


class TestPlaybackClock:

    def test_not_running_before_start(self, clock):
        assert clock.running is False
        clock.stop()
        assert clock.running is False

    def test_ticks_while_running(self, clock):
        counter = Counter()
        clock.start(counter)

        assert clock.running is True
        assert wait_until(lambda: counter.count >= 3)

    def test_stop_halts_ticks(self, clock):
        counter = Counter()
        clock.start(counter)
        assert wait_until(lambda: counter.count >= 1)

        clock.stop()

        assert clock.running is False
        assert wait_until(lambda: not clock_threads())
        stopped_at = counter.count
        time.sleep(0.05)
        assert counter.count == stopped_at

    def test_start_while_running_keeps_one_thread(self, clock):
        first, second = Counter(), Counter()
        clock.start(first)
        clock.start(second)

        assert wait_until(lambda: first.count >= 2)
        assert second.count == 0
        assert len(clock_threads()) == 1

    def test_restart_leaves_one_ticking_thread(self, clock):
        old, new = Counter(), Counter()
        clock.start(old)
        assert wait_until(lambda: old.count >= 1)

        clock.stop()
        clock.start(new)

        assert clock.running is True
        assert wait_until(lambda: len(clock_threads()) == 1)
        old_count = old.count
        assert wait_until(lambda: new.count >= 3)
        assert old.count == old_count

    def test_stop_from_callback(self, clock):
        counter = Counter()

        def tick():
            counter()
            clock.stop()

        clock.start(tick)

        assert wait_until(lambda: not clock_threads())
        assert counter.count == 1
        assert clock.running is False

    def test_failing_callback_stops_clock(self, clock, caplog):
        def tick():
            raise RuntimeError("boom")

        clock.start(tick)

        assert wait_until(lambda: not clock.running)
        assert wait_until(lambda: not clock_threads())
        assert "Playback clock tick failed: boom" in caplog.text
