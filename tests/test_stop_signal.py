"""Tests for the run stop signal."""

import pytest

from factory_scheduler.stop_signal import StopSignal, never_stop


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


class TestStopSignal:
    """Tests for timeout and abort detection."""

    def test_never_stop(self):
        """The default signal never trips."""
        stop = never_stop()

        assert not stop.is_set()
        assert stop.reason() is None
        assert stop.remaining_seconds() is None

    def test_timeout(self):
        """The signal trips once the time limit has elapsed."""
        clock = FakeClock()
        stop = StopSignal(time_limit_seconds=5.0, clock=clock)

        clock.now += 2.0
        assert stop.remaining_seconds() == pytest.approx(3.0)
        assert not stop.is_set()

        clock.now += 3.0
        assert stop.reason() == "timeout"
        assert stop.remaining_seconds() == 0.0

    def test_abort_wins_over_timeout(self):
        """An external abort is reported even after the time limit."""
        clock = FakeClock()
        stop = StopSignal(time_limit_seconds=1.0, should_stop=lambda: True, clock=clock)
        clock.now += 10.0

        assert stop.reason() == "aborted"

    def test_abort_callback_polled(self):
        """The abort callback is read on every check."""
        requested = []
        stop = StopSignal(should_stop=lambda: bool(requested))

        assert not stop.is_set()
        requested.append(True)
        assert stop.is_set()
