"""
tests/test_scheduler.py
Day-boundary scheduler: once-per-day firing, multi-day catch-up,
concurrent checks, listener isolation, worker lifecycle.
"""

import threading
import time
from datetime import date, datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

import pytest

from touchpoint.scheduler import DayBoundaryScheduler, seconds_until_next_midnight

D = date(2025, 1, 10)


def _at(day: date, hour: int = 9, minute: int = 0) -> datetime:
    return datetime(day.year, day.month, day.day, hour, minute)


class _Clock:
    """Settable clock shared with the worker thread."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


# ── CHECK ────────────────────────────────────────────────────

class TestCheck:
    def test_initial_date_is_today_so_no_spurious_fire(self):
        callback = MagicMock()
        scheduler = DayBoundaryScheduler(callback=callback, clock=_Clock(_at(D, 23, 59)))
        assert scheduler.last_fired_date == D
        assert scheduler.check() is False
        callback.assert_not_called()

    def test_next_day_fires_once(self):
        callback = MagicMock()
        clock = _Clock(_at(D, 23, 59))
        scheduler = DayBoundaryScheduler(callback=callback, clock=clock)
        clock.now = _at(D + timedelta(days=1), 0, 0)
        assert scheduler.check() is True
        assert scheduler.check() is False
        assert callback.call_count == 1

    def test_multi_day_gap_fires_once_and_catches_up(self):
        callback = MagicMock()
        scheduler = DayBoundaryScheduler(callback=callback, initial_date=D)
        assert scheduler.check(_at(D + timedelta(days=3))) is True
        assert callback.call_count == 1
        assert scheduler.last_fired_date == D + timedelta(days=3)

    def test_same_day_is_noop(self):
        callback = MagicMock()
        scheduler = DayBoundaryScheduler(callback=callback, initial_date=D)
        assert scheduler.check(_at(D, 0, 1)) is False
        assert scheduler.check(_at(D, 23, 59)) is False
        callback.assert_not_called()

    def test_clock_moving_backwards_never_fires(self):
        callback = MagicMock()
        scheduler = DayBoundaryScheduler(callback=callback, initial_date=D)
        assert scheduler.check(_at(D - timedelta(days=1))) is False
        assert scheduler.last_fired_date == D
        callback.assert_not_called()

    def test_uses_configured_zone(self):
        plus_ten = timezone(timedelta(hours=10))
        callback = MagicMock()
        scheduler = DayBoundaryScheduler(callback=callback, tz=plus_ten, initial_date=D)
        # 15:00 UTC on the 10th is already the 11th at UTC+10
        assert scheduler.check(datetime(2025, 1, 10, 15, 0, tzinfo=timezone.utc)) is True

    def test_aware_clock_uses_its_own_zone_without_tz(self):
        plus_ten = timezone(timedelta(hours=10))
        callback = MagicMock()
        scheduler = DayBoundaryScheduler(
            callback=callback, clock=_Clock(datetime(2025, 1, 10, 23, 0, tzinfo=plus_ten))
        )
        assert scheduler.last_fired_date == D
        # 01:00 at +10 is a new day there whatever the host zone is
        assert scheduler.check(datetime(2025, 1, 11, 1, 0, tzinfo=plus_ten)) is True
        callback.assert_called_once()
        assert scheduler.last_fired_date == D + timedelta(days=1)

    def test_notify_resume_checks_with_clock(self):
        callback = MagicMock()
        clock = _Clock(_at(D))
        scheduler = DayBoundaryScheduler(callback=callback, clock=clock)
        clock.now = _at(D + timedelta(days=2))
        assert scheduler.notify_resume() is True
        callback.assert_called_once()

    def test_concurrent_checks_fire_exactly_once(self):
        calls = []
        scheduler = DayBoundaryScheduler(callback=lambda: calls.append(1), initial_date=D)
        barrier = threading.Barrier(8)
        results = []

        def worker():
            barrier.wait()
            results.append(scheduler.check(_at(D + timedelta(days=1))))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=5)

        assert len(calls) == 1
        assert results.count(True) == 1
        assert scheduler.last_fired_date == D + timedelta(days=1)


# ── LISTENERS ────────────────────────────────────────────────

class TestListeners:
    def test_failing_listener_does_not_block_others(self):
        second = MagicMock()
        scheduler = DayBoundaryScheduler(
            callback=MagicMock(side_effect=RuntimeError("boom")), initial_date=D
        )
        scheduler.add_listener(second)
        assert scheduler.check(_at(D + timedelta(days=1))) is True
        second.assert_called_once()
        assert scheduler.last_fired_date == D + timedelta(days=1)

    def test_removed_listener_not_called(self):
        listener = MagicMock()
        scheduler = DayBoundaryScheduler(initial_date=D)
        scheduler.add_listener(listener)
        scheduler.remove_listener(listener)
        scheduler.check(_at(D + timedelta(days=1)))
        listener.assert_not_called()


# ── LIFECYCLE ────────────────────────────────────────────────

class TestLifecycle:
    def test_rejects_non_positive_poll_interval(self):
        with pytest.raises(ValueError):
            DayBoundaryScheduler(poll_interval=0)

    def test_stopped_scheduler_never_fires(self):
        callback = MagicMock()
        scheduler = DayBoundaryScheduler(callback=callback, initial_date=D)
        scheduler.stop()
        assert scheduler.check(_at(D + timedelta(days=1))) is False
        callback.assert_not_called()

    def test_stop_waits_for_running_fire_and_skips_the_rest(self):
        entered = threading.Event()
        release = threading.Event()
        late    = MagicMock()

        def slow_listener():
            entered.set()
            release.wait(timeout=5)

        scheduler = DayBoundaryScheduler(callback=slow_listener, initial_date=D)
        scheduler.add_listener(late)

        firing = threading.Thread(target=scheduler.check, args=(_at(D + timedelta(days=1)),))
        firing.start()
        assert entered.wait(timeout=2)

        stopper = threading.Thread(target=scheduler.stop)
        stopper.start()
        stopper.join(timeout=0.1)
        assert stopper.is_alive()

        release.set()
        firing.join(timeout=5)
        stopper.join(timeout=5)
        assert not stopper.is_alive()
        late.assert_not_called()

    def test_stop_from_inside_listener_does_not_deadlock(self):
        holder = {}
        second = MagicMock()
        scheduler = DayBoundaryScheduler(callback=lambda: holder["s"].stop(timeout=1), initial_date=D)
        holder["s"] = scheduler
        scheduler.add_listener(second)
        assert scheduler.check(_at(D + timedelta(days=1))) is True
        second.assert_not_called()

    def test_worker_fires_on_day_change_and_stops(self):
        fired = threading.Event()
        clock = _Clock(_at(D, 23, 59))
        scheduler = DayBoundaryScheduler(callback=fired.set, clock=clock, poll_interval=0.01)

        scheduler.start()
        try:
            assert scheduler.running
            clock.now = _at(D + timedelta(days=1), 0, 0)
            assert fired.wait(timeout=2.0)
        finally:
            scheduler.stop()

        assert not scheduler.running
        assert scheduler.last_fired_date == D + timedelta(days=1)

    def test_no_fire_after_stop(self):
        callback = MagicMock()
        clock = _Clock(_at(D))
        scheduler = DayBoundaryScheduler(callback=callback, clock=clock, poll_interval=0.01)
        scheduler.start()
        scheduler.stop()
        clock.now = _at(D + timedelta(days=1))
        time.sleep(0.05)
        callback.assert_not_called()

    def test_context_manager(self):
        scheduler = DayBoundaryScheduler(clock=_Clock(_at(D)), poll_interval=0.01)
        with scheduler:
            assert scheduler.running
        assert not scheduler.running

    def test_start_twice_keeps_one_worker(self):
        scheduler = DayBoundaryScheduler(clock=_Clock(_at(D)), poll_interval=0.01)
        scheduler.start()
        try:
            worker = scheduler._thread
            scheduler.start()
            assert scheduler._thread is worker
        finally:
            scheduler.stop()


# ── WAKE DELAY ───────────────────────────────────────────────

class TestWakeDelay:
    def test_seconds_until_midnight_naive(self):
        assert seconds_until_next_midnight(datetime(2025, 1, 10, 23, 59, 30)) == 30.0

    def test_seconds_until_midnight_aware(self):
        tz = timezone(timedelta(hours=-5))
        assert seconds_until_next_midnight(datetime(2025, 1, 10, 23, 0, tzinfo=tz)) == 3600.0

    def test_seconds_until_midnight_aware_far_from_host_zone(self):
        plus_ten = timezone(timedelta(hours=10))
        assert seconds_until_next_midnight(datetime(2025, 1, 10, 23, 30, tzinfo=plus_ten)) == 1800.0

    def test_seconds_until_midnight_in_given_zone(self):
        utc_noon = datetime(2025, 1, 10, 12, 0, tzinfo=timezone.utc)
        assert seconds_until_next_midnight(utc_noon, timezone(timedelta(hours=10))) == 7200.0

    def test_delay_capped_by_poll_interval(self):
        scheduler = DayBoundaryScheduler(clock=_Clock(_at(D, 9)), poll_interval=60)
        assert scheduler._next_delay() == 60

    def test_delay_targets_midnight_when_close(self):
        scheduler = DayBoundaryScheduler(
            clock=_Clock(datetime(2025, 1, 10, 23, 59, 50)), poll_interval=60
        )
        assert scheduler._next_delay() == pytest.approx(11.0)

    def test_falls_back_to_poll_when_midnight_unavailable(self):
        scheduler = DayBoundaryScheduler(clock=_Clock(_at(D)), poll_interval=42)
        with patch("touchpoint.scheduler.seconds_until_next_midnight",
                   side_effect=OverflowError("bad date")):
            assert scheduler._next_delay() == 42
