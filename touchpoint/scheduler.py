"""
touchpoint/scheduler.py
Day-boundary scheduler. Fires its listeners once per local calendar-day
transition, however long the process slept in between.

STATE MACHINE:
  Idle   constructed; last_fired_date = today; no worker yet
  Armed  worker thread waiting on the stop event
  Check  on every wake (midnight wake, poll wake, resume event):
             today >  last_fired_date → fire once, last_fired_date = today
             today <= last_fired_date → no-op

WAKE STRATEGY:
  The worker sleeps min(seconds to next local midnight + 1s, poll_interval).
  Event.wait() runs on the monotonic clock, which does not advance while
  the host is suspended, so the poll bound is what corrects a midnight wake
  that was stretched by sleep. If the midnight arithmetic fails the worker
  drops to the plain poll interval.

CONCURRENCY:
  check() may be called from the worker and from any other thread at the
  same time. The compare-and-set of last_fired_date is one locked step;
  listeners run outside the lock, only on the thread that won the update.
  A gap of N days is one callback, never N.
  stop() waits for listeners already running on other threads; listeners
  not yet reached are skipped once stop() has been called.

The scheduler mutates no records. Listeners are expected to re-pull
and re-rank.
"""

from __future__ import annotations

import logging
import threading
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Callable, List, Optional, Set

from touchpoint.urgency import local_date

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 60.0
MIDNIGHT_SLACK_SEC    = 1.0

RefreshListener = Callable[[], None]


def seconds_until_next_midnight(now: datetime, tz: Optional[tzinfo] = None) -> float:
    """
    Wall-clock seconds from now until the next 00:00 in tz, else in the
    zone attached to now (naive: system local).
    """
    local_now = now.astimezone(tz) if tz is not None else now
    midnight = datetime.combine(
        local_now.date() + timedelta(days=1), time.min, tzinfo=local_now.tzinfo
    )
    return max(midnight.timestamp() - local_now.timestamp(), 0.0)


class DayBoundaryScheduler:
    """
    One instance per process. Create it, add listeners, start() it from
    whatever owns the main loop, stop() it on shutdown.

    Usage:
        scheduler = DayBoundaryScheduler(callback=view.redraw)
        with scheduler:
            run_main_loop()
    """

    def __init__(
        self,
        callback:      Optional[RefreshListener]   = None,
        clock:         Optional[Callable[[], datetime]] = None,
        tz:            Optional[tzinfo]            = None,
        poll_interval: float                       = DEFAULT_POLL_INTERVAL,
        initial_date:  Optional[date]              = None,
    ):
        if poll_interval <= 0:
            raise ValueError(f"poll_interval must be positive, got {poll_interval}")

        self.tz            = tz
        self.poll_interval = float(poll_interval)
        self._clock        = clock or (lambda: datetime.now(tz))
        self._listeners: List[RefreshListener] = [callback] if callback else []

        self._lock            = threading.Lock()
        self._fires_done      = threading.Condition(self._lock)
        self._firing: Set[int] = set()   # idents of threads inside _fire
        self._last_fired_date = initial_date or self._today()
        self._stop_event      = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._stopped         = False

    def _today(self, now: Optional[datetime] = None) -> date:
        moment = now or self._clock()
        return local_date(moment, self.tz or moment.tzinfo)

    # ── LISTENERS ────────────────────────────────────────────

    def add_listener(self, listener: RefreshListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: RefreshListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    # ── STATE ────────────────────────────────────────────────

    @property
    def last_fired_date(self) -> date:
        with self._lock:
            return self._last_fired_date

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    # ── CHECK ────────────────────────────────────────────────

    def check(self, now: Optional[datetime] = None) -> bool:
        """
        Compare today against last_fired_date and fire if a day has turned.
        Returns True only on the call that actually fired.
        """
        today = self._today(now)

        with self._lock:
            if self._stopped or today <= self._last_fired_date:
                return False
            previous              = self._last_fired_date
            self._last_fired_date = today
            listeners             = list(self._listeners)
            self._firing.add(threading.get_ident())

        logger.info(f"Day boundary crossed: {previous} → {today}")
        self._fire(listeners)
        return True

    def notify_resume(self) -> bool:
        """Hook for foreground/resume events. Same as an immediate check."""
        logger.debug("Resume event, checking day boundary")
        return self.check()

    def _fire(self, listeners: List[RefreshListener]) -> None:
        try:
            for listener in listeners:
                with self._lock:
                    if self._stopped:
                        logger.debug("Scheduler stopped mid-fire, skipping remaining listeners")
                        return
                try:
                    listener()
                except Exception:
                    logger.error("Refresh listener failed", exc_info=True)
        finally:
            with self._lock:
                self._firing.discard(threading.get_ident())
                self._fires_done.notify_all()

    # ── LIFECYCLE ────────────────────────────────────────────

    def start(self) -> None:
        if self.running:
            logger.debug("Scheduler already running")
            return
        with self._lock:
            self._stopped = False
        self._stop_event = threading.Event()
        self._thread = threading.Thread(
            target = self._run,
            args   = (self._stop_event,),
            name   = "day-boundary",
            daemon = True,
        )
        self._thread.start()
        logger.info(
            f"Day-boundary scheduler started | last_fired={self.last_fired_date} "
            f"| poll={self.poll_interval:g}s"
        )

    def stop(self, timeout: float = 5.0) -> None:
        """
        No listener fires after this returns. Waits for listeners already
        running on other threads, then joins the worker thread.
        """
        me = threading.get_ident()
        with self._lock:
            self._stopped = True
            if not self._fires_done.wait_for(lambda: not (self._firing - {me}), timeout=timeout):
                logger.warning("Refresh listeners still running after stop timeout")
        self._stop_event.set()
        thread, self._thread = self._thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=timeout)
            if thread.is_alive():
                logger.warning("Day-boundary worker did not exit within timeout")
        logger.info("Day-boundary scheduler stopped")

    def __enter__(self) -> "DayBoundaryScheduler":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    # ── WORKER ───────────────────────────────────────────────

    def _next_delay(self) -> float:
        try:
            until_midnight = seconds_until_next_midnight(self._clock(), self.tz)
        except (ValueError, OverflowError, OSError) as e:
            logger.warning(f"Midnight wake unavailable ({e}), polling every {self.poll_interval:g}s")
            return self.poll_interval
        return min(until_midnight + MIDNIGHT_SLACK_SEC, self.poll_interval)

    def _run(self, stop_event: threading.Event) -> None:
        while not stop_event.is_set():
            delay = self._next_delay()
            logger.debug(f"Next day-boundary check in {delay:.1f}s")
            if stop_event.wait(delay):
                break
            try:
                self.check()
            except Exception:
                logger.error("Day-boundary check failed", exc_info=True)
