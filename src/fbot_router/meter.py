# ABOUTME: Thread-safe rolling cost accumulator for F-Bot model calls
# ABOUTME: Keeps hourly/daily/monthly totals with scheduled resets and threshold checks

"""
F-Bot Cost Meter.

Accumulates the cost of every model call into three counters:
- hourly: reset every 3600s from start()
- daily: reset at local midnight, then every 86400s
- monthly: reset on the first of the month

All counter access goes through one lock, so a reset and a concurrent
record() are serialized: one of them is applied first, never half of each.
"""

import logging
import math
import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

logger = logging.getLogger(__name__)

PERIODS = ("hourly", "daily", "monthly")

HOUR_SECONDS = 3600.0
DAY_SECONDS = 86400.0
FIXED_MONTH_SECONDS = 30 * DAY_SECONDS

MONTHLY_RESET_MODES = ("calendar", "fixed")


@dataclass(frozen=True)
class CostTotals:
    """Snapshot of the three counters."""

    hourly: float = 0.0
    daily: float = 0.0
    monthly: float = 0.0

    def get(self, period: str) -> float:
        return float(getattr(self, period))

    def to_dict(self) -> dict[str, float]:
        return {"hourly": self.hourly, "daily": self.daily, "monthly": self.monthly}


@dataclass(frozen=True)
class ThresholdBreach:
    """A counter that has gone over its configured limit."""

    period: str
    current_cost: float
    threshold: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "period": self.period,
            "current_cost": self.current_cost,
            "threshold": self.threshold,
        }


def seconds_until_midnight(now: datetime) -> float:
    """Seconds from `now` to the next local midnight (a full day at exactly midnight)."""
    next_midnight = (now + timedelta(days=1)).replace(hour=0, minute=0, second=0, microsecond=0)
    return (next_midnight - now).total_seconds()


def seconds_until_next_month(now: datetime) -> float:
    """Seconds from `now` to 00:00 on the first day of the next month."""
    if now.month == 12:
        first = now.replace(year=now.year + 1, month=1, day=1)
    else:
        first = now.replace(month=now.month + 1, day=1)
    first = first.replace(hour=0, minute=0, second=0, microsecond=0)
    return (first - now).total_seconds()


class CostMeter:
    """Rolling cost counters shared by concurrent request handlers."""

    def __init__(
        self,
        monthly_reset: str = "calendar",
        clock: Callable[[], datetime] = datetime.now,
    ):
        if monthly_reset not in MONTHLY_RESET_MODES:
            raise ValueError(
                f"monthly_reset must be one of {MONTHLY_RESET_MODES}, got {monthly_reset!r}"
            )
        self.monthly_reset = monthly_reset
        self._clock = clock
        self._lock = threading.Lock()
        self._totals = {period: 0.0 for period in PERIODS}

        self._timer_lock = threading.Lock()
        self._timers: dict[str, threading.Timer] = {}
        self._running = False
        # Bumped on every start() so timers from an earlier run never reschedule
        self._generation = 0

    def record(self, cost: float) -> None:
        """Add a call's cost to all three counters.

        Raises:
            ValueError: If cost is negative, NaN or infinite
        """
        if not math.isfinite(cost) or cost < 0:
            raise ValueError(f"cost must be a finite non-negative number, got {cost}")
        with self._lock:
            for period in PERIODS:
                self._totals[period] += cost

    def current_totals(self) -> CostTotals:
        """Return a consistent snapshot of all counters."""
        with self._lock:
            return CostTotals(**self._totals)

    def reset(self, period: str) -> None:
        """Zero a single counter."""
        if period not in PERIODS:
            raise ValueError(f"Unknown period: {period!r}")
        with self._lock:
            previous = self._totals[period]
            self._totals[period] = 0.0
        logger.info(f"Reset {period} cost counter (was {previous:.6f})")

    def check_thresholds(self, thresholds: Mapping[str, float | None]) -> list[ThresholdBreach]:
        """List every counter that strictly exceeds its threshold.

        Periods missing from `thresholds` (or set to None) are not checked.
        Does not modify any counter.
        """
        totals = self.current_totals()
        breaches = []
        for period in PERIODS:
            threshold = thresholds.get(period)
            if threshold is None:
                continue
            current = totals.get(period)
            if current > threshold:
                breaches.append(
                    ThresholdBreach(period=period, current_cost=current, threshold=threshold)
                )
        return breaches

    # Scheduled resets

    @property
    def running(self) -> bool:
        return self._running

    def next_delay(self, period: str, first: bool) -> float:
        """Seconds until the next reset of `period`.

        The first daily/monthly reset is aligned to the wall-clock boundary.
        Afterwards daily repeats every 86400s and monthly either recomputes
        the next first-of-month ("calendar") or repeats every 30 days ("fixed").
        """
        if period == "hourly":
            return HOUR_SECONDS
        if period == "daily":
            return seconds_until_midnight(self._clock()) if first else DAY_SECONDS
        if period == "monthly":
            if first or self.monthly_reset == "calendar":
                return seconds_until_next_month(self._clock())
            return FIXED_MONTH_SECONDS
        raise ValueError(f"Unknown period: {period!r}")

    def start(self) -> None:
        """Start the reset timers. Calling start() twice is a no-op."""
        with self._timer_lock:
            if self._running:
                return
            self._running = True
            self._generation += 1
            for period in PERIODS:
                self._schedule(period, self.next_delay(period, first=True))
        logger.debug("Cost meter reset timers started")

    def stop(self) -> None:
        """Cancel all pending reset timers."""
        with self._timer_lock:
            self._running = False
            for timer in self._timers.values():
                timer.cancel()
            self._timers.clear()
        logger.debug("Cost meter reset timers stopped")

    def _schedule(self, period: str, delay: float) -> None:
        # Caller holds _timer_lock
        timer = threading.Timer(delay, self._fire, args=(period, self._generation))
        timer.daemon = True
        self._timers[period] = timer
        timer.start()

    def _fire(self, period: str, generation: int) -> None:
        self.reset(period)
        with self._timer_lock:
            if self._running and generation == self._generation:
                self._schedule(period, self.next_delay(period, first=False))
