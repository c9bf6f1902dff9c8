"""Meter - event counts and exponentially weighted moving average rates.

Rates are reported per second. The 1, 5 and 15 minute rates are EWMAs that
are recomputed every tick interval; they read 0 until the first tick.
"""

import asyncio
import math
import time
from typing import Callable, Optional

from instruments.core.config import settings
from .ticker import Ticker

ONE_MINUTE = 60.0
FIVE_MINUTES = 5 * ONE_MINUTE
FIFTEEN_MINUTES = 15 * ONE_MINUTE


class EWMA:
    """Exponentially weighted moving average over a fixed window."""

    def __init__(self, window: float, interval: float):
        self.window = window
        self.interval = interval
        self.alpha = 1.0 - math.exp(-interval / window)
        self.rate = 0.0

    def tick(self, count: int) -> None:
        instant_rate = count / self.interval
        self.rate += self.alpha * (instant_rate - self.rate)

    def decay(self, ticks: int) -> None:
        """Apply ``ticks`` idle ticks at once."""
        self.rate *= (1.0 - self.alpha) ** ticks


class Meter:
    """Tracks how many times something happened and how fast.

    Inside a running asyncio loop the EWMAs are advanced by a background
    Ticker. Without a live one (no loop at creation, or the loop has since
    closed) elapsed ticks are caught up on ``mark()`` and on every read, so
    synchronous callers still see decaying rates.
    """

    def __init__(
        self,
        tick_interval: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        self.tick_interval = tick_interval if tick_interval is not None else settings.METER_TICK_INTERVAL
        self._clock = clock
        self.count = 0
        self.created_at = clock()
        self._last_tick = self.created_at
        self._uncounted = 0

        self._m1 = EWMA(ONE_MINUTE, self.tick_interval)
        self._m5 = EWMA(FIVE_MINUTES, self.tick_interval)
        self._m15 = EWMA(FIFTEEN_MINUTES, self.tick_interval)

        self.ticker = Ticker(self.tick_interval, self._background_tick, loop=loop)
        self.ticker.start()

    def mark(self, n: int = 1) -> None:
        self._tick_if_necessary()
        self.count += n
        self._uncounted += n

    def tick(self) -> None:
        """Fold the marks since the previous tick into every EWMA."""
        count = self._uncounted
        self._uncounted = 0
        self._m1.tick(count)
        self._m5.tick(count)
        self._m15.tick(count)

    def _background_tick(self) -> None:
        self._last_tick = self._clock()
        self.tick()

    def _tick_if_necessary(self) -> None:
        if self.ticker.stopped or self.ticker.scheduled:
            return
        now = self._clock()
        age = now - self._last_tick
        if age < self.tick_interval:
            return
        ticks = int(age // self.tick_interval)
        self._last_tick += ticks * self.tick_interval
        # Marks since the last tick land in the first interval, the rest were idle
        self.tick()
        if ticks > 1:
            for ewma in (self._m1, self._m5, self._m15):
                ewma.decay(ticks - 1)

    def one_minute_rate(self) -> float:
        self._tick_if_necessary()
        return self._m1.rate

    def five_minute_rate(self) -> float:
        self._tick_if_necessary()
        return self._m5.rate

    def fifteen_minute_rate(self) -> float:
        self._tick_if_necessary()
        return self._m15.rate

    def mean_rate(self) -> float:
        if self.count == 0:
            return 0.0
        elapsed = self._clock() - self.created_at
        if elapsed <= 0:
            return 0.0
        return self.count / elapsed

    @property
    def ticking(self) -> bool:
        """True while a background tick is scheduled for this meter."""
        return self.ticker.scheduled

    def stop(self) -> None:
        """Cancel the background tick."""
        self.ticker.stop()
