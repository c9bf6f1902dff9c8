"""Timer - duration statistics, percentile estimates and throughput.

Count, mean, standard deviation, min and max are exact: they are kept with
Welford's online algorithm and never depend on which samples the reservoir
retained. Percentiles are estimated from the reservoir.
"""

import asyncio
import math
import time
from typing import Callable, Dict, Iterable, Optional

from .meter import Meter
from .reservoir import ExponentiallyDecayingReservoir

DEFAULT_PERCENTILES = (0.01, 0.25, 0.5, 0.75, 0.99, 0.999)


class Timer:
    """Aggregates durations for a single series."""

    def __init__(
        self,
        reservoir: Optional[ExponentiallyDecayingReservoir] = None,
        meter: Optional[Meter] = None,
        clock: Callable[[], float] = time.monotonic,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        self.reservoir = reservoir or ExponentiallyDecayingReservoir(clock=clock)
        self.meter = meter or Meter(clock=clock, loop=loop)

        self._count = 0
        self._mean = 0.0
        self._m2 = 0.0  # Sum of squared differences from the mean
        self._min: Optional[float] = None
        self._max: Optional[float] = None

    def update(self, duration: float) -> None:
        """Record one duration."""
        if duration < 0:
            raise ValueError(f"Duration must be non-negative, got {duration}")

        if self._min is None or duration < self._min:
            self._min = duration
        if self._max is None or duration > self._max:
            self._max = duration

        # Welford's online algorithm for mean and variance
        self._count += 1
        delta = duration - self._mean
        self._mean += delta / self._count
        delta2 = duration - self._mean
        self._m2 += delta * delta2

        self.reservoir.update(duration)
        self.meter.mark(1)

    def count(self) -> int:
        return self._count

    def min(self) -> float:
        return self._min if self._min is not None else 0

    def max(self) -> float:
        return self._max if self._max is not None else 0

    def mean(self) -> float:
        return self._mean if self._count > 0 else 0.0

    def variance(self) -> float:
        """Sample variance (divisor n - 1)."""
        if self._count < 2:
            return 0.0
        return self._m2 / (self._count - 1)

    def std_dev(self) -> float:
        return math.sqrt(self.variance())

    def percentiles(self, fractions: Iterable[float] = DEFAULT_PERCENTILES) -> Dict[float, float]:
        """Estimate percentiles from the reservoir.

        Args:
            fractions: Values in [0, 1], e.g. 0.99 for the 99th percentile

        Returns:
            Mapping of each requested fraction to its estimate, 0 when the
            reservoir is empty
        """
        values = sorted(self.reservoir.values())
        size = len(values)
        result: Dict[float, float] = {}
        for fraction in fractions:
            if size == 0:
                result[fraction] = 0
                continue
            rank = math.ceil(fraction * size) - 1
            rank = min(max(rank, 0), size - 1)
            result[fraction] = values[rank]
        return result

    def one_minute_rate(self) -> float:
        return self.meter.one_minute_rate()

    def five_minute_rate(self) -> float:
        return self.meter.five_minute_rate()

    def fifteen_minute_rate(self) -> float:
        return self.meter.fifteen_minute_rate()

    def mean_rate(self) -> float:
        return self.meter.mean_rate()

    def stop(self) -> None:
        """Cancel the background tick of the embedded meter."""
        self.meter.stop()
