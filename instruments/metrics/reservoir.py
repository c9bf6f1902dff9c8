"""Exponentially decaying reservoir for streaming percentile estimates.

Forward-decay priority sampling: each sample gets the priority
``exp(alpha * (t - t0)) / u`` with ``u`` drawn uniformly from (0, 1], so
recent samples are more likely to survive. The reservoir keeps the
``size`` highest priorities in a min-heap. Priorities are rescaled
periodically so the exponent stays bounded in long-running processes.
"""

import heapq
import itertools
import math
import random
import time
from typing import Callable, List, Optional, Tuple

from instruments.core.config import settings

RESCALE_INTERVAL = 60.0 * 60.0  # one hour


class ExponentiallyDecayingReservoir:
    """Bounded sample of recent values biased towards recency."""

    def __init__(
        self,
        size: Optional[int] = None,
        alpha: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
        rng: Optional[random.Random] = None,
        rescale_interval: float = RESCALE_INTERVAL,
    ):
        self.size = size if size is not None else settings.RESERVOIR_SIZE
        self.alpha = alpha if alpha is not None else settings.RESERVOIR_ALPHA
        if self.size <= 0:
            raise ValueError(f"Reservoir size must be positive, got {self.size}")
        self.rescale_interval = rescale_interval
        self._clock = clock
        self._rng = rng or random.Random()
        # (priority, sequence, value); sequence breaks priority ties
        self._heap: List[Tuple[float, int, float]] = []
        self._sequence = itertools.count()
        self._start_time = clock()
        self._next_rescale = self._start_time + rescale_interval

    def __len__(self) -> int:
        return len(self._heap)

    def update(self, value: float) -> None:
        now = self._clock()
        self._rescale_if_needed(now)

        u = 1.0 - self._rng.random()
        priority = math.exp(self.alpha * (now - self._start_time)) / u
        entry = (priority, next(self._sequence), value)

        if len(self._heap) < self.size:
            heapq.heappush(self._heap, entry)
        elif priority > self._heap[0][0]:
            heapq.heapreplace(self._heap, entry)

    def _rescale_if_needed(self, now: float) -> None:
        if now < self._next_rescale:
            return
        old_start = self._start_time
        self._start_time = now
        self._next_rescale = now + self.rescale_interval
        factor = math.exp(-self.alpha * (now - old_start))
        # Scaling by a positive constant keeps the heap ordered
        self._heap = [(p * factor, seq, v) for p, seq, v in self._heap]

    def values(self) -> List[float]:
        """Snapshot of the retained sample values, in no particular order."""
        return [value for _, _, value in self._heap]
