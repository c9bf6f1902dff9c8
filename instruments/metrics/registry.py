"""MetricsRegistry - In-memory state for all work, event and gauge metrics.

The registry owns every Counter, Meter and Timer it creates, and therefore
every background Ticker behind them. Entries are created lazily on first
touch and torn down explicitly through the release methods or shutdown().
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Union, TYPE_CHECKING

from instruments.core.config import settings
from instruments.core.logging_config import get_logger
from .counter import Counter
from .instance import SinkSlot, get_sink_slot
from .matching import Matcher, match
from .meter import Meter
from .models import (
    WorkMetricModel, EventMetricModel, GaugeMetricModel, MetricsSnapshotModel
)
from .reservoir import ExponentiallyDecayingReservoir
from .sink import ISink
from .timer import DEFAULT_PERCENTILES, Timer

if TYPE_CHECKING:
    from .work import IWork

logger = get_logger(__name__)

Number = Union[int, float]


@dataclass
class WorkEntry:
    """Aggregators behind one work label."""
    active: Counter
    timer: Timer
    error_meter: Meter

    def meters(self) -> List[Meter]:
        return [self.timer.meter, self.error_meter]

    def stop(self) -> None:
        self.timer.stop()
        self.error_meter.stop()


class MetricsRegistry:
    """Label-keyed store for the three metric categories.

    Record operations update the in-memory aggregate first and then forward
    the update to the active sink. Query operations only read aggregates and
    never touch the sink.
    """

    def __init__(
        self,
        sink_slot: Optional[SinkSlot] = None,
        matcher: Matcher = match,
        clock: Callable[[], float] = time.monotonic,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        tick_interval: Optional[float] = None,
        reservoir_size: Optional[int] = None,
        reservoir_alpha: Optional[float] = None,
    ):
        self.sink_slot = sink_slot if sink_slot is not None else get_sink_slot()
        self.matcher = matcher
        self.clock = clock
        self.loop = loop
        self.tick_interval = tick_interval if tick_interval is not None else settings.METER_TICK_INTERVAL
        self.reservoir_size = reservoir_size if reservoir_size is not None else settings.RESERVOIR_SIZE
        self.reservoir_alpha = reservoir_alpha if reservoir_alpha is not None else settings.RESERVOIR_ALPHA

        # Work metrics keyed by label
        self.work_metrics: Dict[str, WorkEntry] = {}

        # Event meters keyed by label
        self.event_metrics: Dict[str, Meter] = {}

        # Gauge values keyed by label (latest value only)
        self.gauges: Dict[str, Number] = {}

    @property
    def sink(self) -> ISink:
        """The currently active sink."""
        return self.sink_slot.get()

    # ------------------------------------------------------------------
    # Entry creation
    # ------------------------------------------------------------------

    def _new_meter(self) -> Meter:
        return Meter(tick_interval=self.tick_interval, clock=self.clock, loop=self.loop)

    def _new_timer(self) -> Timer:
        reservoir = ExponentiallyDecayingReservoir(
            size=self.reservoir_size,
            alpha=self.reservoir_alpha,
            clock=self.clock,
        )
        return Timer(reservoir=reservoir, meter=self._new_meter(), clock=self.clock)

    def ensure_work_metric(self, label: str) -> WorkEntry:
        """Get or create the work entry for ``label``."""
        entry = self.work_metrics.get(label)
        if entry is None:
            entry = WorkEntry(
                active=Counter(),
                timer=self._new_timer(),
                error_meter=self._new_meter(),
            )
            self.work_metrics[label] = entry
            logger.debug(f"Created work metric '{label}'")
        return entry

    def get_work_entry(self, label: str) -> WorkEntry:
        """Return the live entry for ``label``.

        Raises:
            KeyError: If the entry was never created or has been released
        """
        try:
            return self.work_metrics[label]
        except KeyError:
            raise KeyError(f"Work metric '{label}' not found (released or never created)") from None

    def ensure_event_metric(self, label: str) -> Meter:
        """Get or create the event meter for ``label``."""
        meter = self.event_metrics.get(label)
        if meter is None:
            meter = self._new_meter()
            self.event_metrics[label] = meter
            logger.debug(f"Created event metric '{label}'")
        return meter

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def measure_work(self, label: str, duration: Number, on_done=None) -> None:
        """Record a duration directly, skipping the active counter.

        Args:
            label: The label for the work
            duration: The duration of the work in milliseconds
            on_done: Optional completion callback for the forwarded update
        """
        self.ensure_work_metric(label).timer.update(duration)
        self.sink.increment_timer(label, duration, on_done)

    def record_event(self, label: str, count: Optional[int] = 1, on_done=None) -> None:
        """Record ``count`` occurrences of an event (1 when omitted).

        Raises:
            TypeError: If ``count`` is not an integer
        """
        if count is None:
            count = 1
        if isinstance(count, bool) or not isinstance(count, int):
            raise TypeError(f"Event count must be an integer, got {count!r}")
        self.ensure_event_metric(label).mark(count)
        self.sink.increment_counter(label, count, on_done)

    def set_gauge(self, label: str, value: Number, on_done=None) -> None:
        """Set a gauge to ``value``."""
        self.gauges[label] = value
        self.sink.set_gauge(label, value, on_done)

    def work(self, label: str, enabled: Optional[bool] = None) -> "IWork":
        """Create a Work for ``label``, or a NullWork when disabled.

        Args:
            label: The label to track
            enabled: Overrides INSTRUMENTS_ENABLED when given
        """
        # Import here to avoid circular imports
        from .work import Work, NullWork

        if enabled is None:
            enabled = settings.INSTRUMENTS_ENABLED
        if enabled:
            return Work(label, registry=self)
        return NullWork(label, registry=self)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def has_work_metric(self, label: str) -> bool:
        return label in self.work_metrics

    def has_event_metric(self, label: str) -> bool:
        return label in self.event_metrics

    def has_gauge_metric(self, label: str) -> bool:
        return label in self.gauges

    def get_work_metric(self, label: str) -> WorkMetricModel:
        """Snapshot one work metric; all zeros when the label is unknown."""
        entry = self.work_metrics.get(label)
        if entry is None:
            return WorkMetricModel(label=label)

        timer = entry.timer
        errors = entry.error_meter
        pct = timer.percentiles(DEFAULT_PERCENTILES)
        return WorkMetricModel(
            label=label,
            ops_count=timer.count(),
            rate_1m=timer.one_minute_rate(),
            rate_5m=timer.five_minute_rate(),
            rate_15m=timer.fifteen_minute_rate(),
            mean_rate=timer.mean_rate(),
            min=timer.min(),
            max=timer.max(),
            mean_time=timer.mean(),
            std_dev=timer.std_dev(),
            pct_1=pct[0.01],
            pct_25=pct[0.25],
            pct_50=pct[0.5],
            pct_75=pct[0.75],
            pct_99=pct[0.99],
            pct_999=pct[0.999],
            active=entry.active.count,
            errors=errors.count,
            err_rate_1m=errors.one_minute_rate(),
            err_rate_5m=errors.five_minute_rate(),
            err_rate_15m=errors.fifteen_minute_rate(),
            err_mean_rate=errors.mean_rate(),
        )

    def get_work_metrics(self) -> List[WorkMetricModel]:
        return [self.get_work_metric(label) for label in list(self.work_metrics)]

    def find_work_metrics(self, pattern: str) -> List[str]:
        """Labels of work metrics matching the wildcard ``pattern``."""
        return self.matcher(pattern, list(self.work_metrics))

    def get_event_metric(self, label: str) -> EventMetricModel:
        """Snapshot one event metric; all zeros when the label is unknown."""
        meter = self.event_metrics.get(label)
        if meter is None:
            return EventMetricModel(label=label)

        return EventMetricModel(
            label=label,
            count=meter.count,
            rate_1m=meter.one_minute_rate(),
            rate_5m=meter.five_minute_rate(),
            rate_15m=meter.fifteen_minute_rate(),
            rate_mean=meter.mean_rate(),
        )

    def get_event_metrics(self) -> List[EventMetricModel]:
        return [self.get_event_metric(label) for label in list(self.event_metrics)]

    def find_event_metrics(self, pattern: str) -> List[str]:
        """Labels of event metrics matching the wildcard ``pattern``."""
        return self.matcher(pattern, list(self.event_metrics))

    def get_gauge_metric(self, label: str) -> GaugeMetricModel:
        """Snapshot one gauge; value 0 when the label is unknown."""
        return GaugeMetricModel(label=label, value=self.gauges.get(label) or 0)

    def get_gauge_metrics(self) -> List[GaugeMetricModel]:
        return [self.get_gauge_metric(label) for label in list(self.gauges)]

    def find_gauge_metrics(self, pattern: str) -> List[str]:
        """Labels of gauges matching the wildcard ``pattern``."""
        return self.matcher(pattern, list(self.gauges))

    def get_metrics(self) -> MetricsSnapshotModel:
        """Snapshot every category. Prefer the single-label getters when possible."""
        return MetricsSnapshotModel(
            work=self.get_work_metrics(),
            events=self.get_event_metrics(),
            gauges=self.get_gauge_metrics(),
        )

    def active_tickers(self) -> int:
        """Number of background ticks currently scheduled by this registry."""
        meters: List[Meter] = list(self.event_metrics.values())
        for entry in self.work_metrics.values():
            meters.extend(entry.meters())
        return sum(1 for meter in meters if meter.ticking)

    # ------------------------------------------------------------------
    # Release / shutdown
    # ------------------------------------------------------------------

    def release_work(self, label: str) -> None:
        """Stop the entry's tickers and forget the work metric."""
        entry = self.work_metrics.pop(label, None)
        if entry is None:
            logger.debug(f"release_work: no work metric '{label}'")
            return
        entry.stop()
        logger.debug(f"Released work metric '{label}'")

    def release_event(self, label: str) -> None:
        """Stop the meter's ticker and forget the event metric."""
        meter = self.event_metrics.pop(label, None)
        if meter is None:
            logger.debug(f"release_event: no event metric '{label}'")
            return
        meter.stop()
        logger.debug(f"Released event metric '{label}'")

    def release_gauge(self, label: str) -> None:
        if self.gauges.pop(label, None) is None:
            logger.debug(f"release_gauge: no gauge '{label}'")

    def shutdown(self, callback: Optional[Callable[[], None]] = None) -> None:
        """Release every metric, disable forwarding, then call ``callback``."""
        for label in list(self.work_metrics):
            self.release_work(label)
        for label in list(self.event_metrics):
            self.release_event(label)
        for label in list(self.gauges):
            self.release_gauge(label)

        self.sink_slot.configure()
        logger.info("Metrics registry shut down")

        if callback is not None:
            callback()
