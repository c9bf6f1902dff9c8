"""Metrics primitives, the registry that owns them and the StatsD sink.

Counter, Meter and Timer aggregate in memory; MetricsRegistry keys them by
label and hands out snapshots; the active sink mirrors updates to StatsD.
"""

from .counter import Counter
from .meter import Meter
from .timer import Timer
from .reservoir import ExponentiallyDecayingReservoir
from .ticker import Ticker
from .registry import MetricsRegistry, WorkEntry
from .sink import ISink, StatsDSink
from .null_sink import NullSink
from .instance import (
    SinkSlot,
    configure_from_settings,
    configure_sink,
    get_registry,
    get_sink,
    get_sink_slot,
    set_registry,
    set_sink,
)
from .work import IWork, Work, NullWork, RecordWork, RunningGauge, time_async_function, timed

__all__ = [
    "Counter",
    "Meter",
    "Timer",
    "ExponentiallyDecayingReservoir",
    "Ticker",
    "MetricsRegistry",
    "WorkEntry",
    "ISink",
    "StatsDSink",
    "NullSink",
    "SinkSlot",
    "configure_from_settings",
    "configure_sink",
    "get_registry",
    "get_sink",
    "get_sink_slot",
    "set_registry",
    "set_sink",
    "IWork",
    "Work",
    "NullWork",
    "RecordWork",
    "RunningGauge",
    "time_async_function",
    "timed",
]
