"""In-process metrics instrumentation.

Records work durations, event counts and gauge values in memory, answers
statistical queries about them and optionally mirrors every update to a
StatsD collector over UDP.
"""

from .metrics import (
    MetricsRegistry,
    Work,
    NullWork,
    RecordWork,
    RunningGauge,
    configure_sink,
    get_registry,
    get_sink,
    time_async_function,
    timed,
)

__all__ = [
    "MetricsRegistry",
    "Work",
    "NullWork",
    "RecordWork",
    "RunningGauge",
    "configure_sink",
    "get_registry",
    "get_sink",
    "time_async_function",
    "timed",
]
