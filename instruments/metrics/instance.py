"""Process-wide accessors for the active sink and the default registry.

The sink lives in a SinkSlot so it can be swapped at any time; swapping
always closes the previous sink first. Module-level helpers operate on the
default slot, mirroring a singleton accessor pattern.
"""

from typing import Optional, TYPE_CHECKING

from instruments.core.config import settings
from instruments.core.logging_config import get_logger
from .null_sink import NullSink
from .sink import ISink, StatsDSink

if TYPE_CHECKING:
    from .registry import MetricsRegistry

logger = get_logger(__name__)


class SinkSlot:
    """Holds the currently active sink."""

    def __init__(self, sink: Optional[ISink] = None):
        self._sink: ISink = sink if sink is not None else NullSink()

    def get(self) -> ISink:
        return self._sink

    def set(self, sink: ISink) -> ISink:
        """Close the current sink and install ``sink`` in its place."""
        previous = self._sink
        if previous is not sink:
            previous.close()
        self._sink = sink
        return sink

    def configure(self, port: Optional[int] = None, host: Optional[str] = None) -> ISink:
        """Install a StatsD sink for ``host:port``, or NullSink when no port.

        Returns:
            The newly active sink. Callers may attach error handlers to it.
        """
        if port is None:
            return self.set(NullSink())
        return self.set(StatsDSink(port, host))


# Module-level singletons - forwarding starts disabled
_sink_slot = SinkSlot()
_registry: Optional["MetricsRegistry"] = None


def get_sink_slot() -> SinkSlot:
    return _sink_slot


def get_sink() -> ISink:
    """Get the currently active sink (StatsD or null)."""
    return _sink_slot.get()


def set_sink(sink: ISink) -> ISink:
    """Replace the active sink, closing the previous one."""
    return _sink_slot.set(sink)


def configure_sink(port: Optional[int] = None, host: Optional[str] = None) -> ISink:
    """Point forwarding at a StatsD server, or disable it when no port."""
    return _sink_slot.configure(port, host)


def configure_from_settings() -> ISink:
    """Configure the default sink from STATSD_HOST / STATSD_PORT."""
    sink = configure_sink(settings.STATSD_PORT, settings.STATSD_HOST)
    if not sink.is_enabled():
        logger.info("StatsD forwarding disabled (STATSD_PORT not set)")
    return sink


def get_registry() -> "MetricsRegistry":
    """Get the default registry, creating it on first use."""
    global _registry
    if _registry is None:
        # Import here to avoid circular imports
        from .registry import MetricsRegistry
        _registry = MetricsRegistry(sink_slot=_sink_slot)
    return _registry


def set_registry(registry: Optional["MetricsRegistry"]) -> None:
    """Replace the default registry. Passing None resets it."""
    global _registry
    _registry = registry
