"""NullSink - No-op implementation for disabled forwarding.

Installed whenever no StatsD port is configured, and after shutdown.
"""

from typing import Optional

from .sink import Number, OnDone


class NullSink:
    """Sink that drops every update.

    Completion callbacks still fire, immediately and without an error, so
    callers behave the same whether forwarding is on or off.
    """

    def increment_counter(self, label: str, count: Number = 1, on_done: Optional[OnDone] = None) -> bool:
        """No-op: pretend to increment a counter."""
        return self._done(on_done)

    def increment_timer(self, label: str, milliseconds: Number, on_done: Optional[OnDone] = None) -> bool:
        """No-op: pretend to record a timing."""
        return self._done(on_done)

    def set_gauge(self, label: str, value: Number, on_done: Optional[OnDone] = None) -> bool:
        """No-op: pretend to set a gauge."""
        return self._done(on_done)

    @staticmethod
    def _done(on_done: Optional[OnDone]) -> bool:
        if on_done is not None:
            on_done(None)
        return True

    def close(self) -> None:
        """No-op: nothing to close."""
        pass

    def is_enabled(self) -> bool:
        """Always returns False for the null sink."""
        return False
