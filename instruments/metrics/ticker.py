"""Ticker - a single cancellable recurring callback on the asyncio loop.

Every Meter owns exactly one Ticker. The registry stops Tickers when it
releases entries, so no recurring callback outlives the metric it feeds.
"""

import asyncio
from typing import Callable, Optional

from instruments.core.logging_config import get_logger

logger = get_logger(__name__)


class Ticker:
    """Runs ``callback`` every ``interval`` seconds via ``loop.call_later``.

    When no loop is given and none is running, ``start()`` returns False and
    nothing is scheduled. A tick left pending on a loop that has since closed
    never fires, so ``scheduled`` reports False for it. In both cases the owner
    is responsible for catching up.
    """

    def __init__(
        self,
        interval: float,
        callback: Callable[[], None],
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        if interval <= 0:
            raise ValueError(f"Tick interval must be positive, got {interval}")
        self.interval = interval
        self._callback = callback
        self._loop = loop
        self._handle: Optional[asyncio.TimerHandle] = None
        self._stopped = False

    def start(self) -> bool:
        """Schedule the first tick. Returns True if a tick is now pending."""
        if self._stopped:
            raise RuntimeError("Ticker has been stopped and cannot be restarted")
        if self._handle is not None:
            return True

        loop = self._loop
        if loop is None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                return False

        self._loop = loop
        self._schedule()
        return True

    def _schedule(self) -> None:
        self._handle = self._loop.call_later(self.interval, self._run)

    def _run(self) -> None:
        self._handle = None
        if self._stopped:
            return
        try:
            self._callback()
        except Exception as e:
            logger.error(f"Error in tick callback: {e}")
        finally:
            if not self._stopped and not self._loop.is_closed():
                self._schedule()

    @property
    def scheduled(self) -> bool:
        """True while a future tick is pending on a loop that can still run it."""
        if self._handle is None or self._handle.cancelled():
            return False
        return not self._loop.is_closed()

    @property
    def stopped(self) -> bool:
        return self._stopped

    def stop(self) -> None:
        """Cancel the pending tick. Safe to call more than once."""
        self._stopped = True
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
