"""ISink Protocol and the StatsD implementation.

This module defines the forwarding contract used by the registry and by
Work, and StatsDSink, which fires each update at a StatsD server as a single
UDP datagram. NullSink lives in null_sink.py.
"""

import socket
from typing import Callable, List, Optional, Protocol, Union

from instruments.core.logging_config import get_logger

logger = get_logger(__name__)

Number = Union[int, float]
OnDone = Callable[[Optional[BaseException]], None]
ErrorHandler = Callable[[BaseException], None]


class ISink(Protocol):
    """Protocol defining the capability every sink offers.

    Calls must return promptly and must never raise transport errors into
    the caller. ``on_done`` receives None on success or the transport error.
    """

    def increment_counter(self, label: str, count: Number = 1, on_done: Optional[OnDone] = None) -> bool:
        """Add ``count`` to a counter."""
        ...

    def increment_timer(self, label: str, milliseconds: Number, on_done: Optional[OnDone] = None) -> bool:
        """Record one timing sample in milliseconds."""
        ...

    def set_gauge(self, label: str, value: Number, on_done: Optional[OnDone] = None) -> bool:
        """Set a gauge to ``value``."""
        ...

    def close(self) -> None:
        """Release the transport."""
        ...

    def is_enabled(self) -> bool:
        """Check if updates actually leave the process."""
        ...


def format_value(value: Number) -> str:
    """Render a metric value the way StatsD expects it."""
    if isinstance(value, bool):
        return str(int(value))
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def format_line(label: str, value: Number, unit: str) -> bytes:
    return f"{label}:{format_value(value)}|{unit}".encode("utf-8")


class StatsDSink:
    """Blindly fires metric updates at a StatsD server over UDP.

    Sends are fire-and-forget on a non-blocking socket. Failures are logged
    and handed to the registered error handlers, never raised.
    """

    def __init__(self, port: int, host: Optional[str] = None):
        self.port = int(port)
        self.host = host or "127.0.0.1"

        family, _, _, _, address = socket.getaddrinfo(
            self.host, self.port, type=socket.SOCK_DGRAM
        )[0]
        self._address = address
        self._socket = socket.socket(family, socket.SOCK_DGRAM)
        self._socket.setblocking(False)
        self._error_handlers: List[ErrorHandler] = []
        self._closed = False

        logger.info(f"StatsD sink sending to {self.host}:{self.port}")

    def add_error_handler(self, handler: ErrorHandler) -> None:
        """Register a callback that receives every transport error."""
        self._error_handlers.append(handler)

    def remove_error_handler(self, handler: ErrorHandler) -> None:
        try:
            self._error_handlers.remove(handler)
        except ValueError:
            pass

    def increment_counter(self, label: str, count: Number = 1, on_done: Optional[OnDone] = None) -> bool:
        if count is None:
            count = 1
        return self._send(format_line(label, count, "c"), on_done)

    def increment_timer(self, label: str, milliseconds: Number, on_done: Optional[OnDone] = None) -> bool:
        return self._send(format_line(label, milliseconds, "ms"), on_done)

    def set_gauge(self, label: str, value: Number, on_done: Optional[OnDone] = None) -> bool:
        return self._send(format_line(label, value, "g"), on_done)

    def _send(self, data: bytes, on_done: Optional[OnDone]) -> bool:
        error: Optional[BaseException] = None
        if self._closed:
            error = RuntimeError("StatsD sink is closed")
        else:
            try:
                self._socket.sendto(data, self._address)
            except OSError as e:
                error = e

        if error is not None:
            self._report(error)
        if on_done is not None:
            on_done(error)
        return error is None

    def _report(self, error: BaseException) -> None:
        logger.warning(f"StatsD send to {self.host}:{self.port} failed: {error}")
        for handler in list(self._error_handlers):
            try:
                handler(error)
            except Exception as e:
                logger.error(f"StatsD error handler failed: {e}")

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._socket.close()
        logger.info(f"StatsD sink to {self.host}:{self.port} closed")

    @property
    def closed(self) -> bool:
        return self._closed

    def is_enabled(self) -> bool:
        return not self._closed
