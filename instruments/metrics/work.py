"""Work tracking helpers built on top of MetricsRegistry.

Work measures one in-flight operation between ``start()`` and ``stop()``.
NullWork has the same interface and records nothing; pick it explicitly
(``registry.work(label, enabled=False)``) to compile instrumentation out
without branching at the call site.
"""

import functools
import inspect
from typing import Any, Callable, Optional, Protocol, TYPE_CHECKING

from .instance import get_registry

if TYPE_CHECKING:
    from .registry import MetricsRegistry

ERROR_SUFFIX = "__error"


class IWork(Protocol):
    """Protocol shared by Work and NullWork."""

    label: str

    def start(self) -> None:
        ...

    def stop(self, error: bool = False, on_done=None) -> float:
        ...


class Work:
    """Tracks when work starts and stops across calls.

    Holds only the label and a registry reference; the aggregators belong to
    the registry. Use each instance for exactly one start/stop pair.
    """

    def __init__(self, label: str, registry: Optional["MetricsRegistry"] = None):
        self.label = label
        self.registry = registry if registry is not None else get_registry()
        self.start_time: Optional[float] = None
        self.stop_time: Optional[float] = None
        self.registry.ensure_work_metric(label)

    def start(self) -> None:
        """Start measuring work."""
        self.start_time = self.registry.clock()
        self.registry.get_work_entry(self.label).active.inc()

    def stop(self, error: bool = False, on_done=None) -> float:
        """Stop measuring work and record it.

        Args:
            error: Whether the work failed
            on_done: Optional completion callback for the forwarded update

        Returns:
            Milliseconds between start() and stop()

        Raises:
            RuntimeError: If start() was never called
            KeyError: If the label was released while the work was running
        """
        if self.start_time is None:
            raise RuntimeError(f"Work '{self.label}' stopped before it was started")

        entry = self.registry.get_work_entry(self.label)
        self.stop_time = self.registry.clock()
        delta = (self.stop_time - self.start_time) * 1000.0

        entry.active.dec()
        entry.timer.update(delta)

        sink = self.registry.sink
        if error:
            entry.error_meter.mark(1)
            sink.increment_counter(self.label + ERROR_SUFFIX, 1, on_done)
        else:
            sink.increment_timer(self.label, delta, on_done)

        return delta

    @property
    def elapsed_ms(self) -> Optional[float]:
        """Duration of a stopped work, None while it is still running."""
        if self.start_time is None or self.stop_time is None:
            return None
        return (self.stop_time - self.start_time) * 1000.0


class NullWork:
    """Work stand-in that records nothing."""

    def __init__(self, label: str, registry: Optional["MetricsRegistry"] = None):
        self.label = label
        self.start_time: Optional[float] = None
        self.stop_time: Optional[float] = None

    def start(self) -> None:
        """No-op."""
        pass

    def stop(self, error: bool = False, on_done=None) -> float:
        """No-op; always reports zero elapsed time."""
        return 0.0

    @property
    def elapsed_ms(self) -> Optional[float]:
        return None


def time_async_function(
    label: str,
    handler: Callable[..., Any],
    registry: Optional["MetricsRegistry"] = None,
) -> Callable[..., Any]:
    """Wrap a callback-style function so each invocation is timed.

    The last positional argument passed to the returned function must be the
    completion callback. The work is stopped when that callback fires, and
    the callback then receives the original arguments unchanged. If the
    handler raises before completing, the work is stopped as an error.

    Raises:
        TypeError: At call time, if no completion callback is passed
    """

    @functools.wraps(handler)
    def wrapper(*args):
        if not args or not callable(args[-1]):
            raise TypeError("A callback function is required when timing an async function.")

        *head, callback = args
        work = Work(label, registry=registry)

        def done(*cb_args):
            work.stop()
            return callback(*cb_args)

        work.start()
        try:
            return handler(*head, done)
        except BaseException:
            if work.stop_time is None:
                work.stop(error=True)
            raise

    return wrapper


def timed(label: str, registry: Optional["MetricsRegistry"] = None):
    """Decorator that times every call of a function or coroutine function.

    A raised exception stops the work with ``error=True`` and propagates.
    """

    def decorator(func):
        if inspect.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs):
                work = Work(label, registry=registry)
                work.start()
                try:
                    result = await func(*args, **kwargs)
                except BaseException:
                    work.stop(error=True)
                    raise
                work.stop()
                return result

            return async_wrapper

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            work = Work(label, registry=registry)
            work.start()
            try:
                result = func(*args, **kwargs)
            except BaseException:
                work.stop(error=True)
                raise
            work.stop()
            return result

        return wrapper

    return decorator


class RecordWork:
    """Counts an operation as an event and times it until its callback fires.

    Creating a RecordWork records one event for ``label`` and creates the
    work metric. ``get_callback()`` returns a wrapped callback that stops the
    timer, treating a truthy first argument as an error, before calling the
    original callback.
    """

    def __init__(
        self,
        label: str,
        callback: Callable[..., Any],
        registry: Optional["MetricsRegistry"] = None,
    ):
        self.registry = registry if registry is not None else get_registry()
        self.work = Work(label, registry=self.registry)
        self.callback = callback
        self.registry.record_event(label)

    def get_callback(self) -> Callable[..., Any]:
        def wrapped(*args):
            self.stop_work(args[0] if args else None)
            return self.callback(*args)

        return wrapped

    def start_work(self) -> "RecordWork":
        """Start the timer. Returns self for chaining."""
        self.work.start()
        return self

    def stop_work(self, error: Any = None) -> float:
        """Stop the timer manually."""
        return self.work.stop(bool(error))


class RunningGauge:
    """Keeps a running count and publishes it as a gauge on every change."""

    def __init__(
        self,
        label: str,
        starting_value: float = 0,
        registry: Optional["MetricsRegistry"] = None,
    ):
        self.label = label
        self.registry = registry if registry is not None else get_registry()
        self.starting_value = starting_value or 0
        self.count = self.starting_value
        self._emit()

    def _emit(self) -> None:
        self.registry.set_gauge(self.label, self.count)

    def incr(self, val: float = 1) -> None:
        self.count += val
        self._emit()

    def decr(self, val: float = 1) -> None:
        self.count -= val
        self._emit()

    def reset(self, val: Optional[float] = None) -> None:
        """Reset the count; falls back to the starting value when ``val`` is falsy."""
        self.count = val or self.starting_value
        self._emit()
