import pytest
from unittest.mock import MagicMock

from instruments.metrics import MetricsRegistry, SinkSlot


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sink_slot():
    return SinkSlot()


@pytest.fixture
def mock_sink(sink_slot):
    """Install a MagicMock as the active sink of the isolated slot."""
    sink = MagicMock()
    sink.is_enabled.return_value = True
    sink_slot.set(sink)
    return sink


@pytest.fixture
def registry(sink_slot, clock):
    """Isolated registry with its own sink slot and a fake clock."""
    registry = MetricsRegistry(sink_slot=sink_slot, clock=clock)
    yield registry
    registry.shutdown()
