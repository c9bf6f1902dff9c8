"""
Unit tests for MetricsRegistry.

Covers lazy entry creation, zero-valued snapshots for unknown labels,
sink forwarding, pattern discovery, release and shutdown.
"""

import asyncio
import statistics

import pytest

from instruments.metrics import MetricsRegistry, NullSink, NullWork, SinkSlot, Work
from instruments.metrics.models import WorkMetricModel

WORK_FIELDS = [
    "label", "ops_count", "rate_1m", "rate_5m", "rate_15m", "mean_rate",
    "min", "max", "mean_time", "std_dev", "pct_1", "pct_25", "pct_50",
    "pct_75", "pct_99", "pct_999", "active", "errors", "err_rate_1m",
    "err_rate_5m", "err_rate_15m", "err_mean_rate",
]


def test_unknown_work_metric_is_all_zero(registry):
    """Test that an unseen label returns the full shape with zero values."""
    data = registry.get_work_metric("never.seen").model_dump()

    assert list(data.keys()) == WORK_FIELDS
    assert data["label"] == "never.seen"
    assert all(data[key] == 0 for key in WORK_FIELDS if key != "label")
    assert registry.has_work_metric("never.seen") is False


def test_unknown_event_and_gauge_are_zero(registry):
    assert registry.get_event_metric("nope").model_dump() == {
        "label": "nope",
        "count": 0,
        "rate_1m": 0,
        "rate_5m": 0,
        "rate_15m": 0,
        "rate_mean": 0,
    }
    assert registry.get_gauge_metric("nope").model_dump() == {"label": "nope", "value": 0}


def test_measure_work_creates_entry(registry):
    """Test that measure_work() on a new label materializes its entry."""
    registry.measure_work("db.query", 12)

    assert registry.has_work_metric("db.query")
    entry = registry.work_metrics["db.query"]
    assert entry.timer.count() == 1
    assert entry.active.count == 0


def test_ensure_metric_returns_same_entry(registry):
    assert registry.ensure_event_metric("e") is registry.ensure_event_metric("e")
    assert registry.ensure_work_metric("w") is registry.ensure_work_metric("w")
    assert registry.has_event_metric("e")
    assert registry.get_event_metric("e").count == 0


def test_measure_work_identical_durations(registry, clock):
    """Test n identical durations: ops_count = n, min = max = mean, std 0."""
    for _ in range(200):
        registry.measure_work("foo2", 10)
    clock.advance(2.0)

    met = registry.get_work_metric("foo2")

    assert met.ops_count == 200
    assert met.min == 10
    assert met.max == 10
    assert met.mean_time == 10
    assert met.std_dev == 0
    assert met.mean_rate == pytest.approx(100.0)
    assert met.pct_50 == 10


def test_distributions(registry):
    data = [10, 10, 10, 10, 10, 10, 10, 10, 10, 10,
            1, 1, 1, 1, 1,
            100]
    for value in data:
        registry.measure_work("test.distributions", value)

    met = registry.get_work_metric("test.distributions")

    assert met.ops_count == len(data)
    assert met.min == 1
    assert met.max == 100
    assert met.mean_time == pytest.approx(statistics.mean(data))
    assert met.std_dev == pytest.approx(statistics.stdev(data))
    assert met.pct_1 == 1
    assert met.pct_99 == 100


def test_get_all_work_metrics(registry):
    registry.measure_work("one", 20)
    registry.measure_work("one", 40)
    registry.measure_work("two", 60)

    by_label = {metric.label: metric for metric in registry.get_work_metrics()}

    assert by_label["one"].ops_count == 2
    assert by_label["two"].ops_count == 1
    assert isinstance(by_label["one"], WorkMetricModel)


def test_active_counters(registry):
    """Test k started works give active = k, each stop decrements by one."""
    count = 10
    workers = []
    for _ in range(count):
        work = Work("active_counters", registry=registry)
        work.start()
        workers.append(work)

    assert registry.get_work_metric("active_counters").active == count

    for index in range(count):
        workers.pop().stop()
        assert registry.get_work_metric("active_counters").active == count - index - 1


def test_record_event_counts(registry):
    """Test 10 default events give count 10 and zero windowed rates."""
    for _ in range(10):
        registry.record_event("foo")

    metrics = [metric.model_dump() for metric in registry.get_event_metrics()]
    # mean rate depends on elapsed time, windowed rates need a full tick
    metrics[0]["rate_mean"] = 0

    assert metrics == [{
        "label": "foo",
        "count": 10,
        "rate_1m": 0,
        "rate_5m": 0,
        "rate_15m": 0,
        "rate_mean": 0,
    }]


def test_record_event_sums_counts(registry, clock):
    registry.record_event("jobs", 3)
    registry.record_event("jobs", 4)
    registry.record_event("jobs")
    registry.record_event("jobs", None)
    clock.advance(5.0)

    met = registry.get_event_metric("jobs")

    assert met.count == 9
    assert met.rate_1m > 0
    assert met.rate_mean == pytest.approx(9 / 5.0)


def test_record_event_rejects_fractional_counts(registry, mock_sink):
    """Test that non-integer counts are refused before anything is recorded."""
    with pytest.raises(TypeError):
        registry.record_event("bytes", 2.5)
    with pytest.raises(TypeError):
        registry.record_event("bytes", True)

    assert registry.has_event_metric("bytes") is False
    mock_sink.increment_counter.assert_not_called()
    assert registry.get_event_metric("bytes").count == 0
    assert registry.get_metrics().events == []


def test_set_gauge(registry):
    assert registry.get_gauge_metric("foo").model_dump() == {"label": "foo", "value": 0}
    assert registry.get_gauge_metrics() == []
    assert registry.get_metrics().model_dump() == {"work": [], "events": [], "gauges": []}

    registry.set_gauge("foo", 12)

    assert registry.get_gauge_metric("foo").model_dump() == {"label": "foo", "value": 12}
    assert [g.model_dump() for g in registry.get_gauge_metrics()] == [{"label": "foo", "value": 12}]
    assert registry.get_metrics().model_dump() == {
        "work": [],
        "events": [],
        "gauges": [{"label": "foo", "value": 12}],
    }


def test_release_gauge(registry):
    registry.set_gauge("foo", 7.5)
    registry.release_gauge("foo")

    assert registry.get_gauge_metric("foo").model_dump() == {"label": "foo", "value": 0}
    assert registry.has_gauge_metric("foo") is False


def test_release_unknown_labels_is_noop(registry):
    registry.release_work("missing")
    registry.release_event("missing")
    registry.release_gauge("missing")


def test_release_work_and_event(registry):
    registry.measure_work("w", 1)
    registry.record_event("e")
    entry = registry.work_metrics["w"]
    meter = registry.event_metrics["e"]

    registry.release_work("w")
    registry.release_event("e")

    assert registry.has_work_metric("w") is False
    assert registry.has_event_metric("e") is False
    assert entry.timer.meter.ticker.stopped
    assert entry.error_meter.ticker.stopped
    assert meter.ticker.stopped
    assert registry.get_work_metric("w").ops_count == 0


def test_find_metrics(registry):
    registry.set_gauge("foo.bar.tex", 12)
    registry.set_gauge("foo.bike.tex", 13)

    assert registry.find_gauge_metrics("foo.*") == ["foo.bar.tex", "foo.bike.tex"]
    assert registry.find_gauge_metrics("foo.*.tex") == ["foo.bar.tex", "foo.bike.tex"]
    assert registry.find_gauge_metrics("foo.bar.*") == ["foo.bar.tex"]

    registry.record_event("test.event.1")
    registry.record_event("test.event.2")
    registry.record_event("test.event")
    assert registry.find_event_metrics("test.event") == ["test.event"]
    assert registry.find_event_metrics("test.event.*") == ["test.event.1", "test.event.2", "test.event"]

    registry.measure_work("test1.work.1", 10)
    registry.measure_work("test2.work.2", 11)
    registry.measure_work("test3.work", 7)
    assert registry.find_work_metrics("*.*.2") == ["test2.work.2"]
    assert registry.find_work_metrics("*.work.*") == ["test1.work.1", "test2.work.2", "test3.work"]


def test_custom_matcher_is_used(sink_slot):
    calls = []

    def matcher(pattern, labels):
        calls.append((pattern, list(labels)))
        return []

    registry = MetricsRegistry(sink_slot=sink_slot, matcher=matcher)
    registry.set_gauge("a", 1)

    assert registry.find_gauge_metrics("a") == []
    assert calls == [("a", ["a"])]
    registry.shutdown()


def test_record_operations_forward_to_sink(registry, mock_sink):
    registry.measure_work("foo", 5)
    registry.record_event("bar", 3)
    registry.set_gauge("baz", 12)

    mock_sink.increment_timer.assert_called_once_with("foo", 5, None)
    mock_sink.increment_counter.assert_called_once_with("bar", 3, None)
    mock_sink.set_gauge.assert_called_once_with("baz", 12, None)


def test_queries_never_touch_sink(registry, mock_sink):
    registry.measure_work("foo", 5)
    mock_sink.reset_mock()

    registry.get_metrics()
    registry.get_work_metric("foo")
    registry.find_work_metrics("*")

    assert mock_sink.method_calls == []


def test_shutdown_empties_registry_and_disables_sink(registry, mock_sink, sink_slot):
    registry.measure_work("w", 1)
    registry.record_event("e")
    registry.set_gauge("g", 1)
    called = []

    registry.shutdown(lambda: called.append(True))

    assert registry.get_metrics().model_dump() == {"work": [], "events": [], "gauges": []}
    assert isinstance(sink_slot.get(), NullSink)
    mock_sink.close.assert_called_once()
    assert called == [True]

    # Second shutdown on an empty registry is fine
    registry.shutdown()
    assert isinstance(sink_slot.get(), NullSink)


def test_work_factory_honours_enabled_flag(registry):
    assert isinstance(registry.work("w", enabled=True), Work)
    assert isinstance(registry.work("n", enabled=False), NullWork)
    assert registry.has_work_metric("n") is False


@pytest.mark.asyncio
async def test_release_cancels_background_ticks():
    """Test that every ticker created for an entry is cancelled on release."""
    registry = MetricsRegistry(sink_slot=SinkSlot(), tick_interval=0.01)

    registry.measure_work("w", 5)
    assert registry.active_tickers() == 2  # timer meter + error meter

    registry.record_event("e")
    assert registry.active_tickers() == 3

    await asyncio.sleep(0.03)
    assert registry.get_event_metric("e").rate_1m > 0

    registry.release_work("w")
    assert registry.active_tickers() == 1

    registry.shutdown()
    assert registry.active_tickers() == 0


def test_rates_keep_updating_after_event_loop_closes(sink_slot, clock):
    """Test that metrics created under asyncio.run() fall back to catch-up ticks."""
    registry = MetricsRegistry(sink_slot=sink_slot, clock=clock, tick_interval=5.0)

    async def job():
        registry.record_event("e")
        assert registry.active_tickers() == 1

    asyncio.run(job())

    assert registry.active_tickers() == 0

    registry.record_event("e", 100)
    clock.advance(5.0)

    assert registry.get_event_metric("e").rate_1m > 0
    registry.shutdown()
