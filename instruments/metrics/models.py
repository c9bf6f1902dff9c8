"""Pydantic V2 models for metric snapshots.

Every field has a zero default, so ``WorkMetricModel(label=label)`` is the
snapshot of a label that has never been recorded.
"""

from typing import List
from pydantic import BaseModel, ConfigDict


class WorkMetricModel(BaseModel):
    """Timing, throughput and error statistics for one work label"""
    model_config = ConfigDict(from_attributes=True)

    label: str
    ops_count: int = 0
    rate_1m: float = 0.0
    rate_5m: float = 0.0
    rate_15m: float = 0.0
    mean_rate: float = 0.0
    min: float = 0.0
    max: float = 0.0
    mean_time: float = 0.0
    std_dev: float = 0.0
    pct_1: float = 0.0
    pct_25: float = 0.0
    pct_50: float = 0.0
    pct_75: float = 0.0
    pct_99: float = 0.0
    pct_999: float = 0.0
    active: int = 0
    errors: int = 0
    err_rate_1m: float = 0.0
    err_rate_5m: float = 0.0
    err_rate_15m: float = 0.0
    err_mean_rate: float = 0.0


class EventMetricModel(BaseModel):
    """Occurrence count and rates for one event label"""
    model_config = ConfigDict(from_attributes=True)

    label: str
    count: int = 0
    rate_1m: float = 0.0
    rate_5m: float = 0.0
    rate_15m: float = 0.0
    rate_mean: float = 0.0


class GaugeMetricModel(BaseModel):
    """Last value set for one gauge label"""
    model_config = ConfigDict(from_attributes=True)

    label: str
    value: float = 0.0


class MetricsSnapshotModel(BaseModel):
    """Root envelope for all metric categories"""
    model_config = ConfigDict(from_attributes=True)

    work: List[WorkMetricModel] = []
    events: List[EventMetricModel] = []
    gauges: List[GaugeMetricModel] = []


class MetricsHealthModel(BaseModel):
    """Lightweight health check response"""
    model_config = ConfigDict(from_attributes=True)

    enabled: bool
    sink_enabled: bool
    work_count: int
    event_count: int
    gauge_count: int
    active_tickers: int
    version: str
