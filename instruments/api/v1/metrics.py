"""Metrics REST API endpoints.

Read-only HTTP views over a MetricsRegistry. Unknown labels return their
zero-valued snapshot, never 404.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from instruments.core.config import settings
from instruments.metrics.instance import get_registry
from instruments.metrics.models import (
    MetricsSnapshotModel,
    WorkMetricModel,
    EventMetricModel,
    GaugeMetricModel,
    MetricsHealthModel,
)
from instruments.metrics.registry import MetricsRegistry

router = APIRouter(prefix="/metrics", tags=["metrics"])


def get_metrics_registry() -> MetricsRegistry:
    """FastAPI dependency for registry injection."""
    return get_registry()


@router.get("/", response_model=MetricsSnapshotModel)
async def get_metrics_snapshot(registry: MetricsRegistry = Depends(get_metrics_registry)):
    """Get every work, event and gauge snapshot."""
    return registry.get_metrics()


@router.get("/work", response_model=List[WorkMetricModel])
async def list_work_metrics(
    pattern: Optional[str] = Query(None, description="Wildcard label filter, e.g. 'db.*'"),
    registry: MetricsRegistry = Depends(get_metrics_registry),
):
    if pattern is None:
        return registry.get_work_metrics()
    return [registry.get_work_metric(label) for label in registry.find_work_metrics(pattern)]


@router.get("/work/{label}", response_model=WorkMetricModel)
async def get_work_metric(label: str, registry: MetricsRegistry = Depends(get_metrics_registry)):
    return registry.get_work_metric(label)


@router.get("/events", response_model=List[EventMetricModel])
async def list_event_metrics(
    pattern: Optional[str] = Query(None, description="Wildcard label filter"),
    registry: MetricsRegistry = Depends(get_metrics_registry),
):
    if pattern is None:
        return registry.get_event_metrics()
    return [registry.get_event_metric(label) for label in registry.find_event_metrics(pattern)]


@router.get("/events/{label}", response_model=EventMetricModel)
async def get_event_metric(label: str, registry: MetricsRegistry = Depends(get_metrics_registry)):
    return registry.get_event_metric(label)


@router.get("/gauges", response_model=List[GaugeMetricModel])
async def list_gauge_metrics(
    pattern: Optional[str] = Query(None, description="Wildcard label filter"),
    registry: MetricsRegistry = Depends(get_metrics_registry),
):
    if pattern is None:
        return registry.get_gauge_metrics()
    return [registry.get_gauge_metric(label) for label in registry.find_gauge_metrics(pattern)]


@router.get("/gauges/{label}", response_model=GaugeMetricModel)
async def get_gauge_metric(label: str, registry: MetricsRegistry = Depends(get_metrics_registry)):
    return registry.get_gauge_metric(label)


@router.get("/health", response_model=MetricsHealthModel)
async def get_metrics_health(registry: MetricsRegistry = Depends(get_metrics_registry)):
    """Lightweight health check; always returns 200."""
    return MetricsHealthModel(
        enabled=settings.INSTRUMENTS_ENABLED,
        sink_enabled=registry.sink.is_enabled(),
        work_count=len(registry.work_metrics),
        event_count=len(registry.event_metrics),
        gauge_count=len(registry.gauges),
        active_tickers=registry.active_tickers(),
        version=settings.VERSION,
    )
