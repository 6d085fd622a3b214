# logontrack/metrics/__init__.py
"""
Thin re-export layer over logontrack.metrics.registry, so callers can write
`from logontrack.metrics import ...`.
"""
from .registry import (
    EVENTS_INGESTED,
    INGEST_REJECTED,
    METRICS_REGISTRY,
    ORPHAN_DISCONNECTS,
    REQUEST_LATENCY,
    SESSIONS_AUTO_CLOSED,
    STORAGE_ERRORS,
    get_metrics,
)

__all__ = [
    "EVENTS_INGESTED",
    "INGEST_REJECTED",
    "METRICS_REGISTRY",
    "ORPHAN_DISCONNECTS",
    "REQUEST_LATENCY",
    "SESSIONS_AUTO_CLOSED",
    "STORAGE_ERRORS",
    "get_metrics",
]
