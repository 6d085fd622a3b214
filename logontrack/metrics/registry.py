from __future__ import annotations

from prometheus_client import CollectorRegistry, Counter, Histogram

METRICS_REGISTRY = CollectorRegistry()

EVENTS_INGESTED = Counter(
    "events_ingested_total",
    "Events stored, by action code",
    ["action"],
    registry=METRICS_REGISTRY,
)
SESSIONS_AUTO_CLOSED = Counter(
    "sessions_auto_closed_total",
    "Open sessions closed by a synthetic disconnect",
    registry=METRICS_REGISTRY,
)
ORPHAN_DISCONNECTS = Counter(
    "orphan_disconnects_total",
    "Disconnects that matched no open session",
    registry=METRICS_REGISTRY,
)
INGEST_REJECTED = Counter(
    "ingest_rejected_total",
    "Ingest requests refused before correlation",
    ["reason"],
    registry=METRICS_REGISTRY,
)
STORAGE_ERRORS = Counter(
    "storage_errors_total",
    "Requests failed by the event store",
    registry=METRICS_REGISTRY,
)
REQUEST_LATENCY = Histogram(
    "request_latency_seconds",
    "Request processing time in seconds",
    ["route", "method", "status"],
    registry=METRICS_REGISTRY,
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

for _action in ("C", "D", "M"):
    EVENTS_INGESTED.labels(action=_action).inc(0)
for _reason in ("user_agent", "auth", "content_type", "validation"):
    INGEST_REJECTED.labels(reason=_reason).inc(0)


def get_metrics() -> dict[str, object]:
    return {
        "registry": METRICS_REGISTRY,
        "ingested": EVENTS_INGESTED,
        "auto_closed": SESSIONS_AUTO_CLOSED,
        "orphans": ORPHAN_DISCONNECTS,
        "rejected": INGEST_REJECTED,
        "storage_errors": STORAGE_ERRORS,
        "latency": REQUEST_LATENCY,
    }
