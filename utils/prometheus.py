"""Prometheus metrics for the browse gateway."""

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    Counter,
    Histogram,
    generate_latest,
)

BROWSE_REQUESTS = Counter(
    "curb_browse_requests_total",
    "Browse requests by content type and outcome",
    ["content_type", "outcome"],
)

DRIVE_CALLS = Histogram(
    "curb_drive_call_seconds",
    "Latency of Google Drive listing calls",
    ["operation"],
)

__all__ = [
    "CONTENT_TYPE_LATEST",
    "REGISTRY",
    "BROWSE_REQUESTS",
    "DRIVE_CALLS",
    "generate_latest",
]
