"""
Prometheus-based metrics for production monitoring.
Provides /metrics endpoint for scraping.
"""
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import APIRouter, Response


# Counters
generation_requests_total = Counter(
    "generation_requests_total",
    "Total generation requests by kind and result",
    ["kind", "status"],  # succeeded, cached, failed
)

generation_attempts_total = Counter(
    "generation_attempts_total",
    "Total single-model attempts",
    ["family", "outcome"],
)

generation_fallback_total = Counter(
    "generation_fallback_total",
    "Total switches to the fallback provider family",
    ["kind"],
)

cache_operations_total = Counter(
    "cache_operations_total",
    "Character artifact cache operations",
    ["operation", "result"],  # find/insert x hit/miss/stored/skipped/unavailable/error
)

# Histograms
generation_duration_seconds = Histogram(
    "generation_duration_seconds",
    "End-to-end generation duration (cache misses only)",
    ["kind"],
    buckets=[1, 5, 10, 30, 60, 120, 300],
)


# Metrics endpoint router
router = APIRouter()


@router.get("/metrics")
def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint for scraping."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )
