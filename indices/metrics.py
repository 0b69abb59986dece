from __future__ import annotations

from prometheus_client import Counter, Histogram

analysis_jobs_total = Counter(
    "indices_analysis_jobs_total",
    "Analysis jobs by terminal status and index type",
    labelnames=["status", "index_type"],
)

upstream_requests_total = Counter(
    "indices_upstream_requests_total",
    "Imagery provider requests",
    labelnames=["endpoint", "outcome"],
)

upstream_latency_seconds = Histogram(
    "indices_upstream_latency_seconds",
    "Latency of imagery provider requests",
    labelnames=["endpoint"],
    buckets=(0.1, 0.3, 0.5, 1, 2, 5, 10, 20, 30, 60),
)

cache_day_hits_total = Counter(
    "indices_cache_day_hits_total",
    "Requested days already present in a cache layer",
    labelnames=["layer", "index_type"],
)

raster_no_data_days_total = Counter(
    "indices_raster_no_data_days_total",
    "Days whose visual probe came back empty",
    labelnames=["index_type"],
)
