from prometheus_client import Counter, Gauge


rate_limited_requests_total = Counter(
    "rate_limited_requests_total",
    "Total requests rejected by the rate limiter",
    ["policy"],
)

rate_limiter_evictions_total = Counter(
    "rate_limiter_evictions_total",
    "Buckets evicted because the table reached its size cap",
    ["policy"],
)

rate_limiter_swept_total = Counter(
    "rate_limiter_swept_total",
    "Expired buckets removed by the background sweep",
    ["policy"],
)

rate_limiter_buckets = Gauge(
    "rate_limiter_buckets",
    "Buckets currently held by the rate limiter",
    ["policy"],
)
