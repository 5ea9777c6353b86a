"""
Prometheus metrics for the sync service.

Metrics exposed:
- Sync run counters and duration histograms per sync-type
- Per-athlete failure counters
- External API request counters per upstream source
- Scheduler status gauges
- Circuit breaker state gauges
"""
from prometheus_client import Counter, Gauge, Histogram

# Sync Metrics
sync_runs_total = Counter(
    "sync_runs_total",
    "Total sync invocations by outcome",
    ["sync_type", "status"]
)

sync_duration_seconds = Histogram(
    "sync_duration_seconds",
    "Sync run duration in seconds",
    ["sync_type"],
    buckets=(0.5, 1, 2.5, 5, 10, 30, 60, 120, 300, 600)
)

sync_athlete_failures_total = Counter(
    "sync_athlete_failures_total",
    "Per-athlete failures recovered inside a sync batch",
    ["sync_type"]
)

# External API Metrics
external_api_requests_total = Counter(
    "external_api_requests_total",
    "Requests made to upstream data sources",
    ["source", "outcome"]
)

# Scheduler Metrics
scheduler_running = Gauge(
    "scheduler_running",
    "Whether the sync scheduler is running (1=running, 0=stopped)"
)

scheduler_jobs_total = Gauge(
    "scheduler_jobs_total",
    "Total number of scheduled jobs"
)

# Circuit Breaker Metrics
circuit_breaker_state = Gauge(
    "circuit_breaker_state",
    "Circuit breaker state (0=closed, 1=open, 2=half_open)",
    ["service"]
)

_BREAKER_STATE_VALUES = {"closed": 0, "open": 1, "half-open": 2, "half_open": 2}


def record_sync_run(sync_type: str, status: str, duration_ms: int) -> None:
    """Record the outcome and duration of one sync invocation."""
    sync_runs_total.labels(sync_type=sync_type, status=status).inc()
    sync_duration_seconds.labels(sync_type=sync_type).observe(duration_ms / 1000.0)


def record_athlete_failure(sync_type: str) -> None:
    """Record a per-athlete failure that did not abort the batch."""
    sync_athlete_failures_total.labels(sync_type=sync_type).inc()


def record_external_request(source: str, ok: bool) -> None:
    """Record one upstream request."""
    external_api_requests_total.labels(source=source, outcome="success" if ok else "failure").inc()


def update_breaker_metrics(states: dict[str, str]) -> None:
    """Publish circuit breaker states (name -> pybreaker state name)."""
    for service, state in states.items():
        circuit_breaker_state.labels(service=service).set(_BREAKER_STATE_VALUES.get(state, 0))


def update_scheduler_metrics():
    """
    Update scheduler metrics.

    Call this after the scheduler starts or stops.
    """
    from app.core.scheduler import get_scheduler

    scheduler = get_scheduler()
    if scheduler and scheduler.running:
        scheduler_running.set(1)
        if scheduler.scheduler:
            scheduler_jobs_total.set(len(scheduler.scheduler.get_jobs()))
    else:
        scheduler_running.set(0)
        scheduler_jobs_total.set(0)
