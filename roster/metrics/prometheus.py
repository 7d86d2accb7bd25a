# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Prometheus metrics: single source of truth for all metric objects.
Imported by services, backends and middleware. Never instantiated in controllers.
"""

from prometheus_client import Counter, Gauge, Histogram

# ── HTTP Metrics (used by middleware) ──
REQUEST_COUNT = Counter(
    "roster_requests_total",
    "Total HTTP requests to the roster service",
    ["method", "endpoint", "status"],
)
REQUEST_LATENCY = Histogram(
    "roster_request_duration_seconds",
    "Request latency in seconds",
    ["method", "endpoint"],
)
HTTP_ERRORS = Counter(
    "roster_http_errors_total",
    "Total HTTP error responses",
    ["method", "endpoint", "status"],
)

# ── Business Metrics (updated by services and backends only) ──
PLAYERS_SAVED = Counter(
    "roster_players_saved_total",
    "Player writes handed to the persistence backend",
    ["mode", "operation", "outcome"],
)
PLAYERS_DELETED = Counter(
    "roster_players_deleted_total",
    "Player deletions handed to the persistence backend",
    ["mode", "outcome"],
)
SNAPSHOTS_RECEIVED = Counter(
    "roster_snapshots_received_total",
    "Full-collection snapshots delivered by the realtime store",
)
BLOB_WRITES = Counter(
    "roster_local_blob_writes_total",
    "Local blob persistence attempts",
    ["outcome"],
)
NOTIFICATIONS_SHOWN = Counter(
    "roster_notifications_total",
    "User-visible notifications emitted",
    ["kind"],
)
FORM_REJECTIONS = Counter(
    "roster_form_rejections_total",
    "Form submissions rejected by validation",
)
FILTER_RUNS = Counter(
    "roster_filter_runs_total",
    "Full filter rescans over the roster",
)
ROSTER_SIZE = Gauge(
    "roster_players",
    "Number of players currently held in memory",
)
