"""
Lightweight metrics collection for the stream checker.
Wraps prometheus_client; the HTTP exporter is opt-in for long batch runs.
"""
from __future__ import annotations

from prometheus_client import Counter, Histogram, start_http_server

from shared.config import get_settings
from shared.utils.logging import get_logger

logger = get_logger(__name__)

# ── Counters ────────────────────────────────────────────────────────────
BACKEND_REQUESTS = Counter(
    "sc_backend_requests_total",
    "Total backend HTTP attempts",
    ["backend", "status"],
)
BACKEND_RETRIES = Counter(
    "sc_backend_retries_total",
    "Retries scheduled after a transient failure",
    ["backend", "reason"],
)
CACHE_LOOKUPS = Counter(
    "sc_cache_lookups_total",
    "Blob cache lookups",
    ["cache", "outcome"],
)
MATCHES_CLASSIFIED = Counter(
    "sc_matches_classified_total",
    "Matches classified against broadcast coverage",
    ["placement"],
)
PLAYERS_PROCESSED = Counter(
    "sc_players_processed_total",
    "Participants processed by the engine",
    ["outcome"],
)

# ── Histograms ──────────────────────────────────────────────────────────
BACKEND_LATENCY = Histogram(
    "sc_backend_latency_seconds",
    "Backend request latency in seconds",
    ["backend"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)


def start_metrics_server(port: int | None = None) -> None:
    """Start the Prometheus metrics HTTP server."""
    settings = get_settings()
    if not settings.metrics_enabled:
        return
    metrics_port = port or settings.metrics_port
    try:
        start_http_server(metrics_port)
        logger.info("metrics_server_started", port=metrics_port)
    except OSError as exc:
        logger.warning("metrics_server_failed", error=str(exc), port=metrics_port)
