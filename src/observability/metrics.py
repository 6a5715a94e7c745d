"""
Prometheus metrics definitions for the progression engine.

Metrics are organized by category:
- HTTP/API metrics: Request counts, latency
- Reward metrics: XP and coins issued, clamped claims, unlocks
- Daily gate metrics: Rejected replays
- Rate limiting metrics: Rejections and recorded violations
- Store metrics: Transaction outcomes
- Sweeper metrics: Rows pruned by the periodic cleanup

Metrics are exposed at the /metrics endpoint for Prometheus scraping.
"""

import logging
import os
import sys

from prometheus_client import Counter, Gauge, Histogram, Info

logger = logging.getLogger(__name__)

# =============================================================================
# HTTP/API Metrics
# =============================================================================

http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests received",
    ["method", "endpoint", "status"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["method", "endpoint"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.0, 5.0, 10.0],
)

http_requests_in_progress = Gauge(
    "http_requests_in_progress",
    "Number of HTTP requests currently being processed",
    ["method", "endpoint"],
)

errors_total = Counter(
    "errors_total",
    "Total errors by type and component",
    ["error_type", "component"],  # component: api/service/store
)

# =============================================================================
# Reward Metrics
# =============================================================================

xp_awarded_total = Counter(
    "progression_xp_awarded_total",
    "Total XP credited to players",
    ["mode"],  # game mode, or 'admin' for manual adjustments
)

coins_awarded_total = Counter(
    "progression_coins_awarded_total",
    "Total coins credited to players",
    ["mode"],
)

claims_clamped_total = Counter(
    "progression_claims_clamped_total",
    "Batch syncs whose claimed reward exceeded the provable maximum",
    ["mode"],
)

artifacts_unlocked_total = Counter(
    "progression_artifacts_unlocked_total",
    "Total artifacts unlocked",
    ["artifact_id"],
)

game_results_total = Counter(
    "progression_game_results_total",
    "Game results processed",
    ["mode", "status"],  # status: accepted/already_completed/invalid
)

# =============================================================================
# Rate Limiting Metrics
# =============================================================================

rate_limit_checks_total = Counter(
    "rate_limit_checks_total",
    "Rate limit checks by outcome",
    ["action", "outcome"],  # outcome: allowed/rejected
)

rate_limit_violations_total = Counter(
    "rate_limit_violations_total",
    "Violation records written",
    ["action", "kind"],  # kind: created/coalesced
)

# =============================================================================
# Store Metrics
# =============================================================================

store_transactions_total = Counter(
    "store_transactions_total",
    "Total store transactions",
    ["backend", "status"],  # status: committed/rolled_back
)

# =============================================================================
# Sweeper Metrics
# =============================================================================

sweeper_rows_deleted_total = Counter(
    "sweeper_rows_deleted_total",
    "Rows deleted by the periodic cleanup",
    ["table"],
)

# =============================================================================
# Application Info
# =============================================================================

app_info = Info(
    "app_info",
    "Application information",
)


def init_metrics():
    """
    Initialize metrics with application information.

    This should be called once at application startup to set
    static metadata about the application.
    """
    from src.config import STORE_BACKEND

    app_info.info(
        {
            "version": os.getenv("GIT_COMMIT_SHA", "dev")[:7],
            "store_backend": STORE_BACKEND,
            "python_version": f"{sys.version_info.major}.{sys.version_info.minor}",
        }
    )

    logger.info("Prometheus metrics initialized")
