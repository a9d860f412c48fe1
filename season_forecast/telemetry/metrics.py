"""
Prometheus metrics for provider traffic, fixture caching and submissions.

Labels are restricted to LOW-CARDINALITY values only:
- provider:     "football_data"
- entity:       "standings", "matches"
- status_code:  "200", "404", "429", "500", "0"
- error_code:   "timeout", "rate_limit", "not_found", "http_5xx", "http_4xx" codes,
                "request_error", "invalid_json"
- outcome:      "hit", "miss", "stale", "dedup"
- league:       configured league codes only (bounded set)

Never label by match id, team name or URL. Recording is best-effort and
never blocks the main flow.
"""

import logging

from prometheus_client import (
    Counter,
    Histogram,
    generate_latest,
    CONTENT_TYPE_LATEST,
    REGISTRY,
)

logger = logging.getLogger(__name__)

# =============================================================================
# PROVIDER METRICS
# =============================================================================

sf_provider_requests_total = Counter(
    "sf_provider_requests_total",
    "Total requests to the sports-data provider",
    ["provider", "entity", "status_code"],
)

sf_provider_errors_total = Counter(
    "sf_provider_errors_total",
    "Total errors from the sports-data provider",
    ["provider", "entity", "error_code"],
)

sf_provider_rate_limited_total = Counter(
    "sf_provider_rate_limited_total",
    "Total rate-limited responses (429) from the provider",
    ["provider", "entity"],
)

sf_provider_latency_ms = Histogram(
    "sf_provider_latency_ms",
    "Request latency in milliseconds",
    ["provider", "entity"],
    buckets=[10, 25, 50, 100, 250, 500, 1000, 2500, 5000, 10000],
)

# =============================================================================
# FIXTURE CACHE / SIMULATION METRICS
# =============================================================================

sf_fixture_cache_total = Counter(
    "sf_fixture_cache_total",
    "Fixture lookups by cache outcome",
    ["outcome"],
)

sf_matchdays_submitted_total = Counter(
    "sf_matchdays_submitted_total",
    "Matchdays submitted, by league and mode",
    ["league", "mode"],
)


def record_provider_request(
    provider: str,
    entity: str,
    status_code: int,
    latency_ms: float,
    is_rate_limited: bool = False,
) -> None:
    """Record a provider request with all associated metrics."""
    try:
        sf_provider_requests_total.labels(
            provider=provider,
            entity=entity,
            status_code=str(status_code),
        ).inc()

        sf_provider_latency_ms.labels(
            provider=provider,
            entity=entity,
        ).observe(latency_ms)

        if is_rate_limited:
            sf_provider_rate_limited_total.labels(
                provider=provider,
                entity=entity,
            ).inc()

    except Exception as e:
        logger.warning(f"Failed to record provider request metric: {e}")


def record_provider_error(
    provider: str,
    entity: str,
    error_code: str,
) -> None:
    """Record a provider error."""
    try:
        sf_provider_errors_total.labels(
            provider=provider,
            entity=entity,
            error_code=error_code,
        ).inc()
    except Exception as e:
        logger.warning(f"Failed to record provider error metric: {e}")


def record_fixture_cache(outcome: str) -> None:
    """Record a fixture cache hit / miss / stale invalidation / deduplicated wait."""
    try:
        sf_fixture_cache_total.labels(outcome=outcome).inc()
    except Exception as e:
        logger.warning(f"Failed to record fixture cache metric: {e}")


def record_matchday_submitted(league: str, race_mode: bool) -> None:
    try:
        sf_matchdays_submitted_total.labels(
            league=league,
            mode="race" if race_mode else "classic",
        ).inc()
    except Exception as e:
        logger.warning(f"Failed to record submission metric: {e}")


def get_metrics_text() -> tuple[str, str]:
    """
    Generate Prometheus metrics text output.

    Returns:
        Tuple of (content, content_type)
    """
    return generate_latest(REGISTRY).decode("utf-8"), CONTENT_TYPE_LATEST
