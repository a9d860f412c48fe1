"""
Telemetry Module

Prometheus metrics for provider ingestion, fixture cache effectiveness and
matchday submissions.
"""

from season_forecast.telemetry.metrics import (
    sf_provider_requests_total,
    sf_provider_errors_total,
    sf_provider_rate_limited_total,
    sf_provider_latency_ms,
    sf_fixture_cache_total,
    sf_matchdays_submitted_total,
    record_provider_request,
    record_provider_error,
    record_fixture_cache,
    record_matchday_submitted,
    get_metrics_text,
)

__all__ = [
    "sf_provider_requests_total",
    "sf_provider_errors_total",
    "sf_provider_rate_limited_total",
    "sf_provider_latency_ms",
    "sf_fixture_cache_total",
    "sf_matchdays_submitted_total",
    "record_provider_request",
    "record_provider_error",
    "record_fixture_cache",
    "record_matchday_submitted",
    "get_metrics_text",
]
