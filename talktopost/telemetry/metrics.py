"""Prometheus metrics definitions and helpers."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests processed",
    ("method", "route", "status"),
)

REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ("method", "route"),
    buckets=(
        0.005,
        0.01,
        0.025,
        0.05,
        0.1,
        0.25,
        0.5,
        1.0,
        2.5,
        5.0,
        10.0,
        30.0,
    ),
)

ERROR_COUNTER = Counter(
    "app_internal_errors_total",
    "Number of requests ending in internal server error responses",
    ("method", "route"),
)

STAGE_COUNTER = Counter(
    "recording_stage_outcomes_total",
    "Recording pipeline stage outcomes",
    ("stage", "outcome"),
)

TWEETS_POSTED = Counter(
    "tweets_posted_total",
    "Number of tweets published to Twitter",
)

RATE_LIMIT_RETRIES = Counter(
    "twitter_rate_limit_retries_total",
    "Number of tweet posts retried after a 429 response",
)

TWITTER_CONNECTIONS = Counter(
    "twitter_connections_total",
    "Twitter OAuth connection attempts by outcome",
    ("outcome",),
)


def observe_request(
    method: str,
    route: str,
    status_code: int,
    duration_seconds: float,
) -> None:
    """Record metrics for a completed HTTP request."""

    safe_route = route or "unknown"
    safe_method = method or "UNKNOWN"
    status_label = str(status_code)
    observed_duration = duration_seconds if duration_seconds >= 0 else 0

    REQUEST_COUNT.labels(
        method=safe_method,
        route=safe_route,
        status=status_label,
    ).inc()
    REQUEST_LATENCY.labels(
        method=safe_method,
        route=safe_route,
    ).observe(observed_duration)

    if status_code >= 500:
        ERROR_COUNTER.labels(
            method=safe_method,
            route=safe_route,
        ).inc()


def record_stage(stage: str, outcome: str) -> None:
    STAGE_COUNTER.labels(stage=stage, outcome=outcome).inc()


def increment_tweets_posted(count: int = 1) -> None:
    TWEETS_POSTED.inc(count)


def increment_rate_limit_retry() -> None:
    RATE_LIMIT_RETRIES.inc()


def record_connection(outcome: str) -> None:
    TWITTER_CONNECTIONS.labels(outcome=outcome).inc()
