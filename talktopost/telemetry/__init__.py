"""Telemetry helpers and metrics."""

from .metrics import (
    ERROR_COUNTER,
    RATE_LIMIT_RETRIES,
    REQUEST_COUNT,
    REQUEST_LATENCY,
    STAGE_COUNTER,
    TWEETS_POSTED,
    TWITTER_CONNECTIONS,
    increment_rate_limit_retry,
    increment_tweets_posted,
    observe_request,
    record_connection,
    record_stage,
)

__all__ = [
    "ERROR_COUNTER",
    "RATE_LIMIT_RETRIES",
    "REQUEST_COUNT",
    "REQUEST_LATENCY",
    "STAGE_COUNTER",
    "TWEETS_POSTED",
    "TWITTER_CONNECTIONS",
    "increment_rate_limit_retry",
    "increment_tweets_posted",
    "observe_request",
    "record_connection",
    "record_stage",
]
