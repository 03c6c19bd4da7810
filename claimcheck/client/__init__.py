"""Outbound transport: bounded HTTP client and retry/backoff executor."""

from claimcheck.client.bounded_http import (
    BoundedHttpClient,
    BoundedResponse,
    RequestLimits,
    is_valid_url,
)
from claimcheck.client.retry import RetryPolicy, default_should_retry, execute

__all__ = [
    "BoundedHttpClient",
    "BoundedResponse",
    "RequestLimits",
    "is_valid_url",
    "RetryPolicy",
    "default_should_retry",
    "execute",
]
