"""Tests for the loguru and structlog logging layers.

Tests cover:
- API key masking in loguru messages and extras
- Credential keys redacted from structlog events
- Request context bound through contextvars
"""

import logging

from structlog.contextvars import get_contextvars

from claimcheck.config import logging as log_config
from claimcheck.utils.logging import (
    bind_request_context,
    get_correlation_id,
    get_structured_logger,
    redact_sensitive,
)


# ── Loguru ──────────────────────────────────────────────────────────


def test_mask_api_key_replaces_configured_key(monkeypatch):
    monkeypatch.setattr(log_config.settings, "pws_api_key", "sk-live-123")
    record = {"message": "POST failed with key sk-live-123", "extra": {}}

    log_config.mask_api_key(record)

    assert record["message"] == "POST failed with key ***"


def test_mask_api_key_without_key_leaves_message(monkeypatch):
    monkeypatch.setattr(log_config.settings, "pws_api_key", "")
    record = {"message": "plain message", "extra": {"url": "https://api.parallel.ai"}}

    log_config.mask_api_key(record)

    assert record == {"message": "plain message", "extra": {"url": "https://api.parallel.ai"}}


def test_mask_api_key_covers_extras(monkeypatch):
    monkeypatch.setattr(log_config.settings, "pws_api_key", "sk-live-123")
    record = {
        "message": "Request failed",
        "extra": {
            "component": "BoundedHttpClient",
            "url": "https://api.parallel.ai/v1beta/search?key=sk-live-123",
            "headers": {"x-api-key": "sk-live-123"},
            "status": 401,
        },
    }

    log_config.mask_api_key(record)

    assert record["extra"] == {
        "component": "BoundedHttpClient",
        "url": "https://api.parallel.ai/v1beta/search?key=***",
        "headers": "***",
        "status": 401,
    }


def test_third_party_loggers_are_forwarded():
    httpx_logger = logging.getLogger("httpx")
    assert httpx_logger.propagate is False
    assert httpx_logger.level == logging.WARNING
    assert any(isinstance(h, log_config.InterceptHandler) for h in httpx_logger.handlers)


# ── Structlog ───────────────────────────────────────────────────────


def test_redact_sensitive_masks_credentials():
    event = {"event": "search_request", "api_key": "secret", "X-API-Key": "secret", "query": "q"}

    result = redact_sensitive(None, "info", event)

    assert result["api_key"] == "***"
    assert result["X-API-Key"] == "***"
    assert result["query"] == "q"


def test_redact_sensitive_keeps_empty_values():
    assert redact_sensitive(None, "info", {"api_key": ""}) == {"api_key": ""}


def test_bind_request_context_replaces_previous_context():
    bind_request_context("first", mode="search")
    bind_request_context("second", mode="task")

    assert get_contextvars() == {"correlation_id": "second", "mode": "task"}


def test_correlation_ids_are_unique():
    assert get_correlation_id() != get_correlation_id()


def test_get_structured_logger_binds_context():
    logger = get_structured_logger(__name__, component="Test")
    # Bound loggers are lazy proxies until first use
    assert logger is not None
