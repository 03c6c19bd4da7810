"""Structured logging for verification and job tracing (structlog).

Event names are snake_case and context travels as key/values. The pipeline
binds a correlation id and the mode through contextvars at the start of each
request, so every event the job and verification components emit for that
request carries them without passing ids around.
"""

import logging
import sys
import uuid
from typing import Any, Optional

import structlog
from structlog.contextvars import bind_contextvars, clear_contextvars, merge_contextvars
from structlog.processors import JSONRenderer

from claimcheck.config.settings import settings

SENSITIVE_KEYS = frozenset({"api_key", "pws_api_key", "x-api-key", "authorization", "headers"})


def redact_sensitive(logger: Any, method_name: str, event_dict: dict) -> dict:
    """Processor masking values under credential-bearing keys."""
    for key in list(event_dict):
        if key.lower() in SENSITIVE_KEYS and event_dict[key]:
            event_dict[key] = "***"
    return event_dict


def configure_structured_logging(
    log_level: Optional[str] = None,
    log_format: Optional[str] = None,
) -> None:
    """
    Configure structlog processors and renderer.

    Uses:
    - Console renderer on a TTY with log_format=console
    - JSON renderer otherwise
    - Request context (correlation_id, mode) merged from contextvars

    Args:
        log_level: Minimum level name (default: settings.log_level)
        log_format: "console" or "json" (default: settings.log_format)
    """
    level_name = (log_level or settings.log_level).upper()
    use_console = (log_format or settings.log_format).lower() == "console"

    processors = [
        merge_contextvars,
        redact_sensitive,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if use_console and sys.stderr.isatty():
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=True,
                exception_formatter=structlog.dev.plain_traceback,
            )
        )
    else:
        processors.append(JSONRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level_name, logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_structured_logger(name: str, **additional_context: Any) -> structlog.BoundLogger:
    """
    Get a structured logger with bound context.

    Example:
        >>> logger = get_structured_logger(__name__, component="VerificationPipeline")
        >>> logger.info("verification_requested", text_chars=120)
    """
    logger = structlog.get_logger(name)
    if additional_context:
        logger = logger.bind(**additional_context)
    return logger


def get_correlation_id() -> str:
    return str(uuid.uuid4())


def bind_request_context(correlation_id: str, **context: Any) -> None:
    """Replace the current task's log context with a fresh request context."""
    clear_contextvars()
    bind_contextvars(correlation_id=correlation_id, **context)


configure_structured_logging()


__all__ = [
    "bind_request_context",
    "configure_structured_logging",
    "get_correlation_id",
    "get_structured_logger",
    "redact_sensitive",
]
