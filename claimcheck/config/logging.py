"""Loguru sinks for claimcheck with automatic dev/prod detection.

Console (colorized) on a TTY with LOG_FORMAT=console, JSON lines otherwise.
Both sinks write to stderr so ``claimcheck ... --json`` keeps stdout clean.
Records from chatty standard-library loggers (httpx, trafilatura, pdfminer)
are forwarded into the same sinks at WARNING and above, and the configured
API key is masked in every message.
"""

import logging
import sys

from loguru import logger

from claimcheck.config.settings import settings

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{extra[component]}</cyan> | <level>{message}</level>"
)

FORWARDED_LOGGERS = ("httpx", "httpcore", "trafilatura", "pdfminer")

MASK = "***"


def mask_api_key(record: dict) -> None:
    """Loguru patcher replacing the configured API key in a record's message and extras."""
    key = settings.pws_api_key
    if not key:
        return
    if key in record["message"]:
        record["message"] = record["message"].replace(key, MASK)
    extra = record["extra"]
    for name, value in list(extra.items()):
        if isinstance(value, str):
            if key in value:
                extra[name] = value.replace(key, MASK)
        elif key in str(value):
            extra[name] = MASK


class InterceptHandler(logging.Handler):
    """Forward standard logging records into loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        logger.bind(component=record.name).opt(exception=record.exc_info).log(
            level, record.getMessage()
        )


def configure_logging() -> None:
    """
    Configure loguru based on environment settings.

    Behavior:
    - Development (TTY + console format): colorized, human-readable output
    - Production (non-TTY or json format): JSON-structured logs
    - Respects LOG_LEVEL from settings
    """
    logger.remove()

    if sys.stderr.isatty() and settings.log_format.lower() == "console":
        logger.add(
            sys.stderr,
            format=CONSOLE_FORMAT,
            level=settings.log_level,
            colorize=True,
        )
    else:
        logger.add(
            sys.stderr,
            format="{message}",
            level=settings.log_level,
            serialize=True,
            diagnose=False,  # Disable variable inspection for security
        )

    # Unbound records still render with the console format
    logger.configure(extra={"component": "claimcheck"}, patcher=mask_api_key)

    handler = InterceptHandler()
    for name in FORWARDED_LOGGERS:
        std_logger = logging.getLogger(name)
        std_logger.handlers = [handler]
        std_logger.setLevel(logging.WARNING)
        std_logger.propagate = False


def get_logger(component: str):
    """
    Get a logger instance bound to a specific component name.

    Args:
        component: Component/module name for log context

    Returns:
        Logger instance with component context

    Example:
        >>> log = get_logger("PageScraper")
        >>> log.info("Link fetch failed", status=404)
    """
    return logger.bind(component=component)


configure_logging()

__all__ = ["logger", "get_logger", "configure_logging", "mask_api_key", "InterceptHandler"]
