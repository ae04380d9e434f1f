"""
Central logging configuration for eventfeed.

Quiets verbose third-party loggers and tags every record with the request
correlation id so log lines from one HTTP request can be grouped.
"""

import logging
import os
from typing import Optional

from .middleware.correlation_id import get_request_id


class CorrelationIdFilter(logging.Filter):
    """Add the current request correlation id to every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id()
        return True


# Third-party libraries that generate excessive debug logs
NOISY_LOGGERS: dict[str, int] = {
    "aiohttp.access": logging.WARNING,
    "aiohttp.server": logging.WARNING,
    "aiohttp.web": logging.INFO,
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "asyncio": logging.WARNING,
    "icalendar": logging.INFO,
}


def configure_logging(
    debug_mode: bool = False,
    log_level: Optional[str] = None,
    force_debug: Optional[bool] = None,
) -> None:
    """
    Configure logging levels for eventfeed.

    Args:
        debug_mode: Whether to enable debug logging for eventfeed modules
        log_level: Root level name (DEBUG, INFO, WARNING, ERROR)
        force_debug: Override debug mode setting (None to use env var detection)

    Environment Variables:
        EVENTFEED_DEBUG: Set to '1', 'true', 'yes' to force debug logging
        EVENTFEED_LOG_LEVEL: Override root log level (DEBUG, INFO, WARNING, ERROR)
    """
    env_debug = os.getenv("EVENTFEED_DEBUG", "").lower() in ("1", "true", "yes")
    env_log_level = os.getenv("EVENTFEED_LOG_LEVEL", "").upper()

    if force_debug is not None:
        final_debug = force_debug
    elif env_debug:
        final_debug = True
    else:
        final_debug = debug_mode

    root_level = logging.DEBUG if final_debug else logging.INFO
    for candidate in (env_log_level, (log_level or "").upper()):
        if candidate in ("DEBUG", "INFO", "WARNING", "ERROR"):
            root_level = getattr(logging, candidate)
            break

    root_logger = logging.getLogger()
    root_logger.setLevel(root_level)

    correlation_filter = CorrelationIdFilter()
    if not root_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("[%(asctime)s] [%(request_id)s] %(levelname)s - %(name)s - %(message)s")
        )
        root_logger.addHandler(handler)
    for existing_handler in root_logger.handlers:
        if not any(isinstance(f, CorrelationIdFilter) for f in existing_handler.filters):
            existing_handler.addFilter(correlation_filter)

    for logger_name, level in NOISY_LOGGERS.items():
        logging.getLogger(logger_name).setLevel(level)
    logging.getLogger("eventfeed").setLevel(logging.DEBUG if final_debug else root_level)

    root_logger.info(
        "Logging configured: root=%s, eventfeed debug=%s",
        logging.getLevelName(root_level),
        final_debug,
    )
