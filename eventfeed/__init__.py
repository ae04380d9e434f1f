"""eventfeed - read-only feed of upcoming events from a remote ICS calendar.

Events are expanded from their recurrence rules, limited to the coming
year, sorted by end time and annotated with location links.
"""

__version__ = "0.1.0"

from typing import Optional


def _build_console_handler():
    """Colorized stderr handler whose lines carry the request correlation id."""
    import logging
    import sys

    from colorlog import ColoredFormatter

    from eventfeed.logging_config import CorrelationIdFilter

    handler = logging.StreamHandler(stream=sys.stderr)
    # HH:MM:SS  LEVEL   [request id] logger.name: message (only the level is colorized)
    fmt = "%(asctime)s %(log_color)s%(levelname)-7s%(reset)s [%(request_id)s] %(name)s: %(message)s"
    log_colors = {
        "DEBUG": "cyan",
        "INFO": "green",
        "WARNING": "yellow",
        "ERROR": "red",
        "CRITICAL": "bold_red",
    }
    handler.setFormatter(ColoredFormatter(fmt, datefmt="%H:%M:%S", log_colors=log_colors))
    handler.addFilter(CorrelationIdFilter())
    return handler


def _init_logging(level_name: Optional[str]) -> None:
    """Initialize root logging to stream to console.

    Honors the EVENTFEED_DEBUG environment variable (truthy values: "1",
    "true", "yes", "on"), which forces DEBUG verbosity.
    """
    import logging
    import os

    debug_env = os.environ.get("EVENTFEED_DEBUG", "")
    if debug_env.strip().lower() in ("1", "true", "yes", "on"):
        level_name = "DEBUG"

    root = logging.getLogger()
    # Only configure a handler if none is present to avoid duplicate output.
    if not root.handlers:
        root.addHandler(_build_console_handler())

    level = logging.INFO
    if isinstance(level_name, str):
        level = getattr(logging, level_name.upper(), logging.INFO)
    root.setLevel(level)
    logging.getLogger(__name__).debug(
        "Logging initialized at level %s", logging.getLevelName(level)
    )


def run_server(args: Optional[object] = None) -> None:
    """Load configuration, apply CLI overrides and run the HTTP server.

    Args:
        args: Optional argparse namespace with ``port``, ``host`` and ``log_level``
    """
    import logging
    import os

    _init_logging(os.environ.get("EVENTFEED_LOG_LEVEL"))
    logger = logging.getLogger(__name__)

    from eventfeed.api.server import start_server
    from eventfeed.core.config_manager import ConfigManager
    from eventfeed.logging_config import configure_logging

    cfg = ConfigManager().load_full_config()

    if args is not None:
        port = getattr(args, "port", None)
        if port is not None:
            cfg["server_port"] = int(port)
            logger.debug("Applied command line port override: %d", cfg["server_port"])
        host = getattr(args, "host", None)
        if host:
            cfg["server_bind"] = host
        log_level = getattr(args, "log_level", None)
        if log_level:
            cfg["log_level"] = log_level.upper()

    configure_logging(debug_mode=bool(cfg.get("debug_logging")), log_level=cfg.get("log_level"))

    # Only surface a small set of config keys
    diagnostic_cfg = {
        k: cfg.get(k) for k in ("calendar_url", "spaces_url", "server_bind", "server_port")
    }
    logger.debug("Resolved configuration (diagnostic): %s", diagnostic_cfg)

    start_server(cfg)
