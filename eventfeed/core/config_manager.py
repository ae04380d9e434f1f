"""Configuration management for the eventfeed server."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

from eventfeed.core.timezone_utils import resolve_timezone

logger = logging.getLogger(__name__)

DEFAULT_CALENDAR_URL = (
    "https://calendar.google.com/calendar/ical/"
    "c_g2eqt2a7u1fc1pahe2o0ecm7as%40group.calendar.google.com/public/basic.ics"
)
DEFAULT_SPACES_URL = "https://navi.jyu.fi/api/spaces"

DEFAULT_CONFIG: dict[str, Any] = {
    "calendar_url": DEFAULT_CALENDAR_URL,
    "spaces_url": DEFAULT_SPACES_URL,
    "space_url_template": "https://navi.jyu.fi/space/{id}",
    "map_search_url_template": "https://www.google.com/maps/search/?api=1&query={query}",
    "cache_ttl_seconds": 600,
    "request_timeout": 30,
    "display_timezone": None,
    "server_bind": "0.0.0.0",  # nosec B104 - service is meant to be reachable
    "server_port": 3030,
    "log_level": "INFO",
    "debug_logging": False,
}


def parse_env_file(path: Path) -> dict[str, str]:
    """Parse a .env file and return key-value pairs.

    Skips empty lines and comments, strips quotes from values. Returns an
    empty dict if the file does not exist or cannot be read.
    """
    if not path.exists():
        return {}

    result: dict[str, str] = {}

    try:
        content = path.read_text(encoding="utf-8")
    except OSError:
        logger.debug("Failed to read .env file (continuing): %s", str(path), exc_info=True)
        return result

    for raw_line in content.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, val = line.split("=", 1)
        key = key.strip()
        if key:
            result[key] = val.strip().strip('"').strip("'")

    return result


def _is_truthy(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


class ConfigManager:
    """Manages application configuration from environment variables and .env files."""

    def __init__(self, env_file_path: Path | None = None):
        """Initialize configuration manager.

        Args:
            env_file_path: Optional path to .env file (defaults to .env in current directory)
        """
        self.env_file_path = env_file_path or Path.cwd() / ".env"

    def load_env_file(self) -> list[str]:
        """Load .env file into the environment without overriding existing variables.

        Returns:
            Keys that were set from the .env file
        """
        parsed = parse_env_file(self.env_file_path)

        set_keys = []
        for key, val in parsed.items():
            if key not in os.environ:
                os.environ[key] = val
                set_keys.append(key)

        if set_keys:
            logger.debug("Loaded .env defaults for keys: %s", ", ".join(set_keys))

        return set_keys

    @staticmethod
    def _int_from_env(cfg: dict[str, Any], key: str, env_name: str) -> None:
        raw = os.environ.get(env_name)
        if not raw:
            return
        try:
            value = int(raw)
        except ValueError:
            logger.warning("Invalid %s=%r; ignoring", env_name, raw)
            return
        if value <= 0:
            logger.warning("Invalid %s=%r (must be positive); ignoring", env_name, raw)
            return
        cfg[key] = value

    def build_config_from_env(self) -> dict[str, Any]:
        """Build configuration dictionary from defaults and environment variables.

        Recognizes:
        - EVENTFEED_CALENDAR_URL -> 'calendar_url'
        - EVENTFEED_SPACES_URL -> 'spaces_url'
        - EVENTFEED_SPACE_URL_TEMPLATE -> 'space_url_template'
        - EVENTFEED_CACHE_TTL -> 'cache_ttl_seconds' (int)
        - EVENTFEED_REQUEST_TIMEOUT -> 'request_timeout' (int)
        - EVENTFEED_DISPLAY_TIMEZONE -> 'display_timezone'
        - EVENTFEED_WEB_HOST -> 'server_bind'
        - EVENTFEED_WEB_PORT -> 'server_port' (int)
        - EVENTFEED_LOG_LEVEL -> 'log_level'
        - EVENTFEED_DEBUG -> 'debug_logging' (bool)
        """
        cfg: dict[str, Any] = dict(DEFAULT_CONFIG)

        for env_name, key in (
            ("EVENTFEED_CALENDAR_URL", "calendar_url"),
            ("EVENTFEED_SPACES_URL", "spaces_url"),
            ("EVENTFEED_WEB_HOST", "server_bind"),
        ):
            value = os.environ.get(env_name)
            if value:
                cfg[key] = value

        template = os.environ.get("EVENTFEED_SPACE_URL_TEMPLATE")
        if template:
            if "{id}" in template:
                cfg["space_url_template"] = template
            else:
                logger.warning("EVENTFEED_SPACE_URL_TEMPLATE must contain '{id}'; ignoring")

        self._int_from_env(cfg, "cache_ttl_seconds", "EVENTFEED_CACHE_TTL")
        self._int_from_env(cfg, "request_timeout", "EVENTFEED_REQUEST_TIMEOUT")
        self._int_from_env(cfg, "server_port", "EVENTFEED_WEB_PORT")

        display_tz = os.environ.get("EVENTFEED_DISPLAY_TIMEZONE")
        if display_tz:
            if resolve_timezone(display_tz) is not None:
                cfg["display_timezone"] = display_tz
            else:
                logger.warning("Invalid EVENTFEED_DISPLAY_TIMEZONE=%r; using server local time", display_tz)

        log_level = os.environ.get("EVENTFEED_LOG_LEVEL")
        if log_level:
            cfg["log_level"] = log_level.upper()

        debug = os.environ.get("EVENTFEED_DEBUG")
        if debug:
            cfg["debug_logging"] = _is_truthy(debug)

        return cfg

    def load_full_config(self) -> dict[str, Any]:
        """Load .env file and build configuration from environment."""
        self.load_env_file()
        return self.build_config_from_env()


def get_config_value(config: Any, key: str, default: Any = None) -> Any:
    """Get configuration value supporting both dict and attribute-style objects."""
    if isinstance(config, dict):
        return config.get(key, default)
    return getattr(config, key, default)
