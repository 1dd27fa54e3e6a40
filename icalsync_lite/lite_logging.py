"""
Central logging configuration for icalsync_lite.

The library itself never configures logging on import; applications call
configure_lite_logging() once at startup to get sensible levels for the
icalsync_lite modules and the third-party libraries they use.
"""

import logging
import os
from typing import Optional

LOG_FORMAT = "[%(asctime)s] %(levelname)s - %(name)s - %(message)s"

# Third-party loggers whose levels are managed here
THIRD_PARTY_LEVELS: dict[str, int] = {
    "icalendar": logging.INFO,  # Keep some ICS parsing info
    "dateutil": logging.WARNING,
}

LITE_MODULES = [
    "icalsync_lite",
    "icalsync_lite.calendar.lite_stream_decoder",
    "icalsync_lite.calendar.lite_component_parser",
    "icalsync_lite.calendar.lite_timezone_resolver",
    "icalsync_lite.calendar.lite_entity_parser",
    "icalsync_lite.calendar.lite_entity_merger",
    "icalsync_lite.calendar.lite_parser",
    "icalsync_lite.calendar.lite_serializer",
    "icalsync_lite.calendar.lite_datetime_utils",
    "icalsync_lite.calendar.lite_parser_telemetry",
    "icalsync_lite.core.config_manager",
    "icalsync_lite.core.timezone_utils",
]


def configure_lite_logging(debug_mode: bool = False, force_debug: Optional[bool] = None) -> None:
    """
    Configure logging levels for icalsync_lite.

    Debug mode can be overridden via environment variable for troubleshooting.

    Args:
        debug_mode: Whether to enable debug logging for icalsync_lite modules
        force_debug: Override debug mode setting (None to use env var detection)

    Environment Variables:
        ICALSYNC_DEBUG: Set to '1', 'true', 'yes' to force debug logging
        ICALSYNC_LOG_LEVEL: Override root log level (DEBUG, INFO, WARNING, ERROR)
    """
    # Check for debug override from environment
    env_debug = os.getenv("ICALSYNC_DEBUG", "").lower() in ("1", "true", "yes")
    env_log_level = os.getenv("ICALSYNC_LOG_LEVEL", "").upper()

    # Determine final debug mode
    if force_debug is not None:
        final_debug = force_debug
    elif env_debug:
        final_debug = True
    else:
        final_debug = debug_mode

    # Set root logger level
    root_level = logging.DEBUG if final_debug else logging.INFO
    if env_log_level in ("DEBUG", "INFO", "WARNING", "ERROR"):
        root_level = getattr(logging, env_log_level)

    root_logger = logging.getLogger()
    root_logger.setLevel(root_level)

    # Only add a handler if the application has not installed one
    if not root_logger.handlers:
        handler = logging.StreamHandler()
        handler.setLevel(root_level)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root_logger.addHandler(handler)

    logger_config = dict(THIRD_PARTY_LEVELS)
    lite_level = logging.DEBUG if final_debug else logging.INFO
    for module in LITE_MODULES:
        logger_config[module] = lite_level

    for logger_name, level in logger_config.items():
        logging.getLogger(logger_name).setLevel(level)

    if final_debug:
        root_logger.info("Debug logging enabled for icalsync_lite modules")
    else:
        root_logger.info("Production logging configuration applied")


def reset_logging_to_debug() -> None:
    """
    Reset all icalsync_lite and managed third-party loggers to DEBUG level.

    This is a utility function to temporarily enable verbose logging
    for all modules when diagnosing issues.
    """
    logging.getLogger().setLevel(logging.DEBUG)

    for logger_name in [*THIRD_PARTY_LEVELS, *LITE_MODULES]:
        logging.getLogger(logger_name).setLevel(logging.DEBUG)

    logging.getLogger().info("All loggers reset to DEBUG level for troubleshooting")


def get_logging_status() -> dict[str, str]:
    """
    Get current logging configuration status.

    Returns:
        Dictionary mapping logger names to their current levels
    """
    status = {}

    root_logger = logging.getLogger()
    status["root"] = logging.getLevelName(root_logger.level)

    for logger_name in ["icalsync_lite", *THIRD_PARTY_LEVELS]:
        status[logger_name] = logging.getLevelName(logging.getLogger(logger_name).level)

    return status
