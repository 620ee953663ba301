"""
Central logging configuration for pg_ical.

Configures console logging for command-line use. Library code only creates
module loggers; nothing here runs on import.
"""

import logging
import os
import sys
from typing import Optional

import colorlog

PGICAL_MODULES = [
    "pg_ical",
    "pg_ical.calendar.unfolder",
    "pg_ical.calendar.tokenizer",
    "pg_ical.calendar.value_parser",
    "pg_ical.calendar.assembler",
    "pg_ical.calendar.diagnostics",
    "pg_ical.calendar.parser",
    "pg_ical.rows",
    "pg_ical.core.settings",
    "pg_ical.core.timezone_utils",
]

LOG_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "bold_red",
}


def _build_handler(level: int) -> logging.Handler:
    handler = colorlog.StreamHandler(stream=sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(
        colorlog.ColoredFormatter(
            "%(asctime)s %(log_color)s%(levelname)-7s%(reset)s %(name)s: %(message)s",
            datefmt="%H:%M:%S",
            log_colors=LOG_COLORS,
        )
    )
    return handler


def configure_logging(
    debug_mode: bool = False,
    force_debug: Optional[bool] = None,
    log_level: Optional[str] = None,
) -> None:
    """
    Configure logging levels for pg_ical.

    Args:
        debug_mode: Whether to enable debug logging for pg_ical modules
        force_debug: Override debug mode setting (None to use env var detection)
        log_level: Root log level; takes precedence over PGICAL_LOG_LEVEL

    Environment Variables:
        PGICAL_DEBUG: Set to '1', 'true', 'yes' to force debug logging
        PGICAL_LOG_LEVEL: Override root log level (DEBUG, INFO, WARNING, ERROR)
    """
    env_debug = os.getenv("PGICAL_DEBUG", "").lower() in ("1", "true", "yes")
    level_name = (log_level or os.getenv("PGICAL_LOG_LEVEL", "")).upper()

    if force_debug is not None:
        final_debug = force_debug
    elif env_debug:
        final_debug = True
    else:
        final_debug = debug_mode

    root_level = logging.DEBUG if final_debug else logging.INFO
    if level_name in ("DEBUG", "INFO", "WARNING", "ERROR"):
        root_level = getattr(logging, level_name)

    root_logger = logging.getLogger()
    root_logger.setLevel(root_level)

    # Only add a handler if none exist, so embedding applications keep theirs
    if not root_logger.handlers:
        root_logger.addHandler(_build_handler(root_level))

    module_level = logging.DEBUG if final_debug else logging.INFO
    for module in PGICAL_MODULES:
        logging.getLogger(module).setLevel(module_level)

    root_logger.debug("pg_ical logging configured (debug=%s)", final_debug)


def get_logging_status() -> dict[str, str]:
    """
    Get current logging configuration status.

    Returns:
        Dictionary mapping logger names to their current levels
    """
    status = {"root": logging.getLevelName(logging.getLogger().level)}
    for logger_name in PGICAL_MODULES:
        status[logger_name] = logging.getLevelName(logging.getLogger(logger_name).level)
    return status
