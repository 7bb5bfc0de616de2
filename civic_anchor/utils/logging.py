"""
Logging setup.

Configures the loguru logger for the anchoring service and its scripts.
Sets up log rotation and retention policies for the optional file sink.
"""

import sys

from loguru import logger


def setup_logging(level: str = "INFO", log_file: str | None = None) -> None:
    """
    Configure logger sinks.

    Args:
        level: Minimum level for all sinks
        log_file: Optional path of a rotating log file
    """
    logger.remove()
    logger.add(sys.stderr, level=level)

    if log_file:
        logger.add(
            log_file,
            rotation="1 day",
            retention="7 days",
            level=level,
            encoding="utf-8",
        )

    logger.debug(f"Logging configured (level={level}, file={log_file})")
