"""
Logger Module

This module provides centralized logging functionality with consistent formatting.
"""

import os
import sys
import logging
import datetime
from typing import Optional

# Default log format
DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Default log level
DEFAULT_LOG_LEVEL = logging.INFO

# Root of the package logger hierarchy
PACKAGE_LOGGER = "depthfusion"


def setup_logging(log_file: Optional[str] = None,
                  log_level: int = DEFAULT_LOG_LEVEL,
                  log_format: str = DEFAULT_LOG_FORMAT) -> logging.Logger:
    """
    Attach console (and optionally file) handlers to the package logger.

    Calling this again replaces the handlers it installed before, so repeated
    setup does not duplicate messages.

    Args:
        log_file: Path to log file (if None, logs to console only)
        log_level: Logging level (default: INFO)
        log_format: Log message format

    Returns:
        The configured package logger
    """
    logger = logging.getLogger(PACKAGE_LOGGER)

    for handler in list(logger.handlers):
        if getattr(handler, "_depthfusion_handler", False):
            logger.removeHandler(handler)
            handler.close()

    handlers = []

    # Always add a console handler
    console_handler = logging.StreamHandler(sys.stdout)
    handlers.append(console_handler)

    # Add a file handler if log_file is specified
    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir, exist_ok=True)

        handlers.append(logging.FileHandler(log_file))

    for handler in handlers:
        handler.setFormatter(logging.Formatter(log_format))
        handler._depthfusion_handler = True
        logger.addHandler(handler)

    logger.setLevel(log_level)
    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger inside the package hierarchy.

    Names that are not already qualified are placed under ``depthfusion.`` so
    that handlers installed by setup_logging apply to them.

    Args:
        name: The name of the logger

    Returns:
        A logger instance
    """
    if name != PACKAGE_LOGGER and not name.startswith(PACKAGE_LOGGER + "."):
        name = f"{PACKAGE_LOGGER}.{name}"
    return logging.getLogger(name)


def get_timestamped_log_file(base_dir: str, prefix: str = "reconstruction_run") -> str:
    """
    Generate a timestamped log file path.

    Args:
        base_dir: Base directory for log files
        prefix: Prefix for the log file name

    Returns:
        A path to a log file with a timestamp
    """
    timestamp = datetime.datetime.now().strftime("%Y%m%d_%H%M%S")
    log_dir = os.path.join(base_dir, "logs")
    os.makedirs(log_dir, exist_ok=True)

    return os.path.join(log_dir, f"{prefix}_{timestamp}.log")
