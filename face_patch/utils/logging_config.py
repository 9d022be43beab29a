"""
Logging Configuration for Face Patch

Provides centralized logging setup and configuration for the entire application.
"""

import logging
import logging.handlers
import platform
import sys
from pathlib import Path
from typing import Optional

import colorlog

HTTP_LOGGERS = ("urllib3", "requests")

LOG_COLORS = {
    'DEBUG': 'cyan',
    'INFO': 'green',
    'WARNING': 'yellow',
    'ERROR': 'red',
    'CRITICAL': 'red,bg_white',
}


def setup_logging(
    level: int = logging.INFO,
    log_file: Optional[str] = None,
    enable_colors: bool = True,
    format_string: Optional[str] = None
) -> None:
    """
    Setup logging configuration for the application.

    Args:
        level: Logging level (e.g., logging.INFO)
        log_file: Optional path to log file
        enable_colors: Whether to enable colored console output
        format_string: Custom format string for log messages
    """
    if format_string is None:
        format_string = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

    color_format = (
        '%(log_color)s%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)

    if enable_colors:
        console_formatter = colorlog.ColoredFormatter(
            color_format,
            datefmt='%Y-%m-%d %H:%M:%S',
            log_colors=LOG_COLORS
        )
    else:
        console_formatter = logging.Formatter(
            format_string,
            datefmt='%Y-%m-%d %H:%M:%S'
        )

    console_handler.setFormatter(console_formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(
            format_string,
            datefmt='%Y-%m-%d %H:%M:%S'
        ))
        root_logger.addHandler(file_handler)

    configure_module_logging()


def configure_module_logging(level: int = logging.WARNING) -> None:
    """Raise the level of the HTTP stack so request internals stay out of the output."""
    for name in HTTP_LOGGERS:
        logging.getLogger(name).setLevel(level)


def setup_cli_logging(
    verbose: bool = False,
    quiet: bool = False,
    log_file: Optional[str] = None,
    level_name: Optional[str] = None
) -> None:
    """
    Setup logging specifically for CLI usage.

    Args:
        verbose: Enable verbose (DEBUG) logging
        quiet: Enable quiet mode (ERROR only)
        log_file: Optional log file path
        level_name: Level from configuration, used when neither flag is set
    """
    if quiet:
        level = logging.ERROR
        enable_colors = False
    elif verbose:
        level = logging.DEBUG
        enable_colors = True
    else:
        level = logging.getLevelName(level_name) if level_name else logging.INFO
        if not isinstance(level, int):
            level = logging.INFO
        enable_colors = True

    setup_logging(
        level=level,
        log_file=log_file,
        enable_colors=enable_colors
    )


def log_system_info() -> None:
    """Log system information for debugging purposes."""
    logger = logging.getLogger(__name__)

    logger.info("=== System Information ===")
    logger.info(f"Python version: {sys.version}")
    logger.info(f"Platform: {platform.platform()}")

    import cv2
    import numpy
    import requests
    logger.info(f"OpenCV version: {cv2.__version__}")
    logger.info(f"NumPy version: {numpy.__version__}")
    logger.info(f"requests version: {requests.__version__}")

    logger.info("=" * 30)

