"""
Logging configuration using loguru.
"""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger


def setup_logging(log_dir: Optional[Path] = None, verbose: bool = False) -> logger:
    """
    Setup application logging.

    Args:
        log_dir: Directory for log files, or None for console logging only
        verbose: Enable verbose logging

    Returns:
        Configured logger instance
    """
    # Remove default handler
    logger.remove()

    # Console handler
    log_level = "DEBUG" if verbose else "INFO"
    logger.add(
        sys.stderr,
        level=log_level,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>",
    )

    if log_dir is None:
        return logger

    # File handler - main log
    log_file = log_dir / "bbr-setup.log"
    logger.add(
        log_file,
        rotation="10 MB",
        retention="30 days",
        level="DEBUG",
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} | {message}",
    )

    # File handler - errors only
    error_log = log_dir / "bbr-setup_errors.log"
    logger.add(
        error_log,
        rotation="10 MB",
        retention="90 days",
        level="ERROR",
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} | {message}",
    )

    logger.debug(f"Log files: {log_file}, {error_log}")

    return logger
