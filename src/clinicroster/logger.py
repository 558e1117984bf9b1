"""Logging configuration for the roster engine.

Library modules only obtain loggers through :func:`get_logger`; handlers are
installed once by the entry point via :func:`setup_logging`.
"""

import logging
import os
import time
from contextlib import contextmanager
from datetime import datetime
from typing import Optional

ROOT_LOGGER_NAME = "clinicroster"


def setup_logging(
    level: int = logging.INFO,
    log_dir: Optional[str] = None,
) -> logging.Logger:
    """Configure logging for the application.

    Args:
        level: Logging level (default: INFO).
        log_dir: Directory for a dated log file. Console only when None.

    Returns:
        The configured package logger.
    """
    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level)

    # Clear existing handlers to avoid duplicates on repeated setup
    logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        log_file = os.path.join(
            log_dir, f"roster_{datetime.now().strftime('%Y%m%d')}.log"
        )
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a logger prefixed with the package name."""
    if name:
        return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
    return logging.getLogger(ROOT_LOGGER_NAME)


@contextmanager
def log_timing(operation_name: str, logger_instance: Optional[logging.Logger] = None):
    """Measure and log the execution time of a block.

    Usage:
        with log_timing("phase 1"):
            assigner.run(ctx)
    """
    log = logger_instance or get_logger("perf")
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed = time.perf_counter() - start
        log.info("%s: %.4fs", operation_name, elapsed)
