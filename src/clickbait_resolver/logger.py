"""Logging setup for the Clickbait Resolver."""

import logging
import sys
import time
from contextlib import contextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import IO, Iterator, Optional

LOGGER_NAME = "clickbait_resolver"


def setup_logger(
    log_file: Optional[Path],
    name: str = LOGGER_NAME,
    level: int = logging.INFO,
    max_bytes: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 3,
    stream: Optional[IO[str]] = None
) -> logging.Logger:
    """
    Set up application logger with file and console handlers.

    Args:
        log_file: Path to the log file (None disables the file handler)
        name: Logger name
        level: Logging level (default: INFO)
        max_bytes: Maximum log file size before rotation (default: 10MB)
        backup_count: Number of backup files to keep (default: 3)
        stream: Console stream (default: stdout)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Remove existing handlers to avoid duplicates
    logger.handlers.clear()

    detailed_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(module)s:%(funcName)s:%(lineno)d - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    console_formatter = logging.Formatter(
        '%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding='utf-8'
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(detailed_formatter)
        logger.addHandler(file_handler)

    console_handler = logging.StreamHandler(stream if stream is not None else sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(console_formatter)
    logger.addHandler(console_handler)

    return logger


def get_logger(name: str = LOGGER_NAME) -> logging.Logger:
    """
    Get existing logger instance.

    Args:
        name: Logger name

    Returns:
        Logger instance
    """
    return logging.getLogger(name)


def set_debug_mode(enabled: bool, name: str = LOGGER_NAME) -> None:
    """
    Switch the application logger between DEBUG and INFO at runtime.

    Args:
        enabled: True for DEBUG output, False for INFO
        name: Logger name
    """
    level = logging.DEBUG if enabled else logging.INFO
    logger = logging.getLogger(name)
    logger.setLevel(level)
    for handler in logger.handlers:
        handler.setLevel(level)
    logger.info(f"Debug mode {'enabled' if enabled else 'disabled'}")


@contextmanager
def log_timing(label: str, name: str = LOGGER_NAME) -> Iterator[None]:
    """Log how long the wrapped block took, at DEBUG level."""
    logger = logging.getLogger(name)
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.debug(f"[PERF] {label}: {elapsed_ms:.1f}ms")
