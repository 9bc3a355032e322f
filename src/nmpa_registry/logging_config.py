"""Structured logging configuration for the NMPA registry ingestor."""

import logging
import sys
from pathlib import Path
from typing import Optional, TextIO


DEFAULT_LOG_DIR = Path("logs")
DEFAULT_LOG_FILE = "nmpa_registry.log"
DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
ROOT_LOGGER_NAME = "nmpa_registry"


def setup_logging(
    log_file: Optional[Path] = None,
    log_dir: Optional[Path] = None,
    level: int = logging.INFO,
    console: bool = True,
    format_string: Optional[str] = None,
    stream: Optional[TextIO] = None,
) -> logging.Logger:
    """Configure logging for the registry ingestor.

    Args:
        log_file: Path to log file; when omitted only the console is used
        log_dir: Directory for relative log files (default: logs/)
        level: Logging level (default: INFO)
        console: Whether to also log to stdout (default: True)
        format_string: Custom log format string
        stream: Console stream (default: stdout)

    Returns:
        The package root logger
    """
    fmt = format_string or DEFAULT_FORMAT
    formatter = logging.Formatter(fmt, datefmt=DEFAULT_DATE_FORMAT)

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level)

    # Re-running setup must not stack handlers
    logger.handlers.clear()

    if log_file is not None:
        if not log_file.is_absolute():
            log_file = (log_dir or DEFAULT_LOG_DIR) / log_file
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    if console:
        console_handler = logging.StreamHandler(stream or sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    logger.propagate = False

    if log_file is not None:
        logger.info(f"Logging initialized: {log_file}")
    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the nmpa_registry namespace.

    Args:
        name: Logger name (typically module name)

    Returns:
        Logger instance named ``nmpa_registry.<name>``
    """
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
