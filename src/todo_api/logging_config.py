"""
Centralized logging configuration.

Every module obtains its logger through get_logger(__name__); the handlers
and format are installed once by setup_logging() when the app is created.
"""
import logging
import sys
from pathlib import Path
from typing import Optional

_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Module-level flag to prevent duplicate handler registration
_logging_configured = False


def setup_logging(log_level: str = "INFO", log_file: Optional[Path] = None) -> logging.Logger:
    """
    Configure application-wide logging.

    Safe to call more than once (e.g. one app per test); only the first call
    installs handlers, later calls just adjust the console level.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file that additionally receives every record.

    Returns:
        The configured package logger.
    """
    global _logging_configured

    package_logger = logging.getLogger("todo_api")
    level = getattr(logging, log_level.upper(), logging.INFO)

    if _logging_configured:
        for handler in package_logger.handlers:
            if isinstance(handler, logging.StreamHandler) and not isinstance(handler, logging.FileHandler):
                handler.setLevel(level)
        return package_logger

    formatter = logging.Formatter(fmt=_FORMAT, datefmt=_DATEFMT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(level)
    package_logger.addHandler(console_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        file_handler.setLevel(logging.DEBUG)
        package_logger.addHandler(file_handler)

    package_logger.setLevel(logging.DEBUG)

    # Suppress noisy third-party loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)

    _logging_configured = True
    package_logger.debug("Logging configured: level=%s, file=%s", log_level, log_file)
    return package_logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a specific module.

    Args:
        name: Logger name, typically __name__ of the calling module

    Returns:
        Logger instance for the specified name
    """
    return logging.getLogger(name)
