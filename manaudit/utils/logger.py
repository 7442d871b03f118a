"""Logging utilities using rich for terminal output."""

import logging

from rich.console import Console
from rich.logging import RichHandler

# Global console instances
console = Console()
console_err = Console(stderr=True)


def setup_logger(name: str, verbosity: int = 0, log_file: str | None = None) -> logging.Logger:
    """
    Set up a logger with rich formatting and optional file rotation.

    Args:
        name: Logger name
        verbosity: Verbosity level (0=WARNING, 1=INFO, 2=DEBUG)
        log_file: Optional path to log file. If provided, enables file logging with rotation.

    Returns:
        Configured logger instance
    """
    level_map = {
        0: logging.WARNING,
        1: logging.INFO,
        2: logging.DEBUG,
    }
    level = level_map.get(verbosity, logging.DEBUG)

    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    # Diagnostics go to stderr so that report output on stdout stays clean
    handler = RichHandler(
        console=console_err,
        show_time=False,
        show_path=False,
        markup=False,
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)

    if log_file:
        from logging.handlers import RotatingFileHandler
        from pathlib import Path

        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=10 * 1024 * 1024,  # 10 MB
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance.

    Handlers are configured once at application startup using setup_logger().

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)

