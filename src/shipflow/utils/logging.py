"""
Logging configuration for Shipflow.

Console output goes through rich, an optional log file gets a plain parseable format.
"""

import logging
import sys
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.logging import RichHandler


class FileFormatter(logging.Formatter):
    """Formatter for file logs - clean and parseable."""

    def __init__(self) -> None:
        super().__init__(fmt="%(asctime)s [%(levelname)-8s] %(name)s: %(message)s", datefmt="%Y-%m-%d %H:%M:%S")


# Map string level names to logging constants
LEVEL_MAP = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def _parse_level(level: str | int) -> int:
    """
    Parse logging level from string or int.

    Unknown names fall back to INFO.
    """
    if isinstance(level, int):
        return level
    if isinstance(level, str):
        level_upper = level.upper()
        if level_upper in LEVEL_MAP:
            return LEVEL_MAP[level_upper]
    return logging.INFO


def setup_logging(
    level: str | int = logging.INFO,
    log_file: str | Path | None = None,
    format_string: str | None = None,
    file_mode: str = "a",
    console: Console | None = None,
    use_rich: bool = True,
) -> logging.Logger:
    """
    Setup logging configuration for Shipflow.

    Args:
        level: Logging level as string (DEBUG, INFO, etc.) or int (default: INFO)
        log_file: Optional file path to write logs to (default: None, console only)
        format_string: Optional custom format string for the plain console handler
        file_mode: File mode for file handler - 'a' for append, 'w' for overwrite
        console: Optional Rich Console instance to log to
        use_rich: Whether to use RichHandler for console output (default: True)

    Returns:
        The configured ``shipflow`` logger
    """
    logger = logging.getLogger("shipflow")

    # Only clear handlers from this specific logger, not root or child loggers
    logger.handlers.clear()

    level_int = _parse_level(level)
    logger.setLevel(level_int)

    if use_rich:
        logger.addHandler(
            RichHandler(
                level=level_int,
                console=console or Console(stderr=True),
                show_time=True,
                show_path=False,
                markup=False,
                rich_tracebacks=True,
                tracebacks_show_locals=False,
                log_time_format="[%X]",
                omit_repeated_times=False,
            )
        )
    else:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level_int)
        console_handler.setFormatter(
            logging.Formatter(format_string or "%(levelname)s: %(asctime)s - %(name)s - %(message)s")
        )
        logger.addHandler(console_handler)

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode=file_mode)
        # File captures everything; the logger level still filters
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(FileFormatter())
        logger.addHandler(file_handler)

    logger.propagate = True
    return logger


def setup_logging_from_config(config: dict[str, Any]) -> logging.Logger:
    """
    Setup logging from the ``logging`` section of a Shipflow configuration.

    Recognised keys: ``level``, ``file``, ``file_mode``, ``format``, ``console_type``
    (``rich`` or ``plain``).
    """
    logging_config = config.get("logging", {}) or {}
    return setup_logging(
        level=logging_config.get("level", logging.INFO),
        log_file=logging_config.get("file"),
        format_string=logging_config.get("format"),
        file_mode=logging_config.get("file_mode", "a"),
        use_rich=logging_config.get("console_type", "rich") == "rich",
    )


def get_logger(name: str = "shipflow") -> logging.Logger:
    """
    Get a logger instance.

    Args:
        name: Logger name (default: "shipflow")

    Returns:
        Logger instance
    """
    logger = logging.getLogger(name)
    # Child loggers propagate to the "shipflow" handlers configured above
    logger.propagate = True
    return logger


def format_bytes(num_bytes: float) -> str:
    """Format a byte count as a human-readable string (1024-based)."""
    if num_bytes <= 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB", "TB"]
    value = float(num_bytes)
    idx = 0
    while value >= 1024 and idx < len(units) - 1:
        value /= 1024
        idx += 1
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{text} {units[idx]}"
