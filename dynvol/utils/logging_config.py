"""
dynvol Logging Configuration

Logging setup with:
- Console output with color formatting
- Optional file logging
- Module-level loggers under the "dynvol" hierarchy
- Timing context manager
"""

import logging
import sys
from pathlib import Path
from typing import Optional, Union
from datetime import datetime

ROOT_LOGGER_NAME = "dynvol"


class ColorFormatter(logging.Formatter):
    """Console formatter; ANSI colors only when writing to a terminal"""

    COLORS = {
        "DEBUG": "\033[36m",     # Cyan
        "INFO": "\033[32m",      # Green
        "WARNING": "\033[33m",   # Yellow
        "ERROR": "\033[31m",     # Red
        "CRITICAL": "\033[35m",  # Magenta
        "RESET": "\033[0m",
    }

    def __init__(self, use_color: bool = True):
        super().__init__()
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.COLORS["RESET"]) if self.use_color else ""
        reset = self.COLORS["RESET"] if self.use_color else ""

        timestamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        level_short = record.levelname[0]  # D, I, W, E, C

        return f"{color}[{timestamp}] {level_short} | {record.name}: {record.getMessage()}{reset}"


def setup_logging(
    level: str = "INFO",
    log_file: Optional[Union[str, Path]] = None,
) -> logging.Logger:
    """
    Setup logging for dynvol

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional path to log file

    Returns:
        Configured root logger
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper()))

    # Remove existing handlers so repeated setup does not duplicate output
    logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.DEBUG)
    console_handler.setFormatter(ColorFormatter(use_color=sys.stderr.isatty()))
    logger.addHandler(console_handler)

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file, mode="w")
        file_handler.setLevel(logging.DEBUG)
        file_formatter = logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )
        file_handler.setFormatter(file_formatter)
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a module-level logger

    Args:
        name: Module name (will be prefixed with "dynvol.")

    Returns:
        Logger instance
    """
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


class Timer:
    """Context manager for timing code sections"""

    def __init__(self, name: str, logger: Optional[logging.Logger] = None):
        self.name = name
        self.logger = logger or get_logger("timer")
        self.start_time = None
        self.elapsed = 0.0

    def __enter__(self):
        self.start_time = datetime.now()
        return self

    def __exit__(self, *args):
        self.elapsed = (datetime.now() - self.start_time).total_seconds()
        self.logger.debug(f"{self.name}: {self.elapsed:.3f}s")
