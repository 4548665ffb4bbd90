"""dynvol Utilities Module"""

from .logging_config import setup_logging, get_logger, Timer

__all__ = [
    "setup_logging",
    "get_logger",
    "Timer",
]
