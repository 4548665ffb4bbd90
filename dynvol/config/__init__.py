"""dynvol Configuration Module"""

from .config_loader import (
    load_config,
    default_config,
    LoaderConfig,
    GroupingConfig,
    ReorderConfig,
    LoggingConfig,
    DEFAULT_SPLIT_TAGS,
    REORDER_STRATEGIES,
)

__all__ = [
    "load_config",
    "default_config",
    "LoaderConfig",
    "GroupingConfig",
    "ReorderConfig",
    "LoggingConfig",
    "DEFAULT_SPLIT_TAGS",
    "REORDER_STRATEGIES",
]
