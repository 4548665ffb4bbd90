"""
dynvol Configuration Loader

Handles loading, validation, and merging of configuration files.

Config Hierarchy (highest to lowest priority):
1. overrides dict (CLI args)
2. config file (--config)
3. Package defaults (dynvol/configs/default.yaml)
"""

import yaml
from pathlib import Path
from dataclasses import dataclass, field, asdict
from typing import Dict, List, Optional, Any, Union
from copy import deepcopy

from ..errors import ConfigError
from ..utils.logging_config import get_logger

logger = get_logger("config")

DYNVOL_ROOT = Path(__file__).parent.parent
CONFIGS_DIR = DYNVOL_ROOT / "configs"
DEFAULT_CONFIG_PATH = CONFIGS_DIR / "default.yaml"

# Tags tried, in order, to split a flat slice list into temporal phases
DEFAULT_SPLIT_TAGS = [
    "TemporalPositionIdentifier",
    "DiffusionBValue",
    "TriggerTime",
    "EchoTime",
    "EchoNumbers",
    "AcquisitionNumber",
]

REORDER_STRATEGIES = ["uniform", "size_aware"]


@dataclass
class GroupingConfig:
    """4D grouping configuration"""
    split_tags: List[str] = field(default_factory=lambda: list(DEFAULT_SPLIT_TAGS))


@dataclass
class ReorderConfig:
    """Primary-phase promotion configuration"""
    strategy: str = "uniform"
    default_scalar_data_index: Optional[int] = None


@dataclass
class LoggingConfig:
    """Logging configuration"""
    level: str = "INFO"
    log_file: Optional[str] = None


@dataclass
class LoaderConfig:
    """Complete loader configuration"""
    grouping: GroupingConfig = field(default_factory=GroupingConfig)
    reorder: ReorderConfig = field(default_factory=ReorderConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _deep_merge(base: Dict, override: Dict) -> Dict:
    """
    Deep merge two dictionaries, with override taking precedence

    Args:
        base: Base dictionary
        override: Override dictionary

    Returns:
        Merged dictionary
    """
    result = deepcopy(base)

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = deepcopy(value)

    return result


def _coerce_type(value: Any, target_type: type) -> Any:
    """Coerce value to target type (handles YAML string parsing issues)"""
    if value is None:
        return value

    origin = getattr(target_type, '__origin__', None)
    if origin is not None:
        # Optional[X] is Union[X, None]
        args = getattr(target_type, '__args__', ())
        if type(None) in args:
            for arg in args:
                if arg is not type(None):
                    return _coerce_type(value, arg)
        return value

    if target_type == int and isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return value

    return value


def _dict_to_dataclass(data: Dict, cls: type) -> Any:
    """
    Convert dictionary to dataclass instance

    Unknown keys are ignored with a warning.
    """
    if not hasattr(cls, "__dataclass_fields__"):
        return data

    unknown = set(data) - set(cls.__dataclass_fields__)
    if unknown:
        logger.warning(f"Ignoring unknown {cls.__name__} keys: {sorted(unknown)}")

    field_values = {}
    for field_name, field_info in cls.__dataclass_fields__.items():
        if field_name in data:
            value = data[field_name]
            if hasattr(field_info.type, "__dataclass_fields__") and isinstance(value, dict):
                value = _dict_to_dataclass(value, field_info.type)
            else:
                value = _coerce_type(value, field_info.type)
            field_values[field_name] = value

    return cls(**field_values)


def load_yaml_config(path: Path) -> Dict:
    """Load a YAML configuration file"""
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")

    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping, got {type(data).__name__}")
    return data


def load_default_config() -> Dict:
    """Load the default configuration from YAML file"""
    if DEFAULT_CONFIG_PATH.exists():
        return load_yaml_config(DEFAULT_CONFIG_PATH)
    logger.warning(f"Default config not found at {DEFAULT_CONFIG_PATH}")
    return {}


def default_config() -> LoaderConfig:
    """
    Get the default loader configuration

    Returns:
        LoaderConfig with default values
    """
    config = _dict_to_dataclass(load_default_config(), LoaderConfig)
    _validate_config(config)
    return config


def load_config(
    config_path: Optional[Union[str, Path]] = None,
    overrides: Optional[Dict] = None,
) -> LoaderConfig:
    """
    Load loader configuration with hierarchy support

    Config Priority (highest to lowest):
    1. overrides dict (from CLI args)
    2. config_path
    3. package defaults

    Args:
        config_path: Optional path to a YAML config file
        overrides: Optional nested dict of overrides

    Returns:
        Validated LoaderConfig

    Raises:
        ConfigError: If a file is missing/malformed or validation fails
    """
    config_dict = load_default_config()

    if config_path is not None:
        logger.info(f"Loading config file: {config_path}")
        config_dict = _deep_merge(config_dict, load_yaml_config(Path(config_path)))

    if overrides:
        config_dict = _deep_merge(config_dict, overrides)

    config = _dict_to_dataclass(config_dict, LoaderConfig)
    _validate_config(config)
    return config


def _validate_config(config: LoaderConfig):
    """
    Validate configuration

    Raises:
        ConfigError: If configuration is invalid
    """
    if config.reorder.strategy not in REORDER_STRATEGIES:
        raise ConfigError(
            f"Invalid reorder strategy: {config.reorder.strategy}. Must be one of {REORDER_STRATEGIES}"
        )

    index = config.reorder.default_scalar_data_index
    if index is not None and not isinstance(index, int):
        raise ConfigError(f"default_scalar_data_index must be an integer, got {index!r}")

    tags = config.grouping.split_tags
    if not isinstance(tags, list) or not all(isinstance(t, str) and t for t in tags):
        raise ConfigError(f"grouping.split_tags must be a list of tag names, got {tags!r}")

    if config.logging.level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
        raise ConfigError(f"Invalid logging level: {config.logging.level}")

    logger.debug("Configuration validated successfully")
