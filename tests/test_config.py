"""Tests for configuration loading"""

import pytest

from dynvol.config import DEFAULT_SPLIT_TAGS, default_config, load_config
from dynvol.errors import ConfigError


def test_defaults():
    config = default_config()

    assert config.reorder.strategy == "uniform"
    assert config.reorder.default_scalar_data_index is None
    assert config.grouping.split_tags == DEFAULT_SPLIT_TAGS
    assert config.logging.level == "INFO"


def test_file_overrides_defaults(tmp_path):
    path = tmp_path / "dynvol.yaml"
    path.write_text("reorder:\n  strategy: size_aware\n  default_scalar_data_index: '2'\n")

    config = load_config(path)

    assert config.reorder.strategy == "size_aware"
    assert config.reorder.default_scalar_data_index == 2
    # Untouched sections keep their defaults
    assert config.grouping.split_tags == DEFAULT_SPLIT_TAGS


def test_overrides_beat_file(tmp_path):
    path = tmp_path / "dynvol.yaml"
    path.write_text("grouping:\n  split_tags: [TriggerTime]\nlogging:\n  level: WARNING\n")

    config = load_config(path, overrides={"logging": {"level": "DEBUG"}})

    assert config.grouping.split_tags == ["TriggerTime"]
    assert config.logging.level == "DEBUG"


def test_invalid_strategy():
    with pytest.raises(ConfigError, match="strategy"):
        load_config(overrides={"reorder": {"strategy": "random"}})


def test_invalid_split_tags():
    with pytest.raises(ConfigError):
        load_config(overrides={"grouping": {"split_tags": "TriggerTime"}})


def test_missing_file(tmp_path):
    with pytest.raises(ConfigError, match="not found"):
        load_config(tmp_path / "absent.yaml")


def test_non_mapping_file(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- a\n- b\n")

    with pytest.raises(ConfigError):
        load_config(path)


def test_to_dict_round_trips_through_overrides():
    config = load_config(overrides={"reorder": {"strategy": "size_aware"}})

    assert load_config(overrides=config.to_dict()) == config


def test_numeric_strings_coerced_and_others_rejected():
    config = load_config(overrides={"reorder": {"default_scalar_data_index": "3"}})
    assert config.reorder.default_scalar_data_index == 3

    with pytest.raises(ConfigError, match="default_scalar_data_index"):
        load_config(overrides={"reorder": {"default_scalar_data_index": "first"}})
