"""Tests for configuration loading."""

import pytest
import tempfile
from pathlib import Path
from volcano_planner.config import load_config, Config, PlannerConfig


def _write_config(text: str) -> str:
    with tempfile.NamedTemporaryFile(mode='w', suffix='.yaml', delete=False) as f:
        f.write(text)
        return f.name


def test_defaults():
    """Test configuration defaults."""
    config = Config()
    assert config.planner.rule_exclusion is None
    assert config.planner.max_iterations == 10000
    assert config.planner.deduplicate_matches is True
    assert config.planner.enabled_rules == []
    assert config.logging.level == "INFO"
    assert config.logging.structured is False


def test_load_full_config():
    """Test loading every section."""
    config_path = _write_config("""
planner:
  rule_exclusion: "JoinCommute.*"
  max_iterations: 50
  deduplicate_matches: false
  enabled_rules:
    - FilterMergeRule
    - ProjectRemoveRule

logging:
  level: DEBUG
  structured: true
""")
    try:
        config = load_config(config_path)

        assert config.planner.rule_exclusion == "JoinCommute.*"
        assert config.planner.max_iterations == 50
        assert config.planner.deduplicate_matches is False
        assert config.planner.enabled_rules == ["FilterMergeRule", "ProjectRemoveRule"]
        assert config.logging.level == "DEBUG"
        assert config.logging.structured is True
        assert config.logging.log_file is None
    finally:
        Path(config_path).unlink()


def test_empty_file_uses_defaults():
    """Test that an empty file yields the default configuration."""
    config_path = _write_config("")
    try:
        config = load_config(config_path)
        assert config.planner == PlannerConfig()
        assert config.logging.level == "INFO"
    finally:
        Path(config_path).unlink()


def test_missing_config_file():
    """Test error handling for missing config file."""
    with pytest.raises(FileNotFoundError):
        load_config("nonexistent_config.yaml")


def test_unknown_key_rejected():
    """Test that misspelled settings are not silently ignored."""
    config_path = _write_config("""
planner:
  max_iteration: 5
""")
    try:
        with pytest.raises(ValueError, match="max_iteration"):
            load_config(config_path)
    finally:
        Path(config_path).unlink()


def test_non_mapping_rejected():
    """Test that a file holding a list is rejected."""
    config_path = _write_config("- planner\n- logging\n")
    try:
        with pytest.raises(ValueError, match="mapping"):
            load_config(config_path)
    finally:
        Path(config_path).unlink()
