"""Configuration management for the planner."""

from dataclasses import dataclass, field
from typing import List, Optional
import yaml
from pathlib import Path


@dataclass
class PlannerConfig:
    """Configuration for the planner and its rule calls."""

    rule_exclusion: Optional[str] = None  # Regex matched against whole rule names
    max_iterations: int = 10000  # Rule calls per run()
    deduplicate_matches: bool = True  # Fire each (rule, bindings) once
    enabled_rules: List[str] = field(default_factory=list)


@dataclass
class LoggingConfig:
    """Configuration for logging output."""

    level: str = "INFO"
    structured: bool = False
    log_file: Optional[str] = None


@dataclass
class Config:
    """Main configuration class."""

    planner: PlannerConfig = field(default_factory=PlannerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def load_config(config_path: str) -> Config:
    """Load configuration from YAML file.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Parsed configuration

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If a section is malformed or has unknown settings

    Example YAML format:
        planner:
          rule_exclusion: "JoinCommute.*"
          max_iterations: 500
          deduplicate_matches: true
          enabled_rules: [FilterMergeRule, ProjectRemoveRule]

        logging:
          level: DEBUG
          structured: true
          log_file: /tmp/planner.log
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file must hold a mapping: {config_path}")

    planner = _build_section(PlannerConfig, data, "planner")
    logging_config = _build_section(LoggingConfig, data, "logging")

    return Config(planner=planner, logging=logging_config)


def _build_section(section_class, data: dict, key: str):
    section_data = data.get(key) or {}
    try:
        return section_class(**section_data)
    except TypeError as e:
        raise ValueError(f"Invalid '{key}' section: {e}") from e
