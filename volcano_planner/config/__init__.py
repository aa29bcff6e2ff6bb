"""Configuration management."""

from .config import (
    Config,
    PlannerConfig,
    LoggingConfig,
    load_config,
)

__all__ = [
    "Config",
    "PlannerConfig",
    "LoggingConfig",
    "load_config",
]
