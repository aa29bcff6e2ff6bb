"""Logging setup for the planner: plain text or JSON lines.

Rule call context (``call_id``, ``rule``) travels on log records as extra
attributes and is rendered by both formatters.
"""

import logging
import sys
import json
from typing import Any, Dict, Optional, TYPE_CHECKING
from datetime import datetime, timezone

if TYPE_CHECKING:
    from ..config.config import LoggingConfig

ROOT_LOGGER = "volcano_planner"
CONTEXT_FIELDS = ("call_id", "rule")


def record_context(record: logging.LogRecord) -> Dict[str, Any]:
    """Rule call context attached to a record, in field order."""
    return {
        name: getattr(record, name)
        for name in CONTEXT_FIELDS
        if getattr(record, name, None) is not None
    }


class StructuredFormatter(logging.Formatter):
    """One JSON object per record, context fields at the top level."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(record_context(record))
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class StandardFormatter(logging.Formatter):
    """Human-readable lines; context is shown as ``[call_id=.. rule=..]``."""

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s %(levelname)-5s %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = record_context(record)
        if not context:
            return line
        tags = " ".join(f"{k}={v}" for k, v in context.items())
        return f"{line} [{tags}]"


def setup_logging(
    level: str = "INFO",
    structured: bool = False,
    log_file: Optional[str] = None,
) -> logging.Logger:
    """Configure the ``volcano_planner`` logger hierarchy.

    Handlers from an earlier call are replaced; the root logger is left
    to the embedding application.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    formatter = StructuredFormatter() if structured else StandardFormatter()

    handlers = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logger = logging.getLogger(ROOT_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    logger.setLevel(log_level)
    logger.propagate = False
    return logger


def configure_logging(config: "LoggingConfig") -> logging.Logger:
    """Apply a ``LoggingConfig`` section."""
    return setup_logging(config.level, config.structured, config.log_file)


def get_contextual_logger(name: str, context: Dict[str, Any]) -> logging.LoggerAdapter:
    """Logger whose records carry ``context`` as extra attributes."""
    return logging.LoggerAdapter(logging.getLogger(name), context)
