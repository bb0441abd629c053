# clipit/logging_core/logger.py
"""
Centralized structured logging setup for the movie identifier.

Provides a pre-configured logger that emits JSON lines with mandatory fields:
- timestamp (ISO)
- run_id
- stage_name (optional, filled by caller)
- event_type (pipeline_start/start/success/degraded/failure/...)
- level
- message
- metadata (dict)

All logs in the pipeline MUST use the logger obtained from get_logger().
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from logging import Logger
from typing import Any, Dict
from uuid import UUID


class JSONFormatter(logging.Formatter):
    """Custom formatter that outputs structured JSON lines."""

    def format(self, record: logging.LogRecord) -> str:
        log_record: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).replace(microsecond=0, tzinfo=None).isoformat() + "Z",
            "level": record.levelname,
            "message": record.getMessage(),
        }

        if hasattr(record, "run_id"):
            log_record["run_id"] = str(record.run_id)

        for field in ("stage_name", "event_type", "metadata"):
            value = getattr(record, field, None)
            if value is not None:
                log_record[field] = value

        if record.exc_info:
            log_record["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(log_record, ensure_ascii=False, default=str)


class RunIdFilter(logging.Filter):
    """Stamps every record with the run it belongs to."""

    def __init__(self, run_id: str) -> None:
        super().__init__()
        self.run_id = run_id

    def filter(self, record: logging.LogRecord) -> bool:
        record.run_id = self.run_id  # type: ignore[attr-defined]
        return True


# One logger per run_id; released by release_logger() when the run ends.
_loggers: Dict[str, Logger] = {}


def get_logger(run_id: UUID, level: int | str = logging.INFO) -> Logger:
    """
    Return a configured logger for the given identification run.

    Logs are emitted as JSON lines to stderr, keeping stdout free for command output.
    One logger instance per run_id (idempotent).
    """
    run_id_str = str(run_id)

    if run_id_str in _loggers:
        return _loggers[run_id_str]

    logger = logging.getLogger(f"clipit.identifier.{run_id_str}")
    logger.setLevel(level)
    logger.propagate = False

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(JSONFormatter())
        logger.addHandler(handler)

    logger.addFilter(RunIdFilter(run_id_str))
    _loggers[run_id_str] = logger

    return logger


def release_logger(run_id: UUID) -> None:
    """Detach handlers of a finished run so per-request loggers do not pile up."""
    logger = _loggers.pop(str(run_id), None)
    if logger is None:
        return
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    for log_filter in list(logger.filters):
        logger.removeFilter(log_filter)
    logging.Logger.manager.loggerDict.pop(logger.name, None)


def log_event(
    logger: Logger,
    level: int,
    message: str,
    *,
    stage_name: str | None = None,
    event_type: str,
    metadata: Dict[str, Any] | None = None,
) -> None:
    """
    Convenience wrapper for structured logging.

    Use this inside stages for consistency.
    """
    extra: Dict[str, Any] = {"event_type": event_type}
    if stage_name:
        extra["stage_name"] = stage_name
    if metadata:
        extra["metadata"] = metadata

    logger.log(level, message, extra=extra)
