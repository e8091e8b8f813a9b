"""
Structured logging for the Manta job client.

Provides:
    - StructuredFormatter: JSON formatter for machine-parseable log output.
    - get_logger: Factory for structured loggers.
    - log_job_event: Emit a job lifecycle event with its fields under ``metrics``.
"""
from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional


class StructuredFormatter(logging.Formatter):
    """JSON formatter for machine-parseable log output.

    Each log record is serialised as a single JSON line containing at minimum:
        timestamp, level, module, message.
    If the record carries a ``metrics`` attribute (set via ``extra={"metrics": {...}}``),
    those key-value pairs are included under the ``"metrics"`` key.
    """

    def format(self, record: logging.LogRecord) -> str:
        """format."""
        log_entry: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "module": record.module,
            "message": record.getMessage(),
        }
        if hasattr(record, "metrics"):
            log_entry["metrics"] = record.metrics
        if record.exc_info and record.exc_info[1] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, default=str)


def get_logger(name: str, level: str = "INFO") -> logging.Logger:
    """Get a structured logger.

    Parameters
    ----------
    name : str
        Logger name (typically ``__name__`` of the calling module).
    level : str
        Minimum log level.  One of DEBUG, INFO, WARNING, ERROR, CRITICAL.

    Returns
    -------
    logging.Logger
        Configured logger with a ``StructuredFormatter`` handler attached.
        If the logger already has handlers (e.g. from a previous call),
        no duplicate handler is added.
    """
    logger = logging.getLogger(name)
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logger.setLevel(numeric_level)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(numeric_level)
        handler.setFormatter(StructuredFormatter())
        logger.addHandler(handler)

    return logger


def log_job_event(
    logger: logging.Logger,
    event: str,
    job_id: Optional[str],
    level: int = logging.INFO,
    **fields: Any,
) -> None:
    """Log a job lifecycle event (created, sealed, cancelled, terminal, ...)."""
    metrics: Dict[str, Any] = {"event": event, "job_id": job_id}
    metrics.update(fields)
    logger.log(level, "job %s %s", job_id, event, extra={"metrics": metrics})
