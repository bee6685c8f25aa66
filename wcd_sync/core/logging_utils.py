from __future__ import annotations

import datetime as dt
import json
import logging
import os
import sys
import uuid
from typing import Any

from loguru import logger as loguru_logger

from wcd_sync.core.time_utils import UTC

# LogRecord attributes that are never treated as structured extras.
_STANDARD_FIELDS = frozenset(
    {
        "args",
        "msg",
        "name",
        "levelno",
        "levelname",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
        "getMessage",
        "message",
    }
)

# Extras grouped under "sync" so dashboards can pick them up without guessing.
_SYNC_FIELDS = frozenset(
    {
        "collection_id",
        "category",
        "batches_total",
        "batches_failed",
        "items_uploaded",
        "task_name",
        "kind",
        "duration_ms",
    }
)

_NOISY_LOGGERS = ("httpx", "httpcore", "apscheduler.executors.default")


class EnhancedJsonFormatter(logging.Formatter):
    """JSON formatter that keeps sync counters apart from free-form extras."""

    def __init__(self, include_location: bool = True, include_process_info: bool = False):
        super().__init__()
        self.include_location = include_location
        self.include_process_info = include_process_info
        self.hostname = os.uname().nodename if hasattr(os, "uname") else "unknown"

    def format(self, record: logging.LogRecord) -> str:
        base: dict[str, Any] = {
            "timestamp": dt.datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "hostname": self.hostname,
        }

        if self.include_location:
            base.update(
                {
                    "module": record.module,
                    "function": record.funcName,
                    "line": record.lineno,
                }
            )

        if self.include_process_info:
            base.update({"process": record.process, "thread": record.thread})

        if record.exc_info:
            base["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": self.formatException(record.exc_info),
            }

        extra_fields: dict[str, Any] = {}
        sync_fields: dict[str, Any] = {}
        for key, value in record.__dict__.items():
            if key.startswith("_") or key in _STANDARD_FIELDS or key in base:
                continue
            if key in ("correlation_id", "cid"):
                continue
            if key in _SYNC_FIELDS:
                sync_fields[key] = value
            else:
                extra_fields[key] = value

        if sync_fields:
            base["sync"] = sync_fields
        if extra_fields:
            base["extra"] = extra_fields

        correlation_id = getattr(record, "correlation_id", None) or getattr(record, "cid", None)
        if correlation_id:
            base["correlation_id"] = correlation_id

        return json.dumps(
            base, ensure_ascii=False, default=self._json_serializer, separators=(",", ":")
        )

    def _json_serializer(self, obj: Any) -> str:
        if isinstance(obj, dt.datetime):
            return obj.isoformat()
        if hasattr(obj, "__dict__"):
            return f"<{obj.__class__.__name__}>"
        return str(obj)


class _InterceptHandler(logging.Handler):
    """Forward stdlib records into loguru, keeping ``extra`` as bound fields."""

    def emit(self, record: logging.LogRecord) -> None:
        level_to_use: int | str
        try:
            level_to_use = loguru_logger.level(record.levelname).name
        except ValueError:
            level_to_use = record.levelno

        extra = {
            key: value
            for key, value in record.__dict__.items()
            if not key.startswith("_") and key not in _STANDARD_FIELDS
        }
        loguru_logger.bind(**extra).opt(depth=6, exception=record.exc_info).log(
            level_to_use, record.getMessage()
        )


def setup_json_logging(
    level: str = "INFO",
    *,
    use_loguru: bool = True,
    log_file: str | None = None,
    max_file_size: str = "50 MB",
    retention: str = "14 days",
) -> None:
    """Configure structured JSON logging for the sync service.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        use_loguru: Route stdlib logging through loguru sinks
        log_file: Optional log file path for persistent logging
        max_file_size: Rotation size for the loguru file sink
        retention: Retention period for rotated files
    """
    lvl = getattr(logging, level.upper(), logging.INFO)
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(lvl)

    if use_loguru:
        loguru_logger.remove()
        loguru_logger.add(sys.stdout, level=level.upper(), serialize=True, enqueue=True)
        if log_file:
            loguru_logger.add(
                log_file,
                level=level.upper(),
                serialize=True,
                rotation=max_file_size,
                retention=retention,
                compression="gz",
                enqueue=True,
            )
        root.addHandler(_InterceptHandler())
    else:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(EnhancedJsonFormatter())
        root.addHandler(console_handler)
        if log_file:
            file_handler = logging.FileHandler(log_file)
            file_handler.setFormatter(EnhancedJsonFormatter())
            root.addHandler(file_handler)

    for noisy_logger in _NOISY_LOGGERS:
        logging.getLogger(noisy_logger).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        "json_logging_initialized",
        extra={"level": level, "use_loguru": use_loguru, "log_file": log_file},
    )


def generate_correlation_id() -> str:
    """Generate a short correlation ID for tracing one sync across log lines."""
    return uuid.uuid4().hex[:12]


__all__ = [
    "EnhancedJsonFormatter",
    "generate_correlation_id",
    "setup_json_logging",
]
