from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone

from packages.core.config import settings

_CONTEXT_FIELDS = (
    "job_id",
    "action",
    "employee",
    "department",
    "date",
    "time",
    "status",
    "webhook_url",
    "error",
    "active_jobs",
    "evicted",
    "port",
    "method",
    "path",
)
_configured = False


class JsonFormatter(logging.Formatter):
    """Render log records as single-line JSON with job context attached."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for field in _CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                payload[field] = value

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


def setup_logging(level: str | None = None) -> None:
    """Configure the root logger once with the JSON formatter."""

    global _configured
    if _configured:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())

    root = logging.getLogger()
    root.addHandler(handler)
    root.setLevel((level or settings.app_log_level).upper())

    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Return a module logger; configuration is left to setup_logging."""

    return logging.getLogger(name)
