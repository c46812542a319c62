"""Log output for the resolver: one JSON object per line, or plain text.

Resolution messages carry context about which instance and address they
concern (passed via ``extra=``). Both formatters render that context so
``--format text`` output still says which instance a message is about.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from .config import LoggingConfig

# Record attributes rendered as context, in display order.
CONTEXT_FIELDS = ("instance", "instance_id", "network", "host", "floating_ip", "status_code")

# HTTP client libraries log every connection at DEBUG.
_QUIET_LOGGERS = ("urllib3", "requests")


def record_context(record: logging.LogRecord) -> dict[str, Any]:
    """Context fields set on ``record``, skipping unset ones."""
    context = {}
    for key in CONTEXT_FIELDS:
        value = getattr(record, key, None)
        if value is not None:
            context[key] = value
    return context


class JSONFormatter(logging.Formatter):
    """One JSON object per record, with the context fields at top level."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(record_context(record))
        if record.exc_info and record.exc_info[1]:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class TextFormatter(logging.Formatter):
    """``time LEVEL [logger] message [key=value ...]`` for terminals."""

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s %(levelname)-8s [%(name)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def formatMessage(self, record: logging.LogRecord) -> str:
        line = super().formatMessage(record)
        context = record_context(record)
        if not context:
            return line
        pairs = " ".join(f"{key}={value}" for key, value in context.items())
        return f"{line} [{pairs}]"


def configure_logging(config: LoggingConfig, stream=None) -> None:
    """Send all log output to ``stream`` (stderr by default).

    stdout is reserved for the resolved endpoint, so nothing is logged there.
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, config.level.upper(), logging.INFO))

    for handler in root.handlers[:]:
        root.removeHandler(handler)

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(JSONFormatter() if config.format == "json" else TextFormatter())
    root.addHandler(handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
