"""Structured JSON logging to standard error."""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timedelta
from typing import Any

_LOGGER_NAME = "auctionhouse"


def _iso8601(created: float) -> str:
    moment = datetime.fromtimestamp(created).astimezone()
    offset = moment.utcoffset() or timedelta(0)
    zone = "Z" if offset == timedelta(0) else moment.strftime("%z")
    return (
        f"{moment:%Y-%m-%dT%H:%M:%S}.{moment.microsecond // 1000:03d}{zone}"
    )


class _JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "level": record.levelname.lower(),
            "time": _iso8601(record.created),
            "message": record.getMessage(),
        }
        entry.update(getattr(record, "fields", {}))
        return json.dumps(entry, default=str)


class _StderrHandler(logging.Handler):
    """Writes to whatever ``sys.stderr`` is at the moment of emitting."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            stream = sys.stderr
            stream.write(self.format(record) + "\n")
            stream.flush()
        except Exception:
            self.handleError(record)


def _build_logger() -> logging.Logger:
    log = logging.getLogger(_LOGGER_NAME)
    log.setLevel(logging.INFO)
    log.propagate = False
    if not log.handlers:
        handler = _StderrHandler()
        handler.setFormatter(_JsonFormatter())
        log.addHandler(handler)
    return log


_log = _build_logger()


def info(message: str, **kwargs: Any) -> None:
    """Log an informational message with extra structured fields."""
    _log.info(message, extra={"fields": kwargs})


def error(message: str, err: BaseException | str | None, **kwargs: Any) -> None:
    """Log an error message; ``err`` is recorded under the ``error`` key."""
    fields = dict(kwargs)
    if err is not None:
        fields["error"] = str(err)
    _log.error(message, extra={"fields": fields})