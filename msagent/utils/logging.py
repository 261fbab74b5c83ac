"""Structured JSON logging shared by the router, the tools and the CLI."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import IO, Any

from msagent.config import settings


class JsonFormatter(logging.Formatter):
    """Render each log record as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        # Callers attach structured fields with `extra={"context": {...}}`.
        context = getattr(record, "context", None)
        if isinstance(context, dict):
            payload["context"] = context

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging(debug: bool | None = None, stream: IO[str] | None = None) -> None:
    """Configure root logging once for the whole process.

    Parameters
    ----------
    debug:
        Optional explicit override. If `None`, use `settings.debug`.
    stream:
        Target stream. Defaults to stderr so log lines never interleave with
        the answers the CLI prints on stdout.
    """

    effective_debug = settings.debug if debug is None else debug
    level = logging.DEBUG if effective_debug else logging.INFO

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Repeated setup calls must not stack handlers.
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    stream_handler = logging.StreamHandler(stream)
    stream_handler.setLevel(level)
    stream_handler.setFormatter(JsonFormatter())
    root_logger.addHandler(stream_handler)


def get_logger(name: str) -> logging.Logger:
    """Return a module-specific logger."""

    return logging.getLogger(name)
