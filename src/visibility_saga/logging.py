"""Logging setup for the CLI and the server.

Records go to stdout, one JSON object per line by default. Anything passed
through ``extra=`` (task names, channel names, event tags) ends up under the
``extra`` key.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any

# Attributes every LogRecord carries; whatever else is on the record came from `extra=`.
_STANDARD_ATTRS: frozenset[str] = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", (), None).__dict__
) | {"message", "asctime", "taskName"}

TEXT_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _STANDARD_ATTRS and not key.startswith("_")
    }


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # noqa: A003
        line: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        extra = _extra_fields(record)
        if extra:
            line["extra"] = extra
        if record.exc_info:
            line["exception"] = self.formatException(record.exc_info)
        # Event payloads and tasks are not JSON types; fall back to their repr.
        return json.dumps(line, ensure_ascii=False, default=str)


def _formatter(fmt: str) -> logging.Formatter:
    if fmt == "text":
        return logging.Formatter(TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    return JsonFormatter()


def configure_logging(level: str, fmt: str = "json") -> None:
    """Send root logging to stdout as `fmt` ('json' or 'text') at `level`.

    Calling it again replaces the previous handler.
    """

    root = logging.getLogger()
    for old in list(root.handlers):
        root.removeHandler(old)

    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(_formatter(fmt))
    root.addHandler(handler)
    root.setLevel(level.upper())

    # uvicorn logs one access line per request.
    logging.getLogger("uvicorn.access").setLevel(max(root.level, logging.WARNING))
