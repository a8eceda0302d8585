"""
Logging setup for the health score service, called once from main.py.

One stdout handler on the root logger. LOG_LEVEL picks the level (INFO by
default); LOG_JSON=1 or a RAILWAY_ENVIRONMENT switches to one JSON object
per line, with any `extra=` fields (such as request_id) merged in.

Request bodies are a user's holdings, so modules log counts, scores and
status codes only: never tickers, quantities, prices or profile answers.
"""
import json
import logging
import os
import sys
from typing import Any

# Attributes every LogRecord carries; anything else came in through `extra=`.
_RESERVED_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}


def _json_serial(obj: Any):
    if hasattr(obj, "isoformat"):
        return obj.isoformat()
    if hasattr(obj, "value"):
        return obj.value
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


class JsonFormatter(logging.Formatter):
    """Format log records as single-line JSON for log aggregators."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": self.formatTime(record, "%Y-%m-%dT%H:%M:%S") + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[0]:
            payload["exception"] = self.formatException(record.exc_info)
        for k, v in record.__dict__.items():
            if k not in _RESERVED_ATTRS and k not in payload and v is not None:
                payload[k] = v
        return json.dumps(payload, default=_json_serial)


def _use_json() -> bool:
    return (
        os.getenv("LOG_JSON", "").lower() in ("1", "true", "yes")
        or bool(os.getenv("RAILWAY_ENVIRONMENT"))
    )


def configure_logging() -> None:
    """Configure root logger: level from LOG_LEVEL, JSON format in production."""
    level_name = (os.getenv("LOG_LEVEL") or "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)
    # Avoid duplicate handlers when uvicorn reloads
    for h in root.handlers[:]:
        root.removeHandler(h)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    if _use_json():
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        )
    root.addHandler(handler)

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
