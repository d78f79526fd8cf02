from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Optional

CONTEXT_PREFIX = "ctx_"


class JSONFormatter(logging.Formatter):
    """One JSON object per record; ``ctx_*`` extras are grouped under ``context``."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info and record.exc_info[1]:
            log_entry["exception"] = {
                "type": type(record.exc_info[1]).__name__,
                "message": str(record.exc_info[1]),
            }
        context = {
            key[len(CONTEXT_PREFIX):]: value
            for key, value in record.__dict__.items()
            if key.startswith(CONTEXT_PREFIX)
        }
        if context:
            log_entry["context"] = context
        return json.dumps(log_entry, default=str)


def setup_logging(level: Optional[str] = None) -> None:
    """Send JSON logs to stdout. Level defaults to the active settings profile.

    Does nothing if the root logger already has handlers.
    """
    root = logging.getLogger()
    if root.handlers:
        return
    if level is None:
        from lifter.config import get_settings

        level = get_settings().log_level

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.pool").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def log_context(**fields) -> dict:
    """Keyword arguments that attach structured fields to a log record.

    ``logger.info("Cycle activated", **log_context(program_id=pid, cycle_id=cid))``
    """
    return {"extra": {f"{CONTEXT_PREFIX}{key}": value for key, value in fields.items()}}
