"""
Logging setup for the Crazy Eights server.

Two output styles share one notion of context:
- production: one JSON object per line
- everything else: a short colored line for the terminal

Context comes from two places. ``request_id_var`` and ``room_code_var`` are
set by the HTTP middleware and the WebSocket endpoint; individual calls can
add ``room_code``, ``seat`` or ``card_id`` through ``extra=``, which wins.
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Optional

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
room_code_var: ContextVar[Optional[str]] = ContextVar("room_code", default=None)

_CONTEXT_FIELDS = ("request_id", "room_code", "seat", "card_id")

# Third-party loggers that only get to speak up for warnings
_QUIET_LOGGERS = ("uvicorn.access", "uvicorn.error", "websockets", "asyncio")


def record_context(record: logging.LogRecord) -> dict:
    """Collect the context fields that apply to ``record``."""
    context = {
        "request_id": request_id_var.get(),
        "room_code": room_code_var.get(),
    }
    for name in _CONTEXT_FIELDS:
        value = getattr(record, name, None)
        if value:
            context[name] = value
    return {k: v for k, v in context.items() if v}


class JSONFormatter(logging.Formatter):
    """Machine-readable records for log aggregation."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **record_context(record),
        }
        if record.levelno >= logging.ERROR:
            entry["source"] = f"{record.pathname}:{record.lineno} in {record.funcName}"
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class DevelopmentFormatter(logging.Formatter):
    """
    Terminal formatter.

    Prints ``HH:MM:SS.mmm LEVEL logger [req=..., table=...] - message`` with
    the level colored.
    """

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno)
        level = f"{color}{record.levelname:8}{self.RESET}" if color else f"{record.levelname:8}"
        clock = datetime.fromtimestamp(record.created).strftime("%H:%M:%S.%f")[:-3]

        context = record_context(record)
        tags = []
        if "request_id" in context:
            tags.append(f"req={context['request_id'][:8]}")
        if "room_code" in context:
            tags.append(f"table={context['room_code']}")
        if "seat" in context:
            tags.append(f"seat={context['seat']}")
        where = f" [{', '.join(tags)}]" if tags else ""

        line = f"{clock} {level} {record.name}{where} - {record.getMessage()}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def setup_logging(level: str = "INFO", environment: str = "development") -> None:
    """
    Install a single stdout handler on the root logger.

    Args:
        level: Root level name; unknown names fall back to INFO.
        environment: "production" selects JSON output.
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter() if environment == "production" else DevelopmentFormatter())

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(f"Logging ready ({environment}, {level})")
