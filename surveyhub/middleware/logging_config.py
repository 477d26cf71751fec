"""
Logging setup for SurveyHub.

One stderr handler on the root logger. Records raised while a request is
being served are stamped with its request id and caller, so service-level
lines ("Created quote ...") can be tied back to the HTTP call that caused
them without every call site passing ``extra=``.

Output format:
    LOG_FORMAT=json      one JSON object per line (default outside DEBUG)
    LOG_FORMAT=console   coloured single-line text (default under DEBUG)

LOG_LEVEL sets the threshold (default INFO, or DEBUG under DEBUG).
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

from flask import g, has_request_context

# Record attributes that end up in the JSON payload when set.
CONTEXT_FIELDS = (
    "request_id",
    "user_id",
    "role",
    "method",
    "path",
    "status",
    "duration_ms",
    "remote_addr",
    "project_id",
    "quote_id",
    "project_count",
)

QUIET_LOGGERS = ("urllib3", "werkzeug", "sqlalchemy.engine")


class RequestContextFilter(logging.Filter):
    """Copy the request id and caller from ``flask.g`` onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not has_request_context():
            return True
        if getattr(record, "request_id", None) is None:
            record.request_id = getattr(g, "request_id", None)
        identity = getattr(g, "identity", None)
        if identity is not None:
            if getattr(record, "user_id", None) is None:
                record.user_id = identity.user_id
            if getattr(record, "role", None) is None:
                record.role = identity.role
        return True


class JsonLineFormatter(logging.Formatter):
    """Render a record as a single JSON line for log shipping."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "where": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        payload.update(
            (name, getattr(record, name))
            for name in CONTEXT_FIELDS
            if getattr(record, name, None) is not None
        )
        if record.exc_info and record.exc_info[0] is not None:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


class ConsoleFormatter(logging.Formatter):
    """Short coloured lines for a developer terminal."""

    LEVEL_COLOURS = {
        logging.DEBUG: "\033[2m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[1;31m",
    }
    RESET = "\033[0m"

    def __init__(self, use_colour: bool = True):
        super().__init__(datefmt="%H:%M:%S")
        self.use_colour = use_colour

    def format(self, record: logging.LogRecord) -> str:
        level = f"{record.levelname:<7}"
        if self.use_colour:
            level = f"{self.LEVEL_COLOURS.get(record.levelno, '')}{level}{self.RESET}"

        parts = [self.formatTime(record, self.datefmt), level]
        request_id = getattr(record, "request_id", None)
        if request_id:
            parts.append(f"[{request_id}]")
        parts.append(f"{record.name}: {record.getMessage()}")

        duration = getattr(record, "duration_ms", None)
        if duration is not None:
            parts.append(f"({duration:.0f}ms)")

        line = " ".join(parts)
        if record.exc_info and record.exc_info[0] is not None:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def _build_formatter(fmt: str, stream) -> logging.Formatter:
    if fmt == "json":
        return JsonLineFormatter()
    return ConsoleFormatter(use_colour=hasattr(stream, "isatty") and stream.isatty())


def configure_logging(app, stream=None):
    """Install the root handler for ``app``.

    Safe to call once per app factory run; an existing handler installed by
    an earlier call is replaced rather than stacked.
    """
    debug = bool(app.config.get("DEBUG"))
    testing = bool(app.config.get("TESTING"))
    stream = stream or sys.stderr

    level_name = (app.config.get("LOG_LEVEL") or os.getenv("LOG_LEVEL")
                  or ("DEBUG" if debug else "INFO")).upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.INFO

    fmt = (app.config.get("LOG_FORMAT") or os.getenv("LOG_FORMAT")
           or ("console" if debug or testing else "json")).lower()

    handler = logging.StreamHandler(stream)
    handler.setFormatter(_build_formatter(fmt, stream))
    handler.addFilter(RequestContextFilter())
    handler.setLevel(level)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    app.logger.setLevel(level)

    if not testing:
        app.logger.info("Logging to %s at %s (%s)", getattr(stream, "name", "stream"), level_name, fmt)
