"""
Structured logging for the healthz server.

The root logger gets one stream handler that writes a JSON object per line.
uvicorn's loggers are stripped of their own handlers and propagate to it, so
server, health and transport records share a single stream.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional, TextIO

UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


class JSONFormatter(logging.Formatter):
    """
    Render a record as a single JSON line.

    Always present: ``timestamp`` (UTC, ``Z`` suffix), ``level``, ``message``
    and ``logger``. Source location is added when known, followed by the
    keys of an ``extra_data`` dict passed via ``extra=``, then ``exception``
    and ``stack_trace`` when the record carries them.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc)
            .isoformat()
            .replace("+00:00", "Z"),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
        }
        entry.update(self._location(record))
        entry.update(getattr(record, "extra_data", None) or {})

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            entry["stack_trace"] = self.formatStack(record.stack_info)

        return json.dumps(entry, default=str)

    @staticmethod
    def _location(record: logging.LogRecord) -> Dict[str, Any]:
        location: Dict[str, Any] = {}
        if record.module:
            location["module"] = record.module
        if record.funcName and record.funcName != "<module>":
            location["function"] = record.funcName
        if record.lineno:
            location["line"] = record.lineno
        return location


class TelemetryService:
    """
    Owns the process-wide logging configuration.

    Constructing a TelemetryService replaces any handlers already on the
    root logger, so calling it twice never duplicates output.
    """

    def __init__(self, settings: Optional[Any] = None, stream: Optional[TextIO] = None):
        self.settings = settings
        self.stream = stream or sys.stdout
        self.log_level_name = getattr(settings, "log_level", None) or "INFO"
        self.handler = logging.StreamHandler(self.stream)
        self.handler.setFormatter(JSONFormatter())
        self._configure()

    @property
    def log_level(self) -> int:
        level = logging.getLevelName(self.log_level_name.upper())
        return level if isinstance(level, int) else logging.INFO

    def _configure(self) -> None:
        level = self.log_level
        self.handler.setLevel(level)

        root = logging.getLogger()
        root.setLevel(level)
        root.handlers[:] = [self.handler]

        for name in UVICORN_LOGGERS:
            uvicorn_logger = logging.getLogger(name)
            uvicorn_logger.handlers.clear()
            uvicorn_logger.propagate = True

        logging.getLogger(__name__).debug(
            "Structured logging configured",
            extra={"extra_data": {"log_level": self.log_level_name}},
        )

    def get_logger(self, name: str) -> logging.Logger:
        return logging.getLogger(name)


_telemetry_service: Optional[TelemetryService] = None


def get_telemetry_service() -> Optional[TelemetryService]:
    """The service installed by initialize_telemetry(), if any."""
    return _telemetry_service


def initialize_telemetry(settings: Optional[Any] = None) -> TelemetryService:
    """
    Configure process logging from settings and remember the service.

    Args:
        settings: Object with a ``log_level`` attribute (INFO when absent)
    """
    global _telemetry_service
    _telemetry_service = TelemetryService(settings)
    return _telemetry_service
