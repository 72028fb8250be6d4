"""Centralized logging configuration with JSON-formatted extras."""

import json
import logging
import sys

from aso_engine.config import settings

ROOT_LOGGER_NAME = "aso_engine"


class JSONExtrasFormatter(logging.Formatter):
    """Formatter that outputs a readable log line with extras as JSON.

    Output format:
        2024-01-15 10:30:45 | INFO | aso_engine.module | Message {"key": "value"}
    """

    RESERVED_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}

    def format(self, record: logging.LogRecord) -> str:
        record.message = record.getMessage()
        timestamp = self.formatTime(record, self.datefmt)
        base = f"{timestamp} | {record.levelname:<8} | {record.name} | {record.message}"

        extras = {
            k: v
            for k, v in record.__dict__.items()
            if k not in self.RESERVED_ATTRS and not k.startswith("_")
        }

        if extras:
            try:
                extras_str = json.dumps(extras, default=str, ensure_ascii=False, sort_keys=True)
                base = f"{base} {extras_str}"
            except (TypeError, ValueError):
                pass

        if record.exc_info and not record.exc_text:
            record.exc_text = self.formatException(record.exc_info)
        if record.exc_text:
            base = f"{base}\n{record.exc_text}"

        return base


def setup_logging(level: str | None = None) -> None:
    """Configure the 'aso_engine' logger with console output and JSON extras."""
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    resolved_level = getattr(logging, (level or settings.log_level).upper(), logging.INFO)
    logger.setLevel(resolved_level)

    # Avoid adding duplicate handlers if called multiple times
    if logger.handlers:
        return

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(resolved_level)
    handler.setFormatter(JSONExtrasFormatter(datefmt="%Y-%m-%d %H:%M:%S"))

    logger.addHandler(handler)
    logger.propagate = False
