"""Logging setup for export runs.

Records emitted through :func:`catalog_sync.logging_events.log_event` carry an
``event`` name plus flat context fields; :class:`EventFormatter` renders them
after the message as ``key=value`` pairs.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# Client libraries that log every request or connection at INFO.
QUIET_LOGGERS: tuple[str, ...] = ("httpx", "botocore", "boto3", "pymongo")

_RECORD_ATTRIBUTES = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime", "meta"}


class EventFormatter(logging.Formatter):
    def formatMessage(self, record: logging.LogRecord) -> str:
        line = super().formatMessage(record)
        context = " ".join(
            f"{name}={value}"
            for name, value in vars(record).items()
            if name not in _RECORD_ATTRIBUTES
        )
        return f"{line} | {context}" if context else line


def configure_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    """Route export logs to stdout and, when configured, to ``log_file``."""
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    formatter = EventFormatter(LOG_FORMAT)
    for handler in handlers:
        handler.setFormatter(formatter)

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        handlers=handlers,
        force=True,
    )
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
