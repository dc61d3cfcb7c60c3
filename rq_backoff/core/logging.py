"""
Central logging setup for workers.

Library modules only call ``logging.getLogger(__name__)``; handlers are
attached here, once, by the process entry point.
"""

from __future__ import annotations

import json
import logging
import sys
from typing import Any, Optional

from rq_backoff.core.config import Settings


class _JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def setup_logger(config: Settings, stream: Optional[object] = None) -> logging.Logger:
    logger = logging.getLogger("rq_backoff")
    logger.setLevel(config.LOG_LEVEL.upper())

    if logger.handlers:
        return logger  # already configured

    handler = logging.StreamHandler(stream or sys.stdout)
    if config.LOG_FORMAT == "json":
        handler.setFormatter(_JsonFormatter())
    else:
        handler.setFormatter(
            logging.Formatter(
                fmt="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
    logger.addHandler(handler)

    logger.propagate = False
    return logger
