"""Structured Logging Configuration.

Service modules log one JSON object per call: an event name plus keyword
context, the same shape as the structlog calls of the web layer.

    log = get_logger(__name__)
    clip_log = log.bind(project_id=project.id, clip_index=2)
    clip_log.info("clip_completed", video_path=path)

Bound context is merged into every entry; keyword arguments given on the
call win over bound values. Non-JSON values (Path, Enum, datetime) are
rendered with str(). LOG_LEVEL overrides the default INFO level.
"""

import json
import logging
import os
import sys
from typing import Any


class StructuredLogger:
    """Standard Logger wrapper emitting JSON entries with bound context."""

    def __init__(self, logger: logging.Logger, context: dict[str, Any] | None = None):
        self._logger = logger
        self._context = context or {}

    def bind(self, **context: Any) -> "StructuredLogger":
        """Return a logger that adds context to every entry."""
        return StructuredLogger(self._logger, {**self._context, **context})

    def _emit(self, level: int, event: str, exc_info: bool, fields: dict[str, Any]) -> None:
        if not self._logger.isEnabledFor(level):
            return
        entry = {"event": event, **self._context, **fields}
        self._logger.log(level, json.dumps(entry, default=str), exc_info=exc_info)

    def debug(self, event: str, **kwargs: Any) -> None:
        self._emit(logging.DEBUG, event, False, kwargs)

    def info(self, event: str, **kwargs: Any) -> None:
        self._emit(logging.INFO, event, False, kwargs)

    def warning(self, event: str, **kwargs: Any) -> None:
        self._emit(logging.WARNING, event, False, kwargs)

    def error(self, event: str, exc_info: bool = False, **kwargs: Any) -> None:
        """Log an error; pass exc_info=True inside an except block for the traceback."""
        self._emit(logging.ERROR, event, exc_info, kwargs)


def get_logger(name: str) -> StructuredLogger:
    """Get a structured logger for a module (typically __name__).

    The first call for a name attaches a stdout handler and sets the level.
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
        logger.addHandler(handler)
        logger.setLevel(os.getenv("LOG_LEVEL", "INFO").upper())

    return StructuredLogger(logger)
