"""
Logging setup for the sudolog process.

Text output goes through ``rich.logging.RichHandler`` on stderr so it does not
interleave with the privileged command's stdout. The ``json`` format emits one
object per line for collection by journald or similar.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone

from sudolog.core.config import LoggingConfig

_ROOT_LOGGER = "sudolog"


class JsonFormatter(logging.Formatter):
    """One JSON object per record: ts, level, logger, message (+ exc)."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, object] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def configure_logging(config: LoggingConfig) -> logging.Logger:
    """Attach a single handler to the ``sudolog`` logger. Safe to call twice."""
    logger = logging.getLogger(_ROOT_LOGGER)
    logger.setLevel(config.level)
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    if config.format == "json":
        handler: logging.Handler = logging.StreamHandler()
        handler.setFormatter(JsonFormatter())
    else:
        from rich.console import Console
        from rich.logging import RichHandler

        handler = RichHandler(
            console=Console(stderr=True),
            show_path=False,
            rich_tracebacks=False,
        )
        handler.setFormatter(logging.Formatter("%(message)s"))

    logger.addHandler(handler)
    return logger
