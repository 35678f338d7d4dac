"""refreshcache.core.log

The library only ever calls ``logging.getLogger(__name__)``. Handlers belong to the
application; ``configure_logging`` is a convenience for those that want one.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import Any

from refreshcache.core.config import LoggingConfig

ROOT_LOGGER = "refreshcache"

# Attributes every LogRecord carries; anything else arrived via `extra=`.
_RESERVED = set(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}


def record_extras(record: logging.LogRecord) -> dict[str, Any]:
    return {k: v for k, v in vars(record).items() if k not in _RESERVED}


class JsonFormatter(logging.Formatter):
    """Compact single-line JSON, one object per record."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "event": record.getMessage(),
        }
        entry.update(record_extras(record))
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class PlainFormatter(logging.Formatter):
    def __init__(self) -> None:
        super().__init__("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        extras = record_extras(record)
        if extras:
            line += " " + " ".join(f"{k}={v!r}" for k, v in sorted(extras.items()))
        return line


def configure_logging(config: LoggingConfig | None = None) -> logging.Logger:
    """Attach a single stream handler to the ``refreshcache`` logger.

    Idempotent: calling twice replaces the handler instead of stacking another.
    """

    cfg = config or LoggingConfig()
    logger = logging.getLogger(ROOT_LOGGER)
    for h in list(logger.handlers):
        if getattr(h, "_refreshcache", False):
            logger.removeHandler(h)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter() if cfg.json_output else PlainFormatter())
    handler._refreshcache = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    logger.setLevel(cfg.level.upper())
    return logger
