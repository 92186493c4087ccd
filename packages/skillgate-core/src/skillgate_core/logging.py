from __future__ import annotations

import json
import logging
import sys
from typing import TYPE_CHECKING

from skillgate_core.errors import ConfigError

if TYPE_CHECKING:
    from skillgate_core.config import LoggingConfig

_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class JSONFormatter(logging.Formatter):
    """One JSON object per log line."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": record.created,
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def setup_logging(level: str = "INFO", json_output: bool = False) -> logging.Logger:
    """Configure and return the root skillgate logger."""
    logger = logging.getLogger("skillgate")

    if logger.handlers:
        return logger

    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    handler = logging.StreamHandler(sys.stderr)

    if json_output:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s [%(levelname)-8s] %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        ))

    logger.addHandler(handler)
    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a child logger under the skillgate namespace."""
    return logging.getLogger(f"skillgate.{name}")


def configure_logging(config: LoggingConfig) -> logging.Logger:
    """Apply a ``[logging]`` config section via :func:`setup_logging`.

    Raises:
        ConfigError: If ``level`` is not a standard level name.
    """
    level = str(config.level).strip().upper()
    if level not in _LEVELS:
        msg = (
            f"Unknown logging level: {config.level!r} "
            f"(expected one of {', '.join(_LEVELS)})"
        )
        raise ConfigError(msg)
    return setup_logging(level, bool(config.json_output))
