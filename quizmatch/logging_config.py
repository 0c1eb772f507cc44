from __future__ import annotations

import logging

from .config import LOG_LEVEL

_SENSITIVE_KEYS = (
    "password",
    "secret",
    "token",
    "apikey",
    "api_key",
    "authorization",
    "cookie",
    "session",
)

_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"


def _coerce_level(value: str | int | None) -> int:
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        level = logging.getLevelName(value.upper().strip())
        if isinstance(level, int):
            return level
    return logging.INFO


class RedactingFilter(logging.Filter):
    """Mask sensitive values passed as ``extra`` context on log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        for key in list(record.__dict__):
            lower = key.lower()
            if any(s in lower for s in _SENSITIVE_KEYS):
                setattr(record, key, "[REDACTED]")
        return True


def configure_logging(level: str | int | None = LOG_LEVEL) -> None:
    """Attach a single formatted stream handler to the ``quizmatch`` logger."""
    logger = logging.getLogger("quizmatch")
    logger.setLevel(_coerce_level(level))

    if any(getattr(h, "_quizmatch", False) for h in logger.handlers):
        return

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(fmt=_FORMAT, datefmt=_DATEFMT))
    handler.addFilter(RedactingFilter())
    handler._quizmatch = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
