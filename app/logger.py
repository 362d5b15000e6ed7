"""
Logging configuration applied once at application startup.
"""
import logging
from logging.config import dictConfig

from app.config import settings

_CONFIGURED = False


def _resolve_log_level(level_name: str) -> int:
    """Return a logging level constant from a case-insensitive string."""
    numeric_level = logging.getLevelName(level_name.upper())
    if isinstance(numeric_level, int):
        return numeric_level
    raise ValueError(f"Unsupported log level: {level_name}")


def setup_logging(level_name: str | None = None) -> None:
    """
    Install a console handler on the root logger.

    Idempotent: only the first call applies the configuration, so the
    lifespan hook can call it safely under test clients that start the
    app repeatedly.
    """
    global _CONFIGURED
    if _CONFIGURED:
        return

    level = _resolve_log_level(level_name or settings.LOG_LEVEL)
    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "standard": {
                    "format": "%(asctime)s %(levelname)-8s %(name)s: %(message)s",
                }
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "level": level,
                    "formatter": "standard",
                }
            },
            "root": {"level": level, "handlers": ["console"]},
            # httpx logs every request at INFO; keep it quiet unless debugging.
            "loggers": {"httpx": {"level": logging.WARNING}},
        }
    )
    _CONFIGURED = True
