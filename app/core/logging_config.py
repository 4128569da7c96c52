"""
Logging setup for the API process.

Console output only; the level comes from LOG_LEVEL (default INFO).
uvicorn's own loggers are left alone so access logs keep their format.
"""
import logging
import logging.config

from app.core.config import LOG_LEVEL

_configured = False


def get_logging_config(level: str = LOG_LEVEL) -> dict:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "verbose": {
                "format": "[{asctime}] {levelname} {name} {message}",
                "style": "{",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "verbose",
            },
        },
        "loggers": {
            "app": {
                "handlers": ["console"],
                "level": level,
                "propagate": False,
            },
            "sqlalchemy.engine": {
                "handlers": ["console"],
                "level": "WARNING",
                "propagate": False,
            },
        },
        "root": {
            "handlers": ["console"],
            "level": level,
        },
    }


def setup_logging(level: str = LOG_LEVEL) -> None:
    global _configured
    if _configured:
        return
    logging.config.dictConfig(get_logging_config(level))
    _configured = True
