import logging
import sys
from logging.config import dictConfig

# Uvicorn-compatible logging configuration
LOGGING_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "default": {
            "()": "uvicorn.logging.DefaultFormatter",
            "fmt": "%(levelprefix)s %(asctime)s [%(name)s] %(message)s",
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
        "access": {
            "()": "uvicorn.logging.AccessFormatter",
            "fmt": '%(levelprefix)s %(asctime)s [%(name)s] "%(request_line)s" %(status_code)s',
        },
    },
    "handlers": {
        "default": {
            "class": "logging.StreamHandler",
            "formatter": "default",
            "stream": sys.stderr,
            "level": "INFO",
        },
        "access": {
            "class": "logging.StreamHandler",
            "formatter": "access",
            "stream": sys.stdout,
            "level": "INFO",
        },
        "promptdrop": {
            "class": "logging.StreamHandler",
            "formatter": "default",
            "stream": sys.stdout,
            "level": "DEBUG",
        },
    },
    "loggers": {
        "root": {"handlers": ["default"], "level": "INFO", "propagate": False},
        "uvicorn.error": {"handlers": ["default"], "level": "INFO", "propagate": False},
        "uvicorn.access": {"handlers": ["access"], "level": "INFO", "propagate": False},
        "promptdrop": {"handlers": ["promptdrop"], "level": "DEBUG", "propagate": False},
        # Tick-level chatter stays out of the console unless asked for
        "promptdrop.generation_logic.progress": {"handlers": ["promptdrop"], "level": "INFO", "propagate": False},
    },
}


def setup_logging(level: str = "DEBUG") -> None:
    """Configures application-wide logging using dictConfig.

    ``level`` applies to the promptdrop loggers; uvicorn keeps INFO.
    """
    dictConfig(LOGGING_CONFIG)
    logger = logging.getLogger("promptdrop")
    logger.setLevel(level.upper())
    for handler in logger.handlers:
        handler.setLevel(level.upper())
