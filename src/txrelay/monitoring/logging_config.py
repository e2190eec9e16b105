import logging
import logging.config
import os
import sys

TEXT_FORMAT = "%(asctime)s %(levelname)-6s %(name)s:%(lineno)d %(message)s"
JSON_FORMAT = "%(asctime)s %(levelname)s %(name)s %(lineno)d %(message)s"


def build_logging_config(level: str = "INFO", fmt: str = "json") -> dict:
    if fmt == "json":
        formatter = {
            "()": "pythonjsonlogger.json.JsonFormatter",
            "fmt": JSON_FORMAT,
            "rename_fields": {"levelname": "level", "asctime": "time"},
        }
    else:
        formatter = {"format": TEXT_FORMAT, "datefmt": "%Y-%m-%d %H:%M:%S"}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"default": formatter},
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "stream": sys.stdout,
            },
        },
        "loggers": {
            "txrelay": {
                "level": level.upper(),
                "handlers": ["console"],
                "propagate": False,
            },
            "uvicorn.access": {
                "level": "WARNING",  # per-request access lines are noise
                "handlers": ["console"],
                "propagate": False,
            },
            "web3": {
                "level": "WARNING",
                "handlers": ["console"],
                "propagate": False,
            },
        },
        "root": {
            "level": "WARNING",
            "handlers": ["console"],
        },
    }


def setup_logging(level: str | None = None, fmt: str | None = None) -> None:
    """Apply the logging configuration."""
    level = level or os.getenv("LOG_LEVEL", "INFO")
    fmt = fmt or os.getenv("LOG_FORMAT", "json")
    logging.config.dictConfig(build_logging_config(level, fmt))
