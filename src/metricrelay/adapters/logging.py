"""Logging setup for the relay process.

All modules log through ``logging.getLogger(__name__)``; this adapter only
decides where records go and at which level. Trace output (every sample
and point) is emitted at DEBUG and is enabled by the verbose switch.
"""

import logging
import logging.config
from typing import Any


class PipeFormatter(logging.Formatter):
    """Readable single-line format: ``time | level | logger | message``."""

    default_time_format = "%Y-%m-%d %H:%M:%S"
    default_msec_format = "%s.%03d"

    def format(self, record: logging.LogRecord) -> str:
        record.message = record.getMessage()
        line = (
            f"{self.formatTime(record, self.datefmt)} | {record.levelname} | "
            f"{record.name} | {record.message}"
        )
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def build_logging_config(log_file: str | None, verbose: bool = False) -> dict[str, Any]:
    """Return a dictConfig mapping for the relay.

    Args:
        log_file: File to append to; None or "" logs to stderr.
        verbose: Lower the relay's loggers to DEBUG.
    """
    level = "DEBUG" if verbose else "INFO"
    if log_file:
        handler: dict[str, Any] = {
            "class": "logging.FileHandler",
            "filename": log_file,
            "mode": "a",
            "encoding": "utf-8",
        }
    else:
        handler = {"class": "logging.StreamHandler", "stream": "ext://sys.stderr"}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"pipe": {"()": PipeFormatter}},
        "handlers": {"main": {**handler, "formatter": "pipe"}},
        "loggers": {
            "": {"handlers": ["main"], "level": "INFO"},
            "metricrelay": {"level": level},
            # request lines from the InfluxDB client are noise even in trace mode
            "httpx": {"level": "WARNING"},
            "httpcore": {"level": "WARNING"},
            "aiosqlite": {"level": "WARNING"},
        },
    }


def configure_logging(log_file: str | None, verbose: bool = False) -> None:
    """Install the relay's logging configuration.

    Raises:
        ValueError: If the log file cannot be opened (dictConfig wraps the
            underlying OSError).
    """
    logging.config.dictConfig(build_logging_config(log_file, verbose))
