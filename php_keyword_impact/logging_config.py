"""
Logging configuration for php-keyword-impact.

Console output goes through the root logger. Per-package acquisition
outcomes are additionally emitted on a dedicated logger whose records can be
written as JSON lines to a rotating log file, so that callers who need more
than the success/failure tally can inspect every package.
"""

import json
import logging
import sys
from logging.handlers import TimedRotatingFileHandler
from typing import Any

ACQUISITION_LOGGER_NAME = "php_keyword_impact.acquisition"

CONSOLE_FORMAT = "[%(asctime)s] %(name)s %(levelname)s: %(message)s"

# Noisy third-party loggers kept at WARNING even with --verbose
_QUIET_LOGGERS = ("httpx", "httpcore")


class AcquisitionLogFormatter(logging.Formatter):
    """Render acquisition records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for field in ["event", "package", "status", "error", "url"]:
            if hasattr(record, field):
                log_entry[field] = getattr(record, field)

        return json.dumps(log_entry)


def configure_logging(verbose: bool = False, log_file: str | None = None) -> None:
    """
    Configure process-wide logging. Call once at startup.

    Args:
        verbose: Log at DEBUG instead of INFO
        log_file: Optional path receiving JSON lines for every package outcome
    """
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format=CONSOLE_FORMAT,
        datefmt="%H:%M:%S",
        stream=sys.stderr,
        force=True,
    )
    # The acquisition logger may run below the console level when a log file
    # is attached, so the console handler filters on its own.
    for handler in logging.getLogger().handlers:
        handler.setLevel(level)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    acquisition_logger = get_acquisition_logger()
    acquisition_logger.setLevel(logging.NOTSET)
    for handler in list(acquisition_logger.handlers):
        acquisition_logger.removeHandler(handler)
        handler.close()

    if log_file:
        acquisition_logger.setLevel(logging.DEBUG)
        file_handler = TimedRotatingFileHandler(
            log_file,
            when="D",
            interval=1,
            backupCount=7,
            encoding="utf-8",
        )
        file_handler.setFormatter(AcquisitionLogFormatter())
        file_handler.setLevel(logging.DEBUG)
        acquisition_logger.addHandler(file_handler)


def get_acquisition_logger() -> logging.Logger:
    """Get the logger that records per-package acquisition outcomes."""
    return logging.getLogger(ACQUISITION_LOGGER_NAME)
