"""Application-wide logging configuration."""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler

LOGGER_NAME = "trade"
DEFAULT_LOG_FILE = "trade_simulator.log"
DEFAULT_MAX_FILE_SIZE = 5 * 1048576
DEFAULT_MAX_FILES = 3

_FORMAT = "[%(asctime)s.%(msecs)03d] [%(levelname)s] %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class _LowerLevelFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        record = logging.makeLogRecord(record.__dict__)
        record.levelname = record.levelname.lower()
        return super().format(record)


def init_logging(
    log_file: str = DEFAULT_LOG_FILE,
    max_file_size: int = DEFAULT_MAX_FILE_SIZE,
    max_files: int = DEFAULT_MAX_FILES,
) -> logging.Logger | None:
    """Configure the "trade" logger with a console and a rotating file handler.

    The console shows info and above, the file records debug and above.
    Returns the logger, or None if the log file could not be opened.
    """
    try:
        file_handler = RotatingFileHandler(
            log_file, maxBytes=max_file_size, backupCount=max_files, encoding="utf-8"
        )
    except OSError as exc:
        print(f"Log initialization failed: {exc}", file=sys.stderr)
        return None

    formatter = _LowerLevelFormatter(_FORMAT, datefmt=_DATE_FORMAT)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(formatter)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(formatter)

    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    logger.addHandler(console_handler)
    logger.addHandler(file_handler)
    return logger