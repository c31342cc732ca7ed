"""
Logging setup for silver batch runs.

Console output always, an optional log file, and a batch id stamped on every
record once a batch has started.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] [batch %(batch_id)s] %(name)s: %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Chatty third-party loggers kept at WARNING unless DEBUG is requested
NOISY_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.pool")


class BatchContextFilter(logging.Filter):
    """Adds `batch_id` to every record passing through a handler."""

    def __init__(self):
        super().__init__()
        self.batch_id: Optional[int] = None

    def filter(self, record: logging.LogRecord) -> bool:
        record.batch_id = self.batch_id if self.batch_id is not None else "-"
        return True


batch_context = BatchContextFilter()


def _make_handler(handler: logging.Handler, level: int, log_format: str, date_format: str) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(log_format, date_format))
    handler.addFilter(batch_context)
    return handler


def configure_logging(
    level: Union[int, str] = logging.INFO,
    log_file: Optional[str] = None,
    log_format: str = DEFAULT_FORMAT,
    date_format: str = DEFAULT_DATE_FORMAT,
) -> None:
    """
    Install the root handlers (replacing any existing ones).

    Args:
        level: Level or level name, e.g. "DEBUG"
        log_file: Also write to this file (parent directories are created)
        log_format: Record format; may use %(batch_id)s
        date_format: Timestamp format
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    handlers = [_make_handler(logging.StreamHandler(sys.stdout), level, log_format, date_format)]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            _make_handler(logging.FileHandler(log_file, encoding="utf-8"), level, log_format, date_format)
        )

    logging.basicConfig(level=level, handlers=handlers, force=True)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(level if level <= logging.DEBUG else logging.WARNING)


def set_batch_context(batch_id: Optional[int]) -> None:
    """Stamp subsequent log records with this batch id (None clears it)."""
    batch_context.batch_id = batch_id


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def create_run_log_file(base_dir: str = "logs") -> str:
    """Path of a new timestamped log file under base_dir (directory is created)."""
    log_dir = Path(base_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    return str(log_dir / f"silver_run_{datetime.now():%Y%m%d_%H%M%S}.log")
