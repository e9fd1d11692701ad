# lessondeck/core/infra/logging.py

import logging
import os
import sys
from logging.handlers import TimedRotatingFileHandler
from typing import Optional

from lessondeck.core.infra.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Third-party loggers that are chatty at INFO (one line per HTTP call).
QUIET_LOGGERS = ("httpx", "httpcore", "openai", "langchain")


def _file_handler(fmt: logging.Formatter, level: int) -> Optional[logging.Handler]:
    """Daily-rotating file under LOG_DIR, or None when the directory is unusable."""
    log_dir = settings.LOG_DIR or "logs"
    try:
        os.makedirs(log_dir, exist_ok=True)
        handler = TimedRotatingFileHandler(
            filename=os.path.join(log_dir, f"{settings.LOG_FILE_BASENAME}.log"),
            when=settings.LOG_ROTATE_WHEN,
            interval=max(1, settings.LOG_ROTATE_INTERVAL),
            backupCount=max(0, settings.LOG_BACKUP_COUNT),
            encoding="utf-8",
        )
    except OSError as e:
        logging.getLogger(__name__).warning("File logging disabled (%s): %s", log_dir, e)
        return None
    handler.setFormatter(fmt)
    handler.setLevel(level)
    return handler


def configure_logging(level_name: Optional[str] = None) -> None:
    """Console logging always; rotating file logging when LOG_TO_FILE is set.

    Safe to call more than once: handlers are only added if missing.
    """
    root = logging.getLogger()
    level = logging.getLevelName((level_name or settings.LOG_LEVEL or "INFO").upper())
    if not isinstance(level, int):
        level = logging.INFO
    root.setLevel(level)
    fmt = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    has_console = any(
        type(h) is logging.StreamHandler for h in root.handlers
    )
    if not has_console:
        console = logging.StreamHandler(sys.stdout)
        console.setFormatter(fmt)
        console.setLevel(level)
        root.addHandler(console)

    has_file = any(isinstance(h, TimedRotatingFileHandler) for h in root.handlers)
    if settings.LOG_TO_FILE and not has_file:
        handler = _file_handler(fmt, level)
        if handler is not None:
            root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
