from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

from loguru import logger

_LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)

# Chatty third-party loggers kept at WARNING unless the app runs at DEBUG.
_QUIET_LOGGERS = ("sqlalchemy.engine", "uvicorn.access", "httpx")


class InterceptHandler(logging.Handler):
    """Forward standard ``logging`` records (uvicorn, sqlalchemy) into Loguru, prefixed with their logger name."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level_name = logger.level(record.levelname).name
        except ValueError:
            level_name = record.levelno
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1
        logger.opt(depth=depth, exception=record.exc_info).log(level_name, f"[{record.name}] {record.getMessage()}")


def configure_logging(level: str = "INFO", log_file: Optional[str | Path] = None, enqueue: bool = True) -> None:
    """Install the stderr sink (and an optional rotating file sink) for the app."""
    logger.remove()
    logger.add(sys.stderr, format=_LOG_FORMAT, level=level, enqueue=enqueue, backtrace=True, diagnose=False)
    if log_file is not None:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        logger.add(str(log_file), level=level, rotation="10 MB", retention=5, enqueue=enqueue)
    logging.basicConfig(handlers=[InterceptHandler()], level=level, force=True)
    quiet_level = logging.DEBUG if level.upper() == "DEBUG" else logging.WARNING
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(quiet_level)
