# @file: logger.py
# @description: Loguru setup with console and JSON sinks.
# @dependencies: loguru
"""Logging configuration shared by the whole service."""
from __future__ import annotations

import json
import logging
import sys

from loguru import logger

_STDLIB_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access", "sqlalchemy.engine")

_CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)


class InterceptHandler(logging.Handler):
    """Forward standard-library log records (uvicorn, SQLAlchemy) to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        frame, depth = logging.currentframe(), 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1
        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def json_sink(message) -> None:
    """Write one JSON document per log record to stdout."""
    record = message.record
    log_entry = {
        "timestamp": record["time"].isoformat(),
        "level": record["level"].name,
        "message": record["message"],
        "module": record["name"],
        "function": record["function"],
        "line": record["line"],
    }
    if record["exception"]:
        log_entry["exception"] = str(record["exception"])
    for key, value in record.get("extra", {}).items():
        if key not in log_entry:
            log_entry[key] = value
    sys.stdout.write(json.dumps(log_entry, ensure_ascii=False, default=str) + "\n")
    sys.stdout.flush()


def setup_logging(level: str = "INFO", json_logs: bool = False) -> None:
    """Replace loguru's default sink and capture stdlib logging."""
    logger.remove()
    if json_logs:
        logger.add(sink=json_sink, level=level, backtrace=False, diagnose=False)
    else:
        logger.add(
            sink=sys.stdout,
            format=_CONSOLE_FORMAT,
            level=level,
            backtrace=True,
            diagnose=False,
        )
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in _STDLIB_LOGGERS:
        std_logger = logging.getLogger(name)
        std_logger.handlers = [InterceptHandler()]
        std_logger.propagate = False


__all__ = ["InterceptHandler", "json_sink", "logger", "setup_logging"]
