"""
@file: observability.py
@description: Sentry integration and last-resort fault logging
@dependencies: sentry_sdk, logger, config
@created: 2026-10-13
"""

from __future__ import annotations

import asyncio
from typing import Any

import sentry_sdk

from .config import Settings
from .logger import logger


def init_sentry(settings: Settings) -> bool:
    sentry = settings.sentry
    if not sentry.enabled:
        return False
    sentry_sdk.init(dsn=sentry.dsn, environment=sentry.environment)
    logger.info("Sentry reporting enabled (env={})", sentry.environment)
    return True


def handle_loop_exception(loop: asyncio.AbstractEventLoop, context: dict[str, Any]) -> None:
    """Log faults that no task or request claimed."""
    exc = context.get("exception")
    message = context.get("message", "Unhandled event loop error")
    if exc is not None:
        logger.opt(exception=exc).error("Unattributed fault: {}", message)
        sentry_sdk.capture_exception(exc)
    else:
        logger.error("Unattributed fault: {}", message)


def install_loop_exception_handler(loop: asyncio.AbstractEventLoop | None = None) -> None:
    (loop or asyncio.get_running_loop()).set_exception_handler(handle_loop_exception)


__all__ = ["handle_loop_exception", "init_sentry", "install_loop_exception_handler"]
