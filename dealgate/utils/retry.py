# @file: retry.py
# @description: Bounded asynchronous retry helper.
# @dependencies: logger.py
"""Retry helpers for asynchronous callables."""
from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from ..logger import logger

T = TypeVar("T")


async def retry_async(
    func: Callable[..., Awaitable[T] | T],
    *args: Any,
    retries: int = 0,
    delay: float = 1.0,
    max_delay: float = 30.0,
    backoff: float = 2.0,
    exceptions: tuple[type[BaseException], ...] = (Exception,),
    **kwargs: Any,
) -> T:
    """Execute ``func`` once plus up to ``retries`` more times with exponential backoff.

    ``func`` may return either an awaitable or a plain value. The last
    exception is re-raised once the attempts are exhausted.
    """

    if retries < 0:
        raise ValueError("retries must be >= 0")

    name = getattr(func, "__qualname__", getattr(func, "__name__", str(func)))
    current_delay = delay
    attempt = 0
    while True:
        try:
            result = func(*args, **kwargs)
            if inspect.isawaitable(result):
                return await result
            return result
        except exceptions as exc:
            attempt += 1
            if attempt > retries:
                if retries:
                    logger.error("Retry attempts exhausted for {}: {}", name, exc)
                raise
            wait_time = min(current_delay, max_delay)
            logger.warning(
                "Retrying {} in {:.2f}s (attempt {}/{}): {}",
                name,
                wait_time,
                attempt,
                retries,
                exc,
            )
            await asyncio.sleep(wait_time)
            current_delay = min(current_delay * backoff, max_delay)


__all__ = ["retry_async"]
