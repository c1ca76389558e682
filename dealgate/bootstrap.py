"""
@file: bootstrap.py
@description: Startup ordering of listener, store connection and admin seeding.
@dependencies: uvicorn, runtime_state, utils.retry, metrics, logger
@created: 2026-10-13
"""

from __future__ import annotations

import asyncio
import contextlib
import socket
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any, Protocol

import uvicorn

from .logger import logger
from .metrics import record_store_attempt
from .runtime_state import ReadinessTracker
from .utils import retry_async

ConnectFn = Callable[[], Awaitable[None]]
SeedFn = Callable[[], Awaitable[Any]]
CloseFn = Callable[[], Awaitable[None]]


class BootstrapOrdering(str, Enum):
    """Which side of startup goes first.

    ``LISTENER_FIRST`` binds and serves health probes immediately, then
    connects the store in the background. ``STORE_FIRST`` waits for the store
    attempt to finish (success or failure) before binding; a failed store
    never prevents the listener from starting.
    """

    LISTENER_FIRST = "listener_first"
    STORE_FIRST = "store_first"


class ListenerBindError(RuntimeError):
    """Raised when the HTTP listener cannot bind or fails before serving."""


class Listener(Protocol):
    async def start(self) -> None:
        """Return once the listener accepts connections."""

    async def wait_closed(self) -> None:
        """Return once the listener has stopped serving."""


def bind_socket(host: str, port: int) -> socket.socket:
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
    except OSError as exc:
        sock.close()
        raise ListenerBindError(f"cannot bind {host}:{port}: {exc}") from exc
    sock.set_inheritable(True)
    return sock


class UvicornListener:
    """Serve an ASGI app with uvicorn on a socket bound up front."""

    def __init__(
        self,
        app: Any,
        host: str,
        port: int,
        *,
        log_level: str = "info",
        poll_interval: float = 0.05,
    ) -> None:
        self.host = host
        self.port = port
        self.poll_interval = poll_interval
        self.config = uvicorn.Config(
            app,
            host=host,
            port=port,
            log_config=None,
            log_level=log_level.lower(),
            lifespan="on",
            proxy_headers=True,
            forwarded_allow_ips="*",
        )
        self.server = uvicorn.Server(self.config)
        self._task: asyncio.Task[None] | None = None

    async def start(self) -> None:
        if self._task is not None:
            return
        sock = bind_socket(self.host, self.port)
        self._task = asyncio.create_task(self.server.serve(sockets=[sock]), name="http-listener")
        while not self.server.started:
            if self._task.done():
                exc = self._task.exception()
                raise ListenerBindError(
                    f"listener on {self.host}:{self.port} stopped before serving"
                ) from exc
            await asyncio.sleep(self.poll_interval)
        logger.info("Listening on {}:{}", self.host, self.port)

    async def wait_closed(self) -> None:
        if self._task is not None:
            await self._task

    def stop(self) -> None:
        self.server.should_exit = True


class BootstrapSequencer:
    """Single writer of the readiness flags during startup."""

    def __init__(
        self,
        readiness: ReadinessTracker,
        connect: ConnectFn,
        seed: SeedFn | None = None,
        *,
        close: CloseFn | None = None,
        ordering: BootstrapOrdering = BootstrapOrdering.LISTENER_FIRST,
        connect_timeout: float = 10.0,
        connect_retries: int = 0,
        retry_delay: float = 2.0,
    ) -> None:
        self.readiness = readiness
        self._connect = connect
        self._seed = seed
        self._close = close
        self.ordering = BootstrapOrdering(ordering)
        self.connect_timeout = connect_timeout
        self.connect_retries = connect_retries
        self.retry_delay = retry_delay
        self._store_task: asyncio.Task[bool] | None = None

    @property
    def store_task(self) -> asyncio.Task[bool] | None:
        return self._store_task

    async def run(self, listener: Listener) -> None:
        """Start everything in the configured order and serve until stopped."""
        logger.info("Bootstrap ordering: {}", self.ordering.value)
        try:
            if self.ordering is BootstrapOrdering.STORE_FIRST:
                await self.connect_store()
                await self.start_listener(listener)
            else:
                await self.start_listener(listener)
                self.start_store_task()
            await listener.wait_closed()
        finally:
            await self.shutdown()

    async def start_listener(self, listener: Listener) -> None:
        await listener.start()
        if self.readiness.mark_listener_active():
            logger.info("Listener active; health endpoint reachable")

    def start_store_task(self) -> asyncio.Task[bool]:
        if self._store_task is None:
            self._store_task = asyncio.create_task(self.connect_store(), name="store-connect")
            self._store_task.add_done_callback(_log_task_fault)
        return self._store_task

    async def connect_store(self) -> bool:
        """Connect once (plus bounded retries); failures leave the gate closed."""
        try:
            await retry_async(
                self._attempt,
                retries=self.connect_retries,
                delay=self.retry_delay,
            )
        except Exception as exc:
            detail = self._describe(exc)
            self.readiness.record_store_failure(detail)
            logger.error("Store connection failed, serving in degraded mode: {}", detail)
            return False

        if self.readiness.mark_store_connected():
            logger.info("Store connected; gated routes open")
        await self._run_seed()
        return True

    async def _attempt(self) -> None:
        try:
            await asyncio.wait_for(self._connect(), timeout=self.connect_timeout)
        except Exception:
            record_store_attempt("failure")
            raise
        record_store_attempt("success")

    async def _run_seed(self) -> None:
        if self._seed is None:
            return
        try:
            await self._seed()
        except Exception:
            logger.exception("Admin account seeding failed")

    def _describe(self, exc: BaseException) -> str:
        if isinstance(exc, asyncio.TimeoutError):
            return f"timed out after {self.connect_timeout:g}s"
        return f"{type(exc).__name__}: {exc}"

    async def shutdown(self) -> None:
        task = self._store_task
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        if self._close is not None:
            try:
                await self._close()
            except Exception:
                logger.exception("Store shutdown failed")


def _log_task_fault(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.opt(exception=exc).error("Background task {} failed", task.get_name())


__all__ = [
    "BootstrapOrdering",
    "BootstrapSequencer",
    "Listener",
    "ListenerBindError",
    "UvicornListener",
    "bind_socket",
]
