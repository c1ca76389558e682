"""
@file: middlewares.py
@description: Origin policy, store readiness gate and timing middlewares
@dependencies: starlette, origin_policy, runtime_state, metrics
@created: 2026-10-12
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable
from enum import Enum

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from .logger import logger
from .metrics import record_gated_request, record_origin_denied
from .origin_policy import DENIED_MESSAGE, OriginPolicy
from .runtime_state import ReadinessState

STORE_NOT_READY_MESSAGE = "Database not ready"
INTERNAL_ERROR_MESSAGE = "Internal server error"
PROCESS_TIME_HEADER = "X-Process-Time"


class GateDecision(str, Enum):
    PASS = "pass"
    STORE_NOT_READY = "store_not_ready"


def gate_request(state: ReadinessState) -> GateDecision:
    """Pure admission decision for data-dependent routes."""
    if state.store_connected:
        return GateDecision.PASS
    return GateDecision.STORE_NOT_READY


def match_prefix(path: str, prefixes: Iterable[str]) -> str | None:
    for prefix in prefixes:
        if path == prefix or path.startswith(prefix.rstrip("/") + "/"):
            return prefix
    return None


class ProcessingTimeMiddleware(BaseHTTPMiddleware):
    """Stamp handling time in seconds, gate and fault answers included."""

    async def dispatch(self, request: Request, call_next: Callable):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - started
        response.headers[PROCESS_TIME_HEADER] = f"{elapsed:.6f}"
        return response


class FaultBoundaryMiddleware(BaseHTTPMiddleware):
    """Turn an unhandled handler error into a 500 for that request only."""

    async def dispatch(self, request: Request, call_next: Callable):
        try:
            return await call_next(request)
        except Exception:
            logger.exception("Unhandled error in {} {}", request.method, request.url.path)
            return JSONResponse(status_code=500, content={"message": INTERNAL_ERROR_MESSAGE})


class StoreGateMiddleware(BaseHTTPMiddleware):
    """Answer 503 for gated route groups until the store is connected."""

    def __init__(self, app, readiness: Callable[[], ReadinessState], prefixes: Iterable[str]):
        super().__init__(app)
        self.readiness = readiness
        self.prefixes = tuple(prefixes)

    async def dispatch(self, request: Request, call_next: Callable):
        prefix = match_prefix(request.url.path, self.prefixes)
        if prefix is None:
            return await call_next(request)
        if gate_request(self.readiness()) is GateDecision.STORE_NOT_READY:
            record_gated_request(prefix)
            logger.debug("Gate closed for {} {}", request.method, request.url.path)
            return JSONResponse(status_code=503, content={"message": STORE_NOT_READY_MESSAGE})
        return await call_next(request)


class OriginPolicyMiddleware(BaseHTTPMiddleware):
    """Manual CORS layer sitting outside Starlette's ``CORSMiddleware``.

    Headers are set, not appended, so running both layers produces a single
    consistent value per header.
    """

    def __init__(self, app, policy: OriginPolicy):
        super().__init__(app)
        self.policy = policy

    async def dispatch(self, request: Request, call_next: Callable):
        origin = request.headers.get("origin")
        decision = self.policy.evaluate(origin)
        if not decision.allowed:
            record_origin_denied("http")
            logger.warning("Origin {} denied for {} {}", origin, request.method, request.url.path)
            return JSONResponse(status_code=403, content={"message": DENIED_MESSAGE})

        if request.method == "OPTIONS":
            response = Response(status_code=200)
        else:
            response = await call_next(request)
        self.policy.apply(response.headers, origin)
        return response


__all__ = [
    "FaultBoundaryMiddleware",
    "INTERNAL_ERROR_MESSAGE",
    "GateDecision",
    "OriginPolicyMiddleware",
    "PROCESS_TIME_HEADER",
    "ProcessingTimeMiddleware",
    "STORE_NOT_READY_MESSAGE",
    "StoreGateMiddleware",
    "gate_request",
    "match_prefix",
]
