"""
@file: health.py
@description: Liveness/readiness payloads and the smoke test route.
@dependencies: fastapi, runtime_state
@created: 2026-10-13
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Request

from .runtime_state import ReadinessState

router = APIRouter(tags=["system"])


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def overall_status(state: ReadinessState) -> str:
    if state.store_connected:
        return "ok"
    if state.store_error:
        return "degraded"
    return "starting"


def health_payload(state: ReadinessState, *, port: int) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "status": overall_status(state),
        "message": "Server running",
        "port": port,
        "timestamp": _now(),
    }
    payload.update(state.as_payload())
    return payload


@router.get("/", summary="Service status")
@router.get("/health", summary="Liveness probe with readiness flags")
async def health(request: Request) -> dict[str, Any]:
    """Always answers 200, whatever the store state is."""

    state = request.app.state.readiness.snapshot()
    return health_payload(state, port=request.app.state.settings.port)


@router.get("/test", summary="Smoke route")
async def smoke(request: Request) -> dict[str, Any]:
    return {
        "message": "Test route working!",
        "timestamp": _now(),
        "port": request.app.state.settings.port,
    }


__all__ = ["health", "health_payload", "overall_status", "router", "smoke"]
