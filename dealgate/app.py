"""
@file: app.py
@description: ASGI application factory wiring readiness, gate, CORS and realtime
@dependencies: fastapi, starlette, prometheus_client, config, middlewares, realtime
@created: 2026-10-13
"""

from __future__ import annotations

from collections.abc import Mapping

from fastapi import APIRouter, FastAPI, HTTPException, Response, status
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.middleware.cors import CORSMiddleware

from .config import Settings, get_settings
from .health import router as health_router
from .logger import logger
from .middlewares import (
    FaultBoundaryMiddleware,
    OriginPolicyMiddleware,
    ProcessingTimeMiddleware,
    StoreGateMiddleware,
)
from .origin_policy import OriginPolicy
from .realtime import RealtimeRegistry, build_realtime_router
from .runtime_state import ReadinessTracker


def create_app(
    settings: Settings | None = None,
    *,
    readiness: ReadinessTracker | None = None,
    registry: RealtimeRegistry | None = None,
    data_routers: Mapping[str, APIRouter] | None = None,
) -> FastAPI:
    """Build the service.

    ``data_routers`` maps a path prefix to a router of data-dependent
    handlers (auth, deals, flash orders). Every gated prefix answers 503 until
    the store is connected, whether or not a router is mounted under it.
    """

    settings = settings or get_settings()
    readiness = readiness or ReadinessTracker()
    registry = registry or RealtimeRegistry()
    policy = OriginPolicy.from_settings(settings.cors)

    app = FastAPI(title=settings.app_name)
    app.state.settings = settings
    app.state.readiness = readiness
    app.state.registry = registry
    app.state.origin_policy = policy

    app.include_router(health_router)
    app.include_router(build_realtime_router(registry, policy, settings.realtime_path))

    gated = list(settings.gated_prefixes)
    for prefix, router in (data_routers or {}).items():
        prefix = "/" + prefix.strip("/")
        app.include_router(router, prefix=prefix)
        if prefix not in gated:
            gated.append(prefix)

    @app.get("/metrics", tags=["system"], include_in_schema=False)
    async def metrics() -> Response:
        """Expose Prometheus metrics when ENABLE_METRICS=1."""

        if not settings.enable_metrics:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="metrics disabled")
        response = Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
        response.headers["Cache-Control"] = "no-cache"
        return response

    # Last added runs first: origin policy, CORS, timing, gate, fault boundary.
    app.add_middleware(FaultBoundaryMiddleware)
    app.add_middleware(StoreGateMiddleware, readiness=readiness.snapshot, prefixes=gated)
    app.add_middleware(ProcessingTimeMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(policy.allowed_origins),
        allow_credentials=policy.allow_credentials,
        allow_methods=list(policy.allow_methods),
        allow_headers=list(policy.allow_headers),
    )
    app.add_middleware(OriginPolicyMiddleware, policy=policy)

    logger.info(
        "App {} built: origins={} gated={} realtime={}",
        settings.app_name,
        list(policy.allowed_origins),
        gated,
        settings.realtime_path,
    )
    return app


__all__ = ["create_app"]
