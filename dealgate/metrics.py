"""
@file: metrics.py
@description: Prometheus metric registry and helpers.
@dependencies: prometheus_client
@created: 2026-10-12
"""
from __future__ import annotations

from prometheus_client import Counter, Gauge

__all__ = [
    "gated_requests_total",
    "origin_denied_total",
    "store_connect_attempts_total",
    "realtime_sessions",
    "record_gated_request",
    "record_origin_denied",
    "record_store_attempt",
    "set_realtime_sessions",
]


gated_requests_total = Counter(
    "dealgate_gated_requests_total", "Requests rejected because the store is not ready", ["prefix"]
)
origin_denied_total = Counter(
    "dealgate_origin_denied_total", "Requests rejected by the origin policy", ["surface"]
)
store_connect_attempts_total = Counter(
    "dealgate_store_connect_attempts_total", "Store connection attempts", ["outcome"]
)
realtime_sessions = Gauge("dealgate_realtime_sessions", "Connected realtime sessions")


def record_gated_request(prefix: str) -> None:
    gated_requests_total.labels(prefix=prefix).inc()


def record_origin_denied(surface: str) -> None:
    origin_denied_total.labels(surface=surface).inc()


def record_store_attempt(outcome: str) -> None:
    store_connect_attempts_total.labels(outcome=outcome).inc()


def set_realtime_sessions(count: int) -> None:
    realtime_sessions.set(count)
