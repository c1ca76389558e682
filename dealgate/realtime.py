"""
@file: realtime.py
@description: Realtime channel session registry and WebSocket endpoint.
@dependencies: fastapi, origin_policy, metrics, logger
@created: 2026-10-13
"""

from __future__ import annotations

import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status

from .logger import logger
from .metrics import record_origin_denied, set_realtime_sessions
from .origin_policy import OriginPolicy

Sender = Callable[[dict[str, Any]], Awaitable[None]]


@dataclass(frozen=True, slots=True)
class RealtimeSession:
    id: str
    connected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class RealtimeRegistry:
    """Connection bookkeeping for realtime clients."""

    def __init__(self) -> None:
        self._sessions: dict[str, RealtimeSession] = {}
        self._senders: dict[str, Sender] = {}

    @property
    def count(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def sessions(self) -> list[RealtimeSession]:
        return list(self._sessions.values())

    def on_connect(self, session_id: str, send: Sender | None = None) -> RealtimeSession:
        session = self._sessions.get(session_id)
        if session is None:
            session = RealtimeSession(id=session_id)
            self._sessions[session_id] = session
        if send is not None:
            self._senders[session_id] = send
        set_realtime_sessions(self.count)
        logger.info("Realtime client connected: {} (active={})", session_id, self.count)
        return session

    def on_disconnect(self, session_id: str) -> bool:
        """Forget a session; unknown ids are ignored and return False."""
        self._senders.pop(session_id, None)
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        set_realtime_sessions(self.count)
        logger.info("Realtime client disconnected: {} (active={})", session_id, self.count)
        return True

    async def broadcast(self, event: str, payload: dict[str, Any] | None = None) -> int:
        """Send ``event`` to every client with a sender; returns the delivery count."""
        message = {"event": event, "payload": payload or {}}
        delivered = 0
        for session_id, send in list(self._senders.items()):
            try:
                await send(message)
            except Exception as exc:
                logger.warning("Dropping realtime client {}: {}", session_id, exc)
                self.on_disconnect(session_id)
                continue
            delivered += 1
        return delivered


def build_realtime_router(
    registry: RealtimeRegistry, policy: OriginPolicy, path: str = "/socket"
) -> APIRouter:
    router = APIRouter()

    @router.websocket(path)
    async def realtime_channel(websocket: WebSocket) -> None:
        origin = websocket.headers.get("origin")
        if not policy.evaluate(origin).allowed:
            record_origin_denied("realtime")
            logger.warning("Realtime handshake from {} rejected", origin)
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
            return

        await websocket.accept()
        session_id = uuid.uuid4().hex
        registry.on_connect(session_id, send=websocket.send_json)
        try:
            await websocket.send_json({"event": "connected", "id": session_id})
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            pass
        finally:
            registry.on_disconnect(session_id)

    return router


__all__ = ["RealtimeRegistry", "RealtimeSession", "Sender", "build_realtime_router"]
