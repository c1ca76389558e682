"""
@file: runtime_state.py
@description: Process readiness flags (listener bound, store connected).
@dependencies: dataclasses
@created: 2026-10-12
"""
from __future__ import annotations

import time
from dataclasses import dataclass, field, replace
from typing import Any


@dataclass(frozen=True, slots=True)
class ReadinessState:
    """Immutable snapshot of the readiness flags."""

    store_connected: bool = False
    listener_active: bool = False
    store_error: str | None = None

    def as_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "storeConnected": self.store_connected,
            "listenerActive": self.listener_active,
        }
        if self.store_error:
            payload["storeError"] = self.store_error
        return payload


@dataclass(slots=True)
class ReadinessTracker:
    """Owner of the current readiness snapshot.

    Marks are monotonic: once a flag is true it stays true. Readers call
    ``snapshot()`` and always receive an immutable value.
    """

    _state: ReadinessState = field(default_factory=ReadinessState)
    started_at: float = field(default_factory=time.time)

    def snapshot(self) -> ReadinessState:
        return self._state

    def mark_listener_active(self) -> bool:
        """Return True when this call performed the false->true transition."""
        if self._state.listener_active:
            return False
        self._state = replace(self._state, listener_active=True)
        return True

    def mark_store_connected(self) -> bool:
        if self._state.store_connected:
            return False
        self._state = replace(self._state, store_connected=True, store_error=None)
        return True

    def record_store_failure(self, detail: str) -> None:
        if self._state.store_connected:
            return
        self._state = replace(self._state, store_error=detail)

    @property
    def uptime(self) -> float:
        return max(0.0, time.time() - self.started_at)


__all__ = ["ReadinessState", "ReadinessTracker"]
