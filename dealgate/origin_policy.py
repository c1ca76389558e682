"""
@file: origin_policy.py
@description: Cross-origin decision shared by HTTP responses and the realtime handshake.
@dependencies: config
@created: 2026-10-12
"""

from __future__ import annotations

from collections.abc import MutableMapping
from dataclasses import dataclass
from enum import Enum

from .config import CorsSettings

DENIED_MESSAGE = "Not allowed by CORS"


class OriginDecision(str, Enum):
    ALLOW_NO_ORIGIN = "allow_no_origin"
    ALLOW_LISTED = "allow_listed"
    DENY_UNLISTED = "deny_unlisted"

    @property
    def allowed(self) -> bool:
        return self is not OriginDecision.DENY_UNLISTED


@dataclass(frozen=True)
class OriginPolicy:
    """Allow-list evaluation of a request's declared ``Origin``.

    Requests without an origin (curl, server-to-server, health probes) are
    always allowed. Listed origins are echoed back verbatim so credentials
    keep working; anything else is denied.
    """

    allowed_origins: tuple[str, ...]
    allow_methods: tuple[str, ...] = ("GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS")
    allow_headers: tuple[str, ...] = ("Content-Type", "Authorization")
    allow_credentials: bool = True

    @classmethod
    def from_settings(cls, cors: CorsSettings) -> OriginPolicy:
        return cls(
            allowed_origins=tuple(cors.allowed_origins),
            allow_methods=tuple(cors.allow_methods),
            allow_headers=tuple(cors.allow_headers),
            allow_credentials=cors.allow_credentials,
        )

    def evaluate(self, origin: str | None) -> OriginDecision:
        if not origin:
            return OriginDecision.ALLOW_NO_ORIGIN
        if origin.rstrip("/") in self.allowed_origins:
            return OriginDecision.ALLOW_LISTED
        return OriginDecision.DENY_UNLISTED

    def response_headers(self, origin: str | None) -> dict[str, str]:
        decision = self.evaluate(origin)
        if not decision.allowed:
            return {}
        allow_origin = "*" if decision is OriginDecision.ALLOW_NO_ORIGIN else str(origin)
        headers = {
            "Access-Control-Allow-Origin": allow_origin,
            "Access-Control-Allow-Methods": ", ".join(self.allow_methods),
            "Access-Control-Allow-Headers": ", ".join(self.allow_headers),
        }
        if self.allow_credentials:
            headers["Access-Control-Allow-Credentials"] = "true"
        return headers

    def apply(self, headers: MutableMapping[str, str], origin: str | None) -> OriginDecision:
        """Set the CORS headers on ``headers``, replacing any previous values."""
        decision = self.evaluate(origin)
        for name, value in self.response_headers(origin).items():
            headers[name] = value
        return decision


__all__ = ["DENIED_MESSAGE", "OriginDecision", "OriginPolicy"]
