"""Request helper methods for the intake server."""

from __future__ import annotations

import math

from aiohttp import web

from ..utils.urls import normalize_ip


def _coerce_timestamp(value: object) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    value = float(value)
    return value if math.isfinite(value) else None


def _coerce_str(value: object) -> str:
    return value.strip() if isinstance(value, str) else ""


class IntakeServerRequestMixin:
    """Request helper utilities."""

    def _client_ip(self, request: web.Request) -> str | None:
        """Best-effort client IP (X-Forwarded-For, X-Real-IP, then the socket peer)."""
        if self.config.trust_forwarded_headers:
            forwarded = request.headers.get("X-Forwarded-For", "")
            if forwarded:
                normalized = normalize_ip(forwarded.split(",")[0])
                if normalized:
                    return normalized
            real_ip = normalize_ip(request.headers.get("X-Real-IP"))
            if real_ip:
                return real_ip
        return normalize_ip(request.remote)

    def _user_agent(self, request: web.Request) -> str:
        return (request.headers.get("User-Agent") or "").strip() or "unknown"

    async def _read_json(self, request: web.Request) -> dict:
        try:
            data = await request.json()
        except Exception:
            raise web.HTTPBadRequest(
                text='{"error": "Invalid JSON payload"}',
                content_type="application/json",
            )
        if not isinstance(data, dict):
            raise web.HTTPBadRequest(
                text='{"error": "Invalid JSON payload"}',
                content_type="application/json",
            )
        return data
