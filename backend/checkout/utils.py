from __future__ import annotations

import asyncio
import math
import time
from uuid import uuid4

from fastapi import Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from .logging_config import request_id_ctx
from .metrics import rate_limit_hits_total
from .settings import settings


def add_cors(app):
    origins = settings.allow_origins
    if not origins:
        # Default is explicit opt-in; skip middleware when nothing configured
        return
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):  # type: ignore[override]
        response = await call_next(request)
        headers = {
            "X-Frame-Options": "DENY",
            "X-Content-Type-Options": "nosniff",
            "Referrer-Policy": "no-referrer",
            "Cache-Control": "no-store",
        }
        if request.url.scheme == "https":
            headers["Strict-Transport-Security"] = "max-age=63072000; includeSubDomains"
        for key, value in headers.items():
            response.headers.setdefault(key, value)
        return response


def add_security_headers(app):
    app.add_middleware(SecurityHeadersMiddleware)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Reuse the caller's X-Request-ID or mint one, and expose it to the log processors."""

    async def dispatch(self, request: Request, call_next):  # type: ignore[override]
        request_id = request.headers.get("X-Request-ID") or str(uuid4())
        token = request_id_ctx.set(request_id)
        request.state.request_id = request_id
        try:
            response = await call_next(request)
        finally:
            request_id_ctx.reset(token)
        response.headers["X-Request-ID"] = request_id
        return response


def add_request_id_tracing(app):
    app.add_middleware(RequestIDMiddleware)


def get_request_id() -> str:
    """Get the current request ID from context."""
    return request_id_ctx.get("")


class RateLimiter:
    """Token bucket per client address."""

    def __init__(self) -> None:
        self._buckets: dict[str, dict[str, float]] = {}
        self._lock = asyncio.Lock()
        self._last_cleanup = 0.0

    async def dispatch(self, request: Request, call_next):
        limit = settings.RATE_LIMIT_REQUESTS
        window = settings.RATE_LIMIT_WINDOW_SECONDS
        if not settings.RATE_LIMIT_ENABLED or limit <= 0 or window <= 0:
            return await call_next(request)

        identifier = request.client.host if request.client else "anonymous"
        allowed, reset_in = await self._consume(identifier, limit, window, time.monotonic())
        if not allowed:
            rate_limit_hits_total.inc()
            retry_after = max(1, math.ceil(reset_in))
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={"success": False, "data": {"message": "Too many requests"}},
                headers={"Retry-After": str(retry_after)},
            )
        return await call_next(request)

    async def _consume(self, identifier: str, limit: int, window: int, now: float):
        refill_rate = limit / window
        async with self._lock:
            bucket = self._buckets.get(identifier)
            if bucket is None:
                self._buckets[identifier] = {"tokens": float(limit - 1), "last": now}
                self._maybe_cleanup(now, window)
                return True, 0.0
            tokens = min(float(limit), bucket["tokens"] + (now - bucket["last"]) * refill_rate)
            bucket["last"] = now
            self._maybe_cleanup(now, window)
            if tokens >= 1:
                bucket["tokens"] = tokens - 1
                return True, 0.0
            bucket["tokens"] = tokens
            return False, (1 - tokens) / refill_rate

    def reset(self) -> None:
        self._buckets.clear()
        self._last_cleanup = 0.0

    def _maybe_cleanup(self, now: float, window: int) -> None:
        """Drop buckets idle for more than two windows, at most once per window."""
        if now - self._last_cleanup < window:
            return
        stale_cutoff = now - (window * 2)
        stale_keys = [key for key, meta in self._buckets.items() if meta["last"] < stale_cutoff]
        for key in stale_keys:
            self._buckets.pop(key, None)
        self._last_cleanup = now


def add_rate_limiting(app):
    limiter = RateLimiter()
    app.state.rate_limiter = limiter

    @app.middleware("http")
    async def _rate_limit(request: Request, call_next):  # type: ignore[override]
        return await limiter.dispatch(request, call_next)
