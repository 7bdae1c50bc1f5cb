"""Health check module with dependency verification."""

from __future__ import annotations

import time
from typing import Any

from .settings import settings


def _is_configured(value: str | None) -> bool:
    """Return True when a config string is non-empty after trimming."""
    if value is None:
        return False
    return bool(value.strip())


class HealthChecker:
    """Reports whether the checkout has a usable payment processor configured.

    The processor check only inspects settings; it issues no API call.
    """

    def check_all(self) -> dict[str, Any]:
        checks = {
            "processor": self._check_processor(),
            "csrf": self._check_csrf(),
            "sentry": (
                {"status": "ok"} if _is_configured(settings.SENTRY_DSN) else {"status": "disabled"}
            ),
        }
        all_ok = all(check.get("status") in {"ok", "disabled", "mock"} for check in checks.values())
        return {
            "status": "healthy" if all_ok else "degraded",
            "timestamp": time.time(),
            "checks": checks,
        }

    def _check_processor(self) -> dict[str, Any]:
        if settings.PAYMENTS_MODE == "mock":
            return {"status": "mock"}
        if not _is_configured(settings.STRIPE_SECRET_KEY):
            return {"status": "error", "error": "STRIPE_SECRET_KEY not configured"}
        if not _is_configured(settings.STRIPE_PUBLISHABLE_KEY):
            return {"status": "error", "error": "STRIPE_PUBLISHABLE_KEY not configured"}
        return {"status": "ok", "api_version": settings.STRIPE_API_VERSION}

    def _check_csrf(self) -> dict[str, Any]:
        if not settings.CSRF_ENABLED:
            return {"status": "disabled"}
        if not settings.csrf_secret_is_default:
            return {"status": "ok"}
        if settings.PAYMENTS_MODE == "mock":
            return {"status": "mock"}
        return {"status": "error", "error": "CSRF_SECRET still has its default value"}


health_checker = HealthChecker()
