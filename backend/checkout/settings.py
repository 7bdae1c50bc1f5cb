from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

REPO_ROOT = Path(__file__).resolve().parents[2]
ENV_FILE = REPO_ROOT / ".env"
DEFAULT_CSRF_SECRET = "change-me-to-a-long-random-secret-value"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE), env_file_encoding="utf-8", extra="ignore"
    )

    DEBUG: bool = False
    SERVICE_NAME: str = "donation-checkout"
    APP_VERSION: str = "1.0.0"

    # CORS allow origins (comma-separated). Default empty (no cross-origin).
    CORS_ALLOW_ORIGINS: str = ""

    # Payments
    PAYMENTS_MODE: Literal["mock", "live"] = "mock"
    STRIPE_SECRET_KEY: str | None = None
    STRIPE_PUBLISHABLE_KEY: str | None = None
    # latest_invoice.payment_intent is only expandable on API versions before 2025-03-31
    STRIPE_API_VERSION: str = "2024-06-20"

    DEFAULT_CURRENCY: str = "eur"
    TWINT_CURRENCY: str = "chf"
    TWINT_MAX_AMOUNT_MINOR: int = 500_000  # CHF 5,000

    RECURRING_PRODUCT_NAME: str = "Monthly Donation"
    RECURRING_PRODUCT_DESCRIPTION: str = "Monthly recurring donation"
    METADATA_VERSION: str = "1.0"

    # Hosted checkout redirects
    SITE_URL: str = "http://localhost:8000"
    SUCCESS_PATH: str = "/merci"
    CANCEL_PATH: str = "/donate"

    # Deployment variant switches (see config.FeatureConfig)
    CHARITY_CATALOG: Literal["full", "core"] = "full"
    ENABLED_PAYMENT_METHODS: str = "card,paypal,google_pay,apple_pay,express_checkout,twint"
    TIP_ENABLED: bool = True
    ADDRESS_ENABLED: bool = True
    PAYPAL_ONETIME_ROUTING: Literal["direct", "checkout"] = "direct"

    # Form tokens checked before the checkout core runs
    CSRF_ENABLED: bool = True
    CSRF_SECRET: str = DEFAULT_CSRF_SECRET
    CSRF_TTL_SECONDS: int = 3600

    # Rate limiting
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_REQUESTS: int = 30  # per window per client
    RATE_LIMIT_WINDOW_SECONDS: int = 60

    # Observability
    SENTRY_DSN: str | None = None
    SENTRY_ENVIRONMENT: str = "development"
    SENTRY_RELEASE: str | None = None
    SENTRY_TRACES_SAMPLE_RATE: float = 0.2

    @property
    def allow_origins(self) -> list[str]:
        s = (self.CORS_ALLOW_ORIGINS or "").strip()
        if s == "*":
            return ["*"]
        if s == "":
            return []
        return [part.strip() for part in s.split(",") if part.strip()]

    @property
    def csrf_secret_is_default(self) -> bool:
        return self.CSRF_ENABLED and self.CSRF_SECRET == DEFAULT_CSRF_SECRET

    @property
    def enabled_payment_methods(self) -> list[str]:
        raw = self.ENABLED_PAYMENT_METHODS or ""
        return [part.strip().lower() for part in raw.split(",") if part.strip()]

    @property
    def success_url(self) -> str:
        base = self.SITE_URL.rstrip("/")
        return f"{base}{self.SUCCESS_PATH}?session_id={{CHECKOUT_SESSION_ID}}"

    @property
    def cancel_url(self) -> str:
        base = self.SITE_URL.rstrip("/")
        return f"{base}{self.CANCEL_PATH}?cancelled=1"


settings = Settings()
