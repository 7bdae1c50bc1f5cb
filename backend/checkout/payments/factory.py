from __future__ import annotations

from functools import lru_cache

from ..errors import ConfigurationError
from ..logging_config import get_logger
from ..settings import settings
from .base import PaymentProcessor
from .mock import MockPaymentProcessor
from .stripe_processor import StripeProcessor

logger = get_logger(__name__)


@lru_cache(maxsize=1)
def get_payment_processor() -> PaymentProcessor:
    mode = (settings.PAYMENTS_MODE or "mock").lower()

    if mode == "mock":
        return MockPaymentProcessor()

    if mode == "live":
        if not (settings.STRIPE_SECRET_KEY or "").strip():
            logger.error("stripe_secret_key_missing")
            raise ConfigurationError()
        return StripeProcessor(
            api_key=settings.STRIPE_SECRET_KEY,
            api_version=settings.STRIPE_API_VERSION,
        )

    logger.error("unsupported_payments_mode", mode=settings.PAYMENTS_MODE)
    raise ConfigurationError()
