"""Payment processor abstraction for the donation checkout."""

from .base import PaymentProcessor
from .factory import get_payment_processor
from .mock import MockPaymentProcessor
from .resolver import RecurringCatalogResolver

__all__ = [
    "MockPaymentProcessor",
    "PaymentProcessor",
    "RecurringCatalogResolver",
    "get_payment_processor",
]
