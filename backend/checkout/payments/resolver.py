"""Find-or-create of the Customer/Product/Price triple behind a subscription."""

from __future__ import annotations

import re

from ..logging_config import get_logger
from ..validators import mask_email
from .base import CustomerRef, PaymentProcessor, PriceRef, ProductAlreadyExists, ProductRef

logger = get_logger(__name__)

_SLUG_PATTERN = re.compile(r"[^a-z0-9]+")


def product_id_for(name: str) -> str:
    """Deterministic processor id for a product name ("Monthly Donation" -> prod_monthly_donation)."""
    slug = _SLUG_PATTERN.sub("_", name.lower()).strip("_")
    if not slug:
        raise ValueError("product name must contain letters or digits")
    return f"prod_{slug}"


class RecurringCatalogResolver:
    """
    Resolve processor-side objects for recurring donations.

    Customers are reused by email (first match). Products are addressed by a
    deterministic id so lookups hit a single record instead of scanning a
    listing page. Prices are always created fresh. Processor errors propagate
    unchanged; there is no retry here.
    """

    def __init__(self, processor: PaymentProcessor, *, metadata_version: str = "1.0") -> None:
        self.processor = processor
        self.metadata_version = metadata_version

    def resolve_customer(self, email: str, name: str) -> CustomerRef:
        existing = self.processor.find_customer_by_email(email)
        if existing is not None:
            logger.info("customer_reused", customer_id=existing.id, email=mask_email(email))
            return existing
        # Two first-time requests for the same donor can both land here.
        customer = self.processor.create_customer(
            email=email,
            name=name,
            metadata={"plugin_version": self.metadata_version},
        )
        logger.info("customer_created", customer_id=customer.id, email=mask_email(email))
        return customer

    def resolve_product(self, name: str, description: str | None = None) -> ProductRef:
        product_id = product_id_for(name)
        product = self.processor.get_product(product_id)
        if product is not None:
            return product
        try:
            product = self.processor.create_product(
                product_id=product_id, name=name, description=description
            )
        except ProductAlreadyExists:
            product = self.processor.get_product(product_id)
            if product is None:
                raise
            logger.info("product_create_raced", product_id=product_id)
            return product
        logger.info("product_created", product_id=product.id)
        return product

    def resolve_price(
        self, product: ProductRef, amount_minor: int, currency: str, interval: str = "month"
    ) -> PriceRef:
        price = self.processor.create_price(
            product_id=product.id,
            amount_minor=amount_minor,
            currency=currency,
            interval=interval,
        )
        logger.info(
            "price_created",
            price_id=price.id,
            product_id=product.id,
            amount_minor=amount_minor,
            currency=currency,
        )
        return price


__all__ = ["RecurringCatalogResolver", "product_id_for"]
