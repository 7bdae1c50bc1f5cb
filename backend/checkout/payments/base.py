from __future__ import annotations

from typing import Protocol

from pydantic import BaseModel

from ..contracts import DirectCharge, HostedCheckout


class PaymentIntentRef(BaseModel):
    id: str
    client_secret: str


class CustomerRef(BaseModel):
    id: str
    email: str | None = None


class ProductRef(BaseModel):
    id: str
    name: str


class PriceRef(BaseModel):
    id: str
    product_id: str
    unit_amount: int
    currency: str
    interval: str | None = None


class SubscriptionRef(BaseModel):
    id: str
    client_secret: str


class CheckoutSessionRef(BaseModel):
    id: str
    url: str


class PaymentProcessor(Protocol):
    """Operations the checkout core needs from a payment processor.

    Implementations raise the processor SDK's own exceptions; translation to
    client-facing errors happens in the orchestrator.
    """

    def create_payment_intent(self, charge: DirectCharge) -> PaymentIntentRef: ...

    def find_customer_by_email(self, email: str) -> CustomerRef | None: ...

    def create_customer(
        self, *, email: str, name: str, metadata: dict[str, str] | None = None
    ) -> CustomerRef: ...

    def get_product(self, product_id: str) -> ProductRef | None: ...

    def create_product(
        self, *, product_id: str, name: str, description: str | None = None
    ) -> ProductRef: ...

    def create_price(
        self, *, product_id: str, amount_minor: int, currency: str, interval: str
    ) -> PriceRef: ...

    def create_subscription(
        self,
        *,
        customer_id: str,
        price_id: str,
        method_types: list[str],
        metadata: dict[str, str] | None = None,
    ) -> SubscriptionRef: ...

    def create_checkout_session(self, checkout: HostedCheckout) -> CheckoutSessionRef: ...


class ProductAlreadyExists(Exception):
    """Raised by ``create_product`` when the id was claimed concurrently."""

    def __init__(self, product_id: str) -> None:
        self.product_id = product_id
        super().__init__(f"product '{product_id}' already exists")
