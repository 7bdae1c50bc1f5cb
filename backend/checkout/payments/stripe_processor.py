from __future__ import annotations

from typing import Any

import stripe

from ..contracts import DirectCharge, HostedCheckout
from ..logging_config import get_logger
from .base import (
    CheckoutSessionRef,
    CustomerRef,
    PaymentIntentRef,
    PaymentProcessor,
    PriceRef,
    ProductAlreadyExists,
    ProductRef,
    SubscriptionRef,
)

logger = get_logger(__name__)


class StripeProcessor(PaymentProcessor):
    """Stripe-backed processor. SDK exceptions propagate unchanged."""

    def __init__(self, *, api_key: str, api_version: str | None = None) -> None:
        if not api_key:
            raise ValueError("api_key is required")
        self.api_key = api_key
        self.api_version = api_version

    def _options(self) -> dict[str, Any]:
        options: dict[str, Any] = {"api_key": self.api_key}
        if self.api_version:
            options["stripe_version"] = self.api_version
        return options

    def create_payment_intent(self, charge: DirectCharge) -> PaymentIntentRef:
        params: dict[str, Any] = {
            "amount": charge.amount_minor,
            "currency": charge.currency,
            "payment_method_types": list(charge.method_types),
            "metadata": dict(charge.metadata),
        }
        if charge.receipt_email:
            params["receipt_email"] = charge.receipt_email
        intent = stripe.PaymentIntent.create(**params, **self._options())
        return PaymentIntentRef(id=intent.id, client_secret=intent.client_secret)

    def find_customer_by_email(self, email: str) -> CustomerRef | None:
        customers = stripe.Customer.list(email=email, limit=1, **self._options())
        if not customers.data:
            return None
        customer = customers.data[0]
        return CustomerRef(id=customer.id, email=customer.email)

    def create_customer(
        self, *, email: str, name: str, metadata: dict[str, str] | None = None
    ) -> CustomerRef:
        customer = stripe.Customer.create(
            email=email, name=name, metadata=metadata or {}, **self._options()
        )
        return CustomerRef(id=customer.id, email=customer.email)

    def get_product(self, product_id: str) -> ProductRef | None:
        try:
            product = stripe.Product.retrieve(product_id, **self._options())
        except stripe.InvalidRequestError as exc:
            if exc.code == "resource_missing":
                return None
            raise
        if not product.active:
            # Archived products cannot take new prices.
            logger.info("stripe_product_reactivated", product_id=product_id)
            product = stripe.Product.modify(product_id, active=True, **self._options())
        return ProductRef(id=product.id, name=product.name)

    def create_product(
        self, *, product_id: str, name: str, description: str | None = None
    ) -> ProductRef:
        params: dict[str, Any] = {"id": product_id, "name": name}
        if description:
            params["description"] = description
        try:
            product = stripe.Product.create(**params, **self._options())
        except stripe.InvalidRequestError as exc:
            if exc.code == "resource_already_exists":
                raise ProductAlreadyExists(product_id) from exc
            raise
        return ProductRef(id=product.id, name=product.name)

    def create_price(
        self, *, product_id: str, amount_minor: int, currency: str, interval: str
    ) -> PriceRef:
        price = stripe.Price.create(
            product=product_id,
            unit_amount=amount_minor,
            currency=currency,
            recurring={"interval": interval},
            **self._options(),
        )
        return PriceRef(
            id=price.id,
            product_id=product_id,
            unit_amount=amount_minor,
            currency=currency,
            interval=interval,
        )

    def create_subscription(
        self,
        *,
        customer_id: str,
        price_id: str,
        method_types: list[str],
        metadata: dict[str, str] | None = None,
    ) -> SubscriptionRef:
        subscription = stripe.Subscription.create(
            customer=customer_id,
            items=[{"price": price_id}],
            payment_behavior="default_incomplete",
            payment_settings={
                "save_default_payment_method": "on_subscription",
                "payment_method_types": list(method_types),
            },
            expand=["latest_invoice.payment_intent"],
            metadata=metadata or {},
            **self._options(),
        )
        client_secret = subscription.latest_invoice.payment_intent.client_secret
        return SubscriptionRef(id=subscription.id, client_secret=client_secret)

    def create_checkout_session(self, checkout: HostedCheckout) -> CheckoutSessionRef:
        if checkout.price_id is not None:
            line_item: dict[str, Any] = {"price": checkout.price_id, "quantity": 1}
        else:
            line_item = {
                "price_data": {
                    "currency": checkout.currency,
                    "unit_amount": checkout.amount_minor,
                    "product_data": {"name": checkout.product_name or "Donation"},
                },
                "quantity": 1,
            }
        params: dict[str, Any] = {
            "mode": checkout.mode,
            "payment_method_types": list(checkout.method_types),
            "line_items": [line_item],
            "success_url": checkout.success_url,
            "cancel_url": checkout.cancel_url,
            "metadata": dict(checkout.metadata),
        }
        if checkout.customer_email:
            params["customer_email"] = checkout.customer_email
        if checkout.mode == "subscription":
            params["subscription_data"] = {"metadata": dict(checkout.metadata)}
        else:
            params["payment_intent_data"] = {"metadata": dict(checkout.metadata)}
        session = stripe.checkout.Session.create(**params, **self._options())
        return CheckoutSessionRef(id=session.id, url=session.url)
