from __future__ import annotations

from collections import defaultdict, deque
from typing import Any
from uuid import uuid4

import stripe

from ..contracts import DirectCharge, HostedCheckout
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


def _mock_id(prefix: str) -> str:
    return f"{prefix}_mock_{uuid4().hex[:16]}"


class MockPaymentProcessor(PaymentProcessor):
    """In-memory processor that authorizes everything.

    Used for the demo mode and as the test double. With ``record_calls`` the
    instance keeps every call, customer and price for inspection; without it
    nothing donor-related is retained across requests. Failures can be queued per
    operation with :meth:`fail`, and method types listed in
    ``unsupported_method_types`` are rejected the way the live API rejects
    methods that are not activated on the account.
    """

    def __init__(
        self,
        *,
        unsupported_method_types: set[str] | None = None,
        record_calls: bool = False,
    ) -> None:
        self.record_calls = record_calls
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.unsupported_method_types = set(unsupported_method_types or ())
        self.customers: dict[str, CustomerRef] = {}
        self.products: dict[str, ProductRef] = {}
        self.prices: list[PriceRef] = []
        self._failures: dict[str, deque[Exception]] = defaultdict(deque)

    # --- test helpers ---
    def fail(self, operation: str, exc: Exception, times: int = 1) -> None:
        for _ in range(times):
            self._failures[operation].append(exc)

    def calls_to(self, operation: str) -> list[dict[str, Any]]:
        return [params for name, params in self.calls if name == operation]

    def reset(self) -> None:
        self.calls.clear()
        self.customers.clear()
        self.products.clear()
        self.prices.clear()
        self._failures.clear()

    def _record(self, operation: str, **params: Any) -> None:
        if self.record_calls:
            self.calls.append((operation, params))
        queued = self._failures.get(operation)
        if queued:
            raise queued.popleft()

    def _check_method_types(self, method_types: tuple[str, ...] | list[str]) -> None:
        rejected = [m for m in method_types if m in self.unsupported_method_types]
        if rejected:
            raise stripe.InvalidRequestError(
                f"The payment method type \"{rejected[0]}\" is invalid.",
                "payment_method_types",
            )

    # --- PaymentProcessor ---
    def create_payment_intent(self, charge: DirectCharge) -> PaymentIntentRef:
        self._record("create_payment_intent", **charge.model_dump())
        self._check_method_types(charge.method_types)
        intent_id = _mock_id("pi")
        return PaymentIntentRef(id=intent_id, client_secret=f"{intent_id}_secret_mock")

    def find_customer_by_email(self, email: str) -> CustomerRef | None:
        self._record("find_customer_by_email", email=email)
        return self.customers.get(email)

    def create_customer(
        self, *, email: str, name: str, metadata: dict[str, str] | None = None
    ) -> CustomerRef:
        self._record("create_customer", email=email, name=name, metadata=metadata or {})
        customer = CustomerRef(id=_mock_id("cus"), email=email)
        if self.record_calls:
            self.customers.setdefault(email, customer)
        return customer

    def get_product(self, product_id: str) -> ProductRef | None:
        self._record("get_product", product_id=product_id)
        return self.products.get(product_id)

    def create_product(
        self, *, product_id: str, name: str, description: str | None = None
    ) -> ProductRef:
        self._record("create_product", product_id=product_id, name=name, description=description)
        if product_id in self.products:
            raise ProductAlreadyExists(product_id)
        product = ProductRef(id=product_id, name=name)
        self.products[product_id] = product
        return product

    def create_price(
        self, *, product_id: str, amount_minor: int, currency: str, interval: str
    ) -> PriceRef:
        self._record(
            "create_price",
            product_id=product_id,
            amount_minor=amount_minor,
            currency=currency,
            interval=interval,
        )
        price = PriceRef(
            id=_mock_id("price"),
            product_id=product_id,
            unit_amount=amount_minor,
            currency=currency,
            interval=interval,
        )
        if self.record_calls:
            self.prices.append(price)
        return price

    def create_subscription(
        self,
        *,
        customer_id: str,
        price_id: str,
        method_types: list[str],
        metadata: dict[str, str] | None = None,
    ) -> SubscriptionRef:
        self._record(
            "create_subscription",
            customer_id=customer_id,
            price_id=price_id,
            method_types=list(method_types),
            metadata=metadata or {},
        )
        self._check_method_types(method_types)
        sub_id = _mock_id("sub")
        return SubscriptionRef(id=sub_id, client_secret=f"pi_for_{sub_id}_secret_mock")

    def create_checkout_session(self, checkout: HostedCheckout) -> CheckoutSessionRef:
        self._record("create_checkout_session", **checkout.model_dump())
        self._check_method_types(checkout.method_types)
        session_id = _mock_id("cs")
        return CheckoutSessionRef(
            id=session_id, url=f"https://checkout.stripe.test/c/pay/{session_id}"
        )
