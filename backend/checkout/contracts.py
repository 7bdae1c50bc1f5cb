from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator


class PaymentType(str, Enum):
    ONE_TIME = "onetime"
    MONTHLY = "monthly"


class PaymentMethod(str, Enum):
    CARD = "card"
    PAYPAL = "paypal"
    GOOGLE_PAY = "google_pay"
    APPLE_PAY = "apple_pay"
    EXPRESS_CHECKOUT = "express_checkout"
    TWINT = "twint"


WALLET_METHODS = frozenset({PaymentMethod.GOOGLE_PAY, PaymentMethod.APPLE_PAY})

MIN_AMOUNT_MINOR = 100  # EUR 1.00
MAX_AMOUNT_MINOR = 99_999_900  # EUR 999,999.00
MAX_TIP_PERCENT = 20
NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 100
ADDRESS_MAX_LENGTH = 255


class DonationRequest(BaseModel):
    """A fully validated donation submission.

    ``amount_minor`` is the caller-computed total (donation plus tip); the
    tip percentage only travels as metadata.
    """

    model_config = ConfigDict(frozen=True)

    amount_minor: int = Field(ge=MIN_AMOUNT_MINOR, le=MAX_AMOUNT_MINOR)
    payment_type: PaymentType
    payment_method: PaymentMethod = PaymentMethod.CARD
    donor_email: str
    donor_name: str = Field(min_length=NAME_MIN_LENGTH, max_length=NAME_MAX_LENGTH)
    donor_address: str = Field(default="", max_length=ADDRESS_MAX_LENGTH)
    charity_code: str
    tip_percent: int = Field(default=0, ge=0, le=MAX_TIP_PERCENT)


class DonationMetadata(BaseModel):
    """Reporting annotations attached to every processor object; never read back."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    donor_name: str
    donor_address: str = ""
    payment_type: str
    payment_method: str
    selected_charity: str
    charity_code: str
    tip_percentage: str = "0"
    plugin_version: str

    def as_dict(self) -> dict[str, str]:
        return self.model_dump()


# --- Processor operations the orchestrator resolves a request into ---
class DirectCharge(BaseModel):
    model_config = ConfigDict(frozen=True)

    amount_minor: int
    currency: str
    method_types: tuple[str, ...]
    receipt_email: str | None = None
    metadata: dict[str, str] = Field(default_factory=dict)


class HostedCheckout(BaseModel):
    model_config = ConfigDict(frozen=True)

    mode: Literal["payment", "subscription"]
    currency: str
    method_types: tuple[str, ...]
    success_url: str
    cancel_url: str
    amount_minor: int | None = None
    price_id: str | None = None
    product_name: str | None = None
    customer_email: str | None = None
    metadata: dict[str, str] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _amount_or_price(self) -> HostedCheckout:
        if (self.amount_minor is None) == (self.price_id is None):
            raise ValueError("exactly one of amount_minor or price_id is required")
        return self


# --- Normalized orchestrator outcome ---
class CheckoutResult(BaseModel):
    payment_type: PaymentType
    client_secret: str | None = None
    checkout_url: str | None = None
    subscription_id: str | None = None

    @model_validator(mode="after")
    def _exactly_one_target(self) -> CheckoutResult:
        if (self.client_secret is None) == (self.checkout_url is None):
            raise ValueError("exactly one of client_secret or checkout_url must be set")
        return self

    def to_payload(self) -> dict[str, object]:
        if self.checkout_url is not None:
            return {
                "checkoutUrl": self.checkout_url,
                "paymentType": self.payment_type.value,
                "useCheckout": True,
            }
        payload: dict[str, object] = {
            "clientSecret": self.client_secret,
            "paymentType": self.payment_type.value,
        }
        if self.subscription_id is not None:
            payload["subscriptionId"] = self.subscription_id
        payload["usePaymentIntent"] = True
        return payload


class CharityOption(BaseModel):
    code: str
    name: str
    tax_eligible: bool


class CheckoutOptions(BaseModel):
    publishable_key: str | None = None
    charities: list[CharityOption] = Field(default_factory=list)
    payment_methods: list[PaymentMethod] = Field(default_factory=list)
    tip_enabled: bool = True
    max_tip_percent: int = MAX_TIP_PERCENT
    address_enabled: bool = True
    min_amount_minor: int = MIN_AMOUNT_MINOR
    max_amount_minor: int = MAX_AMOUNT_MINOR
