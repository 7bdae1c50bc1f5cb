"""Payment orchestration: picks the processor call sequence for a donation."""

from __future__ import annotations

import stripe

from .config import FeatureConfig
from .contracts import (
    WALLET_METHODS,
    CheckoutResult,
    DirectCharge,
    DonationMetadata,
    DonationRequest,
    HostedCheckout,
    PaymentMethod,
    PaymentType,
)
from .errors import CheckoutError, UnsupportedCombinationError
from .logging_config import get_logger
from .metrics import track_processor_call
from .payments.base import PaymentProcessor, PriceRef
from .payments.resolver import RecurringCatalogResolver
from .responses import map_processor_error
from .settings import Settings
from .settings import settings as default_settings
from .validators import mask_email

logger = get_logger(__name__)

RECURRING_METHODS = frozenset({PaymentMethod.CARD, PaymentMethod.PAYPAL})


class PaymentOrchestrator:
    """
    Turns a validated DonationRequest into processor calls.

    Paths:
    - one-time card / wallets / paypal / twint: a single payment intent
      confirmed client-side (paypal may instead use hosted checkout when
      ``paypal_onetime_routing == "checkout"``)
    - one-time express checkout: payment intent offering card and paypal,
      dropping paypal when the account rejects it
    - monthly card: customer -> product -> price -> incomplete subscription
    - monthly paypal: product -> price -> hosted checkout in subscription mode

    Disallowed combinations are rejected before any processor call. Objects
    created before a later step fails are left in place; nothing is rolled
    back and nothing is retried.
    """

    def __init__(
        self,
        processor: PaymentProcessor,
        features: FeatureConfig | None = None,
        *,
        settings: Settings | None = None,
        resolver: RecurringCatalogResolver | None = None,
    ) -> None:
        self.processor = processor
        self.features = features or FeatureConfig()
        self.settings = settings or default_settings
        self.resolver = resolver or RecurringCatalogResolver(
            processor, metadata_version=self.settings.METADATA_VERSION
        )

    # --- public API ---
    def process(self, request: DonationRequest) -> CheckoutResult:
        self.check_combination(request)
        metadata = self.build_metadata(request)
        log = logger.bind(
            payment_type=request.payment_type.value,
            payment_method=request.payment_method.value,
            charity_code=request.charity_code,
            amount_minor=request.amount_minor,
            email=mask_email(request.donor_email),
        )
        try:
            if request.payment_type is PaymentType.MONTHLY:
                result = self._process_monthly(request, metadata)
            else:
                result = self._process_one_time(request, metadata)
        except CheckoutError:
            raise
        except Exception as exc:
            raise map_processor_error(
                exc,
                payment_method=request.payment_method.value,
                method_types=self.method_types_for(request),
            ) from exc
        log.info(
            "checkout_created",
            use_checkout=result.checkout_url is not None,
            subscription_id=result.subscription_id,
        )
        return result

    def check_combination(self, request: DonationRequest) -> None:
        method = request.payment_method
        if request.payment_type is PaymentType.MONTHLY:
            if method is PaymentMethod.TWINT:
                raise UnsupportedCombinationError("Twint does not support recurring payments")
            if method not in RECURRING_METHODS:
                raise UnsupportedCombinationError(
                    "Monthly subscriptions are only supported with card or PayPal payments"
                )
        elif method is PaymentMethod.TWINT:
            cap = self.settings.TWINT_MAX_AMOUNT_MINOR
            if request.amount_minor > cap:
                raise UnsupportedCombinationError(
                    f"Twint maximum amount is {cap // 100:,} {self.settings.TWINT_CURRENCY.upper()}"
                )

    def method_types_for(self, request: DonationRequest) -> tuple[str, ...]:
        """Processor payment method types first attempted for a request."""
        method = request.payment_method
        if request.payment_type is PaymentType.MONTHLY:
            return ("card",) if method is PaymentMethod.CARD else ("paypal",)
        if method is PaymentMethod.TWINT:
            return ("twint",)
        if method is PaymentMethod.PAYPAL:
            if self.features.paypal_onetime_routing == "checkout":
                return ("paypal",)
            return ("card", "paypal")
        if method is PaymentMethod.EXPRESS_CHECKOUT:
            if self.features.method_enabled(PaymentMethod.PAYPAL):
                return ("card", "paypal")
            return ("card",)
        if method in WALLET_METHODS:
            # Wallet tokens are confirmed on the card rails.
            return ("card",)
        return ("card",)

    def build_metadata(self, request: DonationRequest) -> DonationMetadata:
        catalog = self.features.charity_catalog
        return DonationMetadata(
            donor_name=request.donor_name,
            donor_address=request.donor_address if self.features.address_enabled else "",
            payment_type=request.payment_type.value,
            payment_method=request.payment_method.value,
            selected_charity=catalog.display_name(request.charity_code),
            charity_code=request.charity_code,
            tip_percentage=str(request.tip_percent if self.features.tip_enabled else 0),
            plugin_version=self.settings.METADATA_VERSION,
        )

    # --- one-time paths ---
    def _process_one_time(
        self, request: DonationRequest, metadata: DonationMetadata
    ) -> CheckoutResult:
        method = request.payment_method
        if method is PaymentMethod.EXPRESS_CHECKOUT:
            return self._express_checkout(request, metadata)
        if method is PaymentMethod.PAYPAL and self.features.paypal_onetime_routing == "checkout":
            return self._hosted_one_time(request, metadata)

        currency = self.settings.DEFAULT_CURRENCY
        if method is PaymentMethod.TWINT:
            currency = self.settings.TWINT_CURRENCY
        charge = DirectCharge(
            amount_minor=request.amount_minor,
            currency=currency,
            method_types=self.method_types_for(request),
            receipt_email=request.donor_email,
            metadata=metadata.as_dict(),
        )
        return self._direct_charge(charge, request.payment_type)

    def _express_checkout(
        self, request: DonationRequest, metadata: DonationMetadata
    ) -> CheckoutResult:
        charge = DirectCharge(
            amount_minor=request.amount_minor,
            currency=self.settings.DEFAULT_CURRENCY,
            method_types=self.method_types_for(request),
            receipt_email=request.donor_email or None,
            metadata=metadata.as_dict(),
        )
        if "paypal" not in charge.method_types:
            return self._direct_charge(charge, request.payment_type)
        try:
            return self._direct_charge(charge, request.payment_type)
        except stripe.InvalidRequestError as exc:
            # PayPal is optional for express checkout; fall back to card only.
            logger.warning(
                "express_checkout_paypal_unavailable",
                error=str(exc),
                code=getattr(exc, "code", None),
            )
        return self._direct_charge(
            charge.model_copy(update={"method_types": ("card",)}), request.payment_type
        )

    def _direct_charge(self, charge: DirectCharge, payment_type: PaymentType) -> CheckoutResult:
        with track_processor_call("create_payment_intent"):
            intent = self.processor.create_payment_intent(charge)
        return CheckoutResult(payment_type=payment_type, client_secret=intent.client_secret)

    def _hosted_one_time(
        self, request: DonationRequest, metadata: DonationMetadata
    ) -> CheckoutResult:
        checkout = HostedCheckout(
            mode="payment",
            currency=self.settings.DEFAULT_CURRENCY,
            method_types=("paypal",),
            amount_minor=request.amount_minor,
            product_name=f"Donation to {metadata.selected_charity}",
            customer_email=request.donor_email,
            success_url=self.settings.success_url,
            cancel_url=self.settings.cancel_url,
            metadata=metadata.as_dict(),
        )
        return self._hosted_checkout(checkout, request.payment_type)

    def _hosted_checkout(
        self, checkout: HostedCheckout, payment_type: PaymentType
    ) -> CheckoutResult:
        with track_processor_call("create_checkout_session"):
            session = self.processor.create_checkout_session(checkout)
        return CheckoutResult(payment_type=payment_type, checkout_url=session.url)

    # --- monthly paths ---
    def _process_monthly(
        self, request: DonationRequest, metadata: DonationMetadata
    ) -> CheckoutResult:
        if request.payment_method is PaymentMethod.CARD:
            return self._monthly_card(request, metadata)
        return self._monthly_paypal(request, metadata)

    def _recurring_price(self, request: DonationRequest) -> PriceRef:
        currency = self.settings.DEFAULT_CURRENCY
        with track_processor_call("resolve_product"):
            product = self.resolver.resolve_product(
                self.settings.RECURRING_PRODUCT_NAME,
                self.settings.RECURRING_PRODUCT_DESCRIPTION,
            )
        with track_processor_call("create_price"):
            return self.resolver.resolve_price(product, request.amount_minor, currency, "month")

    def _monthly_card(self, request: DonationRequest, metadata: DonationMetadata) -> CheckoutResult:
        with track_processor_call("resolve_customer"):
            customer = self.resolver.resolve_customer(request.donor_email, request.donor_name)
        price = self._recurring_price(request)
        with track_processor_call("create_subscription"):
            subscription = self.processor.create_subscription(
                customer_id=customer.id,
                price_id=price.id,
                method_types=["card"],
                metadata=metadata.as_dict(),
            )
        return CheckoutResult(
            payment_type=PaymentType.MONTHLY,
            client_secret=subscription.client_secret,
            subscription_id=subscription.id,
        )

    def _monthly_paypal(
        self, request: DonationRequest, metadata: DonationMetadata
    ) -> CheckoutResult:
        price = self._recurring_price(request)
        checkout = HostedCheckout(
            mode="subscription",
            currency=price.currency,
            method_types=("paypal",),
            price_id=price.id,
            customer_email=request.donor_email,
            success_url=self.settings.success_url,
            cancel_url=self.settings.cancel_url,
            metadata=metadata.as_dict(),
        )
        return self._hosted_checkout(checkout, PaymentType.MONTHLY)


__all__ = ["PaymentOrchestrator", "RECURRING_METHODS"]
