"""Tests for PaymentOrchestrator routing against the in-memory processor."""

from __future__ import annotations

import pytest
import stripe
from backend.checkout.charities import CORE_CATALOG
from backend.checkout.config import FeatureConfigBuilder
from backend.checkout.contracts import CheckoutResult, HostedCheckout, PaymentMethod, PaymentType
from backend.checkout.errors import (
    ProcessorRequestError,
    ProcessorUnavailableError,
    UnknownCheckoutError,
    UnsupportedCombinationError,
)
from backend.checkout.orchestrator import PaymentOrchestrator
from backend.checkout.payments.mock import MockPaymentProcessor
from backend.checkout.settings import Settings, settings
from pydantic import ValidationError


@pytest.fixture
def orchestrator(processor: MockPaymentProcessor) -> PaymentOrchestrator:
    return PaymentOrchestrator(processor)


def operations(processor: MockPaymentProcessor) -> list[str]:
    return [name for name, _ in processor.calls]


class TestOneTime:
    def test_card_creates_single_payment_intent(self, orchestrator, processor, donation):
        result = orchestrator.process(donation())

        assert operations(processor) == ["create_payment_intent"]
        params = processor.calls_to("create_payment_intent")[0]
        assert params["amount_minor"] == 10_000
        assert params["currency"] == "eur"
        assert params["method_types"] == ("card",)
        assert params["receipt_email"] == "a@b.com"
        assert result.client_secret.endswith("_secret_mock")
        assert result.checkout_url is None
        assert result.subscription_id is None

    @pytest.mark.parametrize("method", [PaymentMethod.GOOGLE_PAY, PaymentMethod.APPLE_PAY])
    def test_wallets_charge_on_card_rails(self, orchestrator, processor, donation, method):
        orchestrator.process(donation(payment_method=method))

        params = processor.calls_to("create_payment_intent")[0]
        assert params["method_types"] == ("card",)
        assert params["currency"] == "eur"

    def test_paypal_direct_offers_card_and_paypal(self, orchestrator, processor, donation):
        result = orchestrator.process(donation(payment_method=PaymentMethod.PAYPAL))

        params = processor.calls_to("create_payment_intent")[0]
        assert params["method_types"] == ("card", "paypal")
        assert result.client_secret is not None

    def test_paypal_checkout_routing_uses_hosted_page(self, processor, donation):
        features = FeatureConfigBuilder().paypal_routing("checkout").build()
        orchestrator = PaymentOrchestrator(processor, features)

        result = orchestrator.process(donation(payment_method=PaymentMethod.PAYPAL))

        assert operations(processor) == ["create_checkout_session"]
        params = processor.calls_to("create_checkout_session")[0]
        assert params["mode"] == "payment"
        assert params["method_types"] == ("paypal",)
        assert params["amount_minor"] == 10_000
        assert params["price_id"] is None
        assert params["product_name"] == "Donation to Against Malaria Foundation"
        assert params["success_url"] == settings.success_url
        assert params["cancel_url"] == settings.cancel_url
        assert result.checkout_url.startswith("https://checkout.stripe.test/")
        assert result.client_secret is None

    def test_twint_is_forced_to_chf(self, orchestrator, processor, donation):
        orchestrator.process(donation(payment_method=PaymentMethod.TWINT, amount_minor=500_000))

        params = processor.calls_to("create_payment_intent")[0]
        assert params["currency"] == "chf"
        assert params["method_types"] == ("twint",)

    def test_twint_over_limit_is_rejected_before_processor(self, orchestrator, processor, donation):
        with pytest.raises(UnsupportedCombinationError) as exc_info:
            orchestrator.process(donation(payment_method=PaymentMethod.TWINT, amount_minor=500_001))

        assert exc_info.value.message == "Twint maximum amount is 5,000 CHF"
        assert exc_info.value.status_code == 400
        assert processor.calls == []

    def test_twint_limit_message_follows_configured_cap(self, processor, donation):
        capped = Settings(_env_file=None, TWINT_MAX_AMOUNT_MINOR=100_000)
        orchestrator = PaymentOrchestrator(processor, settings=capped)

        with pytest.raises(UnsupportedCombinationError) as exc_info:
            orchestrator.process(donation(payment_method=PaymentMethod.TWINT, amount_minor=100_001))

        assert exc_info.value.message == "Twint maximum amount is 1,000 CHF"
        assert processor.calls == []


class TestExpressCheckout:
    def test_offers_card_and_paypal(self, orchestrator, processor, donation):
        orchestrator.process(donation(payment_method=PaymentMethod.EXPRESS_CHECKOUT))

        assert [c["method_types"] for c in processor.calls_to("create_payment_intent")] == [
            ("card", "paypal")
        ]

    def test_falls_back_to_card_when_paypal_unavailable(self, donation):
        processor = MockPaymentProcessor(unsupported_method_types={"paypal"}, record_calls=True)
        orchestrator = PaymentOrchestrator(processor)

        result = orchestrator.process(donation(payment_method=PaymentMethod.EXPRESS_CHECKOUT))

        attempts = [c["method_types"] for c in processor.calls_to("create_payment_intent")]
        assert attempts == [("card", "paypal"), ("card",)]
        assert result.client_secret is not None

    def test_fallback_failure_is_mapped(self, donation):
        processor = MockPaymentProcessor(
            unsupported_method_types={"paypal", "card"}, record_calls=True
        )
        orchestrator = PaymentOrchestrator(processor)

        with pytest.raises(ProcessorRequestError) as exc_info:
            orchestrator.process(donation(payment_method=PaymentMethod.EXPRESS_CHECKOUT))

        assert len(processor.calls_to("create_payment_intent")) == 2
        assert "express_checkout" in exc_info.value.message

    def test_paypal_left_out_when_disabled(self, processor, donation):
        features = FeatureConfigBuilder().methods(["card", "express_checkout"]).build()
        orchestrator = PaymentOrchestrator(processor, features)

        result = orchestrator.process(donation(payment_method=PaymentMethod.EXPRESS_CHECKOUT))

        attempts = [c["method_types"] for c in processor.calls_to("create_payment_intent")]
        assert attempts == [("card",)]
        assert orchestrator.method_types_for(
            donation(payment_method=PaymentMethod.EXPRESS_CHECKOUT)
        ) == ("card",)
        assert result.client_secret is not None

    def test_card_only_rejection_is_not_retried(self, donation):
        processor = MockPaymentProcessor(unsupported_method_types={"card"}, record_calls=True)
        features = FeatureConfigBuilder().methods(["card", "express_checkout"]).build()
        orchestrator = PaymentOrchestrator(processor, features)

        with pytest.raises(ProcessorRequestError):
            orchestrator.process(donation(payment_method=PaymentMethod.EXPRESS_CHECKOUT))

        assert len(processor.calls_to("create_payment_intent")) == 1


class TestMonthly:
    def test_card_builds_subscription_chain(self, orchestrator, processor, donation):
        result = orchestrator.process(donation(payment_type=PaymentType.MONTHLY))

        assert operations(processor) == [
            "find_customer_by_email",
            "create_customer",
            "get_product",
            "create_product",
            "create_price",
            "create_subscription",
        ]
        price = processor.calls_to("create_price")[0]
        assert price["product_id"] == "prod_monthly_donation"
        assert price["amount_minor"] == 10_000
        assert price["currency"] == "eur"
        assert price["interval"] == "month"

        subscription = processor.calls_to("create_subscription")[0]
        assert subscription["method_types"] == ["card"]
        assert subscription["price_id"] == processor.prices[0].id
        assert subscription["metadata"]["charity_code"] == "against_malaria"

        assert result.payment_type is PaymentType.MONTHLY
        assert result.subscription_id.startswith("sub_")
        assert result.client_secret is not None

    def test_paypal_uses_hosted_subscription_checkout(self, orchestrator, processor, donation):
        result = orchestrator.process(
            donation(payment_type=PaymentType.MONTHLY, payment_method=PaymentMethod.PAYPAL)
        )

        assert operations(processor) == [
            "get_product",
            "create_product",
            "create_price",
            "create_checkout_session",
        ]
        session = processor.calls_to("create_checkout_session")[0]
        assert session["mode"] == "subscription"
        assert session["method_types"] == ("paypal",)
        assert session["price_id"] == processor.prices[0].id
        assert session["amount_minor"] is None
        assert session["customer_email"] == "a@b.com"
        assert result.checkout_url is not None
        assert result.subscription_id is None

    @pytest.mark.parametrize(
        ("method", "message"),
        [
            (PaymentMethod.TWINT, "Twint does not support recurring payments"),
            (
                PaymentMethod.GOOGLE_PAY,
                "Monthly subscriptions are only supported with card or PayPal payments",
            ),
            (
                PaymentMethod.APPLE_PAY,
                "Monthly subscriptions are only supported with card or PayPal payments",
            ),
            (
                PaymentMethod.EXPRESS_CHECKOUT,
                "Monthly subscriptions are only supported with card or PayPal payments",
            ),
        ],
    )
    def test_unsupported_methods_make_no_processor_calls(
        self, orchestrator, processor, donation, method, message
    ):
        with pytest.raises(UnsupportedCombinationError) as exc_info:
            orchestrator.process(donation(payment_type=PaymentType.MONTHLY, payment_method=method))

        assert exc_info.value.message == message
        assert processor.calls == []

    def test_existing_product_is_reused(self, orchestrator, processor, donation):
        orchestrator.process(donation(payment_type=PaymentType.MONTHLY))
        orchestrator.process(donation(payment_type=PaymentType.MONTHLY, amount_minor=2_500))

        assert len(processor.calls_to("create_product")) == 1
        assert [p.unit_amount for p in processor.prices] == [10_000, 2_500]

    def test_subscription_failure_leaves_price_in_place(self, orchestrator, processor, donation):
        processor.fail("create_subscription", stripe.APIConnectionError("connection reset"))

        with pytest.raises(ProcessorUnavailableError):
            orchestrator.process(donation(payment_type=PaymentType.MONTHLY))

        assert len(processor.prices) == 1
        assert "a@b.com" in processor.customers
        assert "prod_monthly_donation" in processor.products


class TestMetadata:
    def test_metadata_attached_to_payment_intent(self, orchestrator, processor, donation):
        orchestrator.process(donation(charity_code="helen_keller", tip_percent=15))

        metadata = processor.calls_to("create_payment_intent")[0]["metadata"]
        assert metadata == {
            "donor_name": "Jo Doe",
            "donor_address": "1 Rue de la Paix, Paris",
            "payment_type": "onetime",
            "payment_method": "card",
            "selected_charity": "Helen Keller International",
            "charity_code": "helen_keller",
            "tip_percentage": "15",
            "plugin_version": settings.METADATA_VERSION,
        }

    def test_metadata_respects_disabled_features(self, processor, donation):
        features = FeatureConfigBuilder().tips(False).address(False).build()
        orchestrator = PaymentOrchestrator(processor, features)

        metadata = orchestrator.build_metadata(donation())

        assert metadata.tip_percentage == "0"
        assert metadata.donor_address == ""

    def test_unknown_charity_falls_back_to_code(self, processor, donation):
        orchestrator = PaymentOrchestrator(
            processor, FeatureConfigBuilder().catalog(CORE_CATALOG).build()
        )

        metadata = orchestrator.build_metadata(donation(charity_code="preserving_future"))

        assert metadata.selected_charity == "preserving_future"


class TestErrorMapping:
    def test_invalid_request_becomes_processor_request_error(self, donation):
        processor = MockPaymentProcessor(unsupported_method_types={"twint"}, record_calls=True)
        orchestrator = PaymentOrchestrator(processor)

        with pytest.raises(ProcessorRequestError) as exc_info:
            orchestrator.process(donation(payment_method=PaymentMethod.TWINT))

        assert exc_info.value.status_code == 400
        assert exc_info.value.message == "Payment method not supported: twint"

    def test_connection_error_becomes_unavailable(self, orchestrator, processor, donation):
        processor.fail("create_payment_intent", stripe.APIConnectionError("timed out"))

        with pytest.raises(ProcessorUnavailableError) as exc_info:
            orchestrator.process(donation())

        assert exc_info.value.status_code == 503

    def test_unexpected_error_becomes_unknown(self, orchestrator, processor, donation):
        processor.fail("create_payment_intent", RuntimeError("boom"))

        with pytest.raises(UnknownCheckoutError) as exc_info:
            orchestrator.process(donation())

        assert exc_info.value.status_code == 500
        assert "boom" not in exc_info.value.message

    def test_no_retry_after_failure(self, orchestrator, processor, donation):
        processor.fail("create_payment_intent", stripe.APIConnectionError("timed out"))

        with pytest.raises(ProcessorUnavailableError):
            orchestrator.process(donation())

        assert len(processor.calls_to("create_payment_intent")) == 1


class TestDemoProcessor:
    def test_unrecorded_processor_keeps_no_donor_data(self, donation):
        demo = MockPaymentProcessor()
        orchestrator = PaymentOrchestrator(demo)

        orchestrator.process(donation())
        orchestrator.process(donation(payment_type=PaymentType.MONTHLY))
        orchestrator.process(
            donation(payment_type=PaymentType.MONTHLY, payment_method=PaymentMethod.PAYPAL)
        )

        assert demo.calls == []
        assert demo.prices == []
        assert demo.customers == {}
        assert list(demo.products) == ["prod_monthly_donation"]

    def test_unrecorded_processor_still_raises_queued_failures(self, donation):
        demo = MockPaymentProcessor()
        demo.fail("create_payment_intent", stripe.APIConnectionError("timed out"))

        with pytest.raises(ProcessorUnavailableError):
            PaymentOrchestrator(demo).process(donation())

        assert demo.calls == []


class TestOutcomeShape:
    def test_result_requires_exactly_one_target(self):
        with pytest.raises(ValidationError):
            CheckoutResult(payment_type=PaymentType.ONE_TIME)
        with pytest.raises(ValidationError):
            CheckoutResult(
                payment_type=PaymentType.ONE_TIME,
                client_secret="pi_1_secret",
                checkout_url="https://checkout.stripe.test/c/pay/cs_1",
            )

    def test_hosted_checkout_requires_amount_or_price(self):
        base = {
            "mode": "payment",
            "currency": "eur",
            "method_types": ("paypal",),
            "success_url": "https://example.org/merci",
            "cancel_url": "https://example.org/donate",
        }
        with pytest.raises(ValidationError):
            HostedCheckout(**base)
        with pytest.raises(ValidationError):
            HostedCheckout(**base, amount_minor=100, price_id="price_1")

    def test_payloads(self):
        direct = CheckoutResult(
            payment_type=PaymentType.MONTHLY, client_secret="pi_1_secret", subscription_id="sub_1"
        )
        hosted = CheckoutResult(
            payment_type=PaymentType.ONE_TIME, checkout_url="https://checkout.stripe.test/c/pay/cs_1"
        )

        assert direct.to_payload() == {
            "clientSecret": "pi_1_secret",
            "paymentType": "monthly",
            "subscriptionId": "sub_1",
            "usePaymentIntent": True,
        }
        assert hosted.to_payload() == {
            "checkoutUrl": "https://checkout.stripe.test/c/pay/cs_1",
            "paymentType": "onetime",
            "useCheckout": True,
        }
