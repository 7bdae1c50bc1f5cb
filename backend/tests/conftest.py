import os
import sys
from pathlib import Path

import pytest
import sentry_sdk
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Disable outbound Sentry calls during tests
sentry_sdk.init = lambda *args, **kwargs: None  # type: ignore[assignment]
os.environ["SENTRY_DSN"] = ""
os.environ["PAYMENTS_MODE"] = "mock"

from backend.checkout.api.routes.donations import get_checkout_service  # noqa: E402
from backend.checkout.contracts import DonationRequest, PaymentMethod, PaymentType  # noqa: E402
from backend.checkout.main import app  # noqa: E402
from backend.checkout.payments.mock import MockPaymentProcessor  # noqa: E402
from backend.checkout.service import CheckoutService  # noqa: E402
from backend.checkout.settings import settings  # noqa: E402


def make_request(**overrides) -> DonationRequest:
    payload = {
        "amount_minor": 10_000,
        "payment_type": PaymentType.ONE_TIME,
        "payment_method": PaymentMethod.CARD,
        "donor_email": "a@b.com",
        "donor_name": "Jo Doe",
        "donor_address": "1 Rue de la Paix, Paris",
        "charity_code": "against_malaria",
        "tip_percent": 10,
    }
    payload.update(overrides)
    return DonationRequest(**payload)


def form_payload(**overrides) -> dict[str, str]:
    payload = {
        "amount": "10000",
        "name": "Jo Doe",
        "email": "a@b.com",
        "address": "1 Rue de la Paix, Paris",
        "payment_type": "onetime",
        "payment_method": "card",
        "charity": "against_malaria",
        "tip_percentage": "10",
    }
    payload.update(overrides)
    return {key: value for key, value in payload.items() if value is not None}


@pytest.fixture
def donation():
    """Factory for validated DonationRequest objects."""
    return make_request


@pytest.fixture
def form():
    """Factory for raw checkout form fields."""
    return form_payload


@pytest.fixture
def processor() -> MockPaymentProcessor:
    return MockPaymentProcessor(record_calls=True)


@pytest.fixture
def client(processor: MockPaymentProcessor):
    app.dependency_overrides[get_checkout_service] = lambda: CheckoutService(processor=processor)
    with TestClient(app, base_url="http://api.testserver") as test_client:
        yield test_client
    app.dependency_overrides.pop(get_checkout_service, None)


@pytest.fixture(autouse=True)
def checkout_settings():
    settings.RATE_LIMIT_ENABLED = False
    settings.CSRF_ENABLED = False
    settings.PAYMENTS_MODE = "mock"
    settings.SENTRY_DSN = None
    limiter = getattr(app.state, "rate_limiter", None)
    if limiter:
        limiter.reset()
    yield
    settings.CSRF_ENABLED = False
