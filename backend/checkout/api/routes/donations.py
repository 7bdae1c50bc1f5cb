from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Form

from ...contracts import CharityOption, CheckoutOptions, PaymentMethod
from ...responses import to_response
from ...security import nonce_verifier, verify_checkout_nonce
from ...service import CheckoutService
from ...settings import settings

router = APIRouter(tags=["donations"])

FormField = Annotated[str | None, Form()]


def get_checkout_service() -> CheckoutService:
    return CheckoutService()


@router.post("/donations/checkout")
def create_checkout(
    service: Annotated[CheckoutService, Depends(get_checkout_service)],
    amount: FormField = None,
    name: FormField = None,
    email: FormField = None,
    address: FormField = None,
    payment_type: FormField = None,
    payment_method: FormField = None,
    charity: FormField = None,
    tip_percentage: FormField = None,
    nonce: FormField = None,
):
    """Validate a donation and open the matching processor flow.

    Runs in the threadpool: processor calls are blocking round-trips.
    """
    verify_checkout_nonce(nonce)
    raw: dict[str, Any] = {
        "amount": amount,
        "name": name,
        "email": email,
        "address": address,
        "payment_type": payment_type,
        "payment_method": payment_method,
        "charity": charity,
        "tip_percentage": tip_percentage,
    }
    return to_response(service.submit(raw))


@router.get("/donations/nonce")
def issue_nonce():
    return {
        "success": True,
        "data": {"nonce": nonce_verifier.issue(), "expiresIn": nonce_verifier.ttl},
    }


@router.get("/donations/options")
def checkout_options(service: Annotated[CheckoutService, Depends(get_checkout_service)]):
    features = service.features
    options = CheckoutOptions(
        publishable_key=settings.STRIPE_PUBLISHABLE_KEY,
        charities=[
            CharityOption(code=c.code, name=c.display_name, tax_eligible=c.tax_eligible)
            for c in features.charity_catalog
        ],
        payment_methods=[m for m in PaymentMethod if features.method_enabled(m)],
        tip_enabled=features.tip_enabled,
        address_enabled=features.address_enabled,
    )
    return {"success": True, "data": options.model_dump(mode="json")}
