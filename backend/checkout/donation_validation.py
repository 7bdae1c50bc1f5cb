"""Validation of raw checkout form fields into a DonationRequest."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from .config import FeatureConfig
from .contracts import (
    ADDRESS_MAX_LENGTH,
    MAX_AMOUNT_MINOR,
    MAX_TIP_PERCENT,
    MIN_AMOUNT_MINOR,
    NAME_MAX_LENGTH,
    NAME_MIN_LENGTH,
    DonationRequest,
    PaymentMethod,
    PaymentType,
)
from .validators import coerce_int, normalize_email, sanitize_text

PAYMENT_TYPE_ALIASES = {
    "onetime": PaymentType.ONE_TIME,
    "one_time": PaymentType.ONE_TIME,
    "monthly": PaymentType.MONTHLY,
}


@dataclass
class ValidationResult:
    request: DonationRequest | None = None
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.request is not None and not self.errors


class DonationValidator:
    """
    Validator for checkout form submissions.

    Every rule runs independently and all violations are collected, so the
    donor sees the full list at once. A request is either accepted whole or
    rejected whole; ``validate`` never raises.
    """

    def __init__(self, features: FeatureConfig | None = None) -> None:
        self.features = features or FeatureConfig()

    def validate(self, raw: Mapping[str, Any]) -> ValidationResult:
        """
        Validate and normalize raw form fields.

        Args:
            raw: Form fields as posted (``amount``, ``payment_type``,
                 ``payment_method``, ``email``, ``name``, ``address``,
                 ``charity``, ``tip_percentage``)

        Returns:
            ValidationResult holding either the request or the error list
        """
        errors: list[str] = []

        amount = self.check_amount(raw.get("amount"), errors)
        payment_type = self.check_payment_type(raw.get("payment_type"), errors)
        payment_method = self.check_payment_method(raw.get("payment_method"), errors)
        email = self.check_email(raw.get("email"), errors)
        name = self.check_name(raw.get("name"), errors)
        charity = self.check_charity(raw.get("charity"), errors)
        tip = self.check_tip(raw.get("tip_percentage"), errors)
        address = self.check_address(raw.get("address"), errors)

        if errors:
            return ValidationResult(errors=errors)

        request = DonationRequest(
            amount_minor=amount,
            payment_type=payment_type,
            payment_method=payment_method,
            donor_email=email,
            donor_name=name,
            donor_address=address,
            charity_code=charity,
            tip_percent=tip,
        )
        return ValidationResult(request=request)

    @staticmethod
    def check_amount(value: Any, errors: list[str]) -> int | None:
        amount = coerce_int(value)
        if amount is None or amount < MIN_AMOUNT_MINOR:
            errors.append("Amount must be at least €1.00")
            return None
        if amount > MAX_AMOUNT_MINOR:
            errors.append("Amount cannot exceed €999,999.00")
            return None
        return amount

    @staticmethod
    def check_payment_type(value: Any, errors: list[str]) -> PaymentType | None:
        key = sanitize_text(value).lower()
        payment_type = PAYMENT_TYPE_ALIASES.get(key)
        if payment_type is None:
            errors.append("Invalid payment type selected")
        return payment_type

    def check_payment_method(self, value: Any, errors: list[str]) -> PaymentMethod | None:
        key = sanitize_text(value).lower()
        # A missing method means the plain card form was used.
        if not key:
            key = PaymentMethod.CARD.value
        try:
            method = PaymentMethod(key)
        except ValueError:
            errors.append("Invalid payment method selected")
            return None
        if not self.features.method_enabled(method):
            errors.append("Invalid payment method selected")
            return None
        return method

    @staticmethod
    def check_email(value: Any, errors: list[str]) -> str | None:
        email = normalize_email(value)
        if email is None:
            errors.append("Valid email address is required")
        return email

    @staticmethod
    def check_name(value: Any, errors: list[str]) -> str | None:
        name = sanitize_text(value)
        if len(name) < NAME_MIN_LENGTH:
            errors.append("Name must be at least 2 characters long")
            return None
        if len(name) > NAME_MAX_LENGTH:
            errors.append("Name cannot exceed 100 characters")
            return None
        return name

    def check_charity(self, value: Any, errors: list[str]) -> str | None:
        code = sanitize_text(value)
        if not code:
            errors.append("Please select a charity to support")
            return None
        if not self.features.charity_catalog.is_valid(code):
            errors.append("Invalid charity selection")
            return None
        return code

    def check_tip(self, value: Any, errors: list[str]) -> int | None:
        if value is None or (isinstance(value, str) and not value.strip()):
            return 0
        tip = coerce_int(value)
        if tip is None or not 0 <= tip <= MAX_TIP_PERCENT:
            errors.append("Invalid tip percentage")
            return None
        if not self.features.tip_enabled and tip != 0:
            errors.append("Invalid tip percentage")
            return None
        return tip

    def check_address(self, value: Any, errors: list[str]) -> str:
        if not self.features.address_enabled:
            return ""
        address = sanitize_text(value)
        if len(address) > ADDRESS_MAX_LENGTH:
            errors.append(f"Address cannot exceed {ADDRESS_MAX_LENGTH} characters")
            return ""
        return address


__all__ = ["DonationValidator", "ValidationResult"]
