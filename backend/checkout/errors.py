"""Client-facing error taxonomy for the checkout flow."""

from __future__ import annotations


class CheckoutError(Exception):
    """Base class: every subclass maps to one HTTP status and a donor-safe message."""

    status_code = 500
    code = "unknown"
    default_message = "An unexpected error occurred"

    def __init__(self, message: str | None = None, *, errors: list[str] | None = None) -> None:
        self.message = message or self.default_message
        self.errors = list(errors) if errors else None
        super().__init__(self.message)

    def to_payload(self) -> dict[str, object]:
        payload: dict[str, object] = {"message": self.message}
        if self.errors:
            payload["errors"] = self.errors
        return payload


class DonationValidationError(CheckoutError):
    status_code = 400
    code = "validation_failed"
    default_message = "Validation failed"

    def __init__(self, errors: list[str]) -> None:
        super().__init__(self.default_message, errors=errors)


class UnsupportedCombinationError(CheckoutError):
    status_code = 400
    code = "unsupported_combination"
    default_message = "Unsupported payment combination"


class ProcessorRequestError(CheckoutError):
    status_code = 400
    code = "processor_request"
    default_message = "Payment method not supported"

    def __init__(self, summary: str | None = None, *, payment_method: str | None = None) -> None:
        self.payment_method = payment_method
        message = self.default_message
        if summary:
            message = f"{message}: {summary}"
        super().__init__(message)


class ProcessorUnavailableError(CheckoutError):
    status_code = 503
    code = "processor_unavailable"
    default_message = "Payment service temporarily unavailable"


class UnknownCheckoutError(CheckoutError):
    status_code = 500
    default_message = "An unexpected error occurred"


class ConfigurationError(CheckoutError):
    status_code = 500
    code = "configuration"
    default_message = "Payment system configuration error"


class RequestMethodError(CheckoutError):
    status_code = 405
    code = "method_not_allowed"
    default_message = "Invalid request method."


class SecurityCheckError(CheckoutError):
    status_code = 403
    code = "security_check"
    default_message = "Security check failed."


__all__ = [
    "CheckoutError",
    "ConfigurationError",
    "DonationValidationError",
    "ProcessorRequestError",
    "ProcessorUnavailableError",
    "RequestMethodError",
    "SecurityCheckError",
    "UnknownCheckoutError",
    "UnsupportedCombinationError",
]
