"""Translation of checkout outcomes into the JSON envelope returned to the form."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import stripe
from fastapi.responses import JSONResponse

from .contracts import CheckoutResult
from .errors import (
    CheckoutError,
    ProcessorRequestError,
    ProcessorUnavailableError,
    UnknownCheckoutError,
)
from .logging_config import get_logger

logger = get_logger(__name__)


def map_processor_error(
    exc: BaseException,
    *,
    payment_method: str | None = None,
    method_types: Sequence[str] | None = None,
) -> CheckoutError:
    """
    Classify an exception raised while talking to the processor.

    The full processor message goes to the log; the returned error only
    carries a donor-safe summary.
    """
    if isinstance(exc, CheckoutError):
        return exc

    context: dict[str, Any] = {
        "payment_method": payment_method or "unknown",
        "method_types": list(method_types or []),
        "error_type": type(exc).__name__,
        "error": str(exc),
    }

    if isinstance(exc, stripe.InvalidRequestError):
        logger.warning(
            "processor_invalid_request",
            param=getattr(exc, "param", None),
            code=getattr(exc, "code", None),
            **context,
        )
        return ProcessorRequestError(payment_method, payment_method=payment_method)

    if isinstance(exc, stripe.StripeError):
        logger.error("processor_unavailable", http_status=getattr(exc, "http_status", None), **context)
        return ProcessorUnavailableError()

    logger.error("checkout_unexpected_error", exc_info=exc, **context)
    return UnknownCheckoutError()


def build_envelope(outcome: CheckoutResult | CheckoutError) -> tuple[int, dict[str, Any]]:
    if isinstance(outcome, CheckoutResult):
        return 200, {"success": True, "data": outcome.to_payload()}
    return outcome.status_code, {"success": False, "data": outcome.to_payload()}


def to_response(outcome: CheckoutResult | CheckoutError) -> JSONResponse:
    status_code, body = build_envelope(outcome)
    return JSONResponse(content=body, status_code=status_code)


__all__ = ["build_envelope", "map_processor_error", "to_response"]
