from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from .config import FeatureConfig
from .contracts import CheckoutResult
from .donation_validation import DonationValidator
from .errors import CheckoutError, DonationValidationError
from .logging_config import get_logger
from .metrics import donation_checkouts_total
from .orchestrator import PaymentOrchestrator
from .payments.base import PaymentProcessor
from .payments.factory import get_payment_processor
from .settings import Settings
from .settings import settings as default_settings

logger = get_logger(__name__)


class CheckoutService:
    """validate -> orchestrate, one synchronous chain per submission.

    The processor is resolved only after validation passes, so malformed
    input is rejected even when the processor is misconfigured.
    """

    def __init__(
        self,
        *,
        processor: PaymentProcessor | None = None,
        processor_provider: Callable[[], PaymentProcessor] = get_payment_processor,
        features: FeatureConfig | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.settings = settings or default_settings
        self.features = features or FeatureConfig.from_settings(self.settings)
        self.validator = DonationValidator(self.features)
        self._processor = processor
        self._processor_provider = processor_provider

    @property
    def processor(self) -> PaymentProcessor:
        if self._processor is None:
            self._processor = self._processor_provider()
        return self._processor

    def submit(self, raw: Mapping[str, Any]) -> CheckoutResult:
        validation = self.validator.validate(raw)
        if not validation.ok:
            logger.info("checkout_validation_failed", error_count=len(validation.errors))
            donation_checkouts_total.labels(
                payment_type="invalid", payment_method="invalid", outcome="validation_failed"
            ).inc()
            raise DonationValidationError(validation.errors)

        request = validation.request
        labels = {
            "payment_type": request.payment_type.value,
            "payment_method": request.payment_method.value,
        }
        try:
            orchestrator = PaymentOrchestrator(
                self.processor, self.features, settings=self.settings
            )
            result = orchestrator.process(request)
        except CheckoutError as exc:
            donation_checkouts_total.labels(**labels, outcome=exc.code).inc()
            logger.info("checkout_rejected", code=exc.code, status_code=exc.status_code, **labels)
            raise
        donation_checkouts_total.labels(**labels, outcome="success").inc()
        return result


__all__ = ["CheckoutService"]
