"""Deployment variant configuration for the checkout core."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from typing import Literal

from .charities import FULL_CATALOG, CharityCatalog, get_catalog
from .contracts import PaymentMethod
from .settings import Settings

PaypalRouting = Literal["direct", "checkout"]


@dataclass(frozen=True, slots=True)
class FeatureConfig:
    charity_catalog: CharityCatalog = FULL_CATALOG
    enabled_methods: frozenset[PaymentMethod] = field(
        default_factory=lambda: frozenset(PaymentMethod)
    )
    tip_enabled: bool = True
    address_enabled: bool = True
    paypal_onetime_routing: PaypalRouting = "direct"

    def method_enabled(self, method: PaymentMethod) -> bool:
        return method in self.enabled_methods

    @classmethod
    def from_settings(cls, settings: Settings) -> FeatureConfig:
        return (
            FeatureConfigBuilder()
            .catalog(get_catalog(settings.CHARITY_CATALOG))
            .methods(settings.enabled_payment_methods)
            .tips(settings.TIP_ENABLED)
            .address(settings.ADDRESS_ENABLED)
            .paypal_routing(settings.PAYPAL_ONETIME_ROUTING)
            .build()
        )


class FeatureConfigBuilder:
    """Fluent builder so deployments can override single switches."""

    def __init__(self, base: FeatureConfig | None = None) -> None:
        self._config = base or FeatureConfig()

    def catalog(self, catalog: CharityCatalog) -> FeatureConfigBuilder:
        self._config = replace(self._config, charity_catalog=catalog)
        return self

    def methods(self, methods: Iterable[str | PaymentMethod]) -> FeatureConfigBuilder:
        resolved: set[PaymentMethod] = set()
        for method in methods:
            try:
                resolved.add(PaymentMethod(method))
            except ValueError:
                raise ValueError(f"Unknown payment method '{method}'") from None
        if not resolved:
            raise ValueError("at least one payment method must be enabled")
        self._config = replace(self._config, enabled_methods=frozenset(resolved))
        return self

    def tips(self, enabled: bool) -> FeatureConfigBuilder:
        self._config = replace(self._config, tip_enabled=enabled)
        return self

    def address(self, enabled: bool) -> FeatureConfigBuilder:
        self._config = replace(self._config, address_enabled=enabled)
        return self

    def paypal_routing(self, routing: PaypalRouting) -> FeatureConfigBuilder:
        if routing not in ("direct", "checkout"):
            raise ValueError(f"Unknown PayPal routing '{routing}'")
        self._config = replace(self._config, paypal_onetime_routing=routing)
        return self

    def build(self) -> FeatureConfig:
        return self._config


__all__ = ["FeatureConfig", "FeatureConfigBuilder", "PaypalRouting"]
