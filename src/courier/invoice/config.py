"""Billing configuration for invoices built from delivered bookings."""

import os
from dataclasses import dataclass
from decimal import Decimal

from courier.pricing.config import PricingConfig


@dataclass(frozen=True)
class BillingConfig:
    """GST is split CGST + SGST when the shipper is billed in ``home_state``, IGST otherwise."""

    home_state: str = "Maharashtra"
    gst_rate: Decimal = Decimal("0.18")
    payment_days: int = 30
    currency: str = "USD"

    @classmethod
    def from_env(cls) -> "BillingConfig":
        pricing = PricingConfig.from_env()
        defaults = cls()
        return cls(
            home_state=os.environ.get("COURIER_HOME_STATE", defaults.home_state),
            gst_rate=pricing.tax_rate,
            payment_days=int(os.environ.get("COURIER_PAYMENT_DAYS", defaults.payment_days)),
            currency=pricing.currency,
        )
