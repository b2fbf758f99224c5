"""Pricing configuration passed explicitly into the charge calculator."""

import os
from dataclasses import dataclass, field, replace
from decimal import Decimal

DEFAULT_BASE_RATES = {
    "Economy": Decimal("5"),
    "Standard": Decimal("10"),
    "Express": Decimal("20"),
    "Same Day": Decimal("30"),
    "International": Decimal("50"),
}

DEFAULT_VOLUMETRIC_DIVISORS = {
    "cm": Decimal("5000"),
    "in": Decimal("139"),
}


@dataclass(frozen=True)
class PricingConfig:
    """Rates used to price a booking.

    Rates are fractions (0.18 is 18%). Base rates are currency units per
    chargeable kilogram, keyed by service type; service types without an
    explicit rate are charged ``default_base_rate``.
    """

    currency: str = "USD"
    base_rates: dict[str, Decimal] = field(default_factory=lambda: dict(DEFAULT_BASE_RATES))
    default_base_rate: Decimal = Decimal("10")
    insurance_rate: Decimal = Decimal("0.01")
    cod_rate: Decimal = Decimal("0.02")
    fuel_surcharge_rate: Decimal = Decimal("0.10")
    tax_rate: Decimal = Decimal("0.18")
    volumetric_divisors: dict[str, Decimal] = field(default_factory=lambda: dict(DEFAULT_VOLUMETRIC_DIVISORS))

    def base_rate_for(self, service_type: str | None) -> Decimal:
        return self.base_rates.get(service_type or "Standard", self.default_base_rate)

    def volumetric_divisor_for(self, unit: str | None) -> Decimal:
        # Anything that is not centimetres is treated as inches
        return self.volumetric_divisors["cm"] if (unit or "cm") == "cm" else self.volumetric_divisors["in"]

    def with_overrides(self, **overrides) -> "PricingConfig":
        return replace(self, **overrides)

    @classmethod
    def from_env(cls) -> "PricingConfig":
        """Build a config from ``COURIER_*`` environment variables, falling back to defaults."""
        defaults = cls()
        return cls(
            currency=os.environ.get("COURIER_CURRENCY", defaults.currency),
            insurance_rate=env_decimal("COURIER_INSURANCE_RATE", defaults.insurance_rate),
            cod_rate=env_decimal("COURIER_COD_RATE", defaults.cod_rate),
            fuel_surcharge_rate=env_decimal("COURIER_FUEL_SURCHARGE_RATE", defaults.fuel_surcharge_rate),
            tax_rate=env_decimal("COURIER_TAX_RATE", defaults.tax_rate),
        )


def env_decimal(name: str, default: Decimal) -> Decimal:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return Decimal(raw.strip())
