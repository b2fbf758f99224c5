"""Charge calculation for a booking.

chargeable weight = max(actual weight, volumetric weight)
shipping          = chargeable weight x base rate for the service type
insurance         = declared value x insurance rate, when insurance is requested
cod               = COD amount x COD rate, when the payment mode is COD
fuel surcharge    = shipping x fuel surcharge rate
subtotal          = shipping + insurance + cod + fuel surcharge
tax               = subtotal x tax rate
total             = subtotal + tax

Each charge line is rounded half-up to 2 dp exactly once, when it is stored.
The subtotal is the sum of the stored lines and the tax is taken on that
subtotal, so a stored breakdown always adds up to its stored total.
"""

from dataclasses import asdict, dataclass
from decimal import Decimal

from courier.pricing.config import PricingConfig
from courier.shared.money import round_money, round_weight, to_decimal


@dataclass(frozen=True)
class ChargeInput:
    weight: float
    service_type: str = "Standard"
    length: float | None = None
    width: float | None = None
    height: float | None = None
    dimension_unit: str = "cm"
    declared_value: float = 0.0
    requires_insurance: bool = False
    payment_mode: str = "COD"
    cod_amount: float = 0.0


@dataclass(frozen=True)
class ChargeBreakdown:
    volumetric_weight: float
    chargeable_weight: float
    base_rate: float
    shipping_charges: float
    insurance_charges: float
    cod_charges: float
    fuel_surcharge: float
    subtotal: float
    tax_amount: float
    total_amount: float
    currency: str

    def to_dict(self) -> dict:
        return asdict(self)


def volumetric_weight(length, width, height, unit: str, config: PricingConfig) -> Decimal:
    """Dimensional weight in kg; zero unless all three dimensions are given."""
    if not (length and width and height):
        return Decimal("0")
    volume = to_decimal(length) * to_decimal(width) * to_decimal(height)
    return volume / config.volumetric_divisor_for(unit)


def compute_charges(charge_input: ChargeInput, config: PricingConfig) -> ChargeBreakdown:
    actual = to_decimal(charge_input.weight)
    volumetric = volumetric_weight(
        charge_input.length,
        charge_input.width,
        charge_input.height,
        charge_input.dimension_unit,
        config,
    )
    chargeable = max(actual, volumetric)
    base_rate = config.base_rate_for(charge_input.service_type)

    raw_shipping = chargeable * base_rate
    shipping = round_money(raw_shipping)

    insurance = Decimal("0.00")
    if charge_input.requires_insurance:
        insurance = round_money(to_decimal(charge_input.declared_value) * config.insurance_rate)

    cod = Decimal("0.00")
    if charge_input.payment_mode == "COD":
        cod = round_money(to_decimal(charge_input.cod_amount) * config.cod_rate)

    fuel = round_money(raw_shipping * config.fuel_surcharge_rate)

    subtotal = shipping + insurance + cod + fuel
    tax = round_money(subtotal * config.tax_rate)
    total = subtotal + tax

    return ChargeBreakdown(
        volumetric_weight=float(round_weight(volumetric)),
        chargeable_weight=float(round_weight(chargeable)),
        base_rate=float(base_rate),
        shipping_charges=float(shipping),
        insurance_charges=float(insurance),
        cod_charges=float(cod),
        fuel_surcharge=float(fuel),
        subtotal=float(subtotal),
        tax_amount=float(tax),
        total_amount=float(total),
        currency=config.currency,
    )
