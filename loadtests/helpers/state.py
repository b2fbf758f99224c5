"""Per-user state tracking for Locust load test scenarios.

Each Locust user instance keeps its own state; nothing is shared across
users. State tracks ids returned by creation endpoints so follow-up
requests can reference them.
"""

from dataclasses import dataclass, field


@dataclass
class BookingState:
    """Tracks a single simulated booking through the courier network."""

    shipper_id: str | None = None
    booking_id: str | None = None
    awb: str | None = None
    current_status: str = "Booked"
    revision: int = 1


@dataclass
class InvoiceState:
    """Tracks a shipper's delivered bookings and the invoice raised for them."""

    shipper_id: str | None = None
    booking_ids: list[str] = field(default_factory=list)
    invoice_id: str | None = None
    grand_total: float = 0.0
