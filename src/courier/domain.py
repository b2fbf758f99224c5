"""Courier bounded context: shipment lifecycle, tracking and invoicing eligibility.

Owns the booking state machine and its append-only status history, the
charge calculation that prices a booking, the read models behind the
internal detail view and the public tracking page, and the customer-reported
exceptions attached to bookings. Uses CQRS: bookings are persisted as state
and projections are refreshed from the events each write raises.
"""

from protean.domain import Domain

from courier.utils.logging import configure_logging, get_logger

configure_logging()

logger = get_logger(__name__)

courier = Domain(name="courier")
