"""Proof of delivery.

Recording a POD on a booking that is still Out for Delivery drives the
Delivered transition first, through the same validator and ledger as any
other status change.
"""

import structlog
from protean.core.unit_of_work import UnitOfWork
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from courier.booking.booking import Booking, BookingStatus
from courier.booking.ledger import load_booking
from courier.booking.status import change_booking_status
from courier.shared.locks import invoicing_locks

logger = structlog.get_logger(__name__)


def record_proof_of_delivery(
    booking_id: str,
    delivered_to: str | None,
    proof_reference: str,
    remarks: str | None = None,
    updated_by: str | None = None,
    location: str | None = None,
) -> Booking:
    booking_id = str(booking_id)
    if not proof_reference or not proof_reference.strip():
        raise ValidationError({"delivery_proof": ["A proof of delivery reference is required"]})

    booking = load_booking(booking_id)
    if booking.status != BookingStatus.DELIVERED.value:
        change_booking_status(
            booking_id,
            BookingStatus.DELIVERED.value,
            location=location,
            remarks=remarks or f"Delivered to {delivered_to or 'recipient'}",
            updated_by=updated_by,
            expected_revision=booking.revision,
        )

    # Delivered is terminal, so the only other writer left is invoicing
    with invoicing_locks.hold(booking_id):
        with UnitOfWork():
            booking = load_booking(booking_id)
            booking.record_proof_of_delivery(delivered_to, proof_reference.strip(), remarks)
            current_domain.repository_for(Booking).add(booking)

    logger.info(
        "Proof of delivery recorded",
        booking_id=booking_id,
        awb=booking.awb,
        delivered_to=booking.delivered_to,
    )
    return booking
