"""Administrative edits to a booking outside the status lifecycle."""

import structlog
from protean import handle
from protean.core.unit_of_work import UnitOfWork
from protean.fields import Boolean, Identifier, String, Text
from protean.utils.globals import current_domain

from courier.booking.booking import Booking
from courier.booking.ledger import load_booking
from courier.domain import courier
from courier.shared.locks import status_locks

logger = structlog.get_logger(__name__)


@courier.command(part_of="Booking")
class UpdateBookingDetails:
    booking_id = Identifier(required=True)
    reference_number = String(max_length=100)
    special_instructions = Text()
    internal_notes = Text()
    is_urgent = Boolean()
    is_fragile = Boolean()


@courier.command_handler(part_of=Booking)
class UpdateBookingDetailsHandler:
    @handle(UpdateBookingDetails)
    def update_booking_details(self, command: UpdateBookingDetails) -> None:
        booking_id = str(command.booking_id)
        # Same lock as status writes so an edit never overwrites a concurrent transition
        with status_locks.hold(booking_id):
            with UnitOfWork():
                booking = load_booking(booking_id)
                booking.update_details(
                    reference_number=command.reference_number,
                    special_instructions=command.special_instructions,
                    internal_notes=command.internal_notes,
                    is_urgent=command.is_urgent,
                    is_fragile=command.is_fragile,
                )
                current_domain.repository_for(Booking).add(booking)

        logger.info("Booking details updated", booking_id=booking_id)
