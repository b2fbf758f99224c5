"""Shipper statistics kept current from booking events."""

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from courier.booking.events import BookingCreated
from courier.domain import courier
from courier.party.shipper import Shipper

logger = structlog.get_logger(__name__)


@courier.event_handler(part_of=Shipper, stream_category="courier::booking")
class ShipperBookingStatsHandler:
    @handle(BookingCreated)
    def on_booking_created(self, event: BookingCreated) -> None:
        repo = current_domain.repository_for(Shipper)
        try:
            shipper = repo.get(str(event.shipper_id))
        except ObjectNotFoundError:
            logger.warning(
                "Booking created for unknown shipper",
                booking_id=str(event.booking_id),
                shipper_id=str(event.shipper_id),
            )
            return

        shipper.record_booking(event.total_amount, event.booking_date)
        repo.add(shipper)
        logger.info(
            "Shipper booking stats updated",
            shipper_id=str(shipper.id),
            total_bookings=shipper.total_bookings,
        )
