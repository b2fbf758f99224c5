"""Stale booking detection: a command for flagging shipments that stopped moving.

Meant to be triggered periodically by an external scheduler via the
maintenance API endpoint. Read-only: stale bookings are logged and returned,
never transitioned.
"""

from datetime import UTC, datetime, timedelta

import structlog
from protean import handle
from protean.fields import DateTime, Integer
from protean.utils.globals import current_domain

from courier.booking.booking import Booking, BookingStatus
from courier.booking.transitions import TERMINAL_STATUSES
from courier.domain import courier
from courier.shared.timestamps import as_utc

logger = structlog.get_logger(__name__)


@courier.command(part_of="Booking")
class DetectStaleBookings:
    """List non-terminal bookings with no status change within the threshold."""

    idle_threshold_hours = Integer(default=72)
    as_of = DateTime()  # Optional: defaults to now


@courier.command_handler(part_of=Booking)
class DetectStaleBookingsHandler:
    @handle(DetectStaleBookings)
    def detect_stale_bookings(self, command) -> list[dict]:
        as_of = as_utc(command.as_of) or datetime.now(UTC)
        threshold_hours = command.idle_threshold_hours or 72
        cutoff = as_of - timedelta(hours=threshold_hours)

        logger.info(
            "Checking for stale bookings",
            cutoff=cutoff.isoformat(),
            threshold_hours=threshold_hours,
        )

        repo = current_domain.repository_for(Booking)
        stale = []
        for status in BookingStatus:
            if status in TERMINAL_STATUSES:
                continue
            for booking in repo.find_by_status(status.value):
                last = booking.last_entry
                last_at = as_utc(last.timestamp) if last else as_utc(booking.booking_date)
                if last_at and last_at <= cutoff:
                    stale.append(
                        {
                            "booking_id": str(booking.id),
                            "awb": booking.awb,
                            "status": booking.status,
                            "last_status_at": last_at.isoformat(),
                            "idle_hours": round((as_of - last_at).total_seconds() / 3600, 1),
                        }
                    )
                    logger.warning(
                        "Booking is stale",
                        booking_id=str(booking.id),
                        awb=booking.awb,
                        status=booking.status,
                        last_status_at=last_at.isoformat(),
                    )

        logger.info("Stale booking detection complete", stale_count=len(stale))
        return sorted(stale, key=lambda item: item["last_status_at"])
