"""Booking status summary: dashboard counts of bookings per status."""

from protean.core.projector import on
from protean.exceptions import ObjectNotFoundError
from protean.fields import DateTime, Integer, String
from protean.utils.globals import current_domain

from courier.booking.booking import Booking, BookingStatus
from courier.booking.events import BookingCreated, BookingStatusChanged
from courier.domain import courier


@courier.projection
class BookingStatusSummary:
    status = String(identifier=True, required=True, max_length=30)
    count = Integer(default=0)
    updated_at = DateTime()


def _adjust(status: str, delta: int, at) -> None:
    repo = current_domain.repository_for(BookingStatusSummary)
    try:
        summary = repo.get(status)
    except ObjectNotFoundError:
        summary = BookingStatusSummary(status=status, count=0)
    summary.count = max((summary.count or 0) + delta, 0)
    summary.updated_at = at
    repo.add(summary)


@courier.projector(projector_for=BookingStatusSummary, aggregates=[Booking])
class BookingStatusSummaryProjector:
    @on(BookingCreated)
    def on_booking_created(self, event: BookingCreated):
        _adjust(event.status, 1, event.booking_date)

    @on(BookingStatusChanged)
    def on_booking_status_changed(self, event: BookingStatusChanged):
        _adjust(event.previous_status, -1, event.occurred_at)
        _adjust(event.status, 1, event.occurred_at)


def status_counts() -> dict[str, int]:
    """Counts for every status, zero where no booking has been seen."""
    records = current_domain.repository_for(BookingStatusSummary)._dao.query.all().items
    counts = {status.value: 0 for status in BookingStatus}
    for record in records:
        counts[record.status] = record.count or 0
    return counts
