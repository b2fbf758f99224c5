"""History ledger: the append-only status log behind every booking.

The ledger is the only writer of ``Booking.status``. An append re-reads the
booking inside its own unit of work, so the new history entry and the
current-status field are committed together or not at all.
"""

from dataclasses import dataclass
from datetime import datetime

import structlog
from protean.core.unit_of_work import UnitOfWork
from protean.exceptions import ExpectedVersionError, ObjectNotFoundError
from protean.utils.globals import current_domain

from courier.booking.booking import Booking
from courier.booking.transitions import StatusChange
from courier.shared.errors import BookingNotFound, ConcurrentModification, OutOfOrder
from courier.shared.locks import status_locks
from courier.shared.timestamps import as_utc

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class HistoryEntry:
    sequence: int
    status: str
    timestamp: datetime
    location: str | None = None
    remarks: str | None = None
    updated_by: str | None = None


def load_booking(booking_id: str) -> Booking:
    try:
        return current_domain.repository_for(Booking).get(booking_id)
    except ObjectNotFoundError:
        raise BookingNotFound(booking_id) from None


class HistoryLedger:
    def append(self, booking_id: str, change: StatusChange) -> Booking:
        """Append ``change`` to the booking's history and move its status.

        Raises ``BookingNotFound`` for an unknown id, ``ConcurrentModification``
        when the booking has been written since ``change`` was validated, and
        ``OutOfOrder`` when the change predates the last recorded entry.
        """
        with status_locks.hold(booking_id):
            try:
                with UnitOfWork():
                    repo = current_domain.repository_for(Booking)
                    booking = load_booking(booking_id)

                    current_revision = booking.revision or 0
                    if current_revision != change.base_revision:
                        raise ConcurrentModification(booking_id, change.base_revision, current_revision)

                    last = booking.last_entry
                    if last is not None and change.timestamp < as_utc(last.timestamp):
                        raise OutOfOrder(booking_id, change.timestamp, as_utc(last.timestamp))

                    entry = booking.apply_status_change(change)
                    # Conditional on the stored version, so a writer in another
                    # process that got in first makes this commit fail
                    repo.add(booking)
            except ExpectedVersionError:
                raise ConcurrentModification(booking_id, change.base_revision, None) from None

        logger.info(
            "Booking status appended",
            booking_id=booking_id,
            awb=booking.awb,
            previous_status=change.previous_status,
            status=change.status,
            sequence=entry.sequence,
            revision=booking.revision,
        )
        return booking

    def read(self, booking_id: str) -> tuple[HistoryEntry, ...]:
        """Immutable copy of the booking's history, oldest first."""
        booking = load_booking(booking_id)
        return tuple(
            HistoryEntry(
                sequence=entry.sequence,
                status=entry.status,
                timestamp=as_utc(entry.timestamp),
                location=entry.location or None,
                remarks=entry.remarks or None,
                updated_by=entry.updated_by or None,
            )
            for entry in booking.ordered_history()
        )


ledger = HistoryLedger()
