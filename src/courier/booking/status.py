"""Single entry point for booking status changes.

Read, validate and append all happen while the booking's status lock is
held, so two writers on the same booking are serialized and a writer that
read an older revision is rejected instead of applied on a stale base.
"""

from datetime import datetime

from courier.booking.booking import Booking
from courier.booking.ledger import ledger, load_booking
from courier.booking.transitions import attempt_transition
from courier.shared.locks import status_locks


def change_booking_status(
    booking_id: str,
    status: str,
    *,
    location: str | None = None,
    remarks: str | None = None,
    updated_by: str | None = None,
    expected_revision: int,
    at: datetime | None = None,
) -> Booking:
    """Move a booking to ``status``, provided it is still at the revision the caller read.

    ``expected_revision`` is mandatory: a writer that read an older revision is
    rejected with ``ConcurrentModification`` instead of being applied on top of
    someone else's change.
    """
    booking_id = str(booking_id)
    with status_locks.hold(booking_id):
        booking = load_booking(booking_id)
        change = attempt_transition(
            booking,
            status,
            location=location,
            remarks=remarks,
            updated_by=updated_by,
            expected_revision=expected_revision,
            at=at,
        )
        return ledger.append(booking_id, change)
