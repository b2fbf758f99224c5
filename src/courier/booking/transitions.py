"""Status transition rules for bookings.

``attempt_transition`` is a pure check: it reads a booking and a proposed
status and either returns a ``StatusChange`` describing the history entry to
append, or raises. Nothing is written here; the history ledger applies the
change.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime

from protean.exceptions import ValidationError

from courier.booking.booking import BookingStatus
from courier.shared.errors import ConcurrentModification, InvalidTransition, MissingRemarks
from courier.shared.timestamps import as_utc

ALLOWED_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.BOOKED: frozenset({BookingStatus.PICKED_UP, BookingStatus.CANCELLED, BookingStatus.ON_HOLD}),
    BookingStatus.PICKED_UP: frozenset({BookingStatus.IN_TRANSIT, BookingStatus.ON_HOLD, BookingStatus.CANCELLED}),
    BookingStatus.IN_TRANSIT: frozenset({BookingStatus.OUT_FOR_DELIVERY, BookingStatus.ON_HOLD}),
    BookingStatus.OUT_FOR_DELIVERY: frozenset({BookingStatus.DELIVERED, BookingStatus.FAILED_DELIVERY}),
    BookingStatus.FAILED_DELIVERY: frozenset({BookingStatus.OUT_FOR_DELIVERY, BookingStatus.RETURNED}),
    BookingStatus.ON_HOLD: frozenset(
        {
            BookingStatus.PICKED_UP,
            BookingStatus.IN_TRANSIT,
            BookingStatus.OUT_FOR_DELIVERY,
            BookingStatus.CANCELLED,
        }
    ),
    BookingStatus.DELIVERED: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.RETURNED: frozenset(),
}

TERMINAL_STATUSES = frozenset(status for status, targets in ALLOWED_TRANSITIONS.items() if not targets)

# Target statuses that cannot be entered without an explanation
REMARKS_REQUIRED = frozenset(
    {
        BookingStatus.FAILED_DELIVERY,
        BookingStatus.RETURNED,
        BookingStatus.ON_HOLD,
    }
)

# Display order used whenever allowed statuses are listed
_STATUS_ORDER = list(BookingStatus)


@dataclass(frozen=True)
class StatusChange:
    """A validated, not yet applied, status transition."""

    booking_id: str
    previous_status: str
    status: str
    timestamp: datetime
    base_revision: int
    location: str | None = None
    remarks: str | None = None
    updated_by: str | None = None
    side_effects: dict = field(default_factory=dict)


def parse_status(value) -> BookingStatus:
    if isinstance(value, BookingStatus):
        return value
    try:
        return BookingStatus(value)
    except ValueError:
        raise ValidationError({"status": [f"Unknown booking status: {value}"]}) from None


def allowed_next_statuses(status) -> list[str]:
    """Statuses reachable from ``status`` in one step, in lifecycle order."""
    targets = ALLOWED_TRANSITIONS[parse_status(status)]
    return [candidate.value for candidate in _STATUS_ORDER if candidate in targets]


def is_terminal(status) -> bool:
    return parse_status(status) in TERMINAL_STATUSES


def _side_effects(target: BookingStatus, timestamp: datetime, remarks: str | None) -> dict:
    if target == BookingStatus.PICKED_UP:
        return {"pickup_date": timestamp}
    if target == BookingStatus.DELIVERED:
        return {"delivery_date": timestamp}
    if target == BookingStatus.FAILED_DELIVERY:
        return {"count_delivery_attempt": True, "last_attempt_date": timestamp}
    if target == BookingStatus.RETURNED:
        return {"return_date": timestamp, "return_reason": remarks}
    return {}


def attempt_transition(
    booking,
    proposed_status,
    *,
    location: str | None = None,
    remarks: str | None = None,
    updated_by: str | None = None,
    expected_revision: int | None = None,
    at: datetime | None = None,
) -> StatusChange:
    """Validate moving ``booking`` to ``proposed_status``.

    Checks run in a fixed order: revision, unknown status, transition table,
    then remarks. The returned change carries the booking revision it was
    validated against so the ledger can refuse it if another writer got in
    first.
    """
    current_revision = booking.revision or 0
    if expected_revision is not None and expected_revision != current_revision:
        raise ConcurrentModification(str(booking.id), expected_revision, current_revision)

    target = parse_status(proposed_status)
    current = parse_status(booking.status)

    if target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidTransition(current.value, target.value, allowed_next_statuses(current))

    cleaned_remarks = remarks.strip() if remarks else None
    if target in REMARKS_REQUIRED and not cleaned_remarks:
        raise MissingRemarks(target.value)

    timestamp = as_utc(at) if at else datetime.now(UTC)
    return StatusChange(
        booking_id=str(booking.id),
        previous_status=current.value,
        status=target.value,
        timestamp=timestamp,
        base_revision=current_revision,
        location=location,
        remarks=cleaned_remarks,
        updated_by=updated_by,
        side_effects=_side_effects(target, timestamp, cleaned_remarks),
    )
