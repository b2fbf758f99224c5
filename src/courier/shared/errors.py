"""Typed failures raised by the courier core.

Each error subclasses one of Protean's exception categories so callers can
catch either the precise kind (``AlreadyInvoiced``) or the broad category
(``InvalidOperationError``). The API layer maps kinds to HTTP status codes.
"""

from protean.exceptions import InvalidOperationError, ObjectNotFoundError, ValidationError


class InvalidTransition(ValidationError):
    """The proposed status is not reachable from the booking's current status."""

    def __init__(self, current: str, proposed: str, allowed: list[str]):
        self.current = current
        self.proposed = proposed
        self.allowed = allowed
        if allowed:
            detail = f"Cannot transition from {current} to {proposed}; allowed: {', '.join(allowed)}"
        else:
            detail = f"Cannot transition from {current} to {proposed}; {current} is terminal"
        super().__init__({"status": [detail]})


class MissingRemarks(ValidationError):
    """A remarks-required transition was attempted without an explanation."""

    def __init__(self, status: str):
        self.status = status
        super().__init__({"remarks": [f"Remarks are required when marking a booking as {status}"]})


class OutOfOrder(ValidationError):
    """A history entry would precede the last recorded entry."""

    def __init__(self, booking_id: str, timestamp, last_timestamp):
        self.booking_id = booking_id
        self.timestamp = timestamp
        self.last_timestamp = last_timestamp
        super().__init__(
            {
                "timestamp": [
                    f"Event at {timestamp.isoformat()} precedes last recorded event at {last_timestamp.isoformat()}"
                ]
            }
        )


class NotEligibleForInvoicing(ValidationError):
    """The booking has not been delivered, so it cannot be billed yet."""

    def __init__(self, booking_id: str, status: str):
        self.booking_id = booking_id
        self.status = status
        super().__init__({"booking": [f"Booking {booking_id} is {status}; only Delivered bookings can be invoiced"]})


class BookingNotFound(ObjectNotFoundError):
    def __init__(self, booking_id: str):
        self.booking_id = booking_id
        self.messages = {"_entity": [f"Booking {booking_id} not found"]}
        super().__init__(self.messages)


class UnknownAWB(ObjectNotFoundError):
    def __init__(self, awb: str):
        self.awb = awb
        self.messages = {"awb": [f"No booking found with AWB {awb}"]}
        super().__init__(self.messages)


class ConcurrentModification(InvalidOperationError):
    """Another write landed on the booking after the caller read it.

    Safe to retry once after re-reading the booking.
    """

    retryable = True

    def __init__(self, booking_id: str, expected_revision: int, actual_revision: int | None):
        self.booking_id = booking_id
        self.expected_revision = expected_revision
        self.actual_revision = actual_revision
        # None when the store rejected the write without reporting what it holds
        found = f"found {actual_revision}" if actual_revision is not None else "another write committed first"
        self.messages = {
            "booking": [
                f"Booking {booking_id} was modified concurrently (expected revision {expected_revision}, {found})"
            ]
        }
        super().__init__(self.messages)


class AlreadyInvoiced(InvalidOperationError):
    """The booking is already referenced by an invoice."""

    def __init__(self, booking_id: str, invoice_id: str | None = None):
        self.booking_id = booking_id
        self.invoice_id = invoice_id
        detail = f"Booking {booking_id} has already been invoiced"
        if invoice_id:
            detail += f" (invoice {invoice_id})"
        self.messages = {"booking": [detail]}
        super().__init__(self.messages)
