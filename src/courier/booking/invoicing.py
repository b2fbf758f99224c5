"""Invoicing eligibility and the one-way ``invoice_generated`` flag.

Marking runs under the per-booking invoicing lock, a critical section of its
own that is never entered while a status lock is held. Of two callers racing
to invoice the same booking, the second re-reads the flag and gets
``AlreadyInvoiced``.
"""

from collections.abc import Iterable

import structlog
from protean.core.unit_of_work import UnitOfWork
from protean.exceptions import ExpectedVersionError
from protean.utils.globals import current_domain

from courier.booking.booking import Booking
from courier.booking.ledger import load_booking
from courier.shared.errors import AlreadyInvoiced, NotEligibleForInvoicing
from courier.shared.locks import invoicing_locks

logger = structlog.get_logger(__name__)


def is_eligible_for_invoicing(booking: Booking) -> bool:
    return booking.is_invoiceable()


def check_invoiceable(booking_ids: Iterable[str]) -> list[Booking]:
    """Load bookings and fail on the first one that cannot be invoiced.

    Callers must already hold the invoicing locks for ``booking_ids``.
    """
    bookings = []
    for booking_id in booking_ids:
        booking = load_booking(str(booking_id))
        if booking.invoice_generated:
            raise AlreadyInvoiced(str(booking.id), str(booking.invoice_id) if booking.invoice_id else None)
        if not booking.is_invoiceable():
            raise NotEligibleForInvoicing(str(booking.id), booking.status)
        bookings.append(booking)
    return bookings


def _mark(booking_id: str, invoice_id: str) -> Booking:
    with UnitOfWork():
        (booking,) = check_invoiceable([booking_id])
        booking.mark_invoiced(invoice_id)
        current_domain.repository_for(Booking).add(booking)
    return booking


def mark_invoiced(booking_id: str, invoice_id: str) -> Booking:
    booking_id, invoice_id = str(booking_id), str(invoice_id)
    with invoicing_locks.hold(booking_id):
        try:
            booking = _mark(booking_id, invoice_id)
        except ExpectedVersionError:
            # Another process wrote the booking first; the re-read raises
            # AlreadyInvoiced when that write was an invoice
            booking = _mark(booking_id, invoice_id)

    logger.info("Booking marked invoiced", booking_id=booking_id, invoice_id=invoice_id)
    return booking
