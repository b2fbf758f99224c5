"""Invoiceable bookings: delivered bookings not yet on an invoice.

This is the list the invoicing screen refreshes after an ``AlreadyInvoiced``
conflict.
"""

from protean.core.projector import on
from protean.exceptions import ObjectNotFoundError
from protean.fields import DateTime, Float, Identifier, String
from protean.utils.globals import current_domain

from courier.booking.booking import Booking, BookingStatus
from courier.booking.events import BookingInvoiced, BookingStatusChanged
from courier.domain import courier


@courier.projection
class InvoiceableBooking:
    booking_id = Identifier(identifier=True, required=True)
    awb = String(required=True, max_length=20)
    shipper_id = Identifier(required=True)
    service_type = String()
    subtotal = Float(default=0.0)
    total_amount = Float(default=0.0)
    delivered_at = DateTime()


@courier.projector(projector_for=InvoiceableBooking, aggregates=[Booking])
class InvoiceableBookingProjector:
    @on(BookingStatusChanged)
    def on_booking_status_changed(self, event: BookingStatusChanged):
        if event.status != BookingStatus.DELIVERED.value or event.invoice_generated:
            return
        current_domain.repository_for(InvoiceableBooking).add(
            InvoiceableBooking(
                booking_id=event.booking_id,
                awb=event.awb,
                shipper_id=event.shipper_id,
                service_type=event.service_type,
                subtotal=event.subtotal or 0.0,
                total_amount=event.total_amount or 0.0,
                delivered_at=event.occurred_at,
            )
        )

    @on(BookingInvoiced)
    def on_booking_invoiced(self, event: BookingInvoiced):
        repo = current_domain.repository_for(InvoiceableBooking)
        try:
            record = repo.get(str(event.booking_id))
            repo._dao.delete(record)
        except ObjectNotFoundError:
            pass


def eligible_bookings(shipper_id: str | None = None) -> list[InvoiceableBooking]:
    query = current_domain.repository_for(InvoiceableBooking)._dao.query
    if shipper_id:
        query = query.filter(shipper_id=shipper_id)
    records = query.all().items
    return sorted(records, key=lambda record: record.awb)
