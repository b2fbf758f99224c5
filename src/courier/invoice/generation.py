"""Invoice generation: command and handler.

Generating an invoice and flagging its bookings as invoiced happen in one
unit of work, under the invoicing locks of every booking involved (taken in
sorted order). If any booking is not Delivered or is already invoiced,
nothing is written.
"""

import json

import structlog
from protean import handle
from protean.core.unit_of_work import UnitOfWork
from protean.exceptions import ValidationError
from protean.fields import Float, Identifier, String, Text
from protean.utils.globals import current_domain

from courier.booking.booking import Booking
from courier.booking.invoicing import check_invoiceable
from courier.domain import courier
from courier.invoice.config import BillingConfig
from courier.invoice.invoice import Invoice
from courier.party.shipper import Shipper
from courier.shared.locks import invoicing_locks

logger = structlog.get_logger(__name__)


@courier.command(part_of="Invoice")
class GenerateInvoice:
    """Invoice a shipper for a set of delivered bookings."""

    shipper_id = Identifier(required=True)
    booking_ids = Text(required=True)  # JSON list of booking ids
    discount = Float(default=0.0)
    discount_type = String(max_length=10)
    notes = Text()


def _parse_booking_ids(raw) -> list[str]:
    ids = json.loads(raw) if isinstance(raw, str) else raw
    if not isinstance(ids, list) or not ids:
        raise ValidationError({"booking_ids": ["At least one booking is required"]})
    ids = [str(booking_id) for booking_id in ids]
    if len(set(ids)) != len(ids):
        raise ValidationError({"booking_ids": ["Each booking can appear only once on an invoice"]})
    return ids


@courier.command_handler(part_of=Invoice)
class GenerateInvoiceHandler:
    @handle(GenerateInvoice)
    def generate_invoice(self, command: GenerateInvoice) -> dict:
        booking_ids = _parse_booking_ids(command.booking_ids)
        shipper = current_domain.repository_for(Shipper).get(str(command.shipper_id))

        with invoicing_locks.hold(*booking_ids):
            with UnitOfWork():
                bookings = check_invoiceable(booking_ids)
                invoice = Invoice.generate(
                    shipper,
                    bookings,
                    BillingConfig.from_env(),
                    discount=command.discount or 0.0,
                    discount_type=command.discount_type,
                    notes=command.notes,
                )
                booking_repo = current_domain.repository_for(Booking)
                for booking in bookings:
                    booking.mark_invoiced(str(invoice.id))
                    booking_repo.add(booking)
                current_domain.repository_for(Invoice).add(invoice)

        logger.info(
            "Invoice generated",
            invoice_id=str(invoice.id),
            invoice_number=invoice.invoice_number,
            shipper_id=str(shipper.id),
            booking_count=len(bookings),
            grand_total=invoice.grand_total,
        )
        return {"invoice_id": str(invoice.id), "invoice_number": invoice.invoice_number}
