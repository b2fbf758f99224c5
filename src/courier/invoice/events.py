"""Domain events for the Invoice aggregate."""

from protean.fields import DateTime, Float, Identifier, String, Text

from courier.domain import courier


@courier.event(part_of="Invoice")
class InvoiceGenerated:
    """An invoice was drawn up for a set of delivered bookings."""

    __version__ = 1

    invoice_id = Identifier(required=True)
    invoice_number = String(required=True)
    shipper_id = Identifier(required=True)
    booking_ids = Text(required=True)  # JSON list
    grand_total = Float(required=True)
    generated_at = DateTime(required=True)


@courier.event(part_of="Invoice")
class InvoiceIssued:
    __version__ = 1

    invoice_id = Identifier(required=True)
    invoice_number = String(required=True)
    issued_at = DateTime(required=True)


@courier.event(part_of="Invoice")
class InvoicePaymentRecorded:
    __version__ = 1

    invoice_id = Identifier(required=True)
    reference = String(required=True)
    amount = Float(required=True)
    balance_amount = Float(required=True)
    recorded_at = DateTime(required=True)


@courier.event(part_of="Invoice")
class InvoicePaid:
    __version__ = 1

    invoice_id = Identifier(required=True)
    paid_at = DateTime(required=True)


@courier.event(part_of="Invoice")
class InvoiceVoided:
    """The invoice was cancelled. Its bookings stay marked as invoiced."""

    __version__ = 1

    invoice_id = Identifier(required=True)
    reason = String(required=True)
    voided_at = DateTime(required=True)
