"""Invoice totals (GST split, discount, round-off) and the invoice state machine."""

from decimal import Decimal
from types import SimpleNamespace

import pytest
from courier.invoice.config import BillingConfig
from courier.invoice.events import InvoiceGenerated, InvoicePaid
from courier.invoice.invoice import Invoice, InvoiceStatus, compute_invoice_totals
from protean.exceptions import ValidationError

GST = Decimal("0.18")


def _shipper(state="Maharashtra"):
    return SimpleNamespace(id="shp-1", billing_state=state)


def _booking(booking_id, subtotal, shipper_id="shp-1", awb=None):
    return SimpleNamespace(
        id=booking_id,
        shipper_id=shipper_id,
        awb=awb or f"AWB26{booking_id[-8:]:0>8}",
        service_type="Express",
        subtotal=subtotal,
    )


def _invoice(amounts=(27.5, 110.0), **kwargs) -> Invoice:
    bookings = [_booking(f"bkg-{index:08d}", amount) for index, amount in enumerate(amounts, start=1)]
    return Invoice.generate(kwargs.pop("shipper", _shipper()), bookings, BillingConfig(), **kwargs)


class TestInvoiceTotals:
    def test_intra_state_splits_cgst_and_sgst(self):
        totals = compute_invoice_totals([100], GST, intra_state=True)
        assert totals.cgst == Decimal("9.00")
        assert totals.sgst == Decimal("9.00")
        assert totals.igst == Decimal("0.00")
        assert totals.grand_total == Decimal("118")

    def test_inter_state_charges_igst(self):
        totals = compute_invoice_totals([100], GST, intra_state=False)
        assert totals.igst == Decimal("18.00")
        assert totals.cgst == totals.sgst == Decimal("0.00")

    def test_fixed_discount_reduces_taxable_amount(self):
        totals = compute_invoice_totals([100, 50], GST, intra_state=False, discount=30)
        assert totals.taxable_amount == Decimal("120.00")
        assert totals.igst == Decimal("21.60")

    def test_percentage_discount(self):
        totals = compute_invoice_totals([200], GST, intra_state=False, discount=10, discount_type="percentage")
        assert totals.discount == Decimal("20.00")

    def test_discount_above_subtotal_is_rejected(self):
        with pytest.raises(ValidationError):
            compute_invoice_totals([10], GST, intra_state=True, discount=11)

    def test_grand_total_rounds_to_whole_units(self):
        totals = compute_invoice_totals([27.5], GST, intra_state=False)
        # 27.50 + 4.95 = 32.45
        assert totals.total_amount == Decimal("32.45")
        assert totals.grand_total == Decimal("32")
        assert totals.round_off == Decimal("-0.45")


class TestInvoiceGeneration:
    def test_one_line_per_booking_at_subtotal(self):
        invoice = _invoice()
        assert len(invoice.line_items) == 2
        assert sorted(item.amount for item in invoice.line_items) == [27.5, 110.0]
        assert all(item.description.startswith("Express - AWB: ") for item in invoice.line_items)

    def test_draft_with_due_date(self):
        invoice = _invoice()
        assert invoice.status == InvoiceStatus.DRAFT.value
        assert (invoice.due_date - invoice.invoice_date).days == 30
        assert invoice.balance_amount == invoice.grand_total

    def test_home_state_shipper_gets_split_gst(self):
        invoice = _invoice(shipper=_shipper("maharashtra"))
        assert invoice.cgst > 0
        assert invoice.igst == 0

    def test_out_of_state_shipper_gets_igst(self):
        invoice = _invoice(shipper=_shipper("Gujarat"))
        assert invoice.igst > 0
        assert invoice.cgst == 0

    def test_raises_invoice_generated(self):
        invoice = _invoice()
        event = invoice._events[-1]
        assert isinstance(event, InvoiceGenerated)
        assert event.invoice_number == invoice.invoice_number

    def test_bookings_of_another_shipper_are_rejected(self):
        stranger = _booking("bkg-00000009", 10.0, shipper_id="shp-2")
        with pytest.raises(ValidationError):
            Invoice.generate(_shipper(), [stranger], BillingConfig())

    def test_needs_at_least_one_booking(self):
        with pytest.raises(ValidationError):
            Invoice.generate(_shipper(), [], BillingConfig())


class TestInvoicePayments:
    def test_payments_require_an_issued_invoice(self):
        invoice = _invoice()
        with pytest.raises(ValidationError):
            invoice.record_payment("UTR-1", 10)

    def test_full_payment_marks_paid(self):
        invoice = _invoice(amounts=(100.0,))
        invoice.issue()
        assert invoice.record_payment("UTR-1", invoice.grand_total) is True
        assert invoice.status == InvoiceStatus.PAID.value
        assert invoice.balance_amount == 0
        assert isinstance(invoice._events[-1], InvoicePaid)

    def test_partial_payment_keeps_invoice_issued(self):
        invoice = _invoice(amounts=(100.0,))
        invoice.issue()
        invoice.record_payment("UTR-1", 18)
        assert invoice.status == InvoiceStatus.ISSUED.value
        assert invoice.balance_amount == 100.0

    def test_repeated_reference_is_a_no_op(self):
        invoice = _invoice(amounts=(100.0,))
        invoice.issue()
        assert invoice.record_payment("UTR-1", 18) is True
        assert invoice.record_payment("UTR-1", 18) is False
        assert len(invoice.payments) == 1
        assert invoice.paid_amount == 18.0

    def test_overpayment_is_rejected(self):
        invoice = _invoice(amounts=(100.0,))
        invoice.issue()
        with pytest.raises(ValidationError):
            invoice.record_payment("UTR-1", 1000)


class TestInvoiceVoiding:
    def test_draft_can_be_voided(self):
        invoice = _invoice()
        invoice.void("Raised in error")
        assert invoice.status == InvoiceStatus.VOIDED.value

    def test_invoice_with_payments_cannot_be_voided(self):
        invoice = _invoice(amounts=(100.0,))
        invoice.issue()
        invoice.record_payment("UTR-1", 18)
        with pytest.raises(ValidationError):
            invoice.void("Changed mind")

    def test_voided_invoice_cannot_be_issued(self):
        invoice = _invoice()
        invoice.void("Raised in error")
        with pytest.raises(ValidationError):
            invoice.issue()
