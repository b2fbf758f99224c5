"""Invoice aggregate (CQRS): billing for delivered bookings.

One line per booking at the booking's pre-tax subtotal. GST is charged on
the invoice as a whole after any discount, split CGST + SGST for shippers in
the home state and IGST otherwise. The grand total is rounded to a whole
currency unit and the difference kept as ``round_off``.

State Machine:
    DRAFT → ISSUED → PAID
    DRAFT → VOIDED
    ISSUED → VOIDED

Voiding an invoice never clears ``invoice_generated`` on its bookings.
"""

import json
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from uuid import uuid4

from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, String, Text

from courier.domain import courier
from courier.invoice.config import BillingConfig
from courier.invoice.events import (
    InvoiceGenerated,
    InvoiceIssued,
    InvoicePaid,
    InvoicePaymentRecorded,
    InvoiceVoided,
)
from courier.shared.money import round_money, to_decimal


class InvoiceStatus(Enum):
    DRAFT = "Draft"
    ISSUED = "Issued"
    PAID = "Paid"
    VOIDED = "Voided"


class DiscountType(Enum):
    FIXED = "fixed"
    PERCENTAGE = "percentage"


_VALID_TRANSITIONS = {
    InvoiceStatus.DRAFT: {InvoiceStatus.ISSUED, InvoiceStatus.VOIDED},
    InvoiceStatus.ISSUED: {InvoiceStatus.PAID, InvoiceStatus.VOIDED},
    InvoiceStatus.PAID: set(),  # Terminal
    InvoiceStatus.VOIDED: set(),  # Terminal
}


@dataclass(frozen=True)
class InvoiceTotals:
    subtotal: Decimal
    discount: Decimal
    taxable_amount: Decimal
    cgst: Decimal
    sgst: Decimal
    igst: Decimal
    total_tax: Decimal
    total_amount: Decimal
    round_off: Decimal
    grand_total: Decimal


def compute_invoice_totals(
    amounts: list,
    gst_rate: Decimal,
    intra_state: bool,
    discount=0,
    discount_type: str = DiscountType.FIXED.value,
) -> InvoiceTotals:
    subtotal = round_money(sum((to_decimal(amount) for amount in amounts), Decimal("0")))

    if discount_type == DiscountType.PERCENTAGE.value:
        discount_amount = round_money(subtotal * to_decimal(discount) / Decimal("100"))
    else:
        discount_amount = round_money(discount)
    if discount_amount < 0 or discount_amount > subtotal:
        raise ValidationError({"discount": ["Discount must be between zero and the invoice subtotal"]})

    taxable = subtotal - discount_amount
    if intra_state:
        cgst = round_money(taxable * gst_rate / 2)
        sgst = round_money(taxable * gst_rate / 2)
        igst = Decimal("0.00")
    else:
        cgst = sgst = Decimal("0.00")
        igst = round_money(taxable * gst_rate)

    total_tax = cgst + sgst + igst
    total_amount = taxable + total_tax
    grand_total = total_amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return InvoiceTotals(
        subtotal=subtotal,
        discount=discount_amount,
        taxable_amount=taxable,
        cgst=cgst,
        sgst=sgst,
        igst=igst,
        total_tax=total_tax,
        total_amount=total_amount,
        round_off=grand_total - total_amount,
        grand_total=grand_total,
    )


@courier.entity(part_of="Invoice")
class InvoiceLineItem:
    booking_id = Identifier(required=True)
    awb = String(required=True, max_length=20)
    description = String(required=True, max_length=500)
    amount = Float(required=True)


@courier.entity(part_of="Invoice")
class PaymentRecord:
    reference = String(required=True, max_length=100)
    amount = Float(required=True)
    payment_mode = String(max_length=30)
    remarks = Text()
    paid_at = DateTime(required=True)


@courier.aggregate
class Invoice:
    invoice_number = String(required=True, max_length=50, unique=True)
    shipper_id = Identifier(required=True)
    billing_state = String(max_length=100)
    line_items = HasMany(InvoiceLineItem)
    payments = HasMany(PaymentRecord)
    currency = String(max_length=3, default="USD")

    subtotal = Float(default=0.0)
    discount = Float(default=0.0)
    discount_type = String(max_length=10, choices=DiscountType, default=DiscountType.FIXED.value)
    taxable_amount = Float(default=0.0)
    gst_rate = Float(default=0.0)
    cgst = Float(default=0.0)
    sgst = Float(default=0.0)
    igst = Float(default=0.0)
    total_tax = Float(default=0.0)
    total_amount = Float(default=0.0)
    round_off = Float(default=0.0)
    grand_total = Float(default=0.0)
    paid_amount = Float(default=0.0)
    balance_amount = Float(default=0.0)

    status = String(choices=InvoiceStatus, default=InvoiceStatus.DRAFT.value)
    notes = Text()
    invoice_date = DateTime()
    due_date = DateTime()
    issued_at = DateTime()
    paid_at = DateTime()
    voided_at = DateTime()
    void_reason = String(max_length=500)
    created_at = DateTime()
    updated_at = DateTime()

    def _assert_can_transition(self, target_status: InvoiceStatus) -> None:
        current = InvoiceStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    @classmethod
    def generate(
        cls,
        shipper,
        bookings: list,
        config: BillingConfig,
        discount: float = 0.0,
        discount_type: str | None = None,
        notes: str | None = None,
    ):
        """Draw up an invoice for ``bookings``; marking them invoiced is the caller's job."""
        if not bookings:
            raise ValidationError({"booking_ids": ["At least one booking is required"]})
        strangers = [str(b.id) for b in bookings if str(b.shipper_id) != str(shipper.id)]
        if strangers:
            raise ValidationError({"booking_ids": [f"Bookings not shipped by this shipper: {', '.join(strangers)}"]})

        discount_type = discount_type or DiscountType.FIXED.value
        billing_state = shipper.billing_state
        totals = compute_invoice_totals(
            [booking.subtotal for booking in bookings],
            gst_rate=config.gst_rate,
            intra_state=(billing_state or "").strip().lower() == config.home_state.strip().lower(),
            discount=discount or 0,
            discount_type=discount_type,
        )

        now = datetime.now(UTC)
        invoice = cls(
            invoice_number=f"INV-{uuid4().hex[:8].upper()}",
            shipper_id=str(shipper.id),
            billing_state=billing_state,
            currency=config.currency,
            subtotal=float(totals.subtotal),
            discount=float(totals.discount),
            discount_type=discount_type,
            taxable_amount=float(totals.taxable_amount),
            gst_rate=float(config.gst_rate),
            cgst=float(totals.cgst),
            sgst=float(totals.sgst),
            igst=float(totals.igst),
            total_tax=float(totals.total_tax),
            total_amount=float(totals.total_amount),
            round_off=float(totals.round_off),
            grand_total=float(totals.grand_total),
            balance_amount=float(totals.grand_total),
            notes=notes,
            invoice_date=now,
            due_date=now + timedelta(days=config.payment_days),
            created_at=now,
            updated_at=now,
        )
        for booking in bookings:
            invoice.add_line_items(
                InvoiceLineItem(
                    booking_id=str(booking.id),
                    awb=booking.awb,
                    description=f"{booking.service_type or 'Freight'} - AWB: {booking.awb}",
                    amount=booking.subtotal,
                )
            )

        invoice.raise_(
            InvoiceGenerated(
                invoice_id=str(invoice.id),
                invoice_number=invoice.invoice_number,
                shipper_id=str(shipper.id),
                booking_ids=json.dumps([str(booking.id) for booking in bookings]),
                grand_total=invoice.grand_total,
                generated_at=now,
            )
        )
        return invoice

    @property
    def booking_ids(self) -> list[str]:
        return [str(item.booking_id) for item in self.line_items or []]

    def issue(self) -> None:
        self._assert_can_transition(InvoiceStatus.ISSUED)
        now = datetime.now(UTC)
        self.status = InvoiceStatus.ISSUED.value
        self.issued_at = now
        self.updated_at = now
        self.raise_(
            InvoiceIssued(
                invoice_id=str(self.id),
                invoice_number=self.invoice_number,
                issued_at=now,
            )
        )

    def has_payment(self, reference: str) -> bool:
        return any(record.reference == reference for record in self.payments or [])

    def record_payment(
        self,
        reference: str,
        amount: float,
        payment_mode: str | None = None,
        remarks: str | None = None,
    ) -> bool:
        """Apply a payment. Returns False when ``reference`` was already applied."""
        if not reference:
            raise ValidationError({"reference": ["A payment reference is required"]})
        if self.has_payment(reference):
            return False
        if InvoiceStatus(self.status) != InvoiceStatus.ISSUED:
            raise ValidationError({"status": [f"Payments can only be recorded on Issued invoices, not {self.status}"]})

        payment = round_money(amount)
        balance = round_money(self.balance_amount)
        if payment <= 0 or payment > balance:
            raise ValidationError({"amount": [f"Payment must be greater than zero and at most {balance}"]})

        now = datetime.now(UTC)
        remaining = balance - payment
        self.add_payments(
            PaymentRecord(
                reference=reference,
                amount=float(payment),
                payment_mode=payment_mode,
                remarks=remarks,
                paid_at=now,
            )
        )
        self.paid_amount = float(round_money(self.paid_amount) + payment)
        self.balance_amount = float(remaining)
        self.updated_at = now
        self.raise_(
            InvoicePaymentRecorded(
                invoice_id=str(self.id),
                reference=reference,
                amount=float(payment),
                balance_amount=float(remaining),
                recorded_at=now,
            )
        )

        if remaining == 0:
            self._assert_can_transition(InvoiceStatus.PAID)
            self.status = InvoiceStatus.PAID.value
            self.paid_at = now
            self.raise_(InvoicePaid(invoice_id=str(self.id), paid_at=now))
        return True

    def void(self, reason: str) -> None:
        self._assert_can_transition(InvoiceStatus.VOIDED)
        if self.payments:
            raise ValidationError({"status": ["Cannot void an invoice with recorded payments"]})

        now = datetime.now(UTC)
        self.status = InvoiceStatus.VOIDED.value
        self.voided_at = now
        self.void_reason = reason
        self.updated_at = now
        self.raise_(
            InvoiceVoided(
                invoice_id=str(self.id),
                reason=reason,
                voided_at=now,
            )
        )
