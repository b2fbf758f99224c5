"""Invoice payment capture: command and handler.

Payment notifications arrive from gateway webhooks that may be delivered more
than once. A payment whose reference is already on the invoice is ignored.
"""

import structlog
from protean import handle
from protean.core.unit_of_work import UnitOfWork
from protean.fields import Float, Identifier, String, Text
from protean.utils.globals import current_domain

from courier.domain import courier
from courier.invoice.invoice import Invoice
from courier.shared.locks import invoice_locks

logger = structlog.get_logger(__name__)


@courier.command(part_of="Invoice")
class RecordInvoicePayment:
    invoice_id = Identifier(required=True)
    reference = String(required=True, max_length=100)
    amount = Float(required=True)
    payment_mode = String(max_length=30)
    remarks = Text()


@courier.command_handler(part_of=Invoice)
class RecordInvoicePaymentHandler:
    @handle(RecordInvoicePayment)
    def record_invoice_payment(self, command: RecordInvoicePayment) -> dict:
        invoice_id = str(command.invoice_id)
        # Serialized per invoice so a webhook delivered twice at once is applied once
        with invoice_locks.hold(invoice_id):
            with UnitOfWork():
                repo = current_domain.repository_for(Invoice)
                invoice = repo.get(invoice_id)
                applied = invoice.record_payment(
                    reference=command.reference,
                    amount=command.amount,
                    payment_mode=command.payment_mode,
                    remarks=command.remarks,
                )
                if applied:
                    repo.add(invoice)

        if applied:
            logger.info(
                "Invoice payment recorded",
                invoice_id=str(invoice.id),
                reference=command.reference,
                balance_amount=invoice.balance_amount,
                status=invoice.status,
            )
        else:
            logger.info(
                "Duplicate invoice payment ignored",
                invoice_id=str(invoice.id),
                reference=command.reference,
            )
        return {"applied": applied, "status": invoice.status, "balance_amount": invoice.balance_amount}
