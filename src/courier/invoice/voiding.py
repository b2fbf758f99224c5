"""Invoice voiding: command and handler."""

from protean import handle
from protean.core.unit_of_work import UnitOfWork
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from courier.domain import courier
from courier.invoice.invoice import Invoice
from courier.shared.locks import invoice_locks


@courier.command(part_of="Invoice")
class VoidInvoice:
    """Void an invoice. Its bookings remain invoiced."""

    invoice_id = Identifier(required=True)
    reason = String(required=True, max_length=500)


@courier.command_handler(part_of=Invoice)
class VoidInvoiceHandler:
    @handle(VoidInvoice)
    def void_invoice(self, command):
        invoice_id = str(command.invoice_id)
        with invoice_locks.hold(invoice_id):
            with UnitOfWork():
                repo = current_domain.repository_for(Invoice)
                invoice = repo.get(invoice_id)
                invoice.void(reason=command.reason)
                repo.add(invoice)
