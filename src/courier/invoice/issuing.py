"""Invoice issuing: command and handler."""

from protean import handle
from protean.core.unit_of_work import UnitOfWork
from protean.fields import Identifier
from protean.utils.globals import current_domain

from courier.domain import courier
from courier.invoice.invoice import Invoice
from courier.shared.locks import invoice_locks


@courier.command(part_of="Invoice")
class IssueInvoice:
    invoice_id = Identifier(required=True)


@courier.command_handler(part_of=Invoice)
class IssueInvoiceHandler:
    @handle(IssueInvoice)
    def issue_invoice(self, command):
        invoice_id = str(command.invoice_id)
        with invoice_locks.hold(invoice_id):
            with UnitOfWork():
                repo = current_domain.repository_for(Invoice)
                invoice = repo.get(invoice_id)
                invoice.issue()
                repo.add(invoice)
