"""BDD tests for invoicing delivered bookings."""

import json

from courier.booking.ledger import load_booking
from courier.invoice.generation import GenerateInvoice
from courier.projections.invoiceable_bookings import eligible_bookings
from courier.shared.errors import AlreadyInvoiced, NotEligibleForInvoicing
from protean import current_domain
from pytest_bdd import scenarios, then, when

scenarios("features/invoicing.feature")


def _generate(shipper_id, booking_id):
    return current_domain.process(
        GenerateInvoice(shipper_id=shipper_id, booking_ids=json.dumps([booking_id])),
        asynchronous=False,
    )


@when("an invoice is generated for the booking", target_fixture="invoice")
def generate_invoice(shipper_id, booking_id, error):
    try:
        return _generate(shipper_id, booking_id)
    except NotEligibleForInvoicing as exc:
        error["exc"] = exc
        return None


@when("an invoice is generated for the booking again")
def generate_invoice_again(shipper_id, booking_id, error):
    try:
        _generate(shipper_id, booking_id)
    except AlreadyInvoiced as exc:
        error["exc"] = exc


@then("the invoice is created")
def invoice_created(invoice):
    assert invoice["invoice_number"]


@then("the booking is marked as invoiced")
def booking_invoiced(booking_id):
    assert load_booking(booking_id).invoice_generated is True


@then("the booking is no longer listed as eligible")
def not_listed(shipper_id):
    assert eligible_bookings(shipper_id) == []


@then("the second invoice is rejected as already invoiced")
def rejected_already_invoiced(error):
    assert isinstance(error["exc"], AlreadyInvoiced)


@then("the invoice is rejected as not eligible")
def rejected_not_eligible(error):
    assert isinstance(error["exc"], NotEligibleForInvoicing)
