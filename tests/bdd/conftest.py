"""Shared BDD fixtures and step definitions for the booking lifecycle."""

import pytest
from courier.booking.invoicing import is_eligible_for_invoicing
from courier.booking.ledger import ledger, load_booking
from courier.booking.status import change_booking_status
from courier.shared.errors import InvalidTransition, MissingRemarks
from pytest_bdd import given, parsers, then, when


@pytest.fixture()
def error():
    """Container for captured domain errors."""
    return {"exc": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given("a new booking", target_fixture="booking_id")
def new_booking(book):
    return book()


@given("a booking out for delivery", target_fixture="booking_id")
def booking_out_for_delivery(book, advance):
    booking_id = book()
    advance(booking_id, "Picked Up", "In Transit", "Out for Delivery")
    return booking_id


@given("a delivered booking", target_fixture="booking_id")
def delivered(delivered_booking):
    return delivered_booking()


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
def _move(booking_id, status, remarks, error):
    try:
        change_booking_status(
            booking_id,
            status,
            location="Hub",
            remarks=remarks,
            updated_by="ops",
            expected_revision=load_booking(booking_id).revision,
        )
    except (InvalidTransition, MissingRemarks) as exc:
        error["exc"] = exc


@when(parsers.re(r'the booking is moved to "(?P<status>[^"]+)"$'))
def move_booking(booking_id, status, error):
    _move(booking_id, status, "Updated by hub", error)


@when(parsers.cfparse('the booking is moved to "{status}" with remarks "{remarks}"'))
def move_booking_with_remarks(booking_id, status, remarks, error):
    _move(booking_id, status, remarks, error)


@when(parsers.cfparse('the booking is moved to "{status}" without remarks'))
def move_booking_without_remarks(booking_id, status, error):
    _move(booking_id, status, None, error)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the booking status is "{status}"'))
def booking_status_is(booking_id, status):
    assert load_booking(booking_id).status == status


@then(parsers.cfparse("the history has {count:d} entry"))
@then(parsers.cfparse("the history has {count:d} entries"))
def history_length(booking_id, count):
    assert len(ledger.read(booking_id)) == count


@then("the move is rejected as an invalid transition")
def rejected_invalid_transition(error):
    assert isinstance(error["exc"], InvalidTransition)


@then("the move is rejected for missing remarks")
def rejected_missing_remarks(error):
    assert isinstance(error["exc"], MissingRemarks)


@then("the booking can be invoiced")
def can_be_invoiced(booking_id):
    assert is_eligible_for_invoicing(load_booking(booking_id))


@then("the booking cannot be invoiced")
def cannot_be_invoiced(booking_id):
    assert not is_eligible_for_invoicing(load_booking(booking_id))
