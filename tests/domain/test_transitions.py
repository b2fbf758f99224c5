"""Status transition validator: the table, remarks rules and check order."""

from datetime import UTC, datetime, timedelta

import pytest
from courier.booking.booking import Booking, BookingStatus
from courier.booking.transitions import (
    ALLOWED_TRANSITIONS,
    TERMINAL_STATUSES,
    StatusChange,
    allowed_next_statuses,
    attempt_transition,
    is_terminal,
)
from courier.pricing.charges import ChargeInput, compute_charges
from courier.pricing.config import PricingConfig
from courier.shared.errors import ConcurrentModification, InvalidTransition, MissingRemarks
from protean.exceptions import ValidationError

BOOKED_AT = datetime(2026, 3, 2, 9, 0, tzinfo=UTC)


def _booking_in(status: BookingStatus) -> Booking:
    booking = Booking.create(
        awb="AWB2600000001",
        shipper_id="shp-1",
        charges=compute_charges(ChargeInput(weight=2.5, payment_mode="Prepaid"), PricingConfig()),
        weight=2.5,
        description="Books",
        consignee_details={"name": "Kabir Mehta", "city": "Kolkata"},
        payment_mode="Prepaid",
        booked_at=BOOKED_AT,
    )
    if status != BookingStatus.BOOKED:
        # Jump straight to ``status``; only the validator is under test here
        booking.apply_status_change(
            StatusChange(
                booking_id=str(booking.id),
                previous_status=booking.status,
                status=status.value,
                timestamp=BOOKED_AT + timedelta(hours=1),
                base_revision=booking.revision,
            )
        )
    return booking


class TestTransitionTable:
    def test_terminal_statuses(self):
        assert TERMINAL_STATUSES == {BookingStatus.DELIVERED, BookingStatus.CANCELLED, BookingStatus.RETURNED}

    def test_every_status_has_an_entry(self):
        assert set(ALLOWED_TRANSITIONS) == set(BookingStatus)

    def test_allowed_next_statuses_in_lifecycle_order(self):
        assert allowed_next_statuses("Booked") == ["Picked Up", "Cancelled", "On Hold"]
        assert allowed_next_statuses("On Hold") == ["Picked Up", "In Transit", "Out for Delivery", "Cancelled"]
        assert allowed_next_statuses("Delivered") == []

    @pytest.mark.parametrize("status", ["Delivered", "Cancelled", "Returned"])
    def test_is_terminal(self, status):
        assert is_terminal(status)

    def test_in_transit_is_not_terminal(self):
        assert not is_terminal("In Transit")


class TestAttemptTransition:
    @pytest.mark.parametrize(
        "current, target",
        [(current, target) for current, targets in ALLOWED_TRANSITIONS.items() for target in targets],
    )
    def test_every_listed_edge_is_accepted(self, current, target):
        change = attempt_transition(_booking_in(current), target.value, remarks="Reason given")
        assert change.previous_status == current.value
        assert change.status == target.value

    @pytest.mark.parametrize(
        "current, target",
        [
            (current, target)
            for current in BookingStatus
            for target in BookingStatus
            if target not in ALLOWED_TRANSITIONS[current]
        ],
    )
    def test_every_unlisted_edge_is_rejected(self, current, target):
        with pytest.raises(InvalidTransition) as exc:
            attempt_transition(_booking_in(current), target.value, remarks="Reason given")
        assert exc.value.current == current.value
        assert exc.value.proposed == target.value
        assert exc.value.allowed == allowed_next_statuses(current)

    def test_terminal_rejection_lists_no_alternatives(self):
        with pytest.raises(InvalidTransition) as exc:
            attempt_transition(_booking_in(BookingStatus.DELIVERED), "In Transit")
        assert exc.value.allowed == []
        assert "terminal" in exc.value.messages["status"][0]

    def test_delivered_needs_no_remarks(self):
        change = attempt_transition(_booking_in(BookingStatus.OUT_FOR_DELIVERY), "Delivered")
        assert change.status == "Delivered"
        assert change.remarks is None

    @pytest.mark.parametrize("remarks", [None, "", "   "])
    def test_failed_delivery_needs_remarks(self, remarks):
        with pytest.raises(MissingRemarks):
            attempt_transition(_booking_in(BookingStatus.OUT_FOR_DELIVERY), "Failed Delivery", remarks=remarks)

    def test_on_hold_needs_remarks(self):
        with pytest.raises(MissingRemarks):
            attempt_transition(_booking_in(BookingStatus.BOOKED), "On Hold")

    def test_returned_needs_remarks(self):
        with pytest.raises(MissingRemarks):
            attempt_transition(_booking_in(BookingStatus.FAILED_DELIVERY), "Returned")

    def test_cancelled_does_not_need_remarks(self):
        change = attempt_transition(_booking_in(BookingStatus.BOOKED), "Cancelled")
        assert change.status == "Cancelled"

    def test_remarks_are_stripped(self):
        change = attempt_transition(
            _booking_in(BookingStatus.OUT_FOR_DELIVERY), "Failed Delivery", remarks="  Door locked  "
        )
        assert change.remarks == "Door locked"

    def test_unknown_status_is_a_validation_error(self):
        with pytest.raises(ValidationError) as exc:
            attempt_transition(_booking_in(BookingStatus.BOOKED), "Teleported")
        assert not isinstance(exc.value, InvalidTransition)
        assert "status" in exc.value.messages

    def test_stale_expected_revision_is_checked_first(self):
        booking = _booking_in(BookingStatus.DELIVERED)
        with pytest.raises(ConcurrentModification) as exc:
            attempt_transition(booking, "Teleported", expected_revision=booking.revision + 5)
        assert exc.value.actual_revision == booking.revision

    def test_invalid_transition_is_reported_before_missing_remarks(self):
        with pytest.raises(InvalidTransition):
            attempt_transition(_booking_in(BookingStatus.BOOKED), "Failed Delivery")

    def test_change_carries_base_revision(self):
        booking = _booking_in(BookingStatus.BOOKED)
        change = attempt_transition(booking, "Picked Up")
        assert change.base_revision == booking.revision

    def test_validator_does_not_touch_the_booking(self):
        booking = _booking_in(BookingStatus.BOOKED)
        attempt_transition(booking, "Picked Up")
        assert booking.status == "Booked"
        assert len(booking.status_history) == 1


class TestSideEffects:
    def test_picked_up_sets_pickup_date(self):
        at = BOOKED_AT + timedelta(hours=2)
        change = attempt_transition(_booking_in(BookingStatus.BOOKED), "Picked Up", at=at)
        assert change.side_effects == {"pickup_date": at}

    def test_failed_delivery_counts_an_attempt(self):
        at = BOOKED_AT + timedelta(days=2)
        change = attempt_transition(
            _booking_in(BookingStatus.OUT_FOR_DELIVERY), "Failed Delivery", remarks="Nobody home", at=at
        )
        assert change.side_effects == {"count_delivery_attempt": True, "last_attempt_date": at}

    def test_returned_records_reason(self):
        change = attempt_transition(_booking_in(BookingStatus.FAILED_DELIVERY), "Returned", remarks="Refused")
        assert change.side_effects["return_reason"] == "Refused"

    def test_naive_timestamps_are_treated_as_utc(self):
        change = attempt_transition(_booking_in(BookingStatus.BOOKED), "Picked Up", at=datetime(2026, 3, 2, 12, 0))
        assert change.timestamp.tzinfo is not None
