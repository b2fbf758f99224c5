"""Stale booking detection."""

from datetime import UTC, datetime, timedelta

from courier.booking.ledger import load_booking
from courier.booking.staleness import DetectStaleBookings
from protean import current_domain


def _detect(**kwargs):
    return current_domain.process(DetectStaleBookings(**kwargs), asynchronous=False)


def test_fresh_bookings_are_not_stale(book):
    book()
    assert _detect() == []


def test_idle_bookings_past_the_threshold_are_reported(book, advance):
    idle = book()
    advance(idle, "Picked Up", "In Transit")

    result = _detect(as_of=datetime.now(UTC) + timedelta(hours=100))

    assert [item["booking_id"] for item in result] == [idle]
    assert result[0]["status"] == "In Transit"
    assert result[0]["idle_hours"] >= 99


def test_terminal_bookings_are_never_stale(delivered_booking):
    delivered_booking()
    assert _detect(as_of=datetime.now(UTC) + timedelta(days=30)) == []


def test_detection_is_read_only(book):
    booking_id = book()
    _detect(as_of=datetime.now(UTC) + timedelta(days=10))
    booking = load_booking(booking_id)
    assert booking.status == "Booked"
    assert booking.revision == 1


def test_threshold_is_configurable(book):
    book()
    as_of = datetime.now(UTC) + timedelta(hours=5)
    assert _detect(as_of=as_of, idle_threshold_hours=4) != []
    assert _detect(as_of=as_of, idle_threshold_hours=6) == []
