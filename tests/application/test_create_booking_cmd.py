"""Application tests for booking creation via domain.process()."""

import json
import re

import pytest
from courier.booking.booking import Booking
from courier.booking.creation import BulkCreateBookings, CreateBooking
from courier.booking.ledger import ledger
from courier.party.shipper import Shipper
from protean import current_domain
from protean.exceptions import ObjectNotFoundError, ValidationError


class TestCreateBooking:
    def test_returns_id_and_awb(self, book):
        booking_id = book()
        booking = current_domain.repository_for(Booking).get(booking_id)
        assert re.fullmatch(r"AWB\d{10}", booking.awb)

    def test_new_booking_reads_back_as_booked_with_one_entry(self, book):
        booking_id = book()
        booking = current_domain.repository_for(Booking).get(booking_id)
        history = ledger.read(booking_id)

        assert booking.status == "Booked"
        assert len(history) == 1
        assert history[0].sequence == 1
        assert history[0].status == "Booked"
        assert history[0].location == "Mumbai Hub"

    def test_charges_are_stored_on_the_booking(self, book):
        booking = current_domain.repository_for(Booking).get(book())
        assert booking.shipping_charges == 25.0
        assert booking.fuel_surcharge == 2.5
        assert booking.subtotal == 27.5
        assert booking.tax_amount == 4.95
        assert booking.total_amount == 32.45

    def test_dimensions_drive_chargeable_weight(self, book):
        booking_id = book(weight=1.0, length=50, width=40, height=30)
        booking = current_domain.repository_for(Booking).get(booking_id)
        assert booking.chargeable_weight == 12.0
        assert booking.dimensions.length == 50

    def test_live_consignee_reference(self, book, consignee_id):
        booking_id = book(consignee_details=None, consignee_id=consignee_id)
        booking = current_domain.repository_for(Booking).get(booking_id)
        assert str(booking.consignee_id) == consignee_id

    def test_unknown_shipper_is_rejected(self, book):
        with pytest.raises(ObjectNotFoundError):
            book(shipper_id="no-such-shipper")

    def test_unknown_consignee_is_rejected(self, book):
        with pytest.raises(ObjectNotFoundError):
            book(consignee_details=None, consignee_id="no-such-consignee")

    def test_consignee_is_required(self, book):
        with pytest.raises(ValidationError) as exc:
            book(consignee_details=None)
        assert "consignee" in exc.value.messages

    def test_zero_weight_is_rejected(self, book):
        with pytest.raises(ValidationError) as exc:
            book(weight=0)
        assert "weight" in exc.value.messages

    def test_malformed_consignee_json_is_rejected(self, book):
        with pytest.raises(ValidationError):
            book(consignee_details="{not json")

    def test_shipper_statistics_follow_bookings(self, book, shipper_id):
        book()
        book()
        shipper = current_domain.repository_for(Shipper).get(shipper_id)
        assert shipper.total_bookings == 2
        assert shipper.total_revenue == 64.9
        assert shipper.last_booking_date is not None


class TestBulkCreateBookings:
    def _row(self, shipper_id, **overrides):
        row = {
            "shipper_id": shipper_id,
            "consignee_details": {"name": "Kabir Mehta", "city": "Kolkata"},
            "weight": 1.0,
            "description": "Documents",
            "payment_mode": "Prepaid",
        }
        row.update(overrides)
        return row

    def test_bad_rows_do_not_abort_good_ones(self, shipper_id):
        rows = [
            self._row(shipper_id),
            self._row(shipper_id, weight=-1),
            self._row("no-such-shipper"),
            self._row(shipper_id, colour="red"),
            self._row(shipper_id, service_type="Express"),
        ]
        result = current_domain.process(
            BulkCreateBookings(rows=json.dumps(rows), booked_by="bulk-upload"), asynchronous=False
        )

        assert [item["row"] for item in result["created"]] == [1, 5]
        assert [item["row"] for item in result["failed"]] == [2, 3, 4]
        assert "colour" in result["failed"][2]["error"]["row"][0]

        bookings = current_domain.repository_for(Booking).find_by_shipper(shipper_id)
        assert len(bookings) == 2
        assert {booking.booked_by for booking in bookings} == {"bulk-upload"}

    def test_awbs_are_unique_within_a_batch(self, shipper_id):
        rows = [self._row(shipper_id) for _ in range(5)]
        result = current_domain.process(BulkCreateBookings(rows=json.dumps(rows)), asynchronous=False)
        awbs = [item["awb"] for item in result["created"]]
        assert len(set(awbs)) == 5

    def test_rows_must_be_a_list(self):
        with pytest.raises(ValidationError):
            current_domain.process(BulkCreateBookings(rows=json.dumps({"weight": 1})), asynchronous=False)

    def test_non_object_row_is_reported(self, shipper_id):
        rows = ["not a row", self._row(shipper_id)]
        result = current_domain.process(BulkCreateBookings(rows=json.dumps(rows)), asynchronous=False)
        assert result["failed"][0]["row"] == 1
        assert len(result["created"]) == 1

    def test_unknown_shipper_row_is_reported_with_a_message(self, shipper_id):
        rows = [self._row("no-such-shipper"), self._row(shipper_id)]
        result = current_domain.process(BulkCreateBookings(rows=json.dumps(rows)), asynchronous=False)

        assert [item["row"] for item in result["created"]] == [2]
        failure = result["failed"][0]
        assert failure["row"] == 1
        assert "no-such-shipper" in failure["error"]["_entity"][0]
