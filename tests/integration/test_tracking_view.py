"""Integration tests for the tracking read model and its projections."""

import json
from datetime import UTC, datetime, timedelta

import pytest
from courier.booking.delivery import record_proof_of_delivery
from courier.booking.invoicing import mark_invoiced
from courier.booking.ledger import load_booking
from courier.incident.reporting import ReportIncident
from courier.incident.resolution import AssignIncident, ResolveIncident
from courier.projections.booking_status_summary import status_counts
from courier.projections.invoiceable_bookings import eligible_bookings
from courier.projections.shipment_tracking import ShipmentTracking
from courier.shared.errors import UnknownAWB
from courier.tracking.read_model import estimated_delivery, get_tracking_view
from protean import current_domain


def _report(awb, incident_type="Delivery Delay"):
    return current_domain.process(
        ReportIncident(awb=awb, incident_type=incident_type, description="Where is my parcel?"),
        asynchronous=False,
    )


class TestShipmentTrackingProjection:
    def test_created_with_booking(self, book):
        booking_id = book()
        view = current_domain.repository_for(ShipmentTracking).get(booking_id)
        assert view.status == "Booked"
        assert len(json.loads(view.history_json)) == 1
        assert json.loads(view.shipper_json)["company"] == "Rao Textiles"
        assert json.loads(view.financial_json)["total_amount"] == 32.45

    def test_follows_status_changes(self, book, advance):
        booking_id = book()
        advance(booking_id, "Picked Up", "In Transit")
        view = current_domain.repository_for(ShipmentTracking).get(booking_id)
        assert view.status == "In Transit"
        assert [entry["sequence"] for entry in json.loads(view.history_json)] == [1, 2, 3]
        assert view.revision == 3


class TestTrackingView:
    def test_internal_view(self, book, advance):
        booking_id = book()
        advance(booking_id, "Picked Up", "In Transit")
        view = get_tracking_view(booking_id)

        assert view.current_status == "In Transit"
        assert [item.status for item in view.history] == ["In Transit", "Picked Up", "Booked"]
        assert view.history[0].updated_by == "ops"
        assert view.financials["subtotal"] == 27.5
        assert view.shipper["email"] == "asha@raotextiles.example"
        assert view.consignee["name"] == "Kabir Mehta"

    def test_lookup_by_awb(self, book):
        booking = load_booking(book())
        assert get_tracking_view(booking.awb).booking_id == str(booking.id)

    def test_unknown_awb(self):
        with pytest.raises(UnknownAWB):
            get_tracking_view("AWB0000000000")

    def test_reading_twice_gives_the_same_view(self, book, advance):
        booking_id = book()
        advance(booking_id, "Picked Up")
        assert get_tracking_view(booking_id) == get_tracking_view(booking_id)
        assert get_tracking_view(booking_id, "public") == get_tracking_view(booking_id, "public")

    def test_public_view_hides_financials_and_contact_details(self, book, advance):
        booking_id = book()
        advance(booking_id, "Picked Up")
        view = get_tracking_view(booking_id, audience="public")

        assert view.financials is None
        assert set(view.shipper) == {"name", "company", "city"}
        assert set(view.consignee) == {"name", "city", "state", "country"}
        assert all(item.updated_by is None for item in view.history)
        assert view.current_status == "Picked Up"

    def test_live_consignee_reference_is_resolved(self, book, consignee_id):
        booking_id = book(consignee_details=None, consignee_id=consignee_id)
        view = get_tracking_view(booking_id)
        assert view.consignee["name"] == "Meera Iyer"
        assert view.consignee["city"] == "Bengaluru"

    def test_estimated_delivery_by_service_type(self, book):
        booking_id = book(service_type="Express")
        view = get_tracking_view(booking_id)
        assert view.estimated_delivery_date - view.booking_date == timedelta(days=1)

    def test_no_estimate_once_delivered(self, delivered_booking):
        assert get_tracking_view(delivered_booking()).estimated_delivery_date is None

    def test_estimate_defaults_to_three_days(self):
        booked = datetime(2026, 1, 1, tzinfo=UTC)
        assert estimated_delivery(booked, "Unknown Service", "Booked") == booked + timedelta(days=3)

    def test_delivered_to_after_proof_of_delivery(self, book, advance):
        booking_id = book()
        advance(booking_id, "Picked Up", "In Transit", "Out for Delivery")
        record_proof_of_delivery(booking_id, "Reception", "POD-77")
        view = get_tracking_view(booking_id, "public")
        assert view.current_status == "Delivered"
        assert view.delivered_to == "Reception"


class TestTrackingBeforeProjectionCatchesUp:
    @staticmethod
    def _drop_projection(booking_id):
        repo = current_domain.repository_for(ShipmentTracking)
        repo._dao.delete(repo.get(booking_id))

    def test_view_is_served_from_the_booking(self, book, advance):
        booking_id = book()
        advance(booking_id, "Picked Up")
        projected = get_tracking_view(booking_id)
        self._drop_projection(booking_id)

        view = get_tracking_view(booking_id)
        assert view.current_status == "Picked Up"
        assert view.history == projected.history
        assert view.financials == projected.financials
        assert view.shipper == projected.shipper
        assert view.consignee["name"] == "Kabir Mehta"
        assert view.revision == 2

    def test_lookup_by_awb_and_public_audience(self, book):
        booking = load_booking(book())
        self._drop_projection(str(booking.id))

        view = get_tracking_view(booking.awb, "public")
        assert view.booking_id == str(booking.id)
        assert view.financials is None
        assert view.revision is None
        assert view.open_exceptions == []

    def test_open_incidents_come_from_the_incident_store(self, book):
        booking = load_booking(book())
        _report(booking.awb)
        self._drop_projection(str(booking.id))

        (incident,) = get_tracking_view(str(booking.id)).open_exceptions
        assert incident.status == "Open"
        assert incident.type == "Delivery Delay"


class TestOpenExceptionsOnTrackingView:
    def test_open_incidents_are_listed_until_resolved(self, book):
        booking = load_booking(book())
        first = _report(booking.awb)
        _report(booking.awb, "Damaged Package")

        view = get_tracking_view(booking.awb)
        assert len(view.open_exceptions) == 2

        current_domain.process(
            AssignIncident(incident_id=first["incident_id"], assigned_to="agent-1"), asynchronous=False
        )
        statuses = {item.incident_id: item.status for item in get_tracking_view(booking.awb).open_exceptions}
        assert statuses[first["incident_id"]] == "Assigned"

        current_domain.process(
            ResolveIncident(incident_id=first["incident_id"], resolution="Located at hub"), asynchronous=False
        )
        remaining = get_tracking_view(booking.awb).open_exceptions
        assert [item.type for item in remaining] == ["Damaged Package"]

    def test_incident_leaves_status_history_alone(self, book):
        booking = load_booking(book())
        _report(booking.awb)
        view = get_tracking_view(booking.awb)
        assert view.current_status == "Booked"
        assert len(view.history) == 1


class TestInvoiceableBookings:
    def test_delivered_bookings_appear_until_invoiced(self, shipper_id, book, delivered_booking):
        delivered = delivered_booking()
        book()

        assert [str(record.booking_id) for record in eligible_bookings(shipper_id)] == [delivered]

        mark_invoiced(delivered, "inv-1")
        assert eligible_bookings(shipper_id) == []

    def test_filter_by_shipper(self, out_of_state_shipper_id, delivered_booking):
        delivered_booking()
        assert eligible_bookings(out_of_state_shipper_id) == []
        assert len(eligible_bookings()) == 1


class TestBookingStatusSummary:
    def test_counts_per_status(self, book, advance):
        first, second, _ = book(), book(), book()
        advance(first, "Picked Up")
        advance(second, "Cancelled")

        counts = status_counts()
        assert counts["Booked"] == 1
        assert counts["Picked Up"] == 1
        assert counts["Cancelled"] == 1
        assert counts["Delivered"] == 0
