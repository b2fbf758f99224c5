"""Shipment tracking: the booking detail and public tracking page view.

One record per booking, keyed by booking id and searchable by AWB. History
entries are kept in sequence order; a redelivered status event whose
sequence is already recorded is ignored.
"""

import json

from protean.core.projector import on
from protean.exceptions import ObjectNotFoundError
from protean.fields import Boolean, DateTime, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from courier.booking.booking import Booking
from courier.booking.events import (
    BookingCreated,
    BookingInvoiced,
    BookingStatusChanged,
    ProofOfDeliveryRecorded,
)
from courier.domain import courier
from courier.incident.events import IncidentAssigned, IncidentReported, IncidentResolved
from courier.incident.incident import Incident
from courier.party.shipper import Shipper


@courier.projection
class ShipmentTracking:
    booking_id = Identifier(identifier=True, required=True)
    awb = String(required=True, max_length=20)
    status = String(required=True)
    service_type = String()
    payment_mode = String()
    booking_date = DateTime()
    shipper_id = Identifier()
    consignee_id = Identifier()
    consignee_json = Text()  # snapshot taken at booking time, empty for live references
    shipper_json = Text()
    financial_json = Text()
    history_json = Text()  # JSON list ordered by sequence
    open_incidents_json = Text()
    revision = Integer(default=1)
    invoice_generated = Boolean(default=False)
    delivered_to = String()
    updated_at = DateTime()


def _iso(value):
    return value.isoformat() if value else None


_FINANCIAL_FIELDS = (
    "currency",
    "payment_mode",
    "declared_value",
    "cod_amount",
    "chargeable_weight",
    "shipping_charges",
    "insurance_charges",
    "cod_charges",
    "fuel_surcharge",
    "subtotal",
    "tax_amount",
    "total_amount",
)


def financial_summary(source) -> dict:
    """Charges as shown on the internal view; ``source`` is a booking or its creation event."""
    return {field: getattr(source, field) for field in _FINANCIAL_FIELDS}


def _shipper_summary(shipper_id: str) -> dict | None:
    try:
        shipper = current_domain.repository_for(Shipper).get(shipper_id)
    except ObjectNotFoundError:
        return None
    return shipper.contact_summary()


@courier.projector(projector_for=ShipmentTracking, aggregates=[Booking, Incident])
class ShipmentTrackingProjector:
    @on(BookingCreated)
    def on_booking_created(self, event: BookingCreated):
        history = [
            {
                "sequence": 1,
                "status": event.status,
                "timestamp": _iso(event.booking_date),
                "location": event.location or None,
                "remarks": "Booking created",
                "updated_by": event.booked_by or None,
            }
        ]
        financials = financial_summary(event)
        current_domain.repository_for(ShipmentTracking).add(
            ShipmentTracking(
                booking_id=event.booking_id,
                awb=event.awb,
                status=event.status,
                service_type=event.service_type,
                payment_mode=event.payment_mode,
                booking_date=event.booking_date,
                shipper_id=event.shipper_id,
                consignee_id=event.consignee_id,
                consignee_json=event.consignee_details or "",
                shipper_json=json.dumps(_shipper_summary(str(event.shipper_id))),
                financial_json=json.dumps(financials),
                history_json=json.dumps(history),
                open_incidents_json=json.dumps([]),
                revision=1,
                updated_at=event.booking_date,
            )
        )

    @on(BookingStatusChanged)
    def on_booking_status_changed(self, event: BookingStatusChanged):
        repo = current_domain.repository_for(ShipmentTracking)
        view = repo.get(event.booking_id)

        history = json.loads(view.history_json) if view.history_json else []
        if any(entry["sequence"] == event.sequence for entry in history):
            return

        history.append(
            {
                "sequence": event.sequence,
                "status": event.status,
                "timestamp": _iso(event.occurred_at),
                "location": event.location or None,
                "remarks": event.remarks or None,
                "updated_by": event.updated_by or None,
            }
        )
        history.sort(key=lambda entry: entry["sequence"])
        view.history_json = json.dumps(history)
        view.status = history[-1]["status"]
        view.revision = event.revision
        view.updated_at = event.occurred_at
        repo.add(view)

    @on(ProofOfDeliveryRecorded)
    def on_proof_of_delivery_recorded(self, event: ProofOfDeliveryRecorded):
        repo = current_domain.repository_for(ShipmentTracking)
        view = repo.get(event.booking_id)
        view.delivered_to = event.delivered_to
        repo.add(view)

    @on(BookingInvoiced)
    def on_booking_invoiced(self, event: BookingInvoiced):
        repo = current_domain.repository_for(ShipmentTracking)
        view = repo.get(event.booking_id)
        view.invoice_generated = True
        repo.add(view)

    @on(IncidentReported)
    def on_incident_reported(self, event: IncidentReported):
        repo = current_domain.repository_for(ShipmentTracking)
        view = repo.get(event.booking_id)
        incidents = json.loads(view.open_incidents_json) if view.open_incidents_json else []
        if any(item["incident_id"] == str(event.incident_id) for item in incidents):
            return
        incidents.append(
            {
                "incident_id": str(event.incident_id),
                "exception_number": event.exception_number,
                "type": event.incident_type,
                "priority": event.priority,
                "status": "Open",
                "reported_at": _iso(event.reported_at),
            }
        )
        view.open_incidents_json = json.dumps(incidents)
        repo.add(view)

    @on(IncidentAssigned)
    def on_incident_assigned(self, event: IncidentAssigned):
        repo = current_domain.repository_for(ShipmentTracking)
        view = repo.get(event.booking_id)
        incidents = json.loads(view.open_incidents_json) if view.open_incidents_json else []
        for item in incidents:
            if item["incident_id"] == str(event.incident_id):
                item["status"] = "Assigned"
        view.open_incidents_json = json.dumps(incidents)
        repo.add(view)

    @on(IncidentResolved)
    def on_incident_resolved(self, event: IncidentResolved):
        repo = current_domain.repository_for(ShipmentTracking)
        view = repo.get(event.booking_id)
        incidents = json.loads(view.open_incidents_json) if view.open_incidents_json else []
        view.open_incidents_json = json.dumps(
            [item for item in incidents if item["incident_id"] != str(event.incident_id)]
        )
        repo.add(view)


def record_from_booking(booking: Booking) -> ShipmentTracking:
    """An unsaved tracking record built from the aggregate itself.

    Serves reads that arrive before the projector has handled the booking's
    latest events, which happens when events are processed asynchronously.
    """
    history = [
        {
            "sequence": entry.sequence,
            "status": entry.status,
            "timestamp": _iso(entry.timestamp),
            "location": entry.location or None,
            "remarks": entry.remarks or None,
            "updated_by": entry.updated_by or None,
        }
        for entry in booking.ordered_history()
    ]
    incidents = [
        {
            "incident_id": str(incident.id),
            "exception_number": incident.exception_number,
            "type": incident.incident_type,
            "priority": incident.priority,
            "status": incident.status,
            "reported_at": _iso(incident.reported_at),
        }
        for incident in current_domain.repository_for(Incident).find_open_by_booking(str(booking.id))
    ]
    snapshot = booking.consignee_snapshot()
    return ShipmentTracking(
        booking_id=str(booking.id),
        awb=booking.awb,
        status=booking.status,
        service_type=booking.service_type,
        payment_mode=booking.payment_mode,
        booking_date=booking.booking_date,
        shipper_id=booking.shipper_id,
        consignee_id=booking.consignee_id,
        consignee_json=json.dumps(snapshot) if snapshot else "",
        shipper_json=json.dumps(_shipper_summary(str(booking.shipper_id))),
        financial_json=json.dumps(financial_summary(booking)),
        history_json=json.dumps(history),
        open_incidents_json=json.dumps(incidents),
        revision=booking.revision,
        invoice_generated=bool(booking.invoice_generated),
        delivered_to=booking.delivered_to,
        updated_at=booking.updated_at,
    )
