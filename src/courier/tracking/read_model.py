"""Tracking read model behind the booking detail view and the public tracking page.

Both audiences get the same shape. The public view drops the financial
summary and who entered each history line, and trims shipper and consignee
down to names and places.
"""

import json
from datetime import datetime, timedelta
from enum import Enum

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain
from pydantic import BaseModel, ConfigDict

from courier.booking.booking import Booking, BookingStatus
from courier.party.consignee import Consignee
from courier.projections.shipment_tracking import ShipmentTracking, record_from_booking
from courier.shared.errors import UnknownAWB
from courier.shared.timestamps import as_utc

ETA_OFFSET_DAYS = {
    "Same Day": 0,
    "Express": 1,
    "Overnight": 1,
    "Standard": 3,
    "Economy": 5,
    "International": 7,
}
DEFAULT_ETA_OFFSET_DAYS = 3

# No estimate is shown once a shipment reaches one of these
_NO_ETA_STATUSES = {BookingStatus.DELIVERED.value, BookingStatus.CANCELLED.value}

_PUBLIC_SHIPPER_FIELDS = ("name", "company", "city")
_PUBLIC_CONSIGNEE_FIELDS = ("name", "city", "state", "country")


class Audience(Enum):
    INTERNAL = "internal"
    PUBLIC = "public"


class TrackingHistoryItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    sequence: int
    status: str
    timestamp: datetime | None = None
    location: str | None = None
    remarks: str | None = None
    updated_by: str | None = None


class TrackingIncident(BaseModel):
    model_config = ConfigDict(frozen=True)

    incident_id: str
    exception_number: str
    type: str
    priority: str
    status: str
    reported_at: datetime | None = None


class TrackingView(BaseModel):
    model_config = ConfigDict(frozen=True)

    booking_id: str
    awb: str
    current_status: str
    service_type: str | None = None
    booking_date: datetime | None = None
    estimated_delivery_date: datetime | None = None
    history: list[TrackingHistoryItem]
    shipper: dict | None = None
    consignee: dict | None = None
    financials: dict | None = None
    open_exceptions: list[TrackingIncident]
    delivered_to: str | None = None
    revision: int | None = None  # internal only; the value a status change must quote


def estimated_delivery(booking_date: datetime | None, service_type: str | None, status: str) -> datetime | None:
    if booking_date is None or status in _NO_ETA_STATUSES:
        return None
    offset = ETA_OFFSET_DAYS.get(service_type or "", DEFAULT_ETA_OFFSET_DAYS)
    return as_utc(booking_date) + timedelta(days=offset)


def find_tracking(awb_or_id: str) -> ShipmentTracking:
    """Resolve by booking id first, then by AWB (case-sensitive).

    A booking the projection has not caught up with yet is read from the
    aggregate, so a freshly created booking is trackable straight away.
    """
    repo = current_domain.repository_for(ShipmentTracking)
    try:
        return repo.get(awb_or_id)
    except ObjectNotFoundError:
        pass
    results = repo._dao.query.filter(awb=awb_or_id).all().items
    if results:
        return results[0]

    bookings = current_domain.repository_for(Booking)
    try:
        booking = bookings.get(awb_or_id)
    except ObjectNotFoundError:
        booking = bookings.get_by_awb(awb_or_id)
    if booking is None:
        raise UnknownAWB(awb_or_id)
    return record_from_booking(booking)


def _consignee(record: ShipmentTracking) -> dict | None:
    """Same shape whether the booking embedded a snapshot or referenced a saved consignee."""
    snapshot = json.loads(record.consignee_json) if record.consignee_json else None
    if record.consignee_id:
        try:
            return current_domain.repository_for(Consignee).get(str(record.consignee_id)).summary()
        except ObjectNotFoundError:
            return snapshot
    return snapshot


def get_tracking_view(awb_or_id: str, audience: str = Audience.INTERNAL.value) -> TrackingView:
    audience = Audience(audience)
    record = find_tracking(awb_or_id)
    public = audience == Audience.PUBLIC

    entries = json.loads(record.history_json) if record.history_json else []
    history = [
        TrackingHistoryItem(
            sequence=entry["sequence"],
            status=entry["status"],
            timestamp=entry.get("timestamp"),
            location=entry.get("location"),
            remarks=entry.get("remarks"),
            updated_by=None if public else entry.get("updated_by"),
        )
        for entry in sorted(entries, key=lambda entry: entry["sequence"], reverse=True)
    ]

    shipper = json.loads(record.shipper_json) if record.shipper_json else None
    if shipper and public:
        shipper = {key: shipper.get(key) for key in _PUBLIC_SHIPPER_FIELDS}

    consignee = _consignee(record)
    if consignee and public:
        consignee = {key: consignee.get(key) for key in _PUBLIC_CONSIGNEE_FIELDS}

    incidents = json.loads(record.open_incidents_json) if record.open_incidents_json else []

    return TrackingView(
        booking_id=str(record.booking_id),
        awb=record.awb,
        current_status=record.status,
        service_type=record.service_type,
        booking_date=as_utc(record.booking_date),
        estimated_delivery_date=estimated_delivery(record.booking_date, record.service_type, record.status),
        history=history,
        shipper=shipper,
        consignee=consignee,
        financials=None if public else (json.loads(record.financial_json) if record.financial_json else None),
        open_exceptions=[TrackingIncident(**incident) for incident in incidents],
        delivered_to=record.delivered_to,
        revision=None if public else record.revision,
    )
