"""Incident aggregate (CQRS): a customer- or staff-reported exception on a shipment.

Incidents hang off a booking by id and AWB but never change the booking.
They can be reported against a booking in any status, including terminal
ones.

State Machine:
    OPEN → ASSIGNED → RESOLVED (terminal)
    OPEN → RESOLVED
"""

import uuid
from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, HasMany, Identifier, String, Text, ValueObject

from courier.domain import courier
from courier.incident.events import IncidentAssigned, IncidentNoteAdded, IncidentReported, IncidentResolved


class IncidentType(Enum):
    DAMAGED_PACKAGE = "Damaged Package"
    MISSING_ITEMS = "Missing Items"
    WRONG_ADDRESS = "Wrong Address"
    DELIVERY_DELAY = "Delivery Delay"
    PACKAGE_LOST = "Package Lost"
    DELIVERY_REFUSED = "Delivery Refused"
    WRONG_ITEM_DELIVERED = "Wrong Item Delivered"
    CUSTOMER_NOT_AVAILABLE = "Customer Not Available"
    WEATHER_DELAY = "Weather Delay"
    VEHICLE_BREAKDOWN = "Vehicle Breakdown"
    OTHER = "Other"


class IncidentPriority(Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    URGENT = "Urgent"


class IncidentStatus(Enum):
    OPEN = "Open"
    ASSIGNED = "Assigned"
    RESOLVED = "Resolved"


class ReporterRelationship(Enum):
    SHIPPER = "Shipper"
    CONSIGNEE = "Consignee"
    SYSTEM = "System"
    AGENT = "Agent"
    CUSTOMER_SUPPORT = "Customer Support"


_HIGH_PRIORITY_TYPES = {
    IncidentType.PACKAGE_LOST,
    IncidentType.DAMAGED_PACKAGE,
    IncidentType.MISSING_ITEMS,
}

OPEN_STATUSES = {IncidentStatus.OPEN.value, IncidentStatus.ASSIGNED.value}


def derive_priority(incident_type: str) -> str:
    kind = IncidentType(incident_type)
    if kind in _HIGH_PRIORITY_TYPES:
        return IncidentPriority.HIGH.value
    if kind == IncidentType.DELIVERY_REFUSED:
        return IncidentPriority.URGENT.value
    return IncidentPriority.MEDIUM.value


def new_exception_number() -> str:
    return f"EXC-{uuid.uuid4().hex[:8].upper()}"


@courier.value_object(part_of="Incident")
class ReporterContact:
    name = String(required=True, max_length=200)
    email = String(max_length=254)
    mobile = String(max_length=30)
    relationship = String(max_length=20, choices=ReporterRelationship, default=ReporterRelationship.CONSIGNEE.value)


@courier.entity(part_of="Incident")
class IncidentNote:
    note = Text(required=True)
    added_by = String(max_length=100)
    added_at = DateTime(required=True)


@courier.aggregate
class Incident:
    exception_number = String(required=True, max_length=20, unique=True)
    booking_id = Identifier(required=True)
    awb = String(required=True, max_length=20)
    incident_type = String(required=True, max_length=30, choices=IncidentType)
    priority = String(max_length=10, choices=IncidentPriority, default=IncidentPriority.MEDIUM.value)
    status = String(max_length=10, choices=IncidentStatus, default=IncidentStatus.OPEN.value)
    description = Text(required=True)
    reporter = ValueObject(ReporterContact)
    location = String(max_length=200)
    assigned_to = String(max_length=100)
    assigned_at = DateTime()
    resolution = Text()
    resolved_by = String(max_length=100)
    resolved_at = DateTime()
    notes = HasMany(IncidentNote)
    reported_at = DateTime()

    @classmethod
    def report(
        cls,
        booking_id: str,
        awb: str,
        incident_type: str,
        description: str,
        reporter: dict | None = None,
        priority: str | None = None,
        location: str | None = None,
    ):
        if not description or not description.strip():
            raise ValidationError({"description": ["A description of the problem is required"]})
        try:
            resolved_priority = priority or derive_priority(incident_type)
        except ValueError:
            raise ValidationError({"incident_type": [f"Unknown exception type: {incident_type}"]}) from None

        now = datetime.now(UTC)
        incident = cls(
            exception_number=new_exception_number(),
            booking_id=booking_id,
            awb=awb,
            incident_type=incident_type,
            priority=resolved_priority,
            description=description.strip(),
            reporter=ReporterContact(**reporter) if reporter else None,
            location=location,
            reported_at=now,
        )
        incident.raise_(
            IncidentReported(
                incident_id=str(incident.id),
                exception_number=incident.exception_number,
                booking_id=booking_id,
                awb=awb,
                incident_type=incident_type,
                priority=resolved_priority,
                description=incident.description,
                reporter_name=incident.reporter.name if incident.reporter else None,
                reporter_relationship=incident.reporter.relationship if incident.reporter else None,
                location=location,
                reported_at=now,
            )
        )
        return incident

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_STATUSES

    def _assert_not_resolved(self) -> None:
        if self.status == IncidentStatus.RESOLVED.value:
            raise ValidationError({"status": [f"Exception {self.exception_number} is already resolved"]})

    def assign(self, assignee: str) -> None:
        self._assert_not_resolved()
        if not assignee:
            raise ValidationError({"assigned_to": ["An assignee is required"]})

        now = datetime.now(UTC)
        self.assigned_to = assignee
        self.assigned_at = now
        self.status = IncidentStatus.ASSIGNED.value
        self.raise_(
            IncidentAssigned(
                incident_id=str(self.id),
                booking_id=str(self.booking_id),
                assigned_to=assignee,
                assigned_at=now,
            )
        )

    def resolve(self, resolution: str, resolved_by: str | None = None) -> None:
        self._assert_not_resolved()
        if not resolution or not resolution.strip():
            raise ValidationError({"resolution": ["Resolution details are required to resolve an exception"]})

        now = datetime.now(UTC)
        self.resolution = resolution.strip()
        self.resolved_by = resolved_by
        self.resolved_at = now
        self.status = IncidentStatus.RESOLVED.value
        self.raise_(
            IncidentResolved(
                incident_id=str(self.id),
                booking_id=str(self.booking_id),
                resolution=self.resolution,
                resolved_by=resolved_by,
                resolved_at=now,
            )
        )

    def add_note(self, note: str, added_by: str | None = None) -> None:
        if not note or not note.strip():
            raise ValidationError({"note": ["Note text is required"]})

        now = datetime.now(UTC)
        self.add_notes(IncidentNote(note=note.strip(), added_by=added_by, added_at=now))
        self.raise_(
            IncidentNoteAdded(
                incident_id=str(self.id),
                note=note.strip(),
                added_by=added_by,
                added_at=now,
            )
        )

    def summary(self) -> dict:
        return {
            "incident_id": str(self.id),
            "exception_number": self.exception_number,
            "type": self.incident_type,
            "priority": self.priority,
            "status": self.status,
            "reported_at": self.reported_at.isoformat() if self.reported_at else None,
        }


@courier.repository(part_of=Incident)
class IncidentRepository:
    def find_by_booking(self, booking_id: str) -> list[Incident]:
        return self._dao.query.filter(booking_id=booking_id).all().items

    def find_open_by_booking(self, booking_id: str) -> list[Incident]:
        return [incident for incident in self.find_by_booking(booking_id) if incident.is_open]
