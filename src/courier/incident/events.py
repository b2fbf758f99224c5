"""Incident domain events."""

from protean.fields import DateTime, Identifier, String, Text

from courier.domain import courier


@courier.event(part_of="Incident")
class IncidentReported:
    """A problem was reported against a booking."""

    __version__ = 1

    incident_id = Identifier(required=True)
    exception_number = String(required=True)
    booking_id = Identifier(required=True)
    awb = String(required=True)
    incident_type = String(required=True)
    priority = String(required=True)
    description = Text(required=True)
    reporter_name = String()
    reporter_relationship = String()
    location = String()
    reported_at = DateTime(required=True)


@courier.event(part_of="Incident")
class IncidentAssigned:
    __version__ = 1

    incident_id = Identifier(required=True)
    booking_id = Identifier(required=True)
    assigned_to = String(required=True)
    assigned_at = DateTime(required=True)


@courier.event(part_of="Incident")
class IncidentResolved:
    """Terminal: a resolved incident is never reopened."""

    __version__ = 1

    incident_id = Identifier(required=True)
    booking_id = Identifier(required=True)
    resolution = Text(required=True)
    resolved_by = String()
    resolved_at = DateTime(required=True)


@courier.event(part_of="Incident")
class IncidentNoteAdded:
    __version__ = 1

    incident_id = Identifier(required=True)
    note = Text(required=True)
    added_by = String()
    added_at = DateTime(required=True)
