"""Exception reporting: public entry point keyed by AWB, no authentication."""

import structlog
from protean import handle
from protean.fields import String, Text
from protean.utils.globals import current_domain

from courier.booking.booking import Booking
from courier.domain import courier
from courier.incident.incident import Incident
from courier.shared.errors import UnknownAWB

logger = structlog.get_logger(__name__)


@courier.command(part_of="Incident")
class ReportIncident:
    awb = String(required=True, max_length=20)
    incident_type = String(required=True, max_length=30)
    description = Text(required=True)
    priority = String(max_length=10)
    location = String(max_length=200)
    reporter_name = String(max_length=200)
    reporter_email = String(max_length=254)
    reporter_mobile = String(max_length=30)
    reporter_relationship = String(max_length=20)


@courier.command_handler(part_of=Incident)
class ReportIncidentHandler:
    @handle(ReportIncident)
    def report_incident(self, command: ReportIncident) -> dict:
        booking = current_domain.repository_for(Booking).get_by_awb(command.awb)
        if booking is None:
            raise UnknownAWB(command.awb)

        reporter = None
        if command.reporter_name:
            reporter = {
                "name": command.reporter_name,
                "email": command.reporter_email,
                "mobile": command.reporter_mobile,
            }
            if command.reporter_relationship:
                reporter["relationship"] = command.reporter_relationship

        incident = Incident.report(
            booking_id=str(booking.id),
            awb=booking.awb,
            incident_type=command.incident_type,
            description=command.description,
            reporter=reporter,
            priority=command.priority,
            location=command.location,
        )
        current_domain.repository_for(Incident).add(incident)

        logger.info(
            "Exception reported",
            incident_id=str(incident.id),
            exception_number=incident.exception_number,
            awb=booking.awb,
            booking_status=booking.status,
            priority=incident.priority,
        )
        return {"incident_id": str(incident.id), "exception_number": incident.exception_number}
