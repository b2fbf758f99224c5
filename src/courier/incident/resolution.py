"""Staff workflow on reported exceptions: assign, annotate, resolve."""

import structlog
from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from courier.domain import courier
from courier.incident.incident import Incident

logger = structlog.get_logger(__name__)


@courier.command(part_of="Incident")
class AssignIncident:
    incident_id = Identifier(required=True)
    assigned_to = String(required=True, max_length=100)


@courier.command(part_of="Incident")
class ResolveIncident:
    incident_id = Identifier(required=True)
    resolution = Text(required=True)
    resolved_by = String(max_length=100)


@courier.command(part_of="Incident")
class AddIncidentNote:
    incident_id = Identifier(required=True)
    note = Text(required=True)
    added_by = String(max_length=100)


@courier.command_handler(part_of=Incident)
class IncidentResolutionHandler:
    @handle(AssignIncident)
    def assign_incident(self, command: AssignIncident) -> None:
        repo = current_domain.repository_for(Incident)
        incident = repo.get(str(command.incident_id))
        incident.assign(command.assigned_to)
        repo.add(incident)
        logger.info("Exception assigned", incident_id=str(incident.id), assigned_to=command.assigned_to)

    @handle(ResolveIncident)
    def resolve_incident(self, command: ResolveIncident) -> None:
        repo = current_domain.repository_for(Incident)
        incident = repo.get(str(command.incident_id))
        incident.resolve(command.resolution, command.resolved_by)
        repo.add(incident)
        logger.info("Exception resolved", incident_id=str(incident.id), booking_id=str(incident.booking_id))

    @handle(AddIncidentNote)
    def add_incident_note(self, command: AddIncidentNote) -> None:
        repo = current_domain.repository_for(Incident)
        incident = repo.get(str(command.incident_id))
        incident.add_note(command.note, command.added_by)
        repo.add(incident)
