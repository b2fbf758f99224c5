"""Incident aggregate: priority derivation and the Open/Assigned/Resolved lifecycle."""

import re

import pytest
from courier.incident.events import IncidentReported, IncidentResolved
from courier.incident.incident import Incident, IncidentStatus, derive_priority
from protean.exceptions import ValidationError


def _report(**overrides) -> Incident:
    params = {
        "booking_id": "bkg-1",
        "awb": "AWB2612345678",
        "incident_type": "Delivery Delay",
        "description": "Parcel has not moved for four days",
        "reporter": {"name": "Kabir Mehta", "relationship": "Consignee"},
    }
    params.update(overrides)
    return Incident.report(**params)


class TestPriorityDerivation:
    @pytest.mark.parametrize("incident_type", ["Package Lost", "Damaged Package", "Missing Items"])
    def test_loss_and_damage_are_high(self, incident_type):
        assert derive_priority(incident_type) == "High"

    def test_refused_delivery_is_urgent(self):
        assert derive_priority("Delivery Refused") == "Urgent"

    def test_everything_else_is_medium(self):
        assert derive_priority("Weather Delay") == "Medium"

    def test_explicit_priority_wins(self):
        assert _report(incident_type="Package Lost", priority="Low").priority == "Low"


class TestReporting:
    def test_opens_with_exception_number(self):
        incident = _report()
        assert incident.status == IncidentStatus.OPEN.value
        assert re.fullmatch(r"EXC-[0-9A-F]{8}", incident.exception_number)
        assert incident.is_open

    def test_raises_incident_reported(self):
        incident = _report()
        event = incident._events[-1]
        assert isinstance(event, IncidentReported)
        assert event.booking_id == "bkg-1"
        assert event.reporter_relationship == "Consignee"

    def test_unknown_type_is_rejected(self):
        with pytest.raises(ValidationError) as exc:
            _report(incident_type="Alien Abduction")
        assert "incident_type" in exc.value.messages

    def test_blank_description_is_rejected(self):
        with pytest.raises(ValidationError):
            _report(description="   ")


class TestLifecycle:
    def test_assign_then_resolve(self):
        incident = _report()
        incident.assign("agent-7")
        assert incident.status == IncidentStatus.ASSIGNED.value
        assert incident.is_open

        incident.resolve("Rerouted via Pune hub", resolved_by="agent-7")
        assert incident.status == IncidentStatus.RESOLVED.value
        assert not incident.is_open
        assert isinstance(incident._events[-1], IncidentResolved)

    def test_open_incident_can_be_resolved_directly(self):
        incident = _report()
        incident.resolve("Duplicate report")
        assert incident.status == IncidentStatus.RESOLVED.value

    def test_resolution_text_is_required(self):
        with pytest.raises(ValidationError):
            _report().resolve("  ")

    def test_resolved_is_terminal(self):
        incident = _report()
        incident.resolve("Delivered late")
        with pytest.raises(ValidationError):
            incident.assign("agent-8")
        with pytest.raises(ValidationError):
            incident.resolve("Again")

    def test_notes_accumulate(self):
        incident = _report()
        incident.add_note("Called consignee", added_by="agent-7")
        incident.add_note("Awaiting hub update")
        assert len(incident.notes) == 2

    def test_summary_shape(self):
        summary = _report().summary()
        assert set(summary) == {"incident_id", "exception_number", "type", "priority", "status", "reported_at"}
