"""FastAPI routes for the courier context.

Handlers that take per-booking or per-invoice locks are plain functions, so
FastAPI runs them in its threadpool instead of blocking the event loop.
"""

import json

from fastapi import APIRouter
from protean.utils.globals import current_domain

from courier.api.schemas import (
    AssignExceptionRequest,
    BookingCreatedResponse,
    BookingStatusResponse,
    BulkCreateBookingsRequest,
    ChangeStatusRequest,
    ChargeQuoteRequest,
    CreateBookingRequest,
    DetectStaleBookingsRequest,
    EligibilityResponse,
    ExceptionNoteRequest,
    GenerateInvoiceRequest,
    IdResponse,
    ProofOfDeliveryRequest,
    RecordPaymentRequest,
    RedispatchRequest,
    RegisterConsigneeRequest,
    RegisterShipperRequest,
    ReportExceptionRequest,
    ResolveExceptionRequest,
    StatusResponse,
    UpdateBookingDetailsRequest,
    VoidInvoiceRequest,
)
from courier.booking.awb import normalize_awb
from courier.booking.creation import BulkCreateBookings, CreateBooking, RedispatchBooking
from courier.booking.delivery import record_proof_of_delivery
from courier.booking.editing import UpdateBookingDetails
from courier.booking.invoicing import is_eligible_for_invoicing
from courier.booking.ledger import ledger, load_booking
from courier.booking.staleness import DetectStaleBookings
from courier.booking.status import change_booking_status
from courier.booking.transitions import allowed_next_statuses
from courier.incident.reporting import ReportIncident
from courier.incident.resolution import AddIncidentNote, AssignIncident, ResolveIncident
from courier.invoice.generation import GenerateInvoice
from courier.invoice.issuing import IssueInvoice
from courier.invoice.payment import RecordInvoicePayment
from courier.invoice.voiding import VoidInvoice
from courier.party.consignee import RegisterConsignee
from courier.party.shipper import RegisterShipper
from courier.pricing.charges import ChargeInput, compute_charges
from courier.pricing.config import PricingConfig
from courier.projections.booking_status_summary import status_counts
from courier.projections.invoiceable_bookings import eligible_bookings
from courier.tracking.read_model import get_tracking_view

# ---------------------------------------------------------------------------
# Booking Router
# ---------------------------------------------------------------------------
booking_router = APIRouter(prefix="/bookings", tags=["bookings"])


@booking_router.post("", status_code=201, response_model=BookingCreatedResponse)
async def create_booking(body: CreateBookingRequest) -> BookingCreatedResponse:
    """Book a shipment; its history starts with a single Booked entry."""
    dimensions = body.dimensions
    command = CreateBooking(
        shipper_id=body.shipper_id,
        consignee_id=body.consignee_id,
        consignee_details=json.dumps(body.consignee.model_dump()) if body.consignee else None,
        service_type=body.service_type,
        shipment_type=body.shipment_type,
        number_of_pieces=body.number_of_pieces,
        weight=body.weight,
        length=dimensions.length if dimensions else None,
        width=dimensions.width if dimensions else None,
        height=dimensions.height if dimensions else None,
        dimension_unit=dimensions.unit if dimensions else "cm",
        description=body.description,
        declared_value=body.declared_value,
        requires_insurance=body.requires_insurance,
        payment_mode=body.payment_mode,
        cod_amount=body.cod_amount,
        reference_number=body.reference_number,
        special_instructions=body.special_instructions,
        is_urgent=body.is_urgent,
        is_fragile=body.is_fragile,
        booked_by=body.booked_by,
        branch=body.branch,
        location=body.location,
    )
    result = current_domain.process(command, asynchronous=False)
    return BookingCreatedResponse(**result)


@booking_router.post("/bulk", status_code=201)
async def bulk_create_bookings(body: BulkCreateBookingsRequest) -> dict:
    """Create bookings row by row; failed rows are reported alongside created ones."""
    command = BulkCreateBookings(rows=json.dumps(body.rows), booked_by=body.booked_by)
    return current_domain.process(command, asynchronous=False)


@booking_router.get("/summary")
async def booking_status_summary() -> dict:
    return status_counts()


@booking_router.post("/maintenance/detect-stale")
async def detect_stale_bookings(body: DetectStaleBookingsRequest) -> dict:
    command = DetectStaleBookings(idle_threshold_hours=body.idle_threshold_hours)
    stale = current_domain.process(command, asynchronous=False)
    return {"stale": stale, "count": len(stale)}


@booking_router.get("/{booking_id}")
async def get_booking(booking_id: str) -> dict:
    """Internal detail view: full tracking data including financials."""
    return get_tracking_view(booking_id, audience="internal").model_dump(mode="json")


@booking_router.get("/{booking_id}/history")
async def get_booking_history(booking_id: str) -> list[dict]:
    """Status history, oldest first."""
    return [
        {
            "sequence": entry.sequence,
            "status": entry.status,
            "timestamp": entry.timestamp.isoformat(),
            "location": entry.location,
            "remarks": entry.remarks,
            "updated_by": entry.updated_by,
        }
        for entry in ledger.read(booking_id)
    ]


@booking_router.put("/{booking_id}/status", response_model=BookingStatusResponse)
def change_status(booking_id: str, body: ChangeStatusRequest) -> BookingStatusResponse:
    booking = change_booking_status(
        booking_id,
        body.status,
        location=body.location,
        remarks=body.remarks,
        updated_by=body.updated_by,
        expected_revision=body.expected_revision,
    )
    return BookingStatusResponse(
        booking_id=str(booking.id),
        awb=booking.awb,
        status=booking.status,
        revision=booking.revision,
        allowed_next_statuses=allowed_next_statuses(booking.status),
    )


@booking_router.put("/{booking_id}/details", response_model=StatusResponse)
def update_booking_details(booking_id: str, body: UpdateBookingDetailsRequest) -> StatusResponse:
    command = UpdateBookingDetails(booking_id=booking_id, **body.model_dump())
    current_domain.process(command, asynchronous=False)
    return StatusResponse(status="details_updated")


@booking_router.put("/{booking_id}/proof-of-delivery", response_model=StatusResponse)
def proof_of_delivery(booking_id: str, body: ProofOfDeliveryRequest) -> StatusResponse:
    record_proof_of_delivery(
        booking_id,
        delivered_to=body.delivered_to,
        proof_reference=body.proof_reference,
        remarks=body.remarks,
        updated_by=body.updated_by,
        location=body.location,
    )
    return StatusResponse(status="delivered")


@booking_router.post("/{booking_id}/redispatch", status_code=201, response_model=BookingCreatedResponse)
async def redispatch_booking(booking_id: str, body: RedispatchRequest) -> BookingCreatedResponse:
    """Book a new shipment for a Returned booking's contents."""
    command = RedispatchBooking(
        booking_id=booking_id,
        booked_by=body.booked_by,
        location=body.location,
        remarks=body.remarks,
    )
    result = current_domain.process(command, asynchronous=False)
    return BookingCreatedResponse(**result)


@booking_router.get("/{booking_id}/eligibility", response_model=EligibilityResponse)
async def invoicing_eligibility(booking_id: str) -> EligibilityResponse:
    booking = load_booking(booking_id)
    return EligibilityResponse(
        booking_id=str(booking.id),
        eligible=is_eligible_for_invoicing(booking),
        status=booking.status,
        invoice_generated=bool(booking.invoice_generated),
    )


# ---------------------------------------------------------------------------
# Public Tracking Router (no authentication)
# ---------------------------------------------------------------------------
tracking_router = APIRouter(prefix="/tracking", tags=["tracking"])


@tracking_router.get("/{awb}")
async def track_shipment(awb: str) -> dict:
    return get_tracking_view(normalize_awb(awb), audience="public").model_dump(mode="json")


# ---------------------------------------------------------------------------
# Exception Router
# ---------------------------------------------------------------------------
exception_router = APIRouter(prefix="/exceptions", tags=["exceptions"])


@exception_router.post("", status_code=201)
async def report_exception(body: ReportExceptionRequest) -> dict:
    """Public: report a problem with a shipment by AWB."""
    reporter = body.reporter
    command = ReportIncident(
        awb=normalize_awb(body.awb),
        incident_type=body.type,
        description=body.description,
        priority=body.priority,
        location=body.location,
        reporter_name=reporter.name if reporter else None,
        reporter_email=reporter.email if reporter else None,
        reporter_mobile=reporter.mobile if reporter else None,
        reporter_relationship=reporter.relationship if reporter else None,
    )
    return current_domain.process(command, asynchronous=False)


@exception_router.put("/{incident_id}/assign", response_model=StatusResponse)
async def assign_exception(incident_id: str, body: AssignExceptionRequest) -> StatusResponse:
    current_domain.process(AssignIncident(incident_id=incident_id, assigned_to=body.assigned_to), asynchronous=False)
    return StatusResponse(status="assigned")


@exception_router.put("/{incident_id}/resolve", response_model=StatusResponse)
async def resolve_exception(incident_id: str, body: ResolveExceptionRequest) -> StatusResponse:
    command = ResolveIncident(incident_id=incident_id, resolution=body.resolution, resolved_by=body.resolved_by)
    current_domain.process(command, asynchronous=False)
    return StatusResponse(status="resolved")


@exception_router.post("/{incident_id}/notes", status_code=201, response_model=StatusResponse)
async def add_exception_note(incident_id: str, body: ExceptionNoteRequest) -> StatusResponse:
    command = AddIncidentNote(incident_id=incident_id, note=body.note, added_by=body.added_by)
    current_domain.process(command, asynchronous=False)
    return StatusResponse(status="note_added")


# ---------------------------------------------------------------------------
# Invoice Router
# ---------------------------------------------------------------------------
invoice_router = APIRouter(prefix="/invoices", tags=["invoices"])


@invoice_router.get("/eligible-bookings")
async def list_eligible_bookings(shipper_id: str | None = None) -> list[dict]:
    return [
        {
            "booking_id": str(record.booking_id),
            "awb": record.awb,
            "shipper_id": str(record.shipper_id),
            "service_type": record.service_type,
            "subtotal": record.subtotal,
            "total_amount": record.total_amount,
            "delivered_at": record.delivered_at.isoformat() if record.delivered_at else None,
        }
        for record in eligible_bookings(shipper_id)
    ]


@invoice_router.post("", status_code=201)
def generate_invoice(body: GenerateInvoiceRequest) -> dict:
    command = GenerateInvoice(
        shipper_id=body.shipper_id,
        booking_ids=json.dumps(body.booking_ids),
        discount=body.discount,
        discount_type=body.discount_type,
        notes=body.notes,
    )
    return current_domain.process(command, asynchronous=False)


@invoice_router.put("/{invoice_id}/issue", response_model=StatusResponse)
def issue_invoice(invoice_id: str) -> StatusResponse:
    current_domain.process(IssueInvoice(invoice_id=invoice_id), asynchronous=False)
    return StatusResponse(status="issued")


@invoice_router.post("/{invoice_id}/payments")
def record_invoice_payment(invoice_id: str, body: RecordPaymentRequest) -> dict:
    """Idempotent on ``reference``: a redelivered payment webhook is a no-op."""
    command = RecordInvoicePayment(
        invoice_id=invoice_id,
        reference=body.reference,
        amount=body.amount,
        payment_mode=body.payment_mode,
        remarks=body.remarks,
    )
    return current_domain.process(command, asynchronous=False)


@invoice_router.put("/{invoice_id}/void", response_model=StatusResponse)
def void_invoice(invoice_id: str, body: VoidInvoiceRequest) -> StatusResponse:
    current_domain.process(VoidInvoice(invoice_id=invoice_id, reason=body.reason), asynchronous=False)
    return StatusResponse(status="voided")


# ---------------------------------------------------------------------------
# Shipper & Consignee Routers
# ---------------------------------------------------------------------------
shipper_router = APIRouter(prefix="/shippers", tags=["shippers"])


@shipper_router.post("", status_code=201, response_model=IdResponse)
async def register_shipper(body: RegisterShipperRequest) -> IdResponse:
    address = body.address.model_dump() if body.address else {}
    command = RegisterShipper(
        name=body.name,
        company=body.company,
        email=body.email,
        mobile=body.mobile,
        tax_id=body.tax_id,
        payment_type=body.payment_type,
        credit_limit=body.credit_limit,
        **address,
    )
    return IdResponse(id=current_domain.process(command, asynchronous=False))


consignee_router = APIRouter(prefix="/consignees", tags=["consignees"])


@consignee_router.post("", status_code=201, response_model=IdResponse)
async def register_consignee(body: RegisterConsigneeRequest) -> IdResponse:
    command = RegisterConsignee(
        shipper_id=body.shipper_id,
        name=body.name,
        mobile=body.mobile,
        email=body.email,
        company=body.company,
        **body.address.model_dump(),
    )
    return IdResponse(id=current_domain.process(command, asynchronous=False))


# ---------------------------------------------------------------------------
# Charges Router
# ---------------------------------------------------------------------------
charges_router = APIRouter(prefix="/charges", tags=["charges"])


@charges_router.post("/quote")
async def quote_charges(body: ChargeQuoteRequest) -> dict:
    """Price a shipment without booking it."""
    dimensions = body.dimensions
    breakdown = compute_charges(
        ChargeInput(
            weight=body.weight,
            service_type=body.service_type,
            length=dimensions.length if dimensions else None,
            width=dimensions.width if dimensions else None,
            height=dimensions.height if dimensions else None,
            dimension_unit=dimensions.unit if dimensions else "cm",
            declared_value=body.declared_value,
            requires_insurance=body.requires_insurance,
            payment_mode=body.payment_mode,
            cod_amount=body.cod_amount,
        ),
        PricingConfig.from_env(),
    )
    return breakdown.to_dict()
