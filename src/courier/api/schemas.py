"""Pydantic API schemas for the courier context.

These are the external API contracts, separate from domain commands. Unknown
fields are rejected at the boundary.
"""

from pydantic import BaseModel, ConfigDict, Field


class StrictModel(BaseModel):
    model_config = ConfigDict(extra="forbid")


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------
class AddressRequest(StrictModel):
    street: str | None = None
    city: str
    state: str | None = None
    postal_code: str | None = None
    country: str | None = None


class ConsigneeDetailsRequest(StrictModel):
    name: str
    mobile: str | None = None
    email: str | None = None
    company: str | None = None
    street: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    country: str | None = None


class DimensionsRequest(StrictModel):
    length: float = Field(gt=0)
    width: float = Field(gt=0)
    height: float = Field(gt=0)
    unit: str = "cm"


class CreateBookingRequest(StrictModel):
    shipper_id: str
    consignee_id: str | None = None
    consignee: ConsigneeDetailsRequest | None = None
    service_type: str = "Standard"
    shipment_type: str = "Parcel"
    number_of_pieces: int = Field(default=1, ge=1)
    weight: float = Field(gt=0)
    dimensions: DimensionsRequest | None = None
    description: str
    declared_value: float = Field(default=0.0, ge=0)
    requires_insurance: bool = False
    payment_mode: str = "COD"
    cod_amount: float = Field(default=0.0, ge=0)
    reference_number: str | None = None
    special_instructions: str | None = None
    is_urgent: bool = False
    is_fragile: bool = False
    booked_by: str | None = None
    branch: str | None = None
    location: str | None = None


class BulkCreateBookingsRequest(StrictModel):
    rows: list[dict]
    booked_by: str | None = None


class ChangeStatusRequest(StrictModel):
    status: str
    location: str | None = None
    remarks: str | None = None
    updated_by: str | None = None
    expected_revision: int


class UpdateBookingDetailsRequest(StrictModel):
    reference_number: str | None = None
    special_instructions: str | None = None
    internal_notes: str | None = None
    is_urgent: bool | None = None
    is_fragile: bool | None = None


class ProofOfDeliveryRequest(StrictModel):
    delivered_to: str | None = None
    proof_reference: str
    remarks: str | None = None
    updated_by: str | None = None
    location: str | None = None


class RedispatchRequest(StrictModel):
    booked_by: str | None = None
    location: str | None = None
    remarks: str | None = None


class DetectStaleBookingsRequest(StrictModel):
    idle_threshold_hours: int = Field(default=72, ge=1)


class ChargeQuoteRequest(StrictModel):
    weight: float = Field(gt=0)
    service_type: str = "Standard"
    dimensions: DimensionsRequest | None = None
    declared_value: float = Field(default=0.0, ge=0)
    requires_insurance: bool = False
    payment_mode: str = "COD"
    cod_amount: float = Field(default=0.0, ge=0)


class ReporterRequest(StrictModel):
    name: str
    email: str | None = None
    mobile: str | None = None
    relationship: str | None = None


class ReportExceptionRequest(StrictModel):
    awb: str
    type: str
    description: str
    priority: str | None = None
    location: str | None = None
    reporter: ReporterRequest | None = None


class AssignExceptionRequest(StrictModel):
    assigned_to: str


class ResolveExceptionRequest(StrictModel):
    resolution: str
    resolved_by: str | None = None


class ExceptionNoteRequest(StrictModel):
    note: str
    added_by: str | None = None


class GenerateInvoiceRequest(StrictModel):
    shipper_id: str
    booking_ids: list[str] = Field(min_length=1)
    discount: float = Field(default=0.0, ge=0)
    discount_type: str | None = None
    notes: str | None = None


class RecordPaymentRequest(StrictModel):
    reference: str
    amount: float = Field(gt=0)
    payment_mode: str | None = None
    remarks: str | None = None


class VoidInvoiceRequest(StrictModel):
    reason: str


class RegisterShipperRequest(StrictModel):
    name: str
    company: str
    email: str
    mobile: str
    address: AddressRequest | None = None
    tax_id: str | None = None
    payment_type: str | None = None
    credit_limit: float = Field(default=0.0, ge=0)


class RegisterConsigneeRequest(StrictModel):
    shipper_id: str | None = None
    name: str
    mobile: str
    email: str | None = None
    company: str | None = None
    address: AddressRequest


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------
class BookingCreatedResponse(BaseModel):
    booking_id: str
    awb: str


class BookingStatusResponse(BaseModel):
    booking_id: str
    awb: str
    status: str
    revision: int
    allowed_next_statuses: list[str]


class EligibilityResponse(BaseModel):
    booking_id: str
    eligible: bool
    status: str
    invoice_generated: bool


class IdResponse(BaseModel):
    id: str


class StatusResponse(BaseModel):
    status: str
