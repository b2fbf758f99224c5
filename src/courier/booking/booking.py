"""Booking aggregate (CQRS): the shipment record at the centre of the courier core.

A booking is created in BOOKED and only ever moves through explicit status
transitions; it is never deleted. Every transition appends a StatusEntry to
the booking's history in the same write that changes ``status``, so the last
history entry always names the current status.

State Machine:
    BOOKED → {PICKED_UP, CANCELLED, ON_HOLD}
    PICKED_UP → {IN_TRANSIT, ON_HOLD, CANCELLED}
    IN_TRANSIT → {OUT_FOR_DELIVERY, ON_HOLD}
    OUT_FOR_DELIVERY → {DELIVERED, FAILED_DELIVERY}
    FAILED_DELIVERY → {OUT_FOR_DELIVERY, RETURNED}
    ON_HOLD → {PICKED_UP, IN_TRANSIT, OUT_FOR_DELIVERY, CANCELLED}
    DELIVERED, CANCELLED, RETURNED are terminal
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import (
    Boolean,
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from courier.booking.events import (
    BookingCreated,
    BookingDetailsUpdated,
    BookingInvoiced,
    BookingStatusChanged,
    ProofOfDeliveryRecorded,
)
from courier.domain import courier
from courier.shared.errors import AlreadyInvoiced, NotEligibleForInvoicing
from courier.shared.timestamps import as_utc


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class BookingStatus(Enum):
    BOOKED = "Booked"
    PICKED_UP = "Picked Up"
    IN_TRANSIT = "In Transit"
    OUT_FOR_DELIVERY = "Out for Delivery"
    DELIVERED = "Delivered"
    FAILED_DELIVERY = "Failed Delivery"
    RETURNED = "Returned"
    CANCELLED = "Cancelled"
    ON_HOLD = "On Hold"


class ServiceType(Enum):
    EXPRESS = "Express"
    STANDARD = "Standard"
    ECONOMY = "Economy"
    SAME_DAY = "Same Day"
    OVERNIGHT = "Overnight"
    INTERNATIONAL = "International"


class ShipmentType(Enum):
    DOCUMENT = "Document"
    PARCEL = "Parcel"
    CARGO = "Cargo"


class PaymentMode(Enum):
    COD = "COD"
    PREPAID = "Prepaid"
    CREDIT = "Credit"


class DimensionUnit(Enum):
    CM = "cm"
    IN = "in"


# Administrative edits are refused once a booking reaches one of these
_LOCKED_FOR_EDITS = {BookingStatus.DELIVERED, BookingStatus.CANCELLED}

_EDITABLE_FIELDS = (
    "reference_number",
    "special_instructions",
    "internal_notes",
    "is_urgent",
    "is_fragile",
)


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@courier.value_object(part_of="Booking")
class Dimensions:
    """Package dimensions used for volumetric weight."""

    length = Float(min_value=0.0)
    width = Float(min_value=0.0)
    height = Float(min_value=0.0)
    unit = String(max_length=2, choices=DimensionUnit, default=DimensionUnit.CM.value)


@courier.value_object(part_of="Booking")
class ConsigneeDetails:
    """Consignee captured on the booking itself, frozen at booking time."""

    name = String(required=True, max_length=200)
    mobile = String(max_length=30)
    email = String(max_length=254)
    company = String(max_length=200)
    street = String(max_length=300)
    city = String(max_length=100)
    state = String(max_length=100)
    postal_code = String(max_length=20)
    country = String(max_length=100)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "mobile": self.mobile,
            "email": self.email,
            "company": self.company,
            "street": self.street,
            "city": self.city,
            "state": self.state,
            "postal_code": self.postal_code,
            "country": self.country,
        }


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@courier.entity(part_of="Booking")
class StatusEntry:
    """One immutable line of the booking's status history."""

    sequence = Integer(required=True, min_value=1)
    status = String(required=True, max_length=30, choices=BookingStatus)
    location = String(max_length=200)
    remarks = Text()
    updated_by = String(max_length=100)
    timestamp = DateTime(required=True)


# ---------------------------------------------------------------------------
# Aggregate Root (CQRS)
# ---------------------------------------------------------------------------
@courier.aggregate
class Booking:
    awb = String(required=True, max_length=20, unique=True)
    shipper_id = Identifier(required=True)
    consignee_id = Identifier()
    consignee_details = ValueObject(ConsigneeDetails)

    service_type = String(max_length=20, choices=ServiceType, default=ServiceType.STANDARD.value)
    shipment_type = String(max_length=20, choices=ShipmentType, default=ShipmentType.PARCEL.value)
    number_of_pieces = Integer(min_value=1, default=1)
    weight = Float(required=True, min_value=0.0)
    dimensions = ValueObject(Dimensions)
    volumetric_weight = Float(default=0.0)
    chargeable_weight = Float(default=0.0)
    description = String(required=True, max_length=500)
    declared_value = Float(min_value=0.0, default=0.0)
    currency = String(max_length=3, default="USD")
    requires_insurance = Boolean(default=False)

    shipping_charges = Float(default=0.0)
    insurance_charges = Float(default=0.0)
    cod_charges = Float(default=0.0)
    fuel_surcharge = Float(default=0.0)
    subtotal = Float(default=0.0)
    tax_amount = Float(default=0.0)
    total_amount = Float(default=0.0)
    payment_mode = String(max_length=10, choices=PaymentMode, default=PaymentMode.COD.value)
    cod_amount = Float(min_value=0.0, default=0.0)

    status = String(max_length=30, choices=BookingStatus, default=BookingStatus.BOOKED.value)
    status_history = HasMany(StatusEntry)
    revision = Integer(default=0)

    pickup_date = DateTime()
    delivery_date = DateTime()
    delivery_attempts = Integer(default=0)
    last_attempt_date = DateTime()
    return_date = DateTime()
    return_reason = Text()
    delivered_to = String(max_length=200)
    delivery_proof = String(max_length=500)
    delivery_remarks = Text()

    reference_number = String(max_length=100)
    special_instructions = Text()
    internal_notes = Text()
    is_urgent = Boolean(default=False)
    is_fragile = Boolean(default=False)

    invoice_generated = Boolean(default=False)
    invoice_id = Identifier()
    invoiced_at = DateTime()

    redispatched_from = Identifier()
    booked_by = String(max_length=100)
    branch = String(max_length=100)
    booking_date = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Invariants
    # -------------------------------------------------------------------
    @invariant.post
    def history_sequence_is_contiguous(self):
        sequences = [entry.sequence for entry in self.ordered_history()]
        if sequences != list(range(1, len(sequences) + 1)):
            raise ValidationError({"status_history": ["History sequence numbers must be contiguous from 1"]})

    @invariant.post
    def history_timestamps_never_decrease(self):
        entries = self.ordered_history()
        for previous, current in zip(entries, entries[1:], strict=False):
            if as_utc(current.timestamp) < as_utc(previous.timestamp):
                raise ValidationError({"status_history": ["History timestamps must be non-decreasing"]})

    @invariant.post
    def status_matches_last_history_entry(self):
        entries = self.ordered_history()
        if entries and entries[-1].status != self.status:
            raise ValidationError({"status": ["Current status must equal the last history entry"]})

    @invariant.post
    def consignee_is_identified(self):
        if not self.consignee_id and not self.consignee_details:
            raise ValidationError({"consignee": ["Either a consignee id or consignee details are required"]})

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        awb: str,
        shipper_id: str,
        charges,
        weight: float,
        description: str,
        consignee_id: str | None = None,
        consignee_details: dict | None = None,
        service_type: str = ServiceType.STANDARD.value,
        shipment_type: str = ShipmentType.PARCEL.value,
        payment_mode: str = PaymentMode.COD.value,
        cod_amount: float = 0.0,
        declared_value: float = 0.0,
        requires_insurance: bool = False,
        number_of_pieces: int = 1,
        dimensions: dict | None = None,
        reference_number: str | None = None,
        special_instructions: str | None = None,
        is_urgent: bool = False,
        is_fragile: bool = False,
        booked_by: str | None = None,
        branch: str | None = None,
        location: str | None = None,
        redispatched_from: str | None = None,
        booked_at: datetime | None = None,
    ):
        """Create a booking in BOOKED with its first history entry."""
        now = booked_at or datetime.now(UTC)
        booking = cls(
            awb=awb,
            shipper_id=shipper_id,
            consignee_id=consignee_id,
            consignee_details=ConsigneeDetails(**consignee_details) if consignee_details else None,
            service_type=service_type,
            shipment_type=shipment_type,
            number_of_pieces=number_of_pieces,
            weight=weight,
            dimensions=Dimensions(**dimensions) if dimensions else None,
            volumetric_weight=charges.volumetric_weight,
            chargeable_weight=charges.chargeable_weight,
            description=description,
            declared_value=declared_value,
            currency=charges.currency,
            requires_insurance=requires_insurance,
            shipping_charges=charges.shipping_charges,
            insurance_charges=charges.insurance_charges,
            cod_charges=charges.cod_charges,
            fuel_surcharge=charges.fuel_surcharge,
            subtotal=charges.subtotal,
            tax_amount=charges.tax_amount,
            total_amount=charges.total_amount,
            payment_mode=payment_mode,
            cod_amount=cod_amount,
            status=BookingStatus.BOOKED.value,
            revision=1,
            reference_number=reference_number,
            special_instructions=special_instructions,
            is_urgent=is_urgent,
            is_fragile=is_fragile,
            redispatched_from=redispatched_from,
            booked_by=booked_by,
            branch=branch,
            booking_date=now,
            updated_at=now,
        )
        booking.add_status_history(
            StatusEntry(
                sequence=1,
                status=BookingStatus.BOOKED.value,
                location=location or "",
                remarks="Booking created",
                updated_by=booked_by or "",
                timestamp=now,
            )
        )
        booking.raise_(
            BookingCreated(
                booking_id=str(booking.id),
                awb=awb,
                shipper_id=shipper_id,
                consignee_id=consignee_id,
                consignee_details=json.dumps(consignee_details) if consignee_details else "",
                service_type=booking.service_type,
                payment_mode=booking.payment_mode,
                weight=weight,
                chargeable_weight=booking.chargeable_weight,
                declared_value=declared_value,
                cod_amount=cod_amount,
                shipping_charges=booking.shipping_charges,
                insurance_charges=booking.insurance_charges,
                cod_charges=booking.cod_charges,
                fuel_surcharge=booking.fuel_surcharge,
                subtotal=booking.subtotal,
                tax_amount=booking.tax_amount,
                total_amount=booking.total_amount,
                currency=booking.currency,
                status=BookingStatus.BOOKED.value,
                location=location or "",
                booked_by=booked_by or "",
                redispatched_from=redispatched_from,
                booking_date=now,
            )
        )
        return booking

    # -------------------------------------------------------------------
    # History
    # -------------------------------------------------------------------
    def ordered_history(self) -> list[StatusEntry]:
        return sorted(self.status_history or [], key=lambda entry: entry.sequence)

    @property
    def last_entry(self) -> StatusEntry | None:
        entries = self.ordered_history()
        return entries[-1] if entries else None

    def apply_status_change(self, change) -> StatusEntry:
        """Append ``change`` to the history and move ``status`` with it.

        Called by the history ledger once the change has been validated
        against this booking's revision and last timestamp.
        """
        previous = self.status
        sequence = len(self.status_history or []) + 1
        entry = StatusEntry(
            sequence=sequence,
            status=change.status,
            location=change.location or "",
            remarks=change.remarks or "",
            updated_by=change.updated_by or "",
            timestamp=change.timestamp,
        )
        with atomic_change(self):
            self.add_status_history(entry)
            self.status = change.status
            self.revision = (self.revision or 0) + 1
            self.updated_at = change.timestamp
            self._apply_side_effects(change)

        self.raise_(
            BookingStatusChanged(
                booking_id=str(self.id),
                awb=self.awb,
                shipper_id=str(self.shipper_id),
                service_type=self.service_type,
                previous_status=previous,
                status=change.status,
                sequence=sequence,
                revision=self.revision,
                location=change.location or "",
                remarks=change.remarks or "",
                updated_by=change.updated_by or "",
                invoice_generated=bool(self.invoice_generated),
                subtotal=self.subtotal,
                total_amount=self.total_amount,
                occurred_at=change.timestamp,
            )
        )
        return entry

    def _apply_side_effects(self, change) -> None:
        effects = change.side_effects
        if "pickup_date" in effects:
            self.pickup_date = effects["pickup_date"]
        if "delivery_date" in effects:
            self.delivery_date = effects["delivery_date"]
        if "last_attempt_date" in effects:
            self.last_attempt_date = effects["last_attempt_date"]
        if effects.get("count_delivery_attempt"):
            self.delivery_attempts = (self.delivery_attempts or 0) + 1
        if "return_date" in effects:
            self.return_date = effects["return_date"]
            self.return_reason = effects.get("return_reason")

    # -------------------------------------------------------------------
    # Invoicing
    # -------------------------------------------------------------------
    def is_invoiceable(self) -> bool:
        return self.status == BookingStatus.DELIVERED.value and not self.invoice_generated

    def mark_invoiced(self, invoice_id: str, invoiced_at: datetime | None = None) -> None:
        """Flag the booking as billed. The flag only ever goes from False to True."""
        if self.invoice_generated:
            raise AlreadyInvoiced(str(self.id), str(self.invoice_id) if self.invoice_id else None)
        if self.status != BookingStatus.DELIVERED.value:
            raise NotEligibleForInvoicing(str(self.id), self.status)

        now = invoiced_at or datetime.now(UTC)
        self.invoice_generated = True
        self.invoice_id = invoice_id
        self.invoiced_at = now
        self.updated_at = now
        self.raise_(
            BookingInvoiced(
                booking_id=str(self.id),
                awb=self.awb,
                invoice_id=invoice_id,
                total_amount=self.total_amount,
                invoiced_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Administrative edits
    # -------------------------------------------------------------------
    def update_details(self, **changes) -> None:
        """Edit non-status fields such as the reference number."""
        current = BookingStatus(self.status)
        if current in _LOCKED_FOR_EDITS:
            raise ValidationError({"status": [f"Cannot update booking with status: {current.value}"]})

        unknown = set(changes) - set(_EDITABLE_FIELDS)
        if unknown:
            raise ValidationError({"fields": [f"Not editable: {', '.join(sorted(unknown))}"]})

        applied = {name: value for name, value in changes.items() if value is not None}
        if not applied:
            return

        now = datetime.now(UTC)
        for name, value in applied.items():
            setattr(self, name, value)
        self.updated_at = now
        self.raise_(
            BookingDetailsUpdated(
                booking_id=str(self.id),
                changes=json.dumps(applied),
                updated_at=now,
            )
        )

    def record_proof_of_delivery(self, delivered_to: str, delivery_proof: str, remarks: str | None = None) -> None:
        if not delivery_proof:
            raise ValidationError({"delivery_proof": ["A proof of delivery reference is required"]})

        now = datetime.now(UTC)
        self.delivered_to = delivered_to or "Recipient"
        self.delivery_proof = delivery_proof
        self.delivery_remarks = remarks or ""
        self.updated_at = now
        self.raise_(
            ProofOfDeliveryRecorded(
                booking_id=str(self.id),
                delivered_to=self.delivered_to,
                delivery_proof=delivery_proof,
                recorded_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Consignee
    # -------------------------------------------------------------------
    def consignee_snapshot(self) -> dict | None:
        return self.consignee_details.to_dict() if self.consignee_details else None
