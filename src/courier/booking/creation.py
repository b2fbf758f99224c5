"""Booking creation: single bookings, bulk upload and re-dispatch of returns."""

import json

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Boolean, Float, Identifier, Integer, String, Text
from protean.utils.globals import current_domain
from protean.utils.reflection import declared_fields

from courier.booking.awb import generate_awb
from courier.booking.booking import Booking, BookingStatus
from courier.domain import courier
from courier.party.consignee import Consignee
from courier.party.shipper import Shipper
from courier.pricing.charges import ChargeInput, compute_charges
from courier.pricing.config import PricingConfig

logger = structlog.get_logger(__name__)


@courier.command(part_of="Booking")
class CreateBooking:
    """Book a shipment. Either ``consignee_id`` or ``consignee_details`` is required."""

    shipper_id = Identifier(required=True)
    consignee_id = Identifier()
    consignee_details = Text()  # JSON object: name, mobile, email, company, street, city, ...
    service_type = String(max_length=20, default="Standard")
    shipment_type = String(max_length=20, default="Parcel")
    number_of_pieces = Integer(min_value=1, default=1)
    weight = Float(required=True)
    length = Float()
    width = Float()
    height = Float()
    dimension_unit = String(max_length=2, default="cm")
    description = String(required=True, max_length=500)
    declared_value = Float(default=0.0)
    requires_insurance = Boolean(default=False)
    payment_mode = String(max_length=10, default="COD")
    cod_amount = Float(default=0.0)
    reference_number = String(max_length=100)
    special_instructions = Text()
    is_urgent = Boolean(default=False)
    is_fragile = Boolean(default=False)
    booked_by = String(max_length=100)
    branch = String(max_length=100)
    location = String(max_length=200)


@courier.command(part_of="Booking")
class BulkCreateBookings:
    rows = Text(required=True)  # JSON list of CreateBooking payloads
    booked_by = String(max_length=100)


@courier.command(part_of="Booking")
class RedispatchBooking:
    """Book a fresh shipment for the contents of a Returned booking."""

    booking_id = Identifier(required=True)
    booked_by = String(max_length=100)
    location = String(max_length=200)
    remarks = Text()


def _decode_consignee(raw) -> dict | None:
    if not raw:
        return None
    if isinstance(raw, dict):
        return raw
    try:
        details = json.loads(raw)
    except json.JSONDecodeError:
        raise ValidationError({"consignee_details": ["Consignee details must be a JSON object"]}) from None
    if not isinstance(details, dict):
        raise ValidationError({"consignee_details": ["Consignee details must be a JSON object"]})
    return details


def book(
    command: CreateBooking,
    config: PricingConfig,
    awb_exists=None,
    redispatched_from: str | None = None,
) -> Booking:
    """Validate references, price the shipment and build the Booking."""
    if command.weight is None or command.weight <= 0:
        raise ValidationError({"weight": ["Weight must be greater than zero"]})

    # Both raise ObjectNotFoundError for dangling references
    current_domain.repository_for(Shipper).get(str(command.shipper_id))
    if command.consignee_id:
        current_domain.repository_for(Consignee).get(str(command.consignee_id))

    consignee_details = _decode_consignee(command.consignee_details)
    if not command.consignee_id and not consignee_details:
        raise ValidationError({"consignee": ["Either a consignee id or consignee details are required"]})

    charges = compute_charges(
        ChargeInput(
            weight=command.weight,
            service_type=command.service_type,
            length=command.length,
            width=command.width,
            height=command.height,
            dimension_unit=command.dimension_unit,
            declared_value=command.declared_value or 0.0,
            requires_insurance=bool(command.requires_insurance),
            payment_mode=command.payment_mode,
            cod_amount=command.cod_amount or 0.0,
        ),
        config,
    )

    dimensions = None
    if command.length and command.width and command.height:
        dimensions = {
            "length": command.length,
            "width": command.width,
            "height": command.height,
            "unit": command.dimension_unit,
        }

    return Booking.create(
        awb=generate_awb(awb_exists),
        shipper_id=str(command.shipper_id),
        charges=charges,
        weight=command.weight,
        description=command.description,
        consignee_id=str(command.consignee_id) if command.consignee_id else None,
        consignee_details=consignee_details,
        service_type=command.service_type,
        shipment_type=command.shipment_type,
        payment_mode=command.payment_mode,
        cod_amount=command.cod_amount or 0.0,
        declared_value=command.declared_value or 0.0,
        requires_insurance=bool(command.requires_insurance),
        number_of_pieces=command.number_of_pieces or 1,
        dimensions=dimensions,
        reference_number=command.reference_number,
        special_instructions=command.special_instructions,
        is_urgent=bool(command.is_urgent),
        is_fragile=bool(command.is_fragile),
        booked_by=command.booked_by,
        branch=command.branch,
        location=command.location,
        redispatched_from=redispatched_from,
    )


@courier.command_handler(part_of=Booking)
class BookingCreationHandler:
    @handle(CreateBooking)
    def create_booking(self, command: CreateBooking) -> dict:
        booking = book(command, PricingConfig.from_env())
        current_domain.repository_for(Booking).add(booking)
        logger.info(
            "Booking created",
            booking_id=str(booking.id),
            awb=booking.awb,
            shipper_id=booking.shipper_id,
            total_amount=booking.total_amount,
        )
        return {"booking_id": str(booking.id), "awb": booking.awb}

    @handle(BulkCreateBookings)
    def bulk_create_bookings(self, command: BulkCreateBookings) -> dict:
        """Create one booking per row; a failing row is reported, never fatal."""
        try:
            rows = json.loads(command.rows)
        except json.JSONDecodeError:
            raise ValidationError({"rows": ["Rows must be a JSON list"]}) from None
        if not isinstance(rows, list):
            raise ValidationError({"rows": ["Rows must be a JSON list"]})

        repo = current_domain.repository_for(Booking)
        config = PricingConfig.from_env()
        issued: set[str] = set()

        def awb_taken(awb: str) -> bool:
            return awb in issued or repo.awb_exists(awb)

        allowed = set(declared_fields(CreateBooking))
        created, failed = [], []
        for index, row in enumerate(rows, start=1):
            try:
                if not isinstance(row, dict):
                    raise ValidationError({"row": ["Each row must be an object"]})
                unknown = set(row) - allowed
                if unknown:
                    raise ValidationError({"row": [f"Unknown fields: {', '.join(sorted(unknown))}"]})

                payload = dict(row)
                if isinstance(payload.get("consignee_details"), dict):
                    payload["consignee_details"] = json.dumps(payload["consignee_details"])
                payload.setdefault("booked_by", command.booked_by)

                booking = book(CreateBooking(**payload), config, awb_taken)
            except ValidationError as exc:
                failed.append({"row": index, "error": exc.messages})
                continue
            except ObjectNotFoundError as exc:
                # Repository lookups raise without field-keyed messages
                failed.append({"row": index, "error": {"_entity": [str(exc)]}})
                continue

            issued.add(booking.awb)
            repo.add(booking)
            created.append({"row": index, "booking_id": str(booking.id), "awb": booking.awb})

        logger.info("Bulk booking upload processed", created=len(created), failed=len(failed))
        return {"created": created, "failed": failed}

    @handle(RedispatchBooking)
    def redispatch_booking(self, command: RedispatchBooking) -> dict:
        repo = current_domain.repository_for(Booking)
        returned = repo.get(str(command.booking_id))
        if returned.status != BookingStatus.RETURNED.value:
            raise ValidationError(
                {"status": [f"Only Returned bookings can be re-dispatched; booking is {returned.status}"]}
            )

        dimensions = returned.dimensions
        source = CreateBooking(
            shipper_id=returned.shipper_id,
            consignee_id=returned.consignee_id,
            consignee_details=json.dumps(returned.consignee_snapshot()) if returned.consignee_details else None,
            service_type=returned.service_type,
            shipment_type=returned.shipment_type,
            number_of_pieces=returned.number_of_pieces,
            weight=returned.weight,
            length=dimensions.length if dimensions else None,
            width=dimensions.width if dimensions else None,
            height=dimensions.height if dimensions else None,
            dimension_unit=dimensions.unit if dimensions else "cm",
            description=returned.description,
            declared_value=returned.declared_value,
            requires_insurance=returned.requires_insurance,
            payment_mode=returned.payment_mode,
            cod_amount=returned.cod_amount,
            reference_number=returned.reference_number,
            special_instructions=command.remarks or returned.special_instructions,
            is_urgent=returned.is_urgent,
            is_fragile=returned.is_fragile,
            booked_by=command.booked_by,
            branch=returned.branch,
            location=command.location,
        )
        booking = book(source, PricingConfig.from_env(), redispatched_from=str(returned.id))
        repo.add(booking)
        logger.info(
            "Returned booking re-dispatched",
            booking_id=str(booking.id),
            awb=booking.awb,
            redispatched_from=str(returned.id),
        )
        return {"booking_id": str(booking.id), "awb": booking.awb}
