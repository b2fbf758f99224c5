"""Booking domain events: immutable facts about booking state changes.

Events carry enough data for the tracking, invoicing and statistics
projectors to update without reading the aggregate back.
"""

from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String, Text

from courier.domain import courier


@courier.event(part_of="Booking")
class BookingCreated:
    """A booking was submitted and seeded with its first Booked entry."""

    __version__ = 1

    booking_id = Identifier(required=True)
    awb = String(required=True)
    shipper_id = Identifier(required=True)
    consignee_id = Identifier()
    consignee_details = Text()  # JSON snapshot, empty when a consignee id is referenced
    service_type = String(required=True)
    payment_mode = String(required=True)
    weight = Float(required=True)
    chargeable_weight = Float()
    declared_value = Float()
    cod_amount = Float()
    shipping_charges = Float()
    insurance_charges = Float()
    cod_charges = Float()
    fuel_surcharge = Float()
    subtotal = Float()
    tax_amount = Float()
    total_amount = Float(required=True)
    currency = String()
    status = String(required=True)
    location = String()
    booked_by = String()
    redispatched_from = Identifier()
    booking_date = DateTime(required=True)


@courier.event(part_of="Booking")
class BookingStatusChanged:
    """A status entry was appended to the booking's history."""

    __version__ = 1

    booking_id = Identifier(required=True)
    awb = String(required=True)
    shipper_id = Identifier(required=True)
    service_type = String()
    previous_status = String(required=True)
    status = String(required=True)
    sequence = Integer(required=True)
    revision = Integer(required=True)
    location = String()
    remarks = Text()
    updated_by = String()
    invoice_generated = Boolean(default=False)
    subtotal = Float()
    total_amount = Float()
    occurred_at = DateTime(required=True)


@courier.event(part_of="Booking")
class BookingDetailsUpdated:
    """Administrative, non-status fields of a booking were edited."""

    __version__ = 1

    booking_id = Identifier(required=True)
    changes = Text(required=True)  # JSON: {field: new value}
    updated_at = DateTime(required=True)


@courier.event(part_of="Booking")
class ProofOfDeliveryRecorded:
    """A proof of delivery was attached to the booking."""

    __version__ = 1

    booking_id = Identifier(required=True)
    delivered_to = String(required=True)
    delivery_proof = String(required=True)
    recorded_at = DateTime(required=True)


@courier.event(part_of="Booking")
class BookingInvoiced:
    """The booking was included in an invoice; it can never be billed again."""

    __version__ = 1

    booking_id = Identifier(required=True)
    awb = String(required=True)
    invoice_id = Identifier(required=True)
    total_amount = Float()
    invoiced_at = DateTime(required=True)
