"""Shipper aggregate: the account a booking is billed to.

Only the parts bookings and invoices depend on are modelled here: contact
details, the address whose state decides the GST split, and the running
booking statistics maintained from ``BookingCreated``.
"""

from datetime import UTC, datetime
from enum import Enum

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, Integer, String, ValueObject
from protean.utils.globals import current_domain

from courier.domain import courier
from courier.shared.timestamps import as_utc


class ShipperStatus(Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"
    SUSPENDED = "Suspended"
    BLOCKED = "Blocked"


class PaymentType(Enum):
    COD = "COD"
    PREPAID = "Prepaid"
    CREDIT = "Credit"


@courier.value_object(part_of="Shipper")
class Address:
    street = String(max_length=300)
    city = String(required=True, max_length=100)
    state = String(max_length=100)
    postal_code = String(max_length=20)
    country = String(max_length=100)

    def to_dict(self) -> dict:
        return {
            "street": self.street,
            "city": self.city,
            "state": self.state,
            "postal_code": self.postal_code,
            "country": self.country,
        }


@courier.aggregate
class Shipper:
    name = String(required=True, max_length=200)
    company = String(required=True, max_length=200)
    email = String(required=True, max_length=254)
    mobile = String(required=True, max_length=30)
    address = ValueObject(Address)
    tax_id = String(max_length=50)
    payment_type = String(max_length=10, choices=PaymentType, default=PaymentType.COD.value)
    credit_limit = Float(min_value=0.0, default=0.0)
    status = String(max_length=20, choices=ShipperStatus, default=ShipperStatus.ACTIVE.value)

    total_bookings = Integer(default=0)
    total_revenue = Float(default=0.0)
    last_booking_date = DateTime()
    created_at = DateTime()

    @classmethod
    def register(cls, name, company, email, mobile, address=None, tax_id=None, payment_type=None, credit_limit=0.0):
        if email and "@" not in email:
            raise ValidationError({"email": ["Please provide a valid email"]})
        return cls(
            name=name,
            company=company,
            email=email.strip().lower(),
            mobile=mobile,
            address=Address(**address) if address else None,
            tax_id=tax_id,
            payment_type=payment_type or PaymentType.COD.value,
            credit_limit=credit_limit or 0.0,
            created_at=datetime.now(UTC),
        )

    @property
    def billing_state(self) -> str | None:
        return self.address.state if self.address else None

    def record_booking(self, total_amount: float, booked_at: datetime) -> None:
        self.total_bookings = (self.total_bookings or 0) + 1
        self.total_revenue = round((self.total_revenue or 0.0) + (total_amount or 0.0), 2)
        if self.last_booking_date is None or as_utc(booked_at) >= as_utc(self.last_booking_date):
            self.last_booking_date = booked_at

    def contact_summary(self) -> dict:
        return {
            "id": str(self.id),
            "name": self.name,
            "company": self.company,
            "email": self.email,
            "mobile": self.mobile,
            "city": self.address.city if self.address else None,
            "state": self.billing_state,
        }


@courier.repository(part_of=Shipper)
class ShipperRepository:
    def find_by_email(self, email: str) -> Shipper | None:
        results = self._dao.query.filter(email=email.strip().lower()).all().items
        return results[0] if results else None


@courier.command(part_of="Shipper")
class RegisterShipper:
    name = String(required=True, max_length=200)
    company = String(required=True, max_length=200)
    email = String(required=True, max_length=254)
    mobile = String(required=True, max_length=30)
    street = String(max_length=300)
    city = String(max_length=100)
    state = String(max_length=100)
    postal_code = String(max_length=20)
    country = String(max_length=100)
    tax_id = String(max_length=50)
    payment_type = String(max_length=10)
    credit_limit = Float(default=0.0)


@courier.command_handler(part_of=Shipper)
class RegisterShipperHandler:
    @handle(RegisterShipper)
    def register_shipper(self, command):
        repo = current_domain.repository_for(Shipper)
        if repo.find_by_email(command.email):
            raise ValidationError({"email": [f"A shipper with email {command.email} already exists"]})

        address = None
        if command.city:
            address = {
                "street": command.street,
                "city": command.city,
                "state": command.state,
                "postal_code": command.postal_code,
                "country": command.country,
            }
        shipper = Shipper.register(
            name=command.name,
            company=command.company,
            email=command.email,
            mobile=command.mobile,
            address=address,
            tax_id=command.tax_id,
            payment_type=command.payment_type,
            credit_limit=command.credit_limit,
        )
        repo.add(shipper)
        return str(shipper.id)
