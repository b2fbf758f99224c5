"""Consignee aggregate: a saved recipient a booking can reference by id."""

from datetime import UTC, datetime

from protean import handle
from protean.fields import Boolean, DateTime, Identifier, String
from protean.utils.globals import current_domain

from courier.domain import courier


@courier.aggregate
class Consignee:
    shipper_id = Identifier()
    name = String(required=True, max_length=200)
    mobile = String(required=True, max_length=30)
    email = String(max_length=254)
    company = String(max_length=200)
    street = String(max_length=300)
    city = String(required=True, max_length=100)
    state = String(max_length=100)
    postal_code = String(max_length=20)
    country = String(max_length=100)
    is_active = Boolean(default=True)
    created_at = DateTime()

    def summary(self) -> dict:
        """Same keys as a booking's embedded consignee snapshot."""
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


@courier.command(part_of="Consignee")
class RegisterConsignee:
    shipper_id = Identifier()
    name = String(required=True, max_length=200)
    mobile = String(required=True, max_length=30)
    email = String(max_length=254)
    company = String(max_length=200)
    street = String(max_length=300)
    city = String(required=True, max_length=100)
    state = String(max_length=100)
    postal_code = String(max_length=20)
    country = String(max_length=100)


@courier.command_handler(part_of=Consignee)
class RegisterConsigneeHandler:
    @handle(RegisterConsignee)
    def register_consignee(self, command):
        consignee = Consignee(
            shipper_id=command.shipper_id,
            name=command.name,
            mobile=command.mobile,
            email=command.email.strip().lower() if command.email else None,
            company=command.company,
            street=command.street,
            city=command.city,
            state=command.state,
            postal_code=command.postal_code,
            country=command.country,
            created_at=datetime.now(UTC),
        )
        current_domain.repository_for(Consignee).add(consignee)
        return str(consignee.id)
