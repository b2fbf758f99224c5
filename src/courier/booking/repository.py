"""Repository for the Booking aggregate."""

from courier.booking.booking import Booking
from courier.domain import courier


@courier.repository(part_of=Booking)
class BookingRepository:
    """Booking lookups beyond get-by-id."""

    def get_by_awb(self, awb: str) -> Booking | None:
        results = self._dao.query.filter(awb=awb).all().items
        return results[0] if results else None

    def awb_exists(self, awb: str) -> bool:
        return bool(self._dao.query.filter(awb=awb).all().items)

    def find_by_status(self, status: str) -> list[Booking]:
        return self._dao.query.filter(status=status).all().items

    def find_by_shipper(self, shipper_id: str) -> list[Booking]:
        return self._dao.query.filter(shipper_id=shipper_id).all().items
