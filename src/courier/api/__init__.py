"""Courier API package."""

from courier.api.errors import register_error_handlers
from courier.api.routes import (
    booking_router,
    charges_router,
    consignee_router,
    exception_router,
    invoice_router,
    shipper_router,
    tracking_router,
)

routers = [
    booking_router,
    tracking_router,
    exception_router,
    invoice_router,
    shipper_router,
    consignee_router,
    charges_router,
]

__all__ = ["routers", "register_error_handlers"]
