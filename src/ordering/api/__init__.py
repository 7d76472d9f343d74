"""Ordering API package."""

from ordering.api.errors import register_ordering_exception_handlers
from ordering.api.routes import admin_router, cart_router, courier_router, order_router, vendor_router

__all__ = [
    "admin_router",
    "cart_router",
    "courier_router",
    "order_router",
    "register_ordering_exception_handlers",
    "vendor_router",
]
