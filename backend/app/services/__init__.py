"""Business services."""

from app.services.order_service import OrderService, trailing_callback_rate

__all__ = [
    "OrderService",
    "trailing_callback_rate",
]
