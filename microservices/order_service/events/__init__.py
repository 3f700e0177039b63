"""
Order Service Events Module

Exports all event-related functionality for order service
"""

from .models import (
    OrderCreatedEvent,
    OrderStatusChangedEvent,
    OrderPaidEvent,
    PaymentSucceededEvent
)

from .publishers import (
    publish_order_created,
    publish_order_status_changed,
    publish_order_paid
)

from .handlers import get_event_handlers, handle_payment_succeeded

__all__ = [
    # Event Models
    "OrderCreatedEvent",
    "OrderStatusChangedEvent",
    "OrderPaidEvent",
    "PaymentSucceededEvent",
    # Publishers
    "publish_order_created",
    "publish_order_status_changed",
    "publish_order_paid",
    # Handlers
    "get_event_handlers",
    "handle_payment_succeeded"
]
