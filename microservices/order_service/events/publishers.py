"""
Order Service Event Publishers

Functions to publish events from order service. Publishing is
best-effort: failures are logged and reported as False, never raised.
"""

import logging
from typing import Optional

from core.nats_client import Event, EventType, ServiceSource
from ..models import Order, OrderWithItems
from .models import (
    OrderCreatedEvent,
    OrderStatusChangedEvent,
    OrderPaidEvent
)

logger = logging.getLogger(__name__)


async def publish_order_created(event_bus, order: OrderWithItems) -> bool:
    """Publish order.created event"""
    if not event_bus:
        logger.warning("Event bus not available, skipping order.created event")
        return False

    try:
        event_data = OrderCreatedEvent(
            order_id=order.order_id,
            total_amount=order.total_amount,
            total_items=order.total_items,
            status=order.status,
            items=[
                {"product_id": item.product_id, "quantity": item.quantity, "price": str(item.price)}
                for item in order.items
            ]
        )

        event = Event(
            event_type=EventType.ORDER_CREATED,
            source=ServiceSource.ORDER_SERVICE,
            data=event_data.model_dump(mode='json')
        )

        return bool(await event_bus.publish_event(event))

    except Exception as e:
        logger.error(f"Failed to publish order.created event: {e}")
        return False


async def publish_order_status_changed(
    event_bus,
    order: Order,
    old_status: Optional[str] = None
) -> bool:
    """Publish order.status_changed event"""
    if not event_bus:
        logger.warning("Event bus not available, skipping order.status_changed event")
        return False

    try:
        event_data = OrderStatusChangedEvent(
            order_id=order.order_id,
            old_status=old_status,
            new_status=order.status
        )

        event = Event(
            event_type=EventType.ORDER_STATUS_CHANGED,
            source=ServiceSource.ORDER_SERVICE,
            data=event_data.model_dump(mode='json')
        )

        return bool(await event_bus.publish_event(event))

    except Exception as e:
        logger.error(f"Failed to publish order.status_changed event: {e}")
        return False


async def publish_order_paid(event_bus, order: OrderWithItems) -> bool:
    """Publish order.paid event"""
    if not event_bus:
        logger.warning("Event bus not available, skipping order.paid event")
        return False

    try:
        event_data = OrderPaidEvent(
            order_id=order.order_id,
            total_amount=order.total_amount,
            charge_reference=order.charge_reference or "",
            receipt_url=order.receipt.receipt_url if order.receipt else None,
            paid_at=order.paid_at
        )

        event = Event(
            event_type=EventType.ORDER_PAID,
            source=ServiceSource.ORDER_SERVICE,
            data=event_data.model_dump(mode='json')
        )

        return bool(await event_bus.publish_event(event))

    except Exception as e:
        logger.error(f"Failed to publish order.paid event: {e}")
        return False
