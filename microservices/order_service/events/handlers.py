"""
Order Service Event Handlers

Handlers for events from other services
"""

import logging
from typing import Any, Callable, Dict, Optional

from pydantic import ValidationError

from ..models import PaidOrderRequest
from ..protocols import OrderNotFoundError
from .models import PaymentSucceededEvent

logger = logging.getLogger(__name__)

# Recently handled event ids. Only a fast path: the repository's
# already-paid check is what makes redelivery safe.
processed_event_ids = set()


def is_event_processed(event_id: str) -> bool:
    """Check if event has already been processed (idempotency)"""
    return event_id in processed_event_ids


def mark_event_processed(event_id: str):
    """Mark event as processed"""
    global processed_event_ids
    processed_event_ids.add(event_id)
    # Limit size to prevent memory issues
    if len(processed_event_ids) > 10000:
        processed_event_ids = set(list(processed_event_ids)[5000:])


async def handle_payment_succeeded(
    event_data: Dict[str, Any],
    order_service,
    event_id: Optional[str] = None
) -> None:
    """
    Handle payment.succeeded event
    Mark the order paid and record its receipt

    Malformed payloads and unknown orders are logged and dropped since
    redelivery cannot fix them. Any other failure propagates so the
    event bus redelivers the message.
    """
    if event_id and is_event_processed(event_id):
        logger.debug(f"Event {event_id} already processed, skipping")
        return

    try:
        payment = PaymentSucceededEvent.model_validate(event_data)
    except ValidationError as e:
        logger.warning(f"payment.succeeded event {event_id} has an invalid payload: {e}")
        if event_id:
            mark_event_processed(event_id)
        return

    try:
        await order_service.mark_order_paid(
            PaidOrderRequest(
                order_id=payment.order_id,
                charge_reference=payment.charge_reference,
                receipt_url=payment.receipt_url
            )
        )
    except OrderNotFoundError:
        logger.warning(f"No order found for payment.succeeded event: {payment.order_id}")
        if event_id:
            mark_event_processed(event_id)
        return

    if event_id:
        mark_event_processed(event_id)
    logger.info(f"Order {payment.order_id} paid (event: {event_id})")


def get_event_handlers(order_service) -> Dict[str, Callable]:
    """
    Get all event handlers for order service.

    Returns a dict mapping event patterns to handler functions.
    This is used by main.py to register all event subscriptions.

    Args:
        order_service: OrderService instance

    Returns:
        Dict[str, callable]: Event pattern -> handler function mapping
    """
    return {
        "payment_service.payment.succeeded": lambda event: handle_payment_succeeded(
            event.data, order_service, event.id
        ),
    }
