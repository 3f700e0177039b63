"""
Order Service Event Models

Pydantic models for events published and consumed by order service
"""

from pydantic import BaseModel, Field
from typing import Optional, Dict, Any, List
from datetime import datetime, timezone
from decimal import Decimal


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OrderCreatedEvent(BaseModel):
    """Event published when order is created"""
    order_id: str
    total_amount: Decimal
    total_items: int
    status: str
    items: List[Dict[str, Any]] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=_utcnow)


class OrderStatusChangedEvent(BaseModel):
    """Event published when the order status actually changes"""
    order_id: str
    old_status: Optional[str] = None
    new_status: str
    timestamp: datetime = Field(default_factory=_utcnow)


class OrderPaidEvent(BaseModel):
    """Event published when an order transitions to paid"""
    order_id: str
    total_amount: Decimal
    charge_reference: str
    receipt_url: Optional[str] = None
    paid_at: Optional[datetime] = None
    timestamp: datetime = Field(default_factory=_utcnow)


class PaymentSucceededEvent(BaseModel):
    """Payment confirmation consumed from payment_service"""
    order_id: str = Field(..., min_length=1)
    charge_reference: str = Field(..., min_length=1)
    receipt_url: str = Field(..., min_length=1)
