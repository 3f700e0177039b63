"""
Order Service Protocols (Interfaces)

These interfaces define contracts for dependency injection.
NO import-time I/O dependencies - safe to import anywhere.
"""
from typing import Any, Dict, Iterable, List, Optional, Protocol, Tuple, runtime_checkable
from decimal import Decimal

# Import only models (no I/O dependencies)
from .models import (
    Order, OrderItem, OrderWithItems, ProductRecord, PaymentSessionRequest
)


# ============================================================================
# Custom Exceptions - defined here to avoid importing repository
# ============================================================================

class OrderServiceError(Exception):
    """Base exception for order service errors"""

    error_code = "ORDER_SERVICE_ERROR"


class OrderValidationError(OrderServiceError):
    """Products could not be validated against the catalog"""

    error_code = "VALIDATION_FAILED"


class OrderNotFoundError(OrderServiceError):
    """Order not found error"""

    error_code = "ORDER_NOT_FOUND"


class OrderPersistenceError(OrderServiceError):
    """The durable write did not commit"""

    error_code = "PERSISTENCE_FAILED"


class PaymentCollaboratorError(OrderServiceError):
    """Payment session creation or confirmation handling failed"""

    error_code = "PAYMENT_FAILED"


# Collaborator-level errors raised by the HTTP clients. The orchestrator
# never lets these reach its callers.

class ProductServiceError(Exception):
    """Product service unreachable or returned an unexpected response"""
    pass


class ProductNotFoundError(ProductServiceError):
    """At least one requested product does not exist"""
    pass


class PaymentServiceError(Exception):
    """Payment service unreachable or rejected the request"""
    pass


# ============================================================================
# Repository Protocol
# ============================================================================

@runtime_checkable
class OrderRepositoryProtocol(Protocol):
    """
    Interface for Order Repository.

    Implementations must provide these methods.
    Used for dependency injection to enable testing.
    """

    async def create_order(
        self,
        total_amount: Decimal,
        total_items: int,
        status: str,
        items: List[OrderItem]
    ) -> OrderWithItems:
        """Insert an order and all of its items in one transaction"""
        ...

    async def get_order(self, order_id: str) -> Optional[OrderWithItems]:
        """Get order with items and receipt by ID"""
        ...

    async def list_orders(
        self,
        limit: int,
        offset: int,
        status: Optional[str] = None
    ) -> Tuple[int, List[Order]]:
        """Count and page orders matching the same filter"""
        ...

    async def update_order_status(
        self,
        order_id: str,
        status: str
    ) -> Optional[Tuple[Order, str]]:
        """Set status under a row lock; returns (order, previous_status) or None"""
        ...

    async def mark_order_paid(
        self,
        order_id: str,
        paid_status: str,
        charge_reference: str,
        receipt_url: str
    ) -> Optional[Tuple[OrderWithItems, bool]]:
        """Mark paid and create the receipt atomically; returns (order, changed) or None"""
        ...

    async def health_check(self) -> Dict[str, Any]:
        """Check storage health"""
        ...


# ============================================================================
# Event Bus Protocol
# ============================================================================

@runtime_checkable
class EventBusProtocol(Protocol):
    """Interface for Event Bus - no I/O imports"""

    async def publish_event(self, event: Any) -> bool:
        """Publish an event"""
        ...


# ============================================================================
# Client Protocols
# ============================================================================

@runtime_checkable
class ProductClientProtocol(Protocol):
    """Interface for Product Service Client"""

    async def validate_products(
        self,
        product_ids: Iterable[str]
    ) -> List[ProductRecord]:
        """Return authoritative records, raising ProductServiceError on any miss"""
        ...


@runtime_checkable
class PaymentClientProtocol(Protocol):
    """Interface for Payment Service Client"""

    async def create_payment_session(
        self,
        request: PaymentSessionRequest
    ) -> Dict[str, Any]:
        """Create a payment session, raising PaymentServiceError on failure"""
        ...
