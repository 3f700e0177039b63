"""
Order Service Business Logic

Orchestrates the order lifecycle across the product catalog, the order
store and the payment service. Holds no per-request state: every durable
fact lives in the repository.
"""

from typing import Optional, List, Dict, Any, Iterable, Tuple
from decimal import Decimal, ROUND_HALF_UP
import logging
import math

from .models import (
    OrderCreateRequest, OrderPaginationParams, OrderStatusChangeRequest,
    PaidOrderRequest, Order, OrderItem, OrderWithItems, OrderListResponse,
    PaginationMeta, ProductRecord, PaymentSessionItem, PaymentSessionRequest
)
from .protocols import (
    OrderRepositoryProtocol,
    EventBusProtocol,
    ProductClientProtocol,
    PaymentClientProtocol,
    OrderServiceError,
    OrderValidationError,
    OrderNotFoundError,
    OrderPersistenceError,
    PaymentCollaboratorError,
    ProductServiceError,
    ProductNotFoundError,
    PaymentServiceError,
)
from .events.publishers import (
    publish_order_created,
    publish_order_status_changed,
    publish_order_paid
)

logger = logging.getLogger(__name__)

CREATE_FAILED_MESSAGE = "Order creation failed, check server logs for details"

DEFAULT_INITIAL_STATUS = "PENDING"
DEFAULT_PAID_STATUS = "PAID"
DEFAULT_CURRENCY = "usd"

# Matches the NUMERIC(12,2) price and total columns
PRICE_QUANTUM = Decimal("0.01")


def calculate_totals(items: Iterable[OrderItem]) -> Tuple[Decimal, int]:
    """Return (total_amount, total_items) for priced line items"""
    total_amount = Decimal("0")
    total_items = 0
    for item in items:
        total_amount += item.price * item.quantity
        total_items += item.quantity
    return total_amount, total_items


def calculate_last_page(total: int, limit: int) -> int:
    return math.ceil(total / limit) if total else 0


class OrderService:
    """
    Order management business logic service

    Handles order creation against authoritative catalog prices, reads,
    status transitions, payment sessions and payment confirmation.
    """

    def __init__(
        self,
        repository: OrderRepositoryProtocol,
        product_client: ProductClientProtocol,
        payment_client: Optional[PaymentClientProtocol] = None,
        event_bus: Optional[EventBusProtocol] = None,
        currency: str = DEFAULT_CURRENCY,
        initial_status: str = DEFAULT_INITIAL_STATUS,
        paid_status: str = DEFAULT_PAID_STATUS
    ):
        """
        Initialize Order Service

        Args:
            repository: Order repository (persistence gateway)
            product_client: Product catalog client used for validation and names
            payment_client: Payment service client (optional, dependency injection)
            event_bus: NATS event bus instance (optional)
            currency: Settlement currency sent to the payment service
            initial_status: Status given to newly created orders
            paid_status: Status written when an order is paid
        """
        self.repository = repository
        self.product_client = product_client
        self.payment_client = payment_client
        self.event_bus = event_bus
        self.currency = currency
        self.initial_status = initial_status
        self.paid_status = paid_status

        logger.info("OrderService initialized")

    # Order Lifecycle Operations

    async def create_order(self, request: OrderCreateRequest) -> OrderWithItems:
        """
        Create a new order

        Validates every product with one catalog call, prices each line
        from the catalog response (rounded to cents before totalling) and
        writes the order with all of its items atomically.

        Raises:
            OrderValidationError: A product is unknown or the catalog failed
            OrderPersistenceError: The order could not be stored
        """
        product_ids = list(dict.fromkeys(item.product_id for item in request.items))

        try:
            products = await self.product_client.validate_products(product_ids)
        except ProductServiceError as e:
            logger.error(f"Product validation failed for {product_ids}: {e}")
            raise OrderValidationError(CREATE_FAILED_MESSAGE) from e

        catalog = {product.id: product for product in products}
        missing = [product_id for product_id in product_ids if product_id not in catalog]
        if missing:
            logger.error(f"Catalog response is missing products {missing}")
            raise OrderValidationError(CREATE_FAILED_MESSAGE)

        items = [
            OrderItem(
                product_id=line.product_id,
                quantity=line.quantity,
                price=catalog[line.product_id].price.quantize(PRICE_QUANTUM, rounding=ROUND_HALF_UP)
            )
            for line in request.items
        ]
        total_amount, total_items = calculate_totals(items)

        try:
            order = await self.repository.create_order(
                total_amount=total_amount,
                total_items=total_items,
                status=self.initial_status,
                items=items
            )
        except Exception as e:
            logger.error(f"Failed to persist order: {e}")
            raise OrderPersistenceError(CREATE_FAILED_MESSAGE) from e

        logger.info(f"Order created: {order.order_id} ({total_items} items, total {total_amount})")

        if self.event_bus:
            await publish_order_created(self.event_bus, order)

        return self._attach_names(order, catalog)

    async def get_order(self, order_id: str) -> OrderWithItems:
        """
        Get order by ID with current product names

        A catalog failure only costs the display names; price and
        quantity come from the stored order. When some products have left
        the catalog, the remaining names are resolved one product at a time.
        """
        order = await self._load_order(order_id)

        product_ids = list(dict.fromkeys(item.product_id for item in order.items))
        try:
            products = await self.product_client.validate_products(product_ids)
            catalog = {product.id: product for product in products}
        except ProductNotFoundError as e:
            logger.warning(f"Some products of order {order_id} are no longer in the catalog: {e}")
            catalog = await self._resolve_each(product_ids)
        except ProductServiceError as e:
            logger.warning(f"Could not resolve product names for order {order_id}: {e}")
            catalog = {}

        return self._attach_names(order, catalog)

    async def list_orders(self, params: OrderPaginationParams) -> OrderListResponse:
        """List one page of orders, optionally filtered by status"""
        offset = (params.page - 1) * params.limit
        try:
            total, orders = await self.repository.list_orders(
                limit=params.limit,
                offset=offset,
                status=params.status
            )
        except Exception as e:
            logger.error(f"Failed to list orders (page {params.page}, status {params.status}): {e}")
            raise OrderServiceError("Failed to list orders") from e

        return OrderListResponse(
            data=orders,
            meta=PaginationMeta(
                total=total,
                page=params.page,
                last_page=calculate_last_page(total, params.limit)
            )
        )

    async def change_order_status(
        self,
        order_id: str,
        request: OrderStatusChangeRequest
    ) -> Order:
        """
        Change the order status

        Repeating the current status is a no-op: no write, no event.
        """
        try:
            result = await self.repository.update_order_status(order_id, request.status)
        except Exception as e:
            logger.error(f"Failed to change status of order {order_id}: {e}")
            raise OrderServiceError(f"Failed to change status of order {order_id}") from e

        if result is None:
            raise OrderNotFoundError(f"Order not found: {order_id}")

        order, previous_status = result
        if previous_status == order.status:
            logger.debug(f"Order {order_id} already in status {order.status}")
            return order

        logger.info(f"Order {order_id} status changed from {previous_status} to {order.status}")
        if self.event_bus:
            await publish_order_status_changed(self.event_bus, order, old_status=previous_status)
        return order

    # Payment Operations

    async def create_payment_session(self, order: OrderWithItems) -> Dict[str, Any]:
        """
        Request a payment session for an order

        Does not change the order and is never retried.

        Raises:
            PaymentCollaboratorError: The payment service failed
        """
        if self.payment_client is None:
            raise PaymentCollaboratorError("Payment client not configured")

        request = PaymentSessionRequest(
            order_id=order.order_id,
            currency=self.currency,
            items=[
                PaymentSessionItem(name=item.name, price=item.price, quantity=item.quantity)
                for item in order.items
            ]
        )

        try:
            session = await self.payment_client.create_payment_session(request)
        except PaymentServiceError as e:
            logger.error(f"Payment session creation failed for order {order.order_id}: {e}")
            raise PaymentCollaboratorError("Payment session creation failed") from e

        logger.info(f"Payment session created for order {order.order_id}")
        return session

    async def mark_order_paid(self, request: PaidOrderRequest) -> OrderWithItems:
        """
        Mark an order paid after payment confirmation

        Safe under duplicate delivery: an already-paid order is returned
        unchanged and no second receipt is created.
        """
        logger.info(f"Payment confirmation for order {request.order_id} (charge {request.charge_reference})")

        try:
            result = await self.repository.mark_order_paid(
                order_id=request.order_id,
                paid_status=self.paid_status,
                charge_reference=request.charge_reference,
                receipt_url=request.receipt_url
            )
        except Exception as e:
            logger.error(f"Failed to mark order {request.order_id} as paid: {e}")
            raise PaymentCollaboratorError(f"Failed to mark order {request.order_id} as paid") from e

        if result is None:
            raise OrderNotFoundError(f"Order not found: {request.order_id}")

        order, changed = result
        if not changed:
            logger.info(f"Order {request.order_id} already paid, ignoring duplicate confirmation")
            return order

        logger.info(f"Order {request.order_id} marked as paid")
        if self.event_bus:
            await publish_order_paid(self.event_bus, order)
        return order

    # Health

    async def health_check(self) -> Dict[str, Any]:
        storage = await self.repository.health_check()
        return {
            "status": "healthy" if storage.get("healthy") else "unhealthy",
            "storage": storage,
            "event_bus": bool(self.event_bus and getattr(self.event_bus, "is_connected", False)),
        }

    # Helpers

    async def _load_order(self, order_id: str) -> OrderWithItems:
        try:
            order = await self.repository.get_order(order_id)
        except Exception as e:
            logger.error(f"Failed to load order {order_id}: {e}")
            raise OrderServiceError(f"Failed to load order {order_id}") from e

        if order is None:
            raise OrderNotFoundError(f"Order not found: {order_id}")
        return order

    async def _resolve_each(self, product_ids: List[str]) -> Dict[str, ProductRecord]:
        catalog: Dict[str, ProductRecord] = {}
        for product_id in product_ids:
            try:
                products = await self.product_client.validate_products([product_id])
            except ProductServiceError as e:
                logger.debug(f"No catalog name for product {product_id}: {e}")
                continue
            catalog.update((product.id, product) for product in products)
        return catalog

    @staticmethod
    def _attach_names(
        order: OrderWithItems,
        catalog: Dict[str, ProductRecord]
    ) -> OrderWithItems:
        items: List[OrderItem] = [
            item.model_copy(update={
                "name": catalog[item.product_id].name if item.product_id in catalog else None
            })
            for item in order.items
        ]
        return order.model_copy(update={"items": items})
