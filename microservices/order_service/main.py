"""
Order Microservice

Responsibilities:
- Order creation priced from the product catalog
- Order retrieval and paged listing
- Order status transitions
- Payment session requests to the payment service
- Payment confirmation from payment_service events
"""

from fastapi import FastAPI, HTTPException, Depends, status, Query, Path, Body
from fastapi.responses import JSONResponse
import uvicorn
from contextlib import asynccontextmanager
from typing import Optional
from datetime import datetime, timezone
from uuid import UUID

from core.config import OrderConfig, get_settings
from core.logger import setup_service_logger
from core.nats_client import get_event_bus
from .factory import create_order_service
from .order_service import OrderService
from .protocols import (
    OrderServiceError,
    OrderValidationError,
    OrderNotFoundError,
    OrderPersistenceError,
    PaymentCollaboratorError,
)
from .events import get_event_handlers
from .models import (
    OrderCreateRequest, OrderStatusChangeRequest, OrderPaginationParams,
    OrderWithItems, Order, OrderListResponse, OrderServiceStatus
)

# Initialize configuration
settings = get_settings()

# Setup loggers (use actual service name)
logger = setup_service_logger(settings.service_name, settings.logging)


class OrderMicroservice:
    """Order microservice core class"""

    def __init__(self):
        self.order_service: Optional[OrderService] = None
        self.repository = None
        self.event_bus = None

    async def initialize(self, event_bus=None):
        """Initialize the microservice"""
        # Import the real repository here (I/O dependency)
        from .order_repository import OrderRepository

        try:
            self.event_bus = event_bus
            self.repository = OrderRepository(config=settings.infra)
            await self.repository.initialize()
            self.order_service = create_order_service(
                settings,
                event_bus=event_bus,
                repository=self.repository
            )
            logger.info("Order microservice initialized successfully")
        except Exception as e:
            logger.error(f"Failed to initialize order microservice: {e}")
            raise

    async def shutdown(self):
        """Shutdown the microservice"""
        try:
            if self.order_service:
                for client in (self.order_service.product_client, self.order_service.payment_client):
                    if client is not None:
                        await client.close()
            if self.event_bus:
                await self.event_bus.close()
                logger.info("Event bus closed")
            if self.repository:
                await self.repository.close()
            logger.info("Order microservice shutdown completed")
        except Exception as e:
            logger.error(f"Error during shutdown: {e}")


# Global microservice instance
order_microservice = OrderMicroservice()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management"""
    # Initialize event bus
    event_bus = None
    if settings.infra.nats_enabled:
        try:
            event_bus = await get_event_bus(settings.service_name, settings.infra)
            logger.info("Event bus initialized successfully")
        except Exception as e:
            logger.warning(f"Failed to initialize event bus: {e}. Continuing without event publishing.")
            event_bus = None

    # Initialize microservice with event bus
    await order_microservice.initialize(event_bus=event_bus)

    # Subscribe to events
    if event_bus:
        handlers = get_event_handlers(order_microservice.order_service)
        for pattern, handler in handlers.items():
            durable = "order-" + pattern.split(".", 1)[1].replace(".", "-").replace("_", "-") + "-consumer"
            try:
                await event_bus.subscribe_to_events(
                    pattern=pattern,
                    handler=handler,
                    durable=durable
                )
                logger.info(f"Subscribed to {pattern} events")
            except Exception as e:
                logger.warning(f"Failed to subscribe to {pattern}: {e}")

    yield

    await order_microservice.shutdown()


# Create FastAPI application
app = FastAPI(
    title="Order Service",
    description="Order lifecycle orchestration microservice",
    version="1.0.0",
    lifespan=lifespan
)

# CORS handled by Gateway


# Dependency injection
def get_order_service() -> OrderService:
    """Get order service instance"""
    if not order_microservice.order_service:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"message": "Order service not initialized", "error_code": "SERVICE_UNAVAILABLE"}
        )
    return order_microservice.order_service


def get_order_config() -> OrderConfig:
    """Get the order business settings (status catalogue, paging defaults)"""
    return settings.order


def _ensure_valid_status(value: str, order_config: OrderConfig) -> None:
    if not order_config.is_valid_status(value):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={
                "message": f"Invalid status '{value}', expected one of {order_config.statuses}",
                "error_code": "INVALID_STATUS"
            }
        )


# Health check endpoints
@app.get("/health")
async def health_check():
    """Service health check"""
    return {
        "status": "healthy",
        "service": settings.service_name,
        "port": settings.service_port,
        "version": "1.0.0",
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


@app.get("/health/detailed", response_model=OrderServiceStatus)
async def detailed_health_check(
    order_service: OrderService = Depends(get_order_service)
):
    """Detailed health check with database connectivity"""
    try:
        health_data = await order_service.health_check()
        return OrderServiceStatus(
            port=settings.service_port,
            status="operational" if health_data["status"] == "healthy" else "degraded",
            database_connected=health_data["status"] == "healthy",
            event_bus_connected=health_data["event_bus"],
            timestamp=datetime.now(timezone.utc)
        )
    except Exception as e:
        logger.error(f"Detailed health check failed: {e}")
        return OrderServiceStatus(
            port=settings.service_port,
            status="degraded",
            database_connected=False,
            timestamp=datetime.now(timezone.utc)
        )


# Core order management endpoints

@app.post("/api/v1/orders", response_model=OrderWithItems, status_code=status.HTTP_201_CREATED)
async def create_order(
    request: OrderCreateRequest,
    order_service: OrderService = Depends(get_order_service)
):
    """Create a new order priced from the product catalog"""
    return await order_service.create_order(request)


@app.get("/api/v1/orders", response_model=OrderListResponse)
async def list_orders(
    page: int = Query(1, ge=1, description="Page number"),
    limit: Optional[int] = Query(None, gt=0, description="Items per page"),
    order_status: Optional[str] = Query(None, alias="status", description="Filter by status"),
    order_service: OrderService = Depends(get_order_service),
    order_config: OrderConfig = Depends(get_order_config)
):
    """List orders with status filter and pagination"""
    params = OrderPaginationParams(
        page=page,
        limit=limit or order_config.default_page_limit,
        status=order_status
    )
    if params.status:
        _ensure_valid_status(params.status, order_config)
    return await order_service.list_orders(params)


@app.get("/api/v1/orders/{order_id}", response_model=OrderWithItems)
async def get_order(
    order_id: UUID = Path(..., description="Order ID"),
    order_service: OrderService = Depends(get_order_service)
):
    """Get order details with product names"""
    return await order_service.get_order(str(order_id))


@app.patch("/api/v1/orders/{order_id}/status", response_model=Order)
async def change_order_status(
    order_id: UUID = Path(..., description="Order ID"),
    request: OrderStatusChangeRequest = Body(...),
    order_service: OrderService = Depends(get_order_service),
    order_config: OrderConfig = Depends(get_order_config)
):
    """Change order status"""
    _ensure_valid_status(request.status, order_config)
    return await order_service.change_order_status(str(order_id), request)


@app.post("/api/v1/orders/{order_id}/payment-session")
async def create_payment_session(
    order_id: UUID = Path(..., description="Order ID"),
    order_service: OrderService = Depends(get_order_service)
):
    """Open a payment session for an order"""
    order = await order_service.get_order(str(order_id))
    return await order_service.create_payment_session(order)


# Error handlers

def _error_response(status_code: int, exc: OrderServiceError) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"detail": {"message": str(exc), "error_code": exc.error_code}}
    )


@app.exception_handler(OrderValidationError)
async def validation_error_handler(request, exc):
    return _error_response(status.HTTP_400_BAD_REQUEST, exc)


@app.exception_handler(OrderNotFoundError)
async def not_found_error_handler(request, exc):
    return _error_response(status.HTTP_404_NOT_FOUND, exc)


@app.exception_handler(OrderPersistenceError)
async def persistence_error_handler(request, exc):
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, exc)


@app.exception_handler(PaymentCollaboratorError)
async def payment_error_handler(request, exc):
    return _error_response(status.HTTP_502_BAD_GATEWAY, exc)


@app.exception_handler(OrderServiceError)
async def service_error_handler(request, exc):
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, exc)


if __name__ == "__main__":
    uvicorn.run(
        "microservices.order_service.main:app",
        host=settings.service_host,
        port=settings.service_port,
        reload=settings.debug,
        log_level=settings.logging.log_level.lower()
    )
