"""
Order Service Factory

Factory functions for creating service instances with real dependencies.
This is the ONLY place that imports I/O-dependent modules.

Usage:
    from .factory import create_order_service
    service = create_order_service(settings, event_bus)
"""
from typing import Optional

from core.config import AppConfig, get_settings

from .order_service import OrderService


def create_order_service(
    settings: Optional[AppConfig] = None,
    event_bus=None,
    repository=None,
    product_client=None,
    payment_client=None,
) -> OrderService:
    """
    Create OrderService with real dependencies.

    This function imports the real repository (which has I/O dependencies).
    Use this in production, NOT in tests.

    Args:
        settings: Application configuration
        event_bus: Event bus for publishing events
        repository: Pre-built order repository
        product_client: Product service client
        payment_client: Payment service client

    Returns:
        Configured OrderService instance
    """
    # Import real I/O implementations here (not at module level)
    from .order_repository import OrderRepository
    from .clients import create_product_client, create_payment_client

    settings = settings or get_settings()

    repository = repository or OrderRepository(config=settings.infra)
    product_client = product_client or create_product_client(
        base_url=settings.services.product_service_url,
        timeout=settings.services.http_timeout,
    )
    payment_client = payment_client or create_payment_client(
        base_url=settings.services.payment_service_url,
        timeout=settings.services.http_timeout,
    )

    return OrderService(
        repository=repository,
        product_client=product_client,
        payment_client=payment_client,
        event_bus=event_bus,
        currency=settings.order.currency,
        initial_status=settings.order.initial_status,
        paid_status=settings.order.paid_status,
    )
