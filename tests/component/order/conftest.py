"""
Order Service Component Test Fixtures

Provides mocks for order service component testing:
- MockOrderRepository: in-memory OrderRepositoryProtocol
- MockProductClient: product catalog with settable prices
- MockPaymentClient: payment session creation
- MockEventBus: captured event publishing
"""
from decimal import Decimal

import pytest

from microservices.order_service.order_service import OrderService
from tests.component.order.mocks import (
    MockOrderRepository,
    MockProductClient,
    MockPaymentClient,
    MockEventBus,
)


@pytest.fixture
def mock_repo() -> MockOrderRepository:
    """Create a fresh MockOrderRepository"""
    return MockOrderRepository()


@pytest.fixture
def mock_product_client() -> MockProductClient:
    """Create mock product client with two catalog products"""
    client = MockProductClient()
    client.set_product("prod_a", name="Keyboard", price=Decimal("10.00"))
    client.set_product("prod_b", name="Mouse", price=Decimal("5.50"))
    return client


@pytest.fixture
def mock_payment_client() -> MockPaymentClient:
    """Create mock payment client"""
    return MockPaymentClient()


@pytest.fixture
def mock_event_bus() -> MockEventBus:
    """Create a fresh MockEventBus"""
    return MockEventBus()


@pytest.fixture
def order_service(mock_repo, mock_product_client, mock_payment_client, mock_event_bus) -> OrderService:
    """OrderService wired to in-memory collaborators"""
    return OrderService(
        repository=mock_repo,
        product_client=mock_product_client,
        payment_client=mock_payment_client,
        event_bus=mock_event_bus,
    )
