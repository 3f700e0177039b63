"""
Order Service HTTP Component Tests

Routes exercised through httpx.AsyncClient over ASGITransport with the
service dependency overridden by a mock-backed OrderService.
"""
import uuid
from decimal import Decimal

import httpx
import pytest
import pytest_asyncio

from core.config import OrderConfig
from microservices.order_service.main import app, get_order_config, get_order_service
from microservices.order_service.protocols import PaymentServiceError, ProductServiceError

pytestmark = [pytest.mark.component, pytest.mark.asyncio]


@pytest_asyncio.fixture
async def client(order_service):
    app.dependency_overrides[get_order_service] = lambda: order_service
    app.dependency_overrides[get_order_config] = lambda: OrderConfig()
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client
    app.dependency_overrides.clear()


class TestCreateOrderRoute:

    async def test_create_order(self, client):
        response = await client.post(
            "/api/v1/orders",
            json={"items": [{"product_id": "prod_a", "quantity": 2}]}
        )

        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "PENDING"
        assert Decimal(body["total_amount"]) == Decimal("20.00")
        assert body["total_items"] == 2
        assert body["items"][0]["name"] == "Keyboard"

    async def test_unknown_product_is_400(self, client):
        response = await client.post(
            "/api/v1/orders",
            json={"items": [{"product_id": "missing", "quantity": 1}]}
        )

        assert response.status_code == 400
        assert response.json()["detail"]["error_code"] == "VALIDATION_FAILED"

    async def test_catalog_outage_is_opaque(self, client, mock_product_client):
        mock_product_client.set_error(ProductServiceError("10.0.0.7:8215 refused"))

        response = await client.post(
            "/api/v1/orders",
            json={"items": [{"product_id": "prod_a", "quantity": 1}]}
        )

        assert response.status_code == 400
        assert "10.0.0.7" not in response.text

    async def test_storage_failure_is_500(self, client, mock_repo):
        mock_repo.set_error(RuntimeError("disk full"), "create_order")

        response = await client.post(
            "/api/v1/orders",
            json={"items": [{"product_id": "prod_a", "quantity": 1}]}
        )

        assert response.status_code == 500
        assert response.json()["detail"]["error_code"] == "PERSISTENCE_FAILED"
        assert "disk full" not in response.text

    @pytest.mark.parametrize("payload", [
        {"items": []},
        {"items": [{"product_id": "prod_a", "quantity": 0}]},
        {"items": [{"product_id": "", "quantity": 1}]},
    ])
    async def test_invalid_body_is_422(self, client, payload):
        response = await client.post("/api/v1/orders", json=payload)

        assert response.status_code == 422


class TestReadRoutes:

    async def test_get_order(self, client, mock_repo):
        existing = mock_repo.set_order()

        response = await client.get(f"/api/v1/orders/{existing.order_id}")

        assert response.status_code == 200
        assert response.json()["order_id"] == existing.order_id

    async def test_get_missing_order_is_404(self, client):
        response = await client.get(f"/api/v1/orders/{uuid.uuid4()}")

        assert response.status_code == 404
        assert response.json()["detail"]["error_code"] == "ORDER_NOT_FOUND"

    async def test_non_uuid_id_is_422(self, client):
        response = await client.get("/api/v1/orders/not-a-uuid")

        assert response.status_code == 422

    async def test_list_orders(self, client, mock_repo):
        for _ in range(25):
            mock_repo.set_order(status="PENDING")
        for _ in range(5):
            mock_repo.set_order(status="DELIVERED")

        response = await client.get("/api/v1/orders", params={"page": 1, "limit": 10, "status": "pending"})

        assert response.status_code == 200
        body = response.json()
        assert len(body["data"]) == 10
        assert body["meta"] == {"total": 25, "page": 1, "last_page": 3}

    async def test_list_uses_default_limit(self, client, mock_repo):
        for _ in range(12):
            mock_repo.set_order()

        response = await client.get("/api/v1/orders")

        assert len(response.json()["data"]) == 10

    async def test_list_unknown_status_is_422(self, client):
        response = await client.get("/api/v1/orders", params={"status": "SHIPPED"})

        assert response.status_code == 422
        assert response.json()["detail"]["error_code"] == "INVALID_STATUS"

    async def test_list_storage_failure_is_500(self, client, mock_repo):
        mock_repo.set_error(RuntimeError("connection lost"), "list_orders")

        response = await client.get("/api/v1/orders")

        assert response.status_code == 500
        assert response.json()["detail"]["error_code"] == "ORDER_SERVICE_ERROR"
        assert "connection lost" not in response.text

    async def test_list_invalid_page_is_422(self, client):
        response = await client.get("/api/v1/orders", params={"page": 0})

        assert response.status_code == 422


class TestStatusRoute:

    async def test_change_status(self, client, mock_repo):
        existing = mock_repo.set_order(status="PENDING")

        response = await client.patch(
            f"/api/v1/orders/{existing.order_id}/status",
            json={"status": "delivered"}
        )

        assert response.status_code == 200
        assert response.json()["status"] == "DELIVERED"

    async def test_unknown_status_is_422(self, client, mock_repo):
        existing = mock_repo.set_order(status="PENDING")

        response = await client.patch(
            f"/api/v1/orders/{existing.order_id}/status",
            json={"status": "SHIPPED"}
        )

        assert response.status_code == 422
        assert mock_repo.get_call_count("update_order_status") == 0

    async def test_missing_order_is_404(self, client):
        response = await client.patch(
            f"/api/v1/orders/{uuid.uuid4()}/status",
            json={"status": "DELIVERED"}
        )

        assert response.status_code == 404


class TestPaymentSessionRoute:

    async def test_create_session(self, client, mock_repo, mock_payment_client):
        existing = mock_repo.set_order()

        response = await client.post(f"/api/v1/orders/{existing.order_id}/payment-session")

        assert response.status_code == 200
        assert response.json()["order_id"] == existing.order_id
        assert mock_payment_client.call_count == 1

    async def test_payment_failure_is_502(self, client, mock_repo, mock_payment_client):
        existing = mock_repo.set_order()
        mock_payment_client.set_error(PaymentServiceError("stripe: card_declined"))

        response = await client.post(f"/api/v1/orders/{existing.order_id}/payment-session")

        assert response.status_code == 502
        assert response.json()["detail"]["error_code"] == "PAYMENT_FAILED"
        assert "card_declined" not in response.text

    async def test_missing_order_is_404(self, client, mock_payment_client):
        response = await client.post(f"/api/v1/orders/{uuid.uuid4()}/payment-session")

        assert response.status_code == 404
        assert mock_payment_client.call_count == 0


class TestHealthRoutes:

    async def test_health(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    async def test_detailed_health(self, client):
        response = await client.get("/health/detailed")

        assert response.status_code == 200
        body = response.json()
        assert body["database_connected"] is True
        assert body["event_bus_connected"] is True

    async def test_uninitialized_service_is_503(self):
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as http_client:
            response = await http_client.get(f"/api/v1/orders/{uuid.uuid4()}")

        assert response.status_code == 503
