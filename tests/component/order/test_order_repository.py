"""
Order Repository Component Tests

OrderRepository against a fake PostgresClientWrapper whose transaction
yields an AsyncMock connection. Rows are plain dicts standing in for
asyncpg records.
"""
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from microservices.order_service.models import OrderItem
from microservices.order_service.order_repository import OrderRepository

pytestmark = [pytest.mark.component, pytest.mark.asyncio]

NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)


def order_row(order_id="ord_1", status="PENDING", paid=False):
    return {
        "order_id": order_id,
        "total_amount": Decimal("20.00"),
        "total_items": 2,
        "status": status,
        "paid": paid,
        "paid_at": NOW if paid else None,
        "charge_reference": "ch_1" if paid else None,
        "created_at": NOW,
        "updated_at": NOW,
    }


ITEM_ROWS = [{"product_id": "prod_a", "quantity": 2, "price": Decimal("10.00")}]


class FakePostgres:
    """Records transaction arguments and hands out one mocked connection"""

    def __init__(self):
        self.conn = AsyncMock()
        self.transactions = []

    @asynccontextmanager
    async def transaction(self, isolation="read_committed", readonly=False):
        self.transactions.append({"isolation": isolation, "readonly": readonly})
        yield self.conn

    async def health_check(self):
        return {"healthy": True, "database": "fake"}


@pytest.fixture
def db():
    return FakePostgres()


@pytest.fixture
def repo(db):
    return OrderRepository(db=db)


def executed_sql(conn):
    return [call.args[0] for call in conn.execute.call_args_list]


class TestCreateOrder:

    async def test_writes_order_and_items_in_one_transaction(self, repo, db):
        db.conn.fetchrow.return_value = order_row()
        db.conn.fetch.return_value = ITEM_ROWS

        order = await repo.create_order(
            total_amount=Decimal("20.00"),
            total_items=2,
            status="PENDING",
            items=[OrderItem(product_id="prod_a", quantity=2, price=Decimal("10.00"))]
        )

        assert len(db.transactions) == 1
        rows = db.conn.executemany.call_args.args[1]
        assert len(rows) == 1
        assert rows[0][2:] == (0, "prod_a", 2, Decimal("10.00"))
        assert order.items[0].price == Decimal("10.00")

    async def test_rejects_empty_items(self, repo, db):
        with pytest.raises(ValueError):
            await repo.create_order(Decimal("0"), 0, "PENDING", [])

        assert db.transactions == []

    async def test_item_failure_propagates(self, repo, db):
        db.conn.fetchrow.return_value = order_row()
        db.conn.executemany.side_effect = RuntimeError("check constraint violated")

        with pytest.raises(RuntimeError):
            await repo.create_order(
                Decimal("10.00"), 1, "PENDING",
                [OrderItem(product_id="prod_a", quantity=1, price=Decimal("10.00"))]
            )


class TestListOrders:

    async def test_count_and_page_share_snapshot(self, repo, db):
        db.conn.fetchval.return_value = 25
        db.conn.fetch.return_value = [order_row(f"ord_{i}") for i in range(10)]

        total, orders = await repo.list_orders(limit=10, offset=0, status="PENDING")

        assert total == 25
        assert len(orders) == 10
        assert db.transactions == [{"isolation": "repeatable_read", "readonly": True}]
        assert db.conn.fetchval.call_args.args[1:] == ("PENDING",)
        assert db.conn.fetch.call_args.args[1:] == ("PENDING", 10, 0)

    async def test_without_filter(self, repo, db):
        db.conn.fetchval.return_value = 0
        db.conn.fetch.return_value = []

        total, orders = await repo.list_orders(limit=10, offset=20)

        assert (total, orders) == (0, [])
        assert db.conn.fetch.call_args.args[1:] == (10, 20)


class TestUpdateOrderStatus:

    async def test_same_status_does_not_write(self, repo, db):
        db.conn.fetchrow.return_value = order_row(status="PENDING")

        order, previous_status = await repo.update_order_status("ord_1", "PENDING")

        assert previous_status == "PENDING"
        assert order.status == "PENDING"
        assert db.conn.fetchrow.await_count == 1
        assert "FOR UPDATE" in db.conn.fetchrow.call_args.args[0]

    async def test_changes_status(self, repo, db):
        db.conn.fetchrow.side_effect = [order_row(status="PENDING"), order_row(status="DELIVERED")]

        order, previous_status = await repo.update_order_status("ord_1", "DELIVERED")

        assert previous_status == "PENDING"
        assert order.status == "DELIVERED"

    async def test_missing_order(self, repo, db):
        db.conn.fetchrow.return_value = None

        assert await repo.update_order_status("ord_x", "PAID") is None


class TestMarkOrderPaid:

    async def test_already_paid_is_noop(self, repo, db):
        db.conn.fetchrow.side_effect = [
            {"paid": True},
            order_row(status="PAID", paid=True),
            {"receipt_id": "rcpt_1", "order_id": "ord_1", "receipt_url": "https://r/1", "created_at": NOW},
        ]
        db.conn.fetch.return_value = ITEM_ROWS

        order, changed = await repo.mark_order_paid("ord_1", "PAID", "ch_2", "https://r/2")

        assert changed is False
        assert order.receipt.receipt_url == "https://r/1"
        db.conn.execute.assert_not_called()

    async def test_marks_paid_and_inserts_receipt(self, repo, db):
        db.conn.fetchrow.side_effect = [
            {"paid": False},
            order_row(status="PAID", paid=True),
            {"receipt_id": "rcpt_1", "order_id": "ord_1", "receipt_url": "https://r/1", "created_at": NOW},
        ]
        db.conn.fetch.return_value = ITEM_ROWS

        order, changed = await repo.mark_order_paid("ord_1", "PAID", "ch_1", "https://r/1")

        assert changed is True
        assert order.paid is True
        statements = executed_sql(db.conn)
        assert len(statements) == 2
        assert "ON CONFLICT (order_id) DO NOTHING" in statements[1]

    async def test_missing_order(self, repo, db):
        db.conn.fetchrow.return_value = None

        assert await repo.mark_order_paid("ord_x", "PAID", "ch_1", "https://r") is None
