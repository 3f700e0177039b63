"""
Order Repository

Data access layer for orders, line items and receipts using an asyncpg
pool. Every multi-row write runs in a single transaction; status changes
and payment confirmation lock the order row before reading it.
"""

from typing import Optional, List, Dict, Any, Tuple
from decimal import Decimal
import uuid
import logging

import asyncpg

from core.config import InfraConfig
from core.postgres_client import PostgresClientWrapper
from .models import Order, OrderItem, OrderWithItems, Receipt

logger = logging.getLogger(__name__)


SCHEMA_SQL = """
CREATE SCHEMA IF NOT EXISTS {schema};

CREATE TABLE IF NOT EXISTS {schema}.orders (
    order_id         TEXT PRIMARY KEY,
    total_amount     NUMERIC(12,2) NOT NULL CHECK (total_amount >= 0),
    total_items      INTEGER NOT NULL CHECK (total_items > 0),
    status           TEXT NOT NULL,
    paid             BOOLEAN NOT NULL DEFAULT FALSE,
    paid_at          TIMESTAMPTZ,
    charge_reference TEXT,
    created_at       TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at       TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS idx_orders_status_created
    ON {schema}.orders (status, created_at, order_id);

CREATE TABLE IF NOT EXISTS {schema}.order_items (
    item_id    TEXT PRIMARY KEY,
    order_id   TEXT NOT NULL REFERENCES {schema}.orders (order_id) ON DELETE CASCADE,
    line_no    INTEGER NOT NULL,
    product_id TEXT NOT NULL,
    quantity   INTEGER NOT NULL CHECK (quantity > 0),
    price      NUMERIC(12,2) NOT NULL CHECK (price >= 0)
);

CREATE INDEX IF NOT EXISTS idx_order_items_order
    ON {schema}.order_items (order_id, line_no);

CREATE TABLE IF NOT EXISTS {schema}.order_receipts (
    receipt_id  TEXT PRIMARY KEY,
    order_id    TEXT NOT NULL UNIQUE REFERENCES {schema}.orders (order_id) ON DELETE CASCADE,
    receipt_url TEXT NOT NULL,
    created_at  TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
"""


class OrderRepository:
    """
    Repository for order data operations

    Handles all database operations for orders using PostgresClientWrapper.
    """

    def __init__(
        self,
        db: Optional[PostgresClientWrapper] = None,
        config: Optional[InfraConfig] = None
    ):
        """Initialize Order Repository with an asyncpg-backed client"""
        self.db = db or PostgresClientWrapper(service_name="order_service", config=config)

        self.schema = "orders"
        self.orders_table = f"{self.schema}.orders"
        self.items_table = f"{self.schema}.order_items"
        self.receipts_table = f"{self.schema}.order_receipts"

        logger.info("OrderRepository initialized with PostgresClientWrapper")

    async def initialize(self) -> None:
        """Connect the pool and create the schema if it does not exist"""
        await self.db.connect()
        await self.db.execute(SCHEMA_SQL.format(schema=self.schema))
        logger.info(f"Order schema '{self.schema}' ready")

    async def close(self) -> None:
        await self.db.close()

    async def create_order(
        self,
        total_amount: Decimal,
        total_items: int,
        status: str,
        items: List[OrderItem]
    ) -> OrderWithItems:
        """Create an order and all of its items in one transaction"""
        if not items:
            raise ValueError("An order must contain at least one item")

        order_id = str(uuid.uuid4())
        try:
            async with self.db.transaction() as conn:
                order_row = await conn.fetchrow(
                    f'''
                    INSERT INTO {self.orders_table} (order_id, total_amount, total_items, status)
                    VALUES ($1, $2, $3, $4)
                    RETURNING *
                    ''',
                    order_id, total_amount, total_items, status
                )
                await conn.executemany(
                    f'''
                    INSERT INTO {self.items_table} (item_id, order_id, line_no, product_id, quantity, price)
                    VALUES ($1, $2, $3, $4, $5, $6)
                    ''',
                    [
                        (str(uuid.uuid4()), order_id, line_no, item.product_id, item.quantity, item.price)
                        for line_no, item in enumerate(items)
                    ]
                )
                item_rows = await self._fetch_items(conn, order_id)

            return self._build_order(order_row, item_rows, None)

        except Exception as e:
            logger.error(f"Failed to create order: {e}")
            raise

    async def get_order(self, order_id: str) -> Optional[OrderWithItems]:
        """Get order with items and receipt by ID"""
        try:
            async with self.db.transaction(readonly=True) as conn:
                return await self._load_order(conn, order_id)

        except Exception as e:
            logger.error(f"Failed to get order {order_id}: {e}")
            raise

    async def list_orders(
        self,
        limit: int,
        offset: int,
        status: Optional[str] = None
    ) -> Tuple[int, List[Order]]:
        """
        Count and page orders matching the same filter.

        Both statements run in one REPEATABLE READ snapshot so the count
        cannot drift from the rows returned.
        """
        try:
            conditions = []
            params: List[Any] = []

            if status:
                params.append(status)
                conditions.append(f"status = ${len(params)}")

            where_clause = " AND ".join(conditions) if conditions else "TRUE"

            async with self.db.transaction(isolation="repeatable_read", readonly=True) as conn:
                total = await conn.fetchval(
                    f'SELECT COUNT(*) FROM {self.orders_table} WHERE {where_clause}',
                    *params
                )
                rows = await conn.fetch(
                    f'''
                    SELECT * FROM {self.orders_table}
                    WHERE {where_clause}
                    ORDER BY created_at ASC, order_id ASC
                    LIMIT ${len(params) + 1} OFFSET ${len(params) + 2}
                    ''',
                    *params, limit, offset
                )

            return int(total), [self._row_to_order(row) for row in rows]

        except Exception as e:
            logger.error(f"Failed to list orders: {e}")
            raise

    async def update_order_status(
        self,
        order_id: str,
        status: str
    ) -> Optional[Tuple[Order, str]]:
        """
        Set the order status.

        Returns:
            (order, previous_status), read under the row lock. When the
            previous status already matched nothing was written. None if
            the order does not exist
        """
        try:
            async with self.db.transaction() as conn:
                row = await conn.fetchrow(
                    f'SELECT * FROM {self.orders_table} WHERE order_id = $1 FOR UPDATE',
                    order_id
                )
                if row is None:
                    return None
                previous_status = row["status"]
                if previous_status == status:
                    return self._row_to_order(row), previous_status

                row = await conn.fetchrow(
                    f'''
                    UPDATE {self.orders_table}
                    SET status = $2, updated_at = NOW()
                    WHERE order_id = $1
                    RETURNING *
                    ''',
                    order_id, status
                )
            return self._row_to_order(row), previous_status

        except Exception as e:
            logger.error(f"Failed to update status of order {order_id}: {e}")
            raise

    async def mark_order_paid(
        self,
        order_id: str,
        paid_status: str,
        charge_reference: str,
        receipt_url: str
    ) -> Optional[Tuple[OrderWithItems, bool]]:
        """
        Mark an order paid and create its receipt in one transaction.

        Returns:
            (order, changed) where changed is False if the order was
            already paid; None if the order does not exist
        """
        try:
            async with self.db.transaction() as conn:
                row = await conn.fetchrow(
                    f'SELECT paid FROM {self.orders_table} WHERE order_id = $1 FOR UPDATE',
                    order_id
                )
                if row is None:
                    return None
                if row["paid"]:
                    return await self._load_order(conn, order_id), False

                await conn.execute(
                    f'''
                    UPDATE {self.orders_table}
                    SET status = $2, paid = TRUE, paid_at = NOW(),
                        charge_reference = $3, updated_at = NOW()
                    WHERE order_id = $1
                    ''',
                    order_id, paid_status, charge_reference
                )
                await conn.execute(
                    f'''
                    INSERT INTO {self.receipts_table} (receipt_id, order_id, receipt_url)
                    VALUES ($1, $2, $3)
                    ON CONFLICT (order_id) DO NOTHING
                    ''',
                    str(uuid.uuid4()), order_id, receipt_url
                )
                order = await self._load_order(conn, order_id)

            return order, True

        except Exception as e:
            logger.error(f"Failed to mark order {order_id} as paid: {e}")
            raise

    async def health_check(self) -> Dict[str, Any]:
        return await self.db.health_check()

    # Helpers

    async def _fetch_items(self, conn: asyncpg.Connection, order_id: str) -> List[asyncpg.Record]:
        return await conn.fetch(
            f'''
            SELECT product_id, quantity, price FROM {self.items_table}
            WHERE order_id = $1
            ORDER BY line_no
            ''',
            order_id
        )

    async def _load_order(self, conn: asyncpg.Connection, order_id: str) -> Optional[OrderWithItems]:
        order_row = await conn.fetchrow(
            f'SELECT * FROM {self.orders_table} WHERE order_id = $1',
            order_id
        )
        if order_row is None:
            return None

        item_rows = await self._fetch_items(conn, order_id)
        receipt_row = await conn.fetchrow(
            f'SELECT * FROM {self.receipts_table} WHERE order_id = $1',
            order_id
        )
        return self._build_order(order_row, item_rows, receipt_row)

    def _row_to_order(self, row: asyncpg.Record) -> Order:
        """Convert a database row to Order model"""
        return Order(
            order_id=row["order_id"],
            total_amount=row["total_amount"],
            total_items=row["total_items"],
            status=row["status"],
            paid=row["paid"],
            paid_at=row["paid_at"],
            charge_reference=row["charge_reference"],
            created_at=row["created_at"],
            updated_at=row["updated_at"]
        )

    def _build_order(
        self,
        order_row: asyncpg.Record,
        item_rows: List[asyncpg.Record],
        receipt_row: Optional[asyncpg.Record]
    ) -> OrderWithItems:
        order = self._row_to_order(order_row)
        return OrderWithItems(
            **order.model_dump(),
            items=[
                OrderItem(
                    product_id=item["product_id"],
                    quantity=item["quantity"],
                    price=item["price"]
                )
                for item in item_rows
            ],
            receipt=Receipt(
                receipt_id=receipt_row["receipt_id"],
                order_id=receipt_row["order_id"],
                receipt_url=receipt_row["receipt_url"],
                created_at=receipt_row["created_at"]
            ) if receipt_row else None
        )
