"""
PostgreSQL Client Wrapper

Centralized asyncpg connection-pool wrapper. Provides configuration from
InfraConfig, a consistent initialization pattern and explicit transaction
scopes for multi-statement writes.

Usage:
    from core.postgres_client import PostgresClientWrapper

    db = PostgresClientWrapper("order_service", config=settings.infra)
    await db.connect()

    # Atomic multi-row write
    async with db.transaction() as conn:
        await conn.execute("INSERT ...")
        await conn.executemany("INSERT ...", rows)
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

import asyncpg

from core.config import InfraConfig

logger = logging.getLogger(__name__)


class PostgresClientWrapper:
    """
    PostgreSQL client wrapper over an asyncpg pool.

    Provides:
    - Environment driven host/port/credentials with per-call overrides
    - Lazy pool creation
    - Transaction scopes with configurable isolation
    """

    def __init__(
        self,
        service_name: str,
        host: Optional[str] = None,
        port: Optional[int] = None,
        database: Optional[str] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        min_size: Optional[int] = None,
        max_size: Optional[int] = None,
        config: Optional[InfraConfig] = None,
    ):
        """
        Initialize PostgreSQL client wrapper.

        Args:
            service_name: Name of the service using this client
            host: PostgreSQL host (defaults to env)
            port: PostgreSQL port (defaults to 5432)
            database: Database name (defaults to 'postgres')
            username: Database username
            password: Database password
            min_size: Minimum pool size
            max_size: Maximum pool size
            config: Infrastructure config (defaults to environment)
        """
        config = config or InfraConfig.from_env()

        self.service_name = service_name
        self.host = host or config.postgres_host
        self.port = port or config.postgres_port
        self.database = database or config.postgres_db
        self.username = username or config.postgres_user
        self.password = password or config.postgres_password
        self.min_size = min_size or config.postgres_pool_min
        self.max_size = max_size or config.postgres_pool_max

        self._pool: Optional[asyncpg.Pool] = None

        logger.info(f"PostgreSQL client initialized for {service_name}: {self.host}:{self.port}/{self.database}")

    @property
    def pool(self) -> asyncpg.Pool:
        """Get underlying asyncpg pool"""
        if self._pool is None:
            raise RuntimeError(f"PostgreSQL pool for {self.service_name} is not connected")
        return self._pool

    @property
    def is_connected(self) -> bool:
        return self._pool is not None

    async def connect(self):
        """Create the connection pool (idempotent)"""
        if self._pool is not None:
            return
        self._pool = await asyncpg.create_pool(
            host=self.host,
            port=self.port,
            user=self.username,
            password=self.password,
            database=self.database,
            min_size=self.min_size,
            max_size=self.max_size,
        )
        logger.info(f"PostgreSQL pool connected for {self.service_name}")

    async def close(self):
        """Close the connection pool"""
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
            logger.info(f"PostgreSQL pool closed for {self.service_name}")

    @asynccontextmanager
    async def transaction(
        self,
        isolation: str = "read_committed",
        readonly: bool = False,
    ) -> AsyncIterator[asyncpg.Connection]:
        """
        Open a transaction on a pooled connection.

        Commits when the block exits normally, rolls back on any exception.

        Args:
            isolation: 'read_committed', 'repeatable_read' or 'serializable'
            readonly: Start a READ ONLY transaction
        """
        async with self.pool.acquire() as conn:
            async with conn.transaction(isolation=isolation, readonly=readonly):
                yield conn

    async def health_check(self) -> Dict[str, Any]:
        """Check database health"""
        try:
            value = await self.fetchval("SELECT 1")
            return {"healthy": value == 1, "database": self.database}
        except Exception as e:
            logger.warning(f"PostgreSQL health check failed: {e}")
            return {"healthy": False, "database": self.database, "error": str(e)}

    async def fetchval(self, sql: str, *args: Any) -> Any:
        """Execute query and return the first column of the first row"""
        async with self.pool.acquire() as conn:
            return await conn.fetchval(sql, *args)

    async def execute(self, sql: str, *args: Any) -> str:
        """Execute SQL statement"""
        async with self.pool.acquire() as conn:
            return await conn.execute(sql, *args)

