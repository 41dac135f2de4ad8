"""
PostgreSQL storage implementation for the pool ledger.

Schema:
    {table_name}:
        - address (TEXT, PRIMARY KEY)
        - protocol_version, token0, token1, subject_token, reference_token
        - reserve0, reserve1, valuation, cumulative_volume (NUMERIC)
        - trade_count_24h, trade_count_12h (BIGINT)
        - created_at, last_updated (TIMESTAMPTZ)
"""

import logging
from decimal import Decimal
from typing import Any, Dict, Optional

import asyncpg
from asyncpg.pool import Pool

from ..models import PoolRecord
from .base import (
    ConnectionError,
    DataError,
    PoolStorageInterface,
    StorageBase,
    normalize_address,
)

logger = logging.getLogger(__name__)


def _affected_rows(status: str) -> int:
    """Row count from an asyncpg command status such as 'UPDATE 1'."""
    try:
        return int(status.split()[-1])
    except (AttributeError, IndexError, ValueError):
        return 0


class PostgresStorage(StorageBase, PoolStorageInterface):
    """
    PostgreSQL pool ledger supporting async operations.

    Every write is a single statement, so concurrent workers rely on row-level
    atomicity only: inserts ignore duplicate addresses, reserve updates
    overwrite, trade updates add in place.
    """

    def __init__(self, config: Dict[str, Any]):
        """
        Initialize PostgreSQL storage.

        Args:
            config: Configuration with keys:
                - host: PostgreSQL host
                - port: PostgreSQL port
                - user: Database user
                - password: Database password
                - database: Database name
                - table_name: Pool ledger table (default: token_stats)
                - pool_size: Connection pool size (default: 10)
                - pool_timeout: Pool timeout in seconds (default: 10)
        """
        super().__init__(config)
        self.pool: Optional[Pool] = None
        self.table_name = config.get("table_name", "token_stats")
        self.pool_size = config.get("pool_size", 10)
        self.pool_timeout = config.get("pool_timeout", 10)

    async def connect(self) -> None:
        """Establish connection pool to PostgreSQL."""
        try:
            dsn = (
                f"postgresql://{self.config['user']}:{self.config['password']}@"
                f"{self.config['host']}:{self.config['port']}/{self.config['database']}"
            )

            self.pool = await asyncpg.create_pool(
                dsn,
                min_size=1,
                max_size=self.pool_size,
                timeout=self.pool_timeout,
                command_timeout=60,
            )
            self.is_connected = True
            logger.info("PostgreSQL connection pool established")

        except Exception as e:
            logger.error(f"Failed to connect to PostgreSQL: {e}")
            raise ConnectionError(f"PostgreSQL connection failed: {e}")

    async def disconnect(self) -> None:
        """Close connection pool."""
        if self.pool:
            await self.pool.close()
            self.is_connected = False
            logger.info("PostgreSQL connection pool closed")

    async def ensure_schema(self) -> None:
        """Create the pool ledger table and its indexes if missing."""
        if not self.pool:
            raise ConnectionError("Not connected to PostgreSQL")

        create_table_sql = f"""
        CREATE TABLE IF NOT EXISTS {self.table_name} (
            address TEXT PRIMARY KEY,
            protocol_version TEXT NOT NULL,
            token0 TEXT NOT NULL,
            token1 TEXT NOT NULL,
            subject_token TEXT NOT NULL,
            reference_token TEXT,
            reference_symbol TEXT,
            subject_symbol TEXT,
            subject_total_supply NUMERIC DEFAULT 0,

            -- Reserves are last-write-wins, volume and counters only grow
            reserve0 NUMERIC DEFAULT 0,
            reserve1 NUMERIC DEFAULT 0,
            valuation NUMERIC DEFAULT 0,
            cumulative_volume NUMERIC DEFAULT 0,
            trade_count_24h BIGINT DEFAULT 0,
            trade_count_12h BIGINT DEFAULT 0,

            created_at TIMESTAMPTZ DEFAULT NOW(),
            last_updated TIMESTAMPTZ DEFAULT NOW()
        )
        """
        create_indexes_sql = [
            f"CREATE INDEX IF NOT EXISTS idx_{self.table_name}_subject "
            f"ON {self.table_name}(subject_token)",
            f"CREATE INDEX IF NOT EXISTS idx_{self.table_name}_updated "
            f"ON {self.table_name}(last_updated)",
        ]

        try:
            async with self.pool.acquire() as conn:
                async with conn.transaction():
                    await conn.execute(create_table_sql)
                    for index_sql in create_indexes_sql:
                        await conn.execute(index_sql)
            logger.info(f"Table {self.table_name} is ready")
        except Exception as e:
            logger.error(f"Error creating table {self.table_name}: {e}")
            raise DataError(f"Schema creation failed: {e}")

    async def get_pool(self, address: str) -> Optional[PoolRecord]:
        if not self.pool:
            raise ConnectionError("Not connected to PostgreSQL")

        query = f"SELECT * FROM {self.table_name} WHERE address = $1"
        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(query, normalize_address(address))
        except Exception as e:
            logger.error(f"Failed to get pool {address}: {e}")
            raise DataError(f"Pool retrieval failed: {e}")

        return PoolRecord.from_row(row) if row else None

    async def insert_pool(self, pool: PoolRecord) -> bool:
        if not self.pool:
            raise ConnectionError("Not connected to PostgreSQL")

        query = f"""
            INSERT INTO {self.table_name} (
                address, protocol_version, token0, token1,
                subject_token, reference_token, reference_symbol,
                subject_symbol, subject_total_supply,
                reserve0, reserve1, valuation,
                cumulative_volume, trade_count_24h, trade_count_12h
            )
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, 0, 0, 0)
            ON CONFLICT (address) DO NOTHING
            RETURNING address
        """
        try:
            async with self.pool.acquire() as conn:
                inserted = await conn.fetchval(
                    query,
                    normalize_address(pool.address),
                    pool.protocol_version.value,
                    normalize_address(pool.token0),
                    normalize_address(pool.token1),
                    normalize_address(pool.subject_token),
                    normalize_address(pool.reference_token),
                    pool.reference_symbol,
                    pool.subject_symbol,
                    pool.subject_total_supply,
                    pool.reserve0,
                    pool.reserve1,
                    pool.valuation,
                )
        except Exception as e:
            logger.error(f"Failed to insert pool {pool.address}: {e}")
            raise DataError(f"Pool insert failed: {e}")

        if inserted is None:
            logger.info(f"Pool {pool.address} already recorded, insert ignored")
            return False
        return True

    async def update_reserves(
        self, address: str, reserve0: Decimal, reserve1: Decimal, valuation: Decimal
    ) -> bool:
        if not self.pool:
            raise ConnectionError("Not connected to PostgreSQL")

        query = f"""
            UPDATE {self.table_name}
            SET reserve0 = $2, reserve1 = $3, valuation = $4, last_updated = NOW()
            WHERE address = $1
        """
        try:
            async with self.pool.acquire() as conn:
                status = await conn.execute(
                    query, normalize_address(address), reserve0, reserve1, valuation
                )
        except Exception as e:
            logger.error(f"Failed to update reserves for {address}: {e}")
            raise DataError(f"Reserve update failed: {e}")

        return _affected_rows(status) > 0

    async def add_trade(self, address: str, volume: Decimal) -> bool:
        if not self.pool:
            raise ConnectionError("Not connected to PostgreSQL")

        query = f"""
            UPDATE {self.table_name}
            SET cumulative_volume = cumulative_volume + $2,
                trade_count_24h = trade_count_24h + 1,
                trade_count_12h = trade_count_12h + 1,
                last_updated = NOW()
            WHERE address = $1
        """
        try:
            async with self.pool.acquire() as conn:
                status = await conn.execute(query, normalize_address(address), volume)
        except Exception as e:
            logger.error(f"Failed to add trade for {address}: {e}")
            raise DataError(f"Trade update failed: {e}")

        return _affected_rows(status) > 0
