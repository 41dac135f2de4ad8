"""
Storage abstraction layer for lpScanner.

This module provides storage backends for the scanning pipeline:
- Redis for the fleet-wide scan cursor and the shared token metadata cache
- In-memory and JSON file cursors for single-worker scanning
- PostgreSQL for the pool ledger

Usage:
    from lpscan.core.storage import PostgresStorage, RedisStorage

    async with PostgresStorage(config.database.get_postgres_connection_kwargs()) as ledger:
        await ledger.ensure_schema()
        pool = await ledger.get_pool(address)
"""

from .base import (
    CacheInterface,
    ConnectionError,
    CursorStoreInterface,
    DataError,
    PoolStorageInterface,
    StorageBase,
    StorageError,
    normalize_address,
)
from .file_cursor import FileCursorStore
from .memory import MemoryCursorStore
from .postgres import PostgresStorage
from .redis import RedisStorage

__all__ = [
    "StorageBase",
    "StorageError",
    "ConnectionError",
    "DataError",
    "CacheInterface",
    "CursorStoreInterface",
    "PoolStorageInterface",
    "normalize_address",
    "FileCursorStore",
    "MemoryCursorStore",
    "PostgresStorage",
    "RedisStorage",
]
