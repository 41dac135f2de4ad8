"""
Base classes and interfaces for storage implementations.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any, Dict, Optional
import logging

from ..models import PoolRecord

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Base exception for storage-related errors."""
    pass


class ConnectionError(StorageError):
    """Raised when connection to storage backend fails."""
    pass


class DataError(StorageError):
    """Raised when data operations fail."""
    pass


def normalize_address(address: Any) -> Optional[str]:
    """
    Normalize an address to lowercase for consistent storage.

    Args:
        address: Address as string, bytes, or None

    Returns:
        Lowercase 0x-prefixed address string or None
    """
    if address is None:
        return None
    if isinstance(address, (bytes, bytearray)):
        return "0x" + bytes(address).hex()
    address = str(address).lower()
    return address if address.startswith("0x") else "0x" + address


class StorageBase(ABC):
    """
    Abstract base class for storage implementations.
    All storage backends must implement these methods.
    """

    def __init__(self, config: Dict[str, Any]):
        """
        Initialize storage backend with configuration.

        Args:
            config: Configuration dictionary for the storage backend
        """
        self.config = config
        self.is_connected = False

    @abstractmethod
    async def connect(self) -> None:
        """Establish connection to the storage backend."""
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Close connection to the storage backend."""
        pass

    async def __aenter__(self):
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.disconnect()


class CursorStoreInterface(ABC):
    """Interface for the shared scan cursor ("next unscanned block")."""

    @abstractmethod
    async def get_cursor(self) -> Optional[int]:
        """Return the stored cursor, or None if it has never been set."""
        pass

    @abstractmethod
    async def compare_and_set_cursor(self, expected: int, new_value: int) -> bool:
        """
        Atomically set the cursor to new_value if it still equals expected or is unset.

        Returns:
            bool: True if this caller won the update
        """
        pass


class PoolStorageInterface(ABC):
    """Interface for pool ledger storage operations."""

    @abstractmethod
    async def get_pool(self, address: str) -> Optional[PoolRecord]:
        """Retrieve a single pool by address."""
        pass

    @abstractmethod
    async def insert_pool(self, pool: PoolRecord) -> bool:
        """
        Insert a pool record, ignoring a duplicate-address conflict.

        Returns:
            bool: True if a row was inserted, False if the address already existed
        """
        pass

    @abstractmethod
    async def update_reserves(
        self, address: str, reserve0: Decimal, reserve1: Decimal, valuation: Decimal
    ) -> bool:
        """Overwrite reserves and valuation of an existing pool."""
        pass

    @abstractmethod
    async def add_trade(self, address: str, volume: Decimal) -> bool:
        """Add volume to an existing pool and bump both trade counters."""
        pass


class CacheInterface(ABC):
    """Interface for caching operations."""

    @abstractmethod
    async def set(self, key: str, value: Any) -> bool:
        """
        Set a cache value. Entries do not expire.

        Args:
            key: Cache key
            value: Value to cache

        Returns:
            bool: True if successful
        """
        pass

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """
        Get a cached value.

        Args:
            key: Cache key

        Returns:
            Cached value or None if not found
        """
        pass
