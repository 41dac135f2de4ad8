"""
Redis storage implementation for the shared scan cursor and token cache.
"""

import json
import logging
from typing import Any, Dict, Optional

import redis.asyncio as redis
from redis.asyncio import Redis

from .base import (
    CacheInterface,
    ConnectionError,
    CursorStoreInterface,
    DataError,
    StorageBase,
)

logger = logging.getLogger(__name__)


# KEYS[1] = cursor key, ARGV[1] = expected value, ARGV[2] = new value
COMPARE_AND_SET_SCRIPT = """
local current = redis.call('GET', KEYS[1])
if (not current) or tonumber(current) == tonumber(ARGV[1]) then
    redis.call('SET', KEYS[1], ARGV[2])
    return 1
end
return 0
"""


class RedisStorage(StorageBase, CursorStoreInterface, CacheInterface):
    """
    Redis storage implementation shared by every worker of a fleet.

    Features:
    - Scan cursor with an atomic Lua compare-and-set
    - Key-value caching for token metadata
    - JSON serialization for complex objects
    """

    def __init__(self, config: Dict[str, Any]):
        """
        Initialize Redis storage.

        Args:
            config: Configuration with keys:
                - host: Redis host
                - port: Redis port
                - password: Redis password (optional)
                - db: Redis database number (default: 0)
                - decode_responses: Whether to decode responses (default: True)
                - socket_timeout: Socket timeout in seconds (default: 5)
                - cursor_key: Key holding the next unscanned block
                - connection_pool_kwargs: Additional connection pool arguments
        """
        super().__init__(config)
        self.client: Optional[Redis] = None
        self.cursor_key = config.get("cursor_key", "lpscan:next_block")
        self._cas_script = None

    async def connect(self) -> None:
        """Establish connection to Redis."""
        try:
            pool_kwargs = {
                'host': self.config.get('host', 'localhost'),
                'port': self.config.get('port', 6379),
                'db': self.config.get('db', 0),
                'decode_responses': self.config.get('decode_responses', True),
                'socket_timeout': self.config.get('socket_timeout', 5),
                **self.config.get('connection_pool_kwargs', {})
            }

            # Only add password if it's actually set
            password = self.config.get('password')
            if password is not None:
                pool_kwargs['password'] = password

            pool = redis.ConnectionPool(**pool_kwargs)
            self.client = redis.Redis(connection_pool=pool)

            await self.client.ping()

            self._cas_script = self.client.register_script(COMPARE_AND_SET_SCRIPT)
            self.is_connected = True
            logger.info("Redis connection established")

        except Exception as e:
            logger.error(f"Failed to connect to Redis: {e}")
            raise ConnectionError(f"Redis connection failed: {e}")

    async def disconnect(self) -> None:
        """Close Redis connection."""
        if self.client:
            await self.client.aclose()

        self.is_connected = False
        logger.info("Redis connection closed")

    # Cursor Interface Implementation

    async def get_cursor(self) -> Optional[int]:
        if not self.client:
            raise ConnectionError("Not connected to Redis")

        try:
            value = await self.client.get(self.cursor_key)
        except Exception as e:
            logger.error(f"Failed to read cursor {self.cursor_key}: {e}")
            raise ConnectionError(f"Cursor read failed: {e}")

        if value is None:
            return None
        try:
            return int(value)
        except (TypeError, ValueError):
            raise DataError(f"Cursor {self.cursor_key} holds a non-integer value: {value!r}")

    async def compare_and_set_cursor(self, expected: int, new_value: int) -> bool:
        if not self.client or self._cas_script is None:
            raise ConnectionError("Not connected to Redis")

        try:
            result = await self._cas_script(keys=[self.cursor_key], args=[expected, new_value])
            return int(result) == 1
        except Exception as e:
            logger.error(f"Cursor compare-and-set failed on {self.cursor_key}: {e}")
            raise ConnectionError(f"Cursor compare-and-set failed: {e}")

    # Cache Interface Implementation

    async def set(self, key: str, value: Any) -> bool:
        """
        Set a cache value.

        Args:
            key: Cache key
            value: Value to cache (will be JSON serialized if not string)

        Returns:
            bool: True if successful
        """
        if not self.client:
            raise ConnectionError("Not connected to Redis")

        try:
            if not isinstance(value, str):
                value = json.dumps(value, default=str)

            result = await self.client.set(key, value)
            return result is True

        except Exception as e:
            logger.error(f"Failed to set cache key {key}: {e}")
            raise DataError(f"Cache set failed: {e}")

    async def get(self, key: str) -> Optional[Any]:
        """Get a cached value, JSON-decoded when possible."""
        if not self.client:
            raise ConnectionError("Not connected to Redis")

        try:
            value = await self.client.get(key)

            if value is None:
                return None

            try:
                return json.loads(value)
            except (json.JSONDecodeError, TypeError):
                return value

        except Exception as e:
            logger.error(f"Failed to get cache key {key}: {e}")
            raise DataError(f"Cache get failed: {e}")
