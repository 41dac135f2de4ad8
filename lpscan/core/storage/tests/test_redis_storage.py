"""Tests for the Redis cursor and cache backend."""
import asyncio

import fakeredis
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from lpscan.core.storage import ConnectionError, DataError, RedisStorage
from lpscan.core.storage.redis import COMPARE_AND_SET_SCRIPT


class TestRedisStorage:
    """Test cases for RedisStorage."""

    @pytest.fixture
    def storage(self):
        storage = RedisStorage({"host": "localhost", "port": 6379, "cursor_key": "test:cursor"})
        storage.client = AsyncMock()
        storage._cas_script = AsyncMock()
        storage.is_connected = True
        return storage

    @patch("lpscan.core.storage.redis.redis")
    @pytest.mark.asyncio
    async def test_connect_registers_cas_script(self, mock_redis):
        client = MagicMock()
        client.ping = AsyncMock(return_value=True)
        mock_redis.Redis.return_value = client

        storage = RedisStorage({"host": "redis", "password": "secret"})
        await storage.connect()

        assert storage.is_connected
        client.register_script.assert_called_once_with(COMPARE_AND_SET_SCRIPT)
        pool_kwargs = mock_redis.ConnectionPool.call_args.kwargs
        assert pool_kwargs["host"] == "redis"
        assert pool_kwargs["password"] == "secret"

    @patch("lpscan.core.storage.redis.redis")
    @pytest.mark.asyncio
    async def test_connect_failure_raises(self, mock_redis):
        client = MagicMock()
        client.ping = AsyncMock(side_effect=OSError("refused"))
        mock_redis.Redis.return_value = client

        with pytest.raises(ConnectionError, match="Redis connection failed"):
            await RedisStorage({}).connect()

    @pytest.mark.asyncio
    async def test_get_cursor_unset(self, storage):
        storage.client.get.return_value = None
        assert await storage.get_cursor() is None
        storage.client.get.assert_awaited_once_with("test:cursor")

    @pytest.mark.asyncio
    async def test_get_cursor_parses_integer(self, storage):
        storage.client.get.return_value = "12345"
        assert await storage.get_cursor() == 12345

    @pytest.mark.asyncio
    async def test_get_cursor_rejects_garbage(self, storage):
        storage.client.get.return_value = "abc"
        with pytest.raises(DataError):
            await storage.get_cursor()

    @pytest.mark.asyncio
    async def test_get_cursor_unreachable(self, storage):
        storage.client.get.side_effect = OSError("connection reset")
        with pytest.raises(ConnectionError):
            await storage.get_cursor()

    @pytest.mark.asyncio
    async def test_compare_and_set_won(self, storage):
        storage._cas_script.return_value = 1

        assert await storage.compare_and_set_cursor(100, 200) is True
        storage._cas_script.assert_awaited_once_with(keys=["test:cursor"], args=[100, 200])

    @pytest.mark.asyncio
    async def test_compare_and_set_lost(self, storage):
        storage._cas_script.return_value = 0
        assert await storage.compare_and_set_cursor(100, 200) is False

    @pytest.mark.asyncio
    async def test_cursor_requires_connection(self):
        storage = RedisStorage({})
        with pytest.raises(ConnectionError, match="Not connected"):
            await storage.get_cursor()
        with pytest.raises(ConnectionError, match="Not connected"):
            await storage.compare_and_set_cursor(1, 2)

    @pytest.mark.asyncio
    async def test_set_serializes_json(self, storage):
        storage.client.set.return_value = True

        assert await storage.set("token_meta:0xabc", {"symbol": "CAKE", "decimals": 18})
        stored = storage.client.set.call_args.args[1]
        assert '"symbol": "CAKE"' in stored

    @pytest.mark.asyncio
    async def test_get_deserializes_json(self, storage):
        storage.client.get.return_value = '{"symbol": "CAKE", "decimals": 18}'
        assert await storage.get("token_meta:0xabc") == {"symbol": "CAKE", "decimals": 18}

    @pytest.mark.asyncio
    async def test_get_failure_raises_data_error(self, storage):
        storage.client.get.side_effect = OSError("timeout")
        with pytest.raises(DataError, match="Cache get failed"):
            await storage.get("token_meta:0xabc")


class TestRedisCompareAndSetScript:
    """The cursor Lua script executed by an in-process Redis server."""

    @pytest.fixture
    def storage(self):
        client = fakeredis.FakeAsyncRedis(decode_responses=True)
        storage = RedisStorage({"cursor_key": "test:cursor"})
        storage.client = client
        storage._cas_script = client.register_script(COMPARE_AND_SET_SCRIPT)
        storage.is_connected = True
        return storage

    @pytest.mark.asyncio
    async def test_unset_cursor_accepts_any_expected(self, storage):
        assert await storage.get_cursor() is None

        assert await storage.compare_and_set_cursor(5, 15) is True
        assert await storage.get_cursor() == 15

    @pytest.mark.asyncio
    async def test_matching_expected_advances(self, storage):
        await storage.client.set("test:cursor", "100")

        assert await storage.compare_and_set_cursor(100, 150) is True
        assert await storage.client.get("test:cursor") == "150"

    @pytest.mark.asyncio
    async def test_stale_expected_leaves_cursor(self, storage):
        await storage.client.set("test:cursor", "100")

        assert await storage.compare_and_set_cursor(90, 190) is False
        assert await storage.get_cursor() == 100

    @pytest.mark.asyncio
    async def test_only_one_concurrent_winner(self, storage):
        await storage.client.set("test:cursor", "0")

        results = await asyncio.gather(
            *(storage.compare_and_set_cursor(0, 10) for _ in range(5))
        )

        assert results.count(True) == 1
        assert await storage.get_cursor() == 10

    @pytest.mark.asyncio
    async def test_cache_round_trip(self, storage):
        assert await storage.set("token_meta:0xabc", {"symbol": "CAKE", "decimals": 18}) is True
        assert await storage.get("token_meta:0xabc") == {"symbol": "CAKE", "decimals": 18}
        assert await storage.get("token_meta:0xdef") is None
