"""Tests for range log fetching."""
import pytest
from unittest.mock import AsyncMock, MagicMock

from lpscan.core.models import BlockRange, RawLog
from lpscan.fetchers import FetchError, FilterSet, LogFetcher, build_filter_sets


def _log(block: int, index: int, topic: str = "0x01") -> RawLog:
    return RawLog(
        address="0x16b9a82891338f9ba80e2d6970fdda79d1eb0dae",
        topics=[topic],
        data=b"",
        block_number=block,
        log_index=index,
    )


class TestBuildFilterSets:

    def test_default_sets(self, protocols):
        filter_sets = build_filter_sets(protocols, "bsc", include_v2_pair_created=True)
        by_name = {f.name: f for f in filter_sets}

        assert set(by_name) == {"v3_pool_created", "v2_swap_sync", "v3_swap", "v2_pair_created"}
        assert by_name["v3_pool_created"].address == protocols.get_factory_address("v3", "bsc")
        assert by_name["v2_pair_created"].address == protocols.get_factory_address("v2", "bsc")
        assert by_name["v2_swap_sync"].address is None
        assert len(by_name["v2_swap_sync"].topics) == 2
        assert by_name["v3_swap"].address is None

    def test_pair_created_can_be_disabled(self, protocols):
        names = [f.name for f in build_filter_sets(protocols, "bsc", include_v2_pair_created=False)]
        assert names == ["v3_pool_created", "v2_swap_sync", "v3_swap"]

    def test_filter_params(self):
        filter_set = FilterSet(name="swaps", topics=("0xaa", "0xbb"), address="0xfactory")
        params = filter_set.to_filter_params(10, 19)

        assert params == {
            "fromBlock": 10,
            "toBlock": 19,
            "topics": [["0xaa", "0xbb"]],
            "address": "0xfactory",
        }


class TestLogFetcher:
    """Test cases for LogFetcher."""

    @pytest.fixture
    def filter_sets(self):
        return [
            FilterSet(name="creations", topics=("0x01",), address="0xfactory"),
            FilterSet(name="swaps", topics=("0x02", "0x03")),
            FilterSet(name="v3_swaps", topics=("0x04",)),
        ]

    @pytest.fixture
    def client(self):
        client = MagicMock()
        client.get_logs = AsyncMock()
        return client

    def test_requires_filter_sets(self, client):
        with pytest.raises(ValueError):
            LogFetcher(client, [])

    @pytest.mark.asyncio
    async def test_fetch_range_merges_in_chain_order(self, client, filter_sets):
        client.get_logs.side_effect = [
            [_log(105, 2)],
            [_log(101, 0), _log(105, 5)],
            [_log(103, 1)],
        ]
        fetcher = LogFetcher(client, filter_sets)

        result = await fetcher.fetch_range(BlockRange(100, 199))

        assert result.block_range == BlockRange(100, 199)
        assert [(log.block_number, log.log_index) for log in result.logs] == [
            (101, 0), (103, 1), (105, 2), (105, 5),
        ]
        assert result.metadata["counts"] == {"creations": 1, "swaps": 2, "v3_swaps": 1}

    @pytest.mark.asyncio
    async def test_every_set_is_attempted_when_one_fails(self, client, filter_sets):
        client.get_logs.side_effect = [
            [_log(101, 0)],
            OSError("upstream timeout"),
            [_log(102, 0)],
        ]
        fetcher = LogFetcher(client, filter_sets)

        with pytest.raises(FetchError, match="swaps"):
            await fetcher.fetch_range(BlockRange(100, 199))

        assert client.get_logs.await_count == 3

    @pytest.mark.asyncio
    async def test_fetch_single_set(self, client, filter_sets):
        client.get_logs.return_value = [_log(100, 0)]
        fetcher = LogFetcher(client, filter_sets)

        logs = await fetcher.fetch(100, 109, filter_sets[0])

        assert len(logs) == 1
        params = client.get_logs.call_args.args[0]
        assert params["fromBlock"] == 100
        assert params["toBlock"] == 109
        assert params["address"] == "0xfactory"
