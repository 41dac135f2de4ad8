"""Test configuration for fetchers."""
import pytest
from unittest.mock import AsyncMock, MagicMock

from hexbytes import HexBytes

from lpscan.config import ProtocolConfig


class FakeEth:
    """Stand-in for AsyncWeb3.eth with an awaitable block_number property."""

    def __init__(self, head: int = 40_000_000):
        self.head = head
        self.get_logs = AsyncMock(return_value=[])
        self.get_code = AsyncMock(return_value=HexBytes(b"\x60\x80"))
        self.contract = MagicMock()

    @property
    def block_number(self):
        async def _value():
            return self.head
        return _value()


@pytest.fixture
def fake_web3():
    web3 = MagicMock()
    web3.eth = FakeEth()
    return web3


@pytest.fixture
def protocols():
    return ProtocolConfig()


@pytest.fixture
def sample_web3_log():
    """A V2 Sync log as returned by eth_getLogs."""
    return {
        "address": "0x16b9a82891338f9BA80E2D6970FddA79D1eb0daE",
        "topics": [
            HexBytes("0x1c411e9a96e071241c2f21f7726b17ae89e3cab4c78be50e062b03a9fffbbad1"),
        ],
        "data": HexBytes((100).to_bytes(32, "big") + (50).to_bytes(32, "big")),
        "blockNumber": 40_000_010,
        "logIndex": 7,
        "transactionHash": HexBytes("0x" + "ab" * 32),
    }
