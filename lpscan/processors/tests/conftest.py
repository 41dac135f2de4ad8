"""Test configuration for processors."""
from decimal import Decimal
from typing import Dict, Optional

import pytest
from unittest.mock import AsyncMock, MagicMock

from lpscan.config import ReferenceCurrency, ReferenceRegistry
from lpscan.core.models import PoolRecord
from lpscan.core.storage.base import PoolStorageInterface

T_REF = "0x00000000000000000000000000000000000000aa"
T_X = "0x00000000000000000000000000000000000000bb"
T_Y = "0x00000000000000000000000000000000000000cc"
ANCHOR = "0x0000000000000000000000000000000000000001"
POOL = "0x000000000000000000000000000000000000f001"


class InMemoryPoolStorage(PoolStorageInterface):
    """Pool ledger kept in a dict, with the same write semantics as PostgresStorage."""

    def __init__(self):
        self.pools: Dict[str, PoolRecord] = {}

    async def get_pool(self, address: str) -> Optional[PoolRecord]:
        return self.pools.get(address.lower())

    async def insert_pool(self, pool: PoolRecord) -> bool:
        if pool.address in self.pools:
            return False
        self.pools[pool.address] = pool
        return True

    async def update_reserves(self, address, reserve0, reserve1, valuation) -> bool:
        pool = self.pools.get(address)
        if pool is None:
            return False
        pool.reserve0, pool.reserve1, pool.valuation = reserve0, reserve1, valuation
        return True

    async def add_trade(self, address, volume) -> bool:
        pool = self.pools.get(address)
        if pool is None:
            return False
        pool.cumulative_volume += volume
        pool.trade_count_24h += 1
        pool.trade_count_12h += 1
        return True


@pytest.fixture
def registry():
    """Registry {T_REF: 2.0} plus a stable anchor."""
    return ReferenceRegistry(
        [
            ReferenceCurrency(T_REF, "REF", Decimal("2.0")),
            ReferenceCurrency(ANCHOR, "USD", Decimal("1")),
        ],
        anchor=ANCHOR,
    )


@pytest.fixture
def pool_storage():
    return InMemoryPoolStorage()


@pytest.fixture
def chain_client():
    """RPC client double: every token is a contract with 0 decimals."""
    client = MagicMock()
    client.is_contract = AsyncMock(return_value=True)
    client.get_symbol = AsyncMock(side_effect=lambda token: {T_REF: "REF", T_X: "TX"}.get(token, "TKN"))
    client.get_name = AsyncMock(return_value="Token")
    client.get_decimals = AsyncMock(return_value=0)
    client.get_total_supply = AsyncMock(return_value=1_000_000)
    client.get_balance_of = AsyncMock(return_value=0)
    client.get_pool_tokens = AsyncMock(return_value=(T_REF, T_X))
    return client
