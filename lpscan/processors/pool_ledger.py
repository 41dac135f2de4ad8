"""
Pool ledger: applies decoded pool events to the ledger storage.

Pool creation is insert-if-absent (a read before the write plus a unique
address at the storage layer), reserve updates overwrite, trades add.
"""

import asyncio
import logging
from collections import OrderedDict
from decimal import Decimal
from enum import Enum
from typing import Optional, Tuple

from ..core.models import (
    PoolCreated,
    PoolEvent,
    PoolRecord,
    ProtocolVersion,
    ReserveSync,
    Swap,
    TradeAmounts,
)
from ..core.storage.base import PoolStorageInterface
from ..fetchers.chain_client import ChainClient
from ..fetchers.errors import ErrorHandler
from .pair_analyzer import PairAnalysis, PairAnalyzer
from .token_metadata import TokenMetadataCache, to_human

logger = logging.getLogger(__name__)


class LedgerError(Exception):
    """Raised when an event cannot be applied to the ledger."""
    pass


class LedgerAction(Enum):
    """What applying one event did to the ledger."""
    POOL_CREATED = "pool_created"
    RESERVES_UPDATED = "reserves_updated"
    TRADE_RECORDED = "trade_recorded"
    IGNORED = "ignored"


class PoolLedger:
    """
    Idempotent pool creation and reserve / volume reconciliation.

    Args:
        storage: ledger backend
        client: RPC client for pool token and balance reads
        analyzer: reference / subject resolution
        metadata: token metadata cache
        untracked_limit: how many untracked addresses to remember; the least
            recently seen are forgotten first and looked up again if they reappear
    """

    def __init__(
        self,
        storage: PoolStorageInterface,
        client: ChainClient,
        analyzer: PairAnalyzer,
        metadata: TokenMetadataCache,
        untracked_limit: int = 100_000,
    ):
        self.storage = storage
        self.client = client
        self.analyzer = analyzer
        self.metadata = metadata
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self.error_handler = ErrorHandler(self.logger)
        self.untracked_limit = untracked_limit
        # Addresses known not to be tracked: non-reference pairs and non-pools
        self._untracked: "OrderedDict[str, None]" = OrderedDict()

    def is_untracked(self, address: str) -> bool:
        return address.lower() in self._untracked

    def _mark_untracked(self, address: str) -> None:
        self._untracked[address] = None
        self._untracked.move_to_end(address)
        while len(self._untracked) > self.untracked_limit:
            self._untracked.popitem(last=False)

    def _valuation(self, analysis_reference: Optional[str], token0: str,
                   reserve0: Decimal, reserve1: Decimal) -> Decimal:
        if analysis_reference is None:
            return Decimal(0)
        reference_reserve = reserve0 if analysis_reference == token0 else reserve1
        return reference_reserve * self.analyzer.rate_of(analysis_reference)

    async def _balance_of(self, token: str, pool: str) -> int:
        try:
            return await self.client.get_balance_of(token, pool)
        except Exception as e:
            self.logger.warning(f"balanceOf({pool}) on {token} failed, assuming 0: {e}")
            return 0

    async def ensure_pool(
        self, address: str, protocol_version: ProtocolVersion, token0: str, token1: str
    ) -> bool:
        """
        Create the pool record if it does not exist yet.

        Returns:
            True if this call inserted the record
        """
        address, token0, token1 = address.lower(), token0.lower(), token1.lower()

        if await self.storage.get_pool(address) is not None:
            return False

        if token0 == token1:
            self._mark_untracked(address)
            self.logger.debug(f"{address} reports {token0} as both tokens, not a pool")
            return False

        analysis: PairAnalysis = self.analyzer.analyze(token0, token1)
        if not analysis.has_reference:
            self._mark_untracked(address)
            self.logger.debug(f"Pool {address} has no reference token, not tracked")
            return False

        balance0, balance1, meta0, meta1 = await asyncio.gather(
            self._balance_of(token0, address),
            self._balance_of(token1, address),
            self.metadata.resolve(token0),
            self.metadata.resolve(token1),
        )
        reserve0 = to_human(balance0, meta0.decimals)
        reserve1 = to_human(balance1, meta1.decimals)
        subject_meta = meta0 if analysis.subject_token == token0 else meta1

        record = PoolRecord(
            address=address,
            protocol_version=protocol_version,
            token0=token0,
            token1=token1,
            subject_token=analysis.subject_token,
            reference_token=analysis.reference_token,
            reference_symbol=analysis.reference_symbol,
            subject_symbol=subject_meta.symbol,
            subject_total_supply=subject_meta.total_supply,
            reserve0=reserve0,
            reserve1=reserve1,
            valuation=self._valuation(analysis.reference_token, token0, reserve0, reserve1),
        )

        inserted = await self.storage.insert_pool(record)
        if inserted:
            self.logger.info(
                f"New {protocol_version.value} pool {address}: "
                f"{subject_meta.symbol}/{analysis.reference_symbol} valuation={record.valuation}"
            )
        return inserted

    async def discover_pool(self, address: str, protocol_version: ProtocolVersion) -> bool:
        """
        Look up an unknown address seen in a trade or sync log and record it.

        Returns:
            True if the address is (now) a tracked pool
        """
        address = address.lower()
        if address in self._untracked:
            self._untracked.move_to_end(address)
            return False
        if await self.storage.get_pool(address) is not None:
            return True

        try:
            token0, token1 = await self.client.get_pool_tokens(address)
        except Exception as e:
            if self.error_handler.classify_error(e) != "contract":
                raise
            self.logger.debug(f"{address} does not expose token0/token1, not a pool: {e}")
            self._mark_untracked(address)
            return False

        await self.ensure_pool(address, protocol_version, token0, token1)
        return address not in self._untracked

    async def apply_reserve_update(self, address: str, reserve0_raw: int, reserve1_raw: int) -> bool:
        """Overwrite reserves and valuation of a recorded pool."""
        pool = await self.storage.get_pool(address.lower())
        if pool is None:
            return False

        meta0, meta1 = await asyncio.gather(
            self.metadata.resolve(pool.token0),
            self.metadata.resolve(pool.token1),
        )
        reserve0 = to_human(reserve0_raw, meta0.decimals)
        reserve1 = to_human(reserve1_raw, meta1.decimals)
        valuation = self._valuation(pool.reference_token, pool.token0, reserve0, reserve1)

        return await self.storage.update_reserves(pool.address, reserve0, reserve1, valuation)

    async def apply_trade(self, address: str, amounts: TradeAmounts) -> Optional[Decimal]:
        """
        Add a trade's reference-side value to the pool's volume.

        Returns:
            The volume added, or None if the pool is unknown or unpriced
        """
        pool = await self.storage.get_pool(address.lower())
        if pool is None or pool.reference_token is None:
            return None

        raw = amounts.amount0 if pool.reference_is_token0 else amounts.amount1
        reference_meta = await self.metadata.resolve(pool.reference_token)
        volume = to_human(raw, reference_meta.decimals) * self.analyzer.rate_of(pool.reference_token)

        if not await self.storage.add_trade(pool.address, volume):
            return None
        return volume

    async def apply_event(self, event: PoolEvent) -> Tuple[LedgerAction, Optional[Decimal]]:
        """Dispatch one decoded event."""
        if isinstance(event, PoolCreated):
            created = await self.ensure_pool(
                event.pool, event.protocol_version, event.token0, event.token1
            )
            return (LedgerAction.POOL_CREATED if created else LedgerAction.IGNORED), None

        if isinstance(event, ReserveSync):
            if not await self.discover_pool(event.pool, ProtocolVersion.V2):
                return LedgerAction.IGNORED, None
            updated = await self.apply_reserve_update(event.pool, event.reserve0, event.reserve1)
            return (LedgerAction.RESERVES_UPDATED if updated else LedgerAction.IGNORED), None

        if isinstance(event, Swap):
            if not await self.discover_pool(event.pool, event.protocol_version):
                return LedgerAction.IGNORED, None
            volume = await self.apply_trade(event.pool, event.amounts)
            if volume is None:
                return LedgerAction.IGNORED, None
            return LedgerAction.TRADE_RECORDED, volume

        raise LedgerError(f"Unsupported event type: {type(event).__name__}")
