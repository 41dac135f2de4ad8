"""
Token metadata cache.

Resolves symbol, decimals, total supply and name of ERC-20 tokens. Every
metadata call is individually fault tolerant so partial metadata never blocks
pool creation. Resolutions are kept for the lifetime of the process and, when
a shared cache backend is configured, published there for other workers.
"""

import asyncio
import logging
from decimal import Decimal
from typing import Dict, Optional

from ..core.models import TokenMetadata
from ..core.storage.base import CacheInterface
from ..fetchers.chain_client import ChainClient

logger = logging.getLogger(__name__)

DEFAULT_SYMBOL = "UNK"
DEFAULT_DECIMALS = 18


def to_human(raw: int, decimals: int) -> Decimal:
    """Scale a raw integer token amount by its decimals."""
    return Decimal(raw).scaleb(-decimals)


def _clean_symbol(value) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (bytes, bytearray)):
        value = bytes(value).rstrip(b"\x00").decode("utf-8", errors="replace")
    value = str(value).replace("\x00", "").strip()
    return value or None


class TokenMetadataCache:
    """
    Process-lifetime cache of TokenMetadata keyed by lowercase address.

    Args:
        client: RPC client used for code and ERC-20 reads
        shared_cache: optional cache backend shared with other workers
        key_prefix: key prefix used in the shared cache
    """

    def __init__(
        self,
        client: ChainClient,
        shared_cache: Optional[CacheInterface] = None,
        key_prefix: str = "token_meta:",
    ):
        self.client = client
        self.shared_cache = shared_cache
        self.key_prefix = key_prefix
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self._cache: Dict[str, TokenMetadata] = {}
        self._inflight: Dict[str, asyncio.Task] = {}

    def __contains__(self, address: str) -> bool:
        return address.lower() in self._cache

    def get_cached(self, address: str) -> Optional[TokenMetadata]:
        return self._cache.get(address.lower())

    async def resolve(self, address: str) -> TokenMetadata:
        """Return metadata for a token, resolving it on a cache miss."""
        address = address.lower()
        cached = self._cache.get(address)
        if cached is not None:
            return cached

        # Concurrent lookups of the same token share one resolution
        task = self._inflight.get(address)
        if task is None:
            task = asyncio.ensure_future(self._resolve_uncached(address))
            self._inflight[address] = task
            task.add_done_callback(lambda _t: self._inflight.pop(address, None))
        return await asyncio.shield(task)

    async def _resolve_uncached(self, address: str) -> TokenMetadata:
        shared = await self._read_shared(address)
        if shared is not None:
            self._cache[address] = shared
            return shared

        if not await self.client.is_contract(address):
            self.logger.debug(f"{address} has no code, using default metadata")
            return TokenMetadata()

        symbol, decimals, total_supply, name = await asyncio.gather(
            self.client.get_symbol(address),
            self.client.get_decimals(address),
            self.client.get_total_supply(address),
            self.client.get_name(address),
            return_exceptions=True,
        )

        failed = [
            label
            for label, value in (
                ("symbol", symbol), ("decimals", decimals),
                ("totalSupply", total_supply), ("name", name),
            )
            if isinstance(value, Exception)
        ]
        if failed:
            self.logger.warning(f"Metadata calls failed for {address}: {', '.join(failed)}")

        decimals = DEFAULT_DECIMALS if isinstance(decimals, Exception) else int(decimals)
        metadata = TokenMetadata(
            symbol=(None if isinstance(symbol, Exception) else _clean_symbol(symbol)) or DEFAULT_SYMBOL,
            decimals=decimals,
            total_supply=(
                Decimal(0) if isinstance(total_supply, Exception) else to_human(int(total_supply), decimals)
            ),
            name=None if isinstance(name, Exception) else _clean_symbol(name),
        )

        if len(failed) == 4:
            # Nothing was learned; a later lookup may succeed
            return metadata

        self._cache[address] = metadata
        await self._write_shared(address, metadata)
        return metadata

    async def _read_shared(self, address: str) -> Optional[TokenMetadata]:
        if self.shared_cache is None:
            return None
        try:
            data = await self.shared_cache.get(self.key_prefix + address)
        except Exception as e:
            self.logger.warning(f"Shared token cache read failed for {address}: {e}")
            return None
        if not isinstance(data, dict):
            return None
        try:
            return TokenMetadata.from_dict(data)
        except (ValueError, ArithmeticError) as e:
            self.logger.warning(f"Ignoring malformed shared metadata for {address}: {e}")
            return None

    async def _write_shared(self, address: str, metadata: TokenMetadata) -> None:
        if self.shared_cache is None:
            return
        try:
            await self.shared_cache.set(self.key_prefix + address, metadata.to_dict())
        except Exception as e:
            self.logger.warning(f"Shared token cache write failed for {address}: {e}")
