"""
Async RPC client covering the node surface the scanner consumes.

Every call is a pure read and goes through the same retry wrapper: network
and rate-limit errors back off exponentially, reverts are raised immediately
so callers can apply their own fallbacks.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Tuple

from eth_utils import to_checksum_address
from web3 import AsyncHTTPProvider, AsyncWeb3

from ..config.protocols import ERC20_ABI, POOL_TOKENS_ABI
from ..core.models import RawLog
from .errors import ErrorHandler

logger = logging.getLogger(__name__)


class ChainClient:
    """Thin AsyncWeb3 wrapper with retrying reads."""

    def __init__(
        self,
        rpc_url: Optional[str] = None,
        web3: Optional[AsyncWeb3] = None,
        max_retries: int = 3,
        request_timeout: int = 10,
    ):
        if web3 is None and not rpc_url:
            raise ValueError("Either rpc_url or web3 must be provided")
        self.w3 = web3 or AsyncWeb3(
            AsyncHTTPProvider(rpc_url, request_kwargs={"timeout": request_timeout})
        )
        self.max_retries = max(1, max_retries)
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self.error_handler = ErrorHandler(self.logger)
        self._contracts: Dict[Tuple[str, str], Any] = {}

    async def _retry_operation(self, operation, *args, **kwargs) -> Any:
        """Retry an operation with exponential backoff and error classification."""
        for attempt in range(self.max_retries):
            try:
                return await operation(*args, **kwargs)
            except Exception as e:
                self.error_handler.log_error(
                    e,
                    {
                        "attempt": attempt + 1,
                        "max_retries": self.max_retries,
                        "operation": getattr(operation, "__name__", str(operation)),
                    },
                )

                if not self.error_handler.should_retry(e, attempt, self.max_retries):
                    raise

                if attempt == self.max_retries - 1:
                    raise

                delay = self.error_handler.get_retry_delay(e, attempt)
                self.logger.info(
                    f"Retrying in {delay}s... (attempt {attempt + 1}/{self.max_retries})"
                )
                await asyncio.sleep(delay)

    def _contract(self, address: str, kind: str):
        key = (address.lower(), kind)
        if key not in self._contracts:
            abi = ERC20_ABI if kind == "erc20" else POOL_TOKENS_ABI
            self._contracts[key] = self.w3.eth.contract(
                address=to_checksum_address(address), abi=abi
            )
        return self._contracts[key]

    async def _call(self, address: str, kind: str, function: str, *args) -> Any:
        contract = self._contract(address, kind)

        async def call():
            return await getattr(contract.functions, function)(*args).call()

        call.__name__ = f"{function}@{address}"
        return await self._retry_operation(call)

    # Chain state

    async def get_block_number(self) -> int:
        async def block_number():
            return await self.w3.eth.block_number

        return int(await self._retry_operation(block_number))

    async def get_logs(self, filter_params: Dict[str, Any]) -> List[RawLog]:
        params = dict(filter_params)
        if params.get("address"):
            params["address"] = to_checksum_address(params["address"])

        logs = await self._retry_operation(self.w3.eth.get_logs, params)
        return [RawLog.from_web3(log) for log in logs]

    async def get_code(self, address: str) -> bytes:
        code = await self._retry_operation(self.w3.eth.get_code, to_checksum_address(address))
        return bytes(code)

    async def is_contract(self, address: str) -> bool:
        return len(await self.get_code(address)) > 0

    # ERC-20 reads

    async def get_symbol(self, token: str) -> str:
        return await self._call(token, "erc20", "symbol")

    async def get_name(self, token: str) -> str:
        return await self._call(token, "erc20", "name")

    async def get_decimals(self, token: str) -> int:
        return int(await self._call(token, "erc20", "decimals"))

    async def get_total_supply(self, token: str) -> int:
        return int(await self._call(token, "erc20", "totalSupply"))

    async def get_balance_of(self, token: str, holder: str) -> int:
        return int(await self._call(token, "erc20", "balanceOf", to_checksum_address(holder)))

    # Pool reads

    async def get_pool_tokens(self, pool: str) -> Tuple[str, str]:
        """Return (token0, token1) of a pool, lowercased."""
        token0, token1 = await asyncio.gather(
            self._call(pool, "pool", "token0"),
            self._call(pool, "pool", "token1"),
        )
        return str(token0).lower(), str(token1).lower()
