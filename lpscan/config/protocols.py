"""
Protocol-specific configuration for lpScanner.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

from eth_utils import keccak

from .base import BaseConfig


def event_topic(signature: str) -> str:
    """Return the 0x-prefixed keccak topic of an event signature."""
    return "0x" + keccak(text=signature).hex()


def _view(name: str, outputs: List[str], inputs: Optional[List[str]] = None) -> Dict:
    return {
        "name": name,
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": f"arg{i}", "type": t} for i, t in enumerate(inputs or [])],
        "outputs": [{"name": "", "type": t} for t in outputs],
    }


ERC20_ABI = [
    _view("symbol", ["string"]),
    _view("name", ["string"]),
    _view("decimals", ["uint8"]),
    _view("totalSupply", ["uint256"]),
    _view("balanceOf", ["uint256"], ["address"]),
]

POOL_TOKENS_ABI = [
    _view("token0", ["address"]),
    _view("token1", ["address"]),
]


@dataclass
class ProtocolConfig(BaseConfig):
    """Event signatures and factory contracts for the tracked pool protocols."""

    # Event signatures (topic0 is derived from these)
    V2_PAIR_CREATED_SIGNATURE: str = "PairCreated(address,address,address,uint256)"
    V3_POOL_CREATED_SIGNATURE: str = "PoolCreated(address,address,uint24,int24,address)"
    V2_SWAP_SIGNATURE: str = "Swap(address,uint256,uint256,uint256,uint256,address)"
    V2_SYNC_SIGNATURE: str = "Sync(uint112,uint112)"
    UNISWAP_V3_SWAP_SIGNATURE: str = (
        "Swap(address,address,int256,int256,uint160,uint128,int24)"
    )
    PANCAKE_V3_SWAP_SIGNATURE: str = (
        "Swap(address,address,int256,int256,uint160,uint128,int24,uint128,uint128)"
    )

    # Factory overrides (empty means use the chain defaults below)
    V2_FACTORY_ADDRESS: str = BaseConfig.get_env("V2_FACTORY_ADDRESS", "")
    V3_FACTORY_ADDRESS: str = BaseConfig.get_env("V3_FACTORY_ADDRESS", "")
    TRACK_V2_PAIR_CREATED: bool = BaseConfig.get_env_bool("TRACK_V2_PAIR_CREATED", True)

    @property
    def protocol_config(self) -> Dict[str, Dict]:
        """Factory contracts and swap layout by chain."""
        return {
            "bsc": {
                "v2_factory": "0xca143ce32fe78f1f7019d7d551a6402fc5350c73",  # PancakeSwap V2
                "v3_factory": "0x0bfbcf9fa4f9c56b0f40a671ad40e0805a091865",  # PancakeSwap V3
                "v3_swap_signature": self.PANCAKE_V3_SWAP_SIGNATURE,
            },
            "ethereum": {
                "v2_factory": "0x5c69bee701ef814a2b6a3edd4b1652cb9cc5aa6f",  # Uniswap V2
                "v3_factory": "0x1f98431c8ad98523631ae4a59f267346ea31f984",  # Uniswap V3
                "v3_swap_signature": self.UNISWAP_V3_SWAP_SIGNATURE,
            },
        }

    @property
    def supported_protocols(self) -> List[str]:
        """Get list of supported protocol versions."""
        return ["v2", "v3"]

    def get_protocol_config(self, chain: str) -> Dict:
        """Get protocol configuration for a chain."""
        if chain not in self.protocol_config:
            raise ValueError(f"Unsupported chain: {chain}")
        return self.protocol_config[chain]

    def get_factory_address(self, protocol: str, chain: str) -> Optional[str]:
        """Get the (lowercase) factory address for a protocol version on a chain."""
        if protocol not in self.supported_protocols:
            raise ValueError(f"Unsupported protocol: {protocol}")
        override = self.V2_FACTORY_ADDRESS if protocol == "v2" else self.V3_FACTORY_ADDRESS
        address = override or self.get_protocol_config(chain).get(f"{protocol}_factory")
        return address.lower() if address else None

    def get_event_topics(self, chain: str) -> Dict[str, str]:
        """Get topic0 hashes keyed by event type for a chain."""
        return {
            "v2_pair_created": event_topic(self.V2_PAIR_CREATED_SIGNATURE),
            "v3_pool_created": event_topic(self.V3_POOL_CREATED_SIGNATURE),
            "v2_swap": event_topic(self.V2_SWAP_SIGNATURE),
            "v2_sync": event_topic(self.V2_SYNC_SIGNATURE),
            "v3_swap": event_topic(self.get_protocol_config(chain)["v3_swap_signature"]),
        }
