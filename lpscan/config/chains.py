"""
Chain-specific configuration for lpScanner.
"""

from dataclasses import dataclass
from typing import Dict, Optional

from .base import BaseConfig, ConfigError


@dataclass
class ChainConfig(BaseConfig):
    """Chain endpoints and block-scanning settings."""

    # Default chain settings
    DEFAULT_CHAIN: str = BaseConfig.get_env("DEFAULT_CHAIN", "bsc")

    # Chain-specific RPC URLs
    BSC_RPC_URL: str = BaseConfig.get_env("RPC_URL", "https://bsc-dataseed.bnbchain.org")
    ETHEREUM_RPC_URL: str = BaseConfig.get_env("ETHEREUM_RPC_URL", "https://eth.llamarpc.com")

    # Range claiming
    BATCH_SIZE: int = BaseConfig.get_env_int("BATCH_SIZE", 100)
    START_BLOCK: Optional[int] = BaseConfig.get_env_int("START_BLOCK")
    START_OFFSET: int = BaseConfig.get_env_int("START_OFFSET", 1_000_000)
    HEAD_WAIT_DELAY: float = BaseConfig.get_env_float("HEAD_WAIT_DELAY", 5.0)
    CLAIM_RETRY_DELAY: float = BaseConfig.get_env_float("CLAIM_RETRY_DELAY", 0.2)

    # Worker loop
    ITERATION_TIMEOUT: float = BaseConfig.get_env_float("ITERATION_TIMEOUT", 60.0)
    ERROR_RETRY_DELAY: float = BaseConfig.get_env_float("ERROR_RETRY_DELAY", 3.0)

    # RPC behaviour
    MAX_RETRY_ATTEMPTS: int = BaseConfig.get_env_int("MAX_RETRY_ATTEMPTS", 3)
    REQUEST_TIMEOUT: int = BaseConfig.get_env_int("REQUEST_TIMEOUT", 10)

    def _validate_config(self):
        super()._validate_config()
        if self.BATCH_SIZE is None or self.BATCH_SIZE <= 0:
            raise ConfigError(f"BATCH_SIZE must be positive, got: {self.BATCH_SIZE}")
        if self.ITERATION_TIMEOUT <= 0:
            raise ConfigError("ITERATION_TIMEOUT must be positive")

    @property
    def supported_chains(self) -> Dict[str, str]:
        """RPC endpoint of every supported chain, keyed by chain name."""
        return {
            "bsc": self.BSC_RPC_URL,
            "ethereum": self.ETHEREUM_RPC_URL,
        }

    def get_rpc_url(self, chain_name: str) -> str:
        """Get RPC URL for a specific chain."""
        if chain_name not in self.supported_chains:
            raise ValueError(f"Unsupported chain: {chain_name}")
        return self.supported_chains[chain_name]
