"""
Configuration management for lpScanner.

Use get_config() to access all configuration settings.

Example:
    from lpscan.config import get_config

    config = get_config()

    # Storage settings
    redis_kwargs = config.database.get_redis_connection_kwargs()

    # Chain settings
    bsc_rpc = config.chains.get_rpc_url("bsc")

    # Event topics and reference currencies
    topics = config.protocols.get_event_topics("bsc")
    registry = config.get_reference_registry("bsc")
"""

from .base import BaseConfig, ConfigError
from .chains import ChainConfig
from .database import DatabaseConfig
from .manager import ConfigManager, get_config
from .protocols import ERC20_ABI, POOL_TOKENS_ABI, ProtocolConfig, event_topic
from .reference import ReferenceConfig, ReferenceCurrency, ReferenceRegistry

__all__ = [
    "BaseConfig",
    "ConfigError",
    "ChainConfig",
    "DatabaseConfig",
    "ProtocolConfig",
    "ReferenceConfig",
    "ReferenceCurrency",
    "ReferenceRegistry",
    "ConfigManager",
    "get_config",
    "event_topic",
    "ERC20_ABI",
    "POOL_TOKENS_ABI",
]
