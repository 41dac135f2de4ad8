"""
Configuration manager for lpScanner.

This module provides a centralized way to access all configuration settings
across the application. It combines all configuration classes into a single
easy-to-use interface.
"""

import logging
from typing import Dict, Optional

from .base import BaseConfig, ConfigError
from .chains import ChainConfig
from .database import DatabaseConfig
from .protocols import ProtocolConfig
from .reference import ReferenceConfig, ReferenceRegistry

logger = logging.getLogger(__name__)


class ConfigManager:
    """
    Centralized configuration manager that combines all configuration classes.

    This class provides easy access to all configuration settings and ensures
    that configurations are properly initialized and validated.
    """

    def __init__(self, environment: str = None):
        """
        Initialize the configuration manager.

        Args:
            environment: Override the environment (local, dev, staging, production, test)
        """
        self._environment = environment
        self._base_config = None
        self._database_config = None
        self._chain_config = None
        self._protocol_config = None
        self._reference_config = None
        self._registries: Dict[str, ReferenceRegistry] = {}
        self._initialize_configs()

    def _initialize_configs(self):
        """Initialize all configuration objects."""
        try:
            self._base_config = BaseConfig()
            if self._environment:
                self._base_config.ENVIRONMENT = self._environment

            self._database_config = DatabaseConfig()
            self._chain_config = ChainConfig()
            self._protocol_config = ProtocolConfig()
            self._reference_config = ReferenceConfig()

            logger.info(f"Configuration initialized for environment: {self.environment}")

        except Exception as e:
            logger.error(f"Failed to initialize configuration: {e}")
            raise ConfigError(f"Configuration initialization failed: {e}")

    @property
    def environment(self) -> str:
        """Get current environment."""
        return self._base_config.ENVIRONMENT

    @property
    def base(self) -> BaseConfig:
        return self._base_config

    @property
    def database(self) -> DatabaseConfig:
        return self._database_config

    @property
    def chains(self) -> ChainConfig:
        return self._chain_config

    @property
    def protocols(self) -> ProtocolConfig:
        return self._protocol_config

    @property
    def references(self) -> ReferenceConfig:
        return self._reference_config

    def get_reference_registry(self, chain: Optional[str] = None) -> ReferenceRegistry:
        """Get the reference registry for a chain, built once per manager."""
        chain = chain or self.chains.DEFAULT_CHAIN
        if chain not in self._registries:
            self._registries[chain] = self.references.get_registry(chain)
            logger.info(f"Loaded reference registry for {chain}: {self._registries[chain]}")
        return self._registries[chain]

    def validate_configuration(self) -> bool:
        """
        Validate all configuration settings.

        Returns:
            True if all configurations are valid

        Raises:
            ConfigError: If any configuration is invalid
        """
        try:
            if not self.database.postgres_url:
                raise ConfigError("PostgreSQL URL not configured")

            supported_chains = self.chains.supported_chains
            if not supported_chains:
                raise ConfigError("No chains configured")
            if self.chains.DEFAULT_CHAIN not in supported_chains:
                raise ConfigError(f"Unsupported default chain: {self.chains.DEFAULT_CHAIN}")

            for protocol in self.protocols.supported_protocols:
                if not self.protocols.get_factory_address(protocol, self.chains.DEFAULT_CHAIN):
                    logger.warning(f"No {protocol} factory for {self.chains.DEFAULT_CHAIN}")

            registry = self.get_reference_registry()
            if not registry:
                raise ConfigError("Reference registry is empty")

            logger.info("Configuration validation successful")
            return True

        except ConfigError:
            raise
        except Exception as e:
            logger.error(f"Configuration validation failed: {e}")
            raise ConfigError(f"Configuration validation failed: {e}")

    def __repr__(self) -> str:
        return f"ConfigManager(environment={self.environment})"


# Global configuration manager instance
_config_manager = None


def get_config(environment: str = None, force_reload: bool = False) -> ConfigManager:
    """
    Get the global configuration manager instance.

    Args:
        environment: Override environment
        force_reload: Force reload of configuration

    Returns:
        ConfigManager instance
    """
    global _config_manager

    if _config_manager is None or force_reload:
        _config_manager = ConfigManager(environment=environment)
        _config_manager.validate_configuration()

    return _config_manager
