"""
Base configuration management for lpScanner.
"""

import os
import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Optional
from dataclasses import dataclass
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)

ENVIRONMENTS = ("local", "dev", "staging", "production", "test")


class ConfigError(Exception):
    """Exception raised for configuration-related errors."""
    pass


@dataclass
class BaseConfig:
    """Base configuration class with environment variable management."""

    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "local")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    def __post_init__(self):
        logging.basicConfig(
            level=getattr(logging, self.LOG_LEVEL.upper(), logging.INFO),
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )
        self._validate_config()

    def _validate_config(self):
        """Validate configuration values; subclasses extend this."""
        if self.ENVIRONMENT not in ENVIRONMENTS:
            raise ConfigError(f"Invalid environment: {self.ENVIRONMENT}")

    @staticmethod
    def get_env(key: str, default: Optional[str] = None, required: bool = False) -> Optional[str]:
        """
        Read an environment variable.

        Raises:
            ConfigError: if required and unset
        """
        value = os.getenv(key, default)
        if required and value is None:
            raise ConfigError(f"Required environment variable '{key}' is not set")
        return value

    @staticmethod
    def _typed(key: str, default: Any, parse: Callable[[str], Any], kind: str) -> Any:
        raw = os.getenv(key)
        if raw is None or raw.strip() == "":
            return default
        try:
            return parse(raw.strip())
        except (ValueError, TypeError, InvalidOperation):
            raise ConfigError(f"Environment variable '{key}' must be {kind}, got: {raw}")

    @staticmethod
    def get_env_int(key: str, default: Optional[int] = None) -> Optional[int]:
        """Integer variable; None when unset without a default."""
        return BaseConfig._typed(key, default, int, "an integer")

    @staticmethod
    def get_env_float(key: str, default: Optional[float] = None) -> Optional[float]:
        return BaseConfig._typed(key, default, float, "a float")

    @staticmethod
    def get_env_decimal(key: str, default: Optional[Decimal] = None) -> Optional[Decimal]:
        """Exact decimal variable, used for conversion rates."""
        return BaseConfig._typed(key, default, Decimal, "a decimal")

    @staticmethod
    def get_env_bool(key: str, default: bool = False) -> bool:
        return BaseConfig._typed(
            key, default, lambda raw: raw.lower() in ("true", "1", "yes", "on"), "a boolean"
        )
