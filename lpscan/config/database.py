"""
Database configuration for lpScanner.
"""

import re
from dataclasses import dataclass
from typing import Optional

from .base import BaseConfig, ConfigError


@dataclass
class DatabaseConfig(BaseConfig):
    """Ledger (PostgreSQL) and cursor/cache (Redis) connection settings."""

    # PostgreSQL Configuration
    POSTGRES_HOST: str = BaseConfig.get_env("POSTGRES_HOST", "localhost")
    POSTGRES_PORT: int = BaseConfig.get_env_int("POSTGRES_PORT", 5432)
    POSTGRES_USER: str = BaseConfig.get_env("POSTGRES_USER", "postgres")
    POSTGRES_PASSWORD: str = BaseConfig.get_env("POSTGRES_PASSWORD", "")
    POSTGRES_DB: str = BaseConfig.get_env("POSTGRES_DB", "lpscan")

    # Redis Configuration
    REDIS_HOST: str = BaseConfig.get_env("REDIS_HOST", "localhost")
    REDIS_PORT: int = BaseConfig.get_env_int("REDIS_PORT", 6379)
    REDIS_PASSWORD: Optional[str] = BaseConfig.get_env("REDIS_PASSWORD") or None
    REDIS_DB: int = BaseConfig.get_env_int("REDIS_DB", 0)

    # Shared keys
    REDIS_BLOCK_KEY: str = BaseConfig.get_env("REDIS_BLOCK_KEY", "lpscan:next_block")
    TOKEN_META_PREFIX: str = BaseConfig.get_env("TOKEN_META_PREFIX", "token_meta:")

    # Single-worker cursor file
    CURSOR_DIR: str = BaseConfig.get_env("CURSOR_DIR", "./data")

    # Pool settings
    MAX_CONNECTIONS: int = BaseConfig.get_env_int("MAX_CONNECTIONS", 10)
    CONNECTION_TIMEOUT: int = BaseConfig.get_env_int("CONNECTION_TIMEOUT", 30)

    # Table Naming
    POOLS_TABLE: str = BaseConfig.get_env("POOLS_TABLE", "token_stats")

    def _validate_config(self):
        super()._validate_config()
        if not re.fullmatch(r"[A-Za-z0-9_]+", self.POOLS_TABLE):
            raise ConfigError(f"Unsafe table name: {self.POOLS_TABLE}")

    @property
    def postgres_url(self) -> str:
        """Build PostgreSQL connection URL."""
        return (
            f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def pools_table_name(self) -> str:
        """Get the pool ledger table name."""
        return self.POOLS_TABLE

    def get_postgres_connection_kwargs(self) -> dict:
        """Get the dictionary expected by PostgresStorage."""
        return {
            "host": self.POSTGRES_HOST,
            "port": self.POSTGRES_PORT,
            "user": self.POSTGRES_USER,
            "password": self.POSTGRES_PASSWORD,
            "database": self.POSTGRES_DB,
            "table_name": self.pools_table_name,
            "pool_size": self.MAX_CONNECTIONS,
            "pool_timeout": self.CONNECTION_TIMEOUT,
        }

    def get_redis_connection_kwargs(self) -> dict:
        """Get Redis connection parameters."""
        kwargs = {
            "host": self.REDIS_HOST,
            "port": self.REDIS_PORT,
            "db": self.REDIS_DB,
            "decode_responses": True,
            "socket_timeout": self.CONNECTION_TIMEOUT,
            "socket_connect_timeout": self.CONNECTION_TIMEOUT,
        }

        # Only add password if it's actually set and not empty/whitespace
        if self.REDIS_PASSWORD and self.REDIS_PASSWORD.strip():
            kwargs["password"] = self.REDIS_PASSWORD.strip()

        return kwargs

    def get_cursor_file_kwargs(self, chain: str) -> dict:
        """Get FileCursorStore settings; one cursor file per chain."""
        return {
            "base_path": self.CURSOR_DIR,
            "filename": f"next_block_{chain}.json",
        }
