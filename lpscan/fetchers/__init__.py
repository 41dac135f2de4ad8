"""
Blockchain data fetchers for lpScanner.

This module provides the RPC client and the range log fetcher.
"""

from .base import FetchError, FetchResult, FilterSet
from .chain_client import ChainClient
from .errors import (
    ContractError,
    ErrorHandler,
    NetworkError,
    RateLimitError,
    RPCError,
    ValidationError,
)
from .log_fetcher import LogFetcher, build_filter_sets

__all__ = [
    "FetchError",
    "FetchResult",
    "FilterSet",
    "ChainClient",
    "LogFetcher",
    "build_filter_sets",
    "ErrorHandler",
    "RPCError",
    "RateLimitError",
    "NetworkError",
    "ContractError",
    "ValidationError",
]
