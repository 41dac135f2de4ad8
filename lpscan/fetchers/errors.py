"""
Error handling utilities for RPC operations.

This module provides specialized exception classes and error handling
utilities for retrying flaky node calls.
"""

import asyncio
from typing import Optional, Dict, Any
import logging

from web3.exceptions import ContractLogicError, BadFunctionCallOutput

logger = logging.getLogger(__name__)


class RPCError(Exception):
    """Base exception for RPC operations."""
    pass


class RateLimitError(RPCError):
    """Raised when rate limit is hit."""

    def __init__(self, message: str, retry_after: Optional[float] = None):
        super().__init__(message)
        self.retry_after = retry_after


class NetworkError(RPCError):
    """Raised when network-related errors occur."""
    pass


class ContractError(RPCError):
    """Raised when contract-related errors occur."""
    pass


class ValidationError(RPCError):
    """Raised when input validation fails."""
    pass


class ErrorHandler:
    """
    Centralized error handling for RPC operations.

    Provides classification, logging, and recovery strategies
    for various types of errors encountered during node calls.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    def classify_error(self, error: Exception) -> str:
        """
        Classify an error into a category for appropriate handling.

        Args:
            error: Exception to classify

        Returns:
            Error category string
        """
        if isinstance(error, RateLimitError):
            return 'rate_limit'
        if isinstance(error, (NetworkError, asyncio.TimeoutError, OSError)):
            return 'network'
        if isinstance(error, (ContractError, ContractLogicError, BadFunctionCallOutput)):
            return 'contract'
        if isinstance(error, ValidationError):
            return 'validation'

        error_str = str(error).lower()

        # Rate limiting errors
        if any(keyword in error_str for keyword in ['rate limit', 'too many requests', '429']):
            return 'rate_limit'

        # Network connectivity errors
        if any(keyword in error_str for keyword in ['connection', 'timeout', 'network', 'dns']):
            return 'network'

        # Contract execution errors
        if any(keyword in error_str for keyword in ['revert', 'execution reverted', 'out of gas']):
            return 'contract'

        # Validation errors, including "query returned more than N results"
        if any(keyword in error_str for keyword in ['invalid', 'bad request', '400', 'limit exceeded']):
            return 'validation'

        return 'unknown'

    def should_retry(self, error: Exception, attempt: int, max_retries: int) -> bool:
        """
        Determine if an error should trigger a retry.

        Args:
            error: Exception that occurred
            attempt: Current attempt number (0-based)
            max_retries: Maximum number of retries allowed

        Returns:
            True if operation should be retried
        """
        if attempt >= max_retries:
            return False

        error_category = self.classify_error(error)

        # Contract and validation errors are deterministic
        if error_category in ['contract', 'validation']:
            return False

        return error_category in ['network', 'rate_limit', 'unknown']

    def get_retry_delay(self, error: Exception, attempt: int) -> float:
        """
        Calculate appropriate retry delay based on error type and attempt.

        Args:
            error: Exception that occurred
            attempt: Current attempt number (0-based)

        Returns:
            Delay in seconds before retry
        """
        error_category = self.classify_error(error)

        if isinstance(error, RateLimitError) and error.retry_after is not None:
            return error.retry_after

        base_delay = min(2 ** attempt, 60)

        if error_category == 'rate_limit':
            return base_delay * 2

        if error_category == 'network':
            return base_delay

        return base_delay * 1.5

    def log_error(self, error: Exception, context: Dict[str, Any]):
        """
        Log error with appropriate level and context.

        Args:
            error: Exception to log
            context: Additional context for logging
        """
        error_category = self.classify_error(error)

        log_data = {
            'error_type': type(error).__name__,
            'error_category': error_category,
            'error_message': str(error),
            **context
        }

        if error_category == 'validation':
            self.logger.warning("Validation error occurred", extra=log_data)
        elif error_category == 'contract':
            # Reverting metadata calls are routine for non-standard tokens
            self.logger.debug("Contract call reverted", extra=log_data)
        elif error_category == 'rate_limit':
            self.logger.info("Rate limit encountered", extra=log_data)
        else:
            self.logger.warning("RPC operation error", extra=log_data)
