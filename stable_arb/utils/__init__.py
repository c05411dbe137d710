# stable_arb/utils/__init__.py
"""
Utility package for the stablecoin arbitrage engine.

This package provides:
- Colored logging system (logger.py)
- Retry with exponential backoff (retry.py)
- Quote request validation (validation.py)
- Async JSON HTTP client (api_client.py)
- Helper functions (helpers.py)

Usage:
    from stable_arb.utils.logger import get_logger
    from stable_arb.utils.retry import RetryOptions, retry_async
"""

from .logger import get_logger, set_log_level
from .retry import RetryOptions, compute_backoff_delay, retry_async
from .validation import is_address, validate_quote_request
from .api_client import ApiClient
from .helpers import (
    calculate_deadline,
    fetch_native_token_price,
    get_current_timestamp,
    normalize_provider_name,
    truncate_address
)

__all__ = [
    # Logging
    "get_logger",
    "set_log_level",

    # Retry and validation
    "RetryOptions",
    "retry_async",
    "compute_backoff_delay",
    "is_address",
    "validate_quote_request",

    # HTTP
    "ApiClient",

    # Helpers
    "calculate_deadline",
    "fetch_native_token_price",
    "get_current_timestamp",
    "normalize_provider_name",
    "truncate_address",
]
