# stable_arb/exceptions.py
"""
Error taxonomy shared by quote sources, the aggregator and the HTTP client
"""

from enum import Enum
from typing import Any, Optional


class QuoteErrorType(Enum):
    """Classification attached to every quote failure"""
    NETWORK_ERROR = "NETWORK_ERROR"                    # RPC or API unreachable
    INVALID_TOKEN = "INVALID_TOKEN"                    # malformed token or amount
    INSUFFICIENT_LIQUIDITY = "INSUFFICIENT_LIQUIDITY"  # no pool / no route
    RATE_LIMIT = "RATE_LIMIT"
    TIMEOUT = "TIMEOUT"
    PROVIDER_ERROR = "PROVIDER_ERROR"                  # backend-specific failure
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"        # backend address/endpoint unset


RETRYABLE_ERROR_TYPES = frozenset({
    QuoteErrorType.NETWORK_ERROR,
    QuoteErrorType.TIMEOUT,
    QuoteErrorType.RATE_LIMIT,
})


class QuoteError(Exception):
    """
    A classified quote failure.

    Args:
        error_type: Classification of the failure
        provider: Name of the quote source that raised it
        message: Human readable description
        original_error: Underlying exception, if this wraps one
    """

    def __init__(self, error_type: QuoteErrorType, provider: str, message: str,
                 original_error: Optional[BaseException] = None):
        super().__init__(message)
        self.error_type = error_type
        self.provider = provider
        self.message = message
        self.original_error = original_error

    @property
    def retryable(self) -> bool:
        return self.error_type in RETRYABLE_ERROR_TYPES

    def __repr__(self) -> str:
        return f"QuoteError({self.error_type.value}, provider={self.provider!r}, message={self.message!r})"


class HttpStatusError(Exception):
    """Non-2xx HTTP response from a DEX API."""

    def __init__(self, status: int, payload: Any = None, message: str = ""):
        super().__init__(message or f"HTTP {status}")
        self.status = status
        self.payload = payload

    def payload_message(self, *keys: str) -> Optional[str]:
        """First non-empty string under any of keys in a JSON object payload."""
        if isinstance(self.payload, dict):
            for key in keys:
                value = self.payload.get(key)
                if isinstance(value, str) and value:
                    return value
        return None
