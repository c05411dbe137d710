# stable_arb/quote_sources/base.py
"""
Quote source contract and the shared fetch / classify / retry pipeline.

Every source validates the request, fetches with retries on transient
failures, and turns any backend failure into a QuoteError tagged with
its own name.
"""

import asyncio
import time
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Optional, TypeVar

import aiohttp
import requests
from web3 import Web3
from web3.exceptions import ContractLogicError

from ..exceptions import HttpStatusError, QuoteError, QuoteErrorType
from ..models import Quote, QuoteRequest
from ..utils.api_client import ApiClient
from ..utils.logger import get_logger
from ..utils.retry import RetryOptions, retry_async
from ..utils.validation import validate_quote_request

logger = get_logger(__name__)

T = TypeVar('T')

REVERT_MARKERS = ('execution reverted', 'CALL_EXCEPTION')


class QuoteSource(ABC):
    """Base class for every DEX quote backend"""

    name: str = "Quote Source"

    def __init__(self, retry_options: Optional[RetryOptions] = None):
        self.retry_options = retry_options or RetryOptions()

    async def get_quote(self, request: QuoteRequest) -> Quote:
        """
        Fetch a quote for request.

        Raises:
            QuoteError: classified failure carrying this source's name
        """
        start_time = time.monotonic()

        try:
            self._check_configured()
            validate_quote_request(request, self.name)

            logger.debug(
                f"{self.name}: fetching quote {request.token_in.symbol} → {request.token_out.symbol} "
                f"amount_in={request.amount_in}"
            )

            quote = await self._fetch_quote(request)

        except QuoteError as e:
            logger.error(f"{self.name}: quote failed [{e.error_type.value}] {e} "
                         f"({_elapsed_ms(start_time)}ms)")
            raise
        except Exception as e:
            error = self.classify_error(e)
            logger.error(f"{self.name}: quote failed [{error.error_type.value}] {error} "
                         f"({_elapsed_ms(start_time)}ms)")
            raise error from e

        logger.info(
            f"{self.name}: quote {request.token_in.symbol} → {request.token_out.symbol} "
            f"amount_out={quote.amount_out} ({_elapsed_ms(start_time)}ms)"
        )
        return quote

    def _check_configured(self) -> None:
        """Raise CONFIGURATION_ERROR when a required address or endpoint is missing."""

    @abstractmethod
    async def _fetch_quote(self, request: QuoteRequest) -> Quote:
        """Backend-specific fetch; may raise raw backend exceptions."""

    def classify_error(self, error: BaseException) -> QuoteError:
        return QuoteError(QuoteErrorType.PROVIDER_ERROR, self.name, str(error) or type(error).__name__, error)

    async def _with_retry(self, fn: Callable[[], Awaitable[T]], context: str) -> T:
        """Run fn with classification inside each attempt so transient errors are retried."""

        async def attempt() -> T:
            try:
                return await fn()
            except QuoteError:
                raise
            except Exception as e:
                raise self.classify_error(e) from e

        return await retry_async(attempt, self.retry_options, f"{self.name} {context}")


class OnChainQuoteSource(QuoteSource):
    """Quote source backed by simulated contract calls through web3"""

    def __init__(self, w3: Web3, retry_options: Optional[RetryOptions] = None):
        super().__init__(retry_options)
        self.w3 = w3

    async def _call(self, fn: Callable[[], T]) -> T:
        # web3's HTTPProvider blocks, keep it off the event loop
        return await asyncio.to_thread(fn)

    @staticmethod
    def is_revert(error: BaseException) -> bool:
        if isinstance(error, ContractLogicError):
            return True
        message = str(error)
        return any(marker in message for marker in REVERT_MARKERS)

    def classify_error(self, error: BaseException) -> QuoteError:
        message = str(error)

        if self.is_revert(error):
            return QuoteError(QuoteErrorType.INSUFFICIENT_LIQUIDITY, self.name,
                              'Insufficient liquidity or invalid token pair', error)

        if isinstance(error, (requests.exceptions.Timeout, asyncio.TimeoutError)) or 'timeout' in message.lower():
            return QuoteError(QuoteErrorType.TIMEOUT, self.name, 'Request timeout', error)

        if isinstance(error, requests.exceptions.ConnectionError) or 'network' in message.lower():
            return QuoteError(QuoteErrorType.NETWORK_ERROR, self.name, 'Network error connecting to RPC', error)

        return super().classify_error(error)


class HttpQuoteSource(QuoteSource):
    """Quote source backed by a JSON HTTP API"""

    def __init__(self, client: ApiClient, retry_options: Optional[RetryOptions] = None):
        super().__init__(retry_options)
        self.client = client

    def classify_error(self, error: BaseException) -> QuoteError:
        if isinstance(error, asyncio.TimeoutError):
            return QuoteError(QuoteErrorType.TIMEOUT, self.name, 'Request timeout', error)

        if isinstance(error, HttpStatusError):
            return self.classify_status(error)

        if isinstance(error, aiohttp.ClientConnectionError):
            return QuoteError(QuoteErrorType.NETWORK_ERROR, self.name,
                              f'Network error connecting to {self.name} API', error)

        return super().classify_error(error)

    def classify_status(self, error: HttpStatusError) -> QuoteError:
        if error.status == 429:
            return QuoteError(QuoteErrorType.RATE_LIMIT, self.name,
                              'Rate limit exceeded. Retry later or use an authenticated API tier', error)

        if error.status >= 500:
            return QuoteError(QuoteErrorType.PROVIDER_ERROR, self.name, f'{self.name} API server error', error)

        return QuoteError(QuoteErrorType.PROVIDER_ERROR, self.name,
                          error.payload_message('description', 'message', 'error') or str(error), error)


def _elapsed_ms(start_time: float) -> int:
    return int((time.monotonic() - start_time) * 1000)
