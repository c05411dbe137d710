# stable_arb/quote_aggregator.py
"""
Quote Aggregator - concurrent fan-out to every registered quote source

One broken or slow source never fails the aggregation: its error is
logged with its classification and the source is left out of the result.
"""

import asyncio
import time
from typing import List, Optional, Sequence

from .exceptions import QuoteError
from .models import Quote, QuoteRequest
from .quote_sources.base import QuoteSource
from .utils.logger import get_logger

logger = get_logger(__name__)


class QuoteAggregator:
    """Collects quotes from all registered sources for one request"""

    def __init__(self, sources: Optional[Sequence[QuoteSource]] = None):
        self.sources: List[QuoteSource] = list(sources or [])
        logger.info(f"Quote aggregator ready with {len(self.sources)} sources: "
                    f"{', '.join(self.get_provider_names()) or 'none'}")

    def add_provider(self, source: QuoteSource) -> None:
        self.sources.append(source)
        logger.debug(f"Registered quote source: {source.name}")

    def get_provider_names(self) -> List[str]:
        return [source.name for source in self.sources]

    async def get_quotes(self, request: QuoteRequest) -> List[Quote]:
        """
        Quotes from every source that answered, best output first.

        Sources are queried concurrently. Equal outputs keep registration
        order.
        """
        start_time = time.monotonic()
        pair = f"{request.token_in.symbol} → {request.token_out.symbol}"

        results = await asyncio.gather(
            *(source.get_quote(request) for source in self.sources),
            return_exceptions=True
        )

        quotes = []
        for source, result in zip(self.sources, results):
            if isinstance(result, Quote):
                quotes.append(result)
            elif isinstance(result, QuoteError):
                logger.warning(f"⚠️ {source.name} excluded for {pair}: [{result.error_type.value}] {result}")
            elif isinstance(result, Exception):
                logger.warning(f"⚠️ {source.name} excluded for {pair}: [unclassified] {result}")
            else:
                # cancellation and other BaseExceptions are not ours to swallow
                raise result

        quotes.sort(key=lambda quote: quote.amount_out, reverse=True)

        elapsed_ms = int((time.monotonic() - start_time) * 1000)
        logger.info(f"Received {len(quotes)}/{len(self.sources)} quotes for {pair} ({elapsed_ms}ms)")
        return quotes

    async def get_best_quote(self, request: QuoteRequest) -> Quote:
        """
        Raises:
            RuntimeError: when no source returned a quote
        """
        quotes = await self.get_quotes(request)
        if not quotes:
            raise RuntimeError(
                f"All quote sources failed for {request.token_in.symbol} → {request.token_out.symbol}"
            )
        return quotes[0]
