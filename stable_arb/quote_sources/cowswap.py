# stable_arb/quote_sources/cowswap.py
"""
CoW Protocol batch-auction quotes
"""

from typing import Optional

from config.addresses import ZERO_ADDRESS
from ..exceptions import HttpStatusError, QuoteError, QuoteErrorType
from ..models import Quote, QuoteRequest
from ..utils.api_client import ApiClient
from ..utils.retry import RetryOptions
from .base import HttpQuoteSource

DEFAULT_APP_DATA = "trading-web3"


class CowSwapQuoteSource(HttpQuoteSource):
    """Sell-side quotes from POST /api/v1/quote; output is net of the protocol fee"""

    name = "CowSwap"

    def __init__(self, api_base_url: str, app_data: str = DEFAULT_APP_DATA, request_timeout: float = 30.0,
                 retry_options: Optional[RetryOptions] = None, client: Optional[ApiClient] = None):
        super().__init__(client or ApiClient(api_base_url, request_timeout), retry_options)
        self.app_data = app_data

    def classify_status(self, error: HttpStatusError) -> QuoteError:
        if error.status in (400, 404):
            message = (error.payload_message('description', 'message')
                       or 'Invalid token pair or insufficient liquidity')
            return QuoteError(QuoteErrorType.INSUFFICIENT_LIQUIDITY, self.name, message, error)

        return super().classify_status(error)

    async def _fetch_quote(self, request: QuoteRequest) -> Quote:
        body = {
            'sellToken': request.token_in.address,
            'buyToken': request.token_out.address,
            'sellAmountBeforeFee': str(request.amount_in),
            'kind': 'sell',
            'from': ZERO_ADDRESS,
            'appData': self.app_data,
        }

        data = await self._with_retry(lambda: self.client.post('/api/v1/quote', body), "quote")
        quote = data['quote']

        return Quote(
            provider=self.name,
            amount_out=int(quote['buyAmount']),
            fee=int(quote.get('feeAmount') or 0),
            route={'valid_to': quote.get('validTo')},
        )
