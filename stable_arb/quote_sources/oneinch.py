# stable_arb/quote_sources/oneinch.py
"""
1inch aggregation API quotes
"""

from typing import Optional

from ..exceptions import HttpStatusError, QuoteError, QuoteErrorType
from ..models import Quote, QuoteRequest
from ..utils.api_client import ApiClient
from ..utils.retry import RetryOptions
from .base import HttpQuoteSource

ONEINCH_PORTAL_URL = "https://portal.1inch.dev/"


def oneinch_headers(api_key: Optional[str]) -> dict:
    return {'Authorization': f'Bearer {api_key}'} if api_key else {}


class OneInchQuoteSource(HttpQuoteSource):
    name = "1Inch"

    def __init__(self, api_base_url: str, api_key: Optional[str] = None, request_timeout: float = 30.0,
                 retry_options: Optional[RetryOptions] = None, client: Optional[ApiClient] = None):
        super().__init__(client or ApiClient(api_base_url, request_timeout, oneinch_headers(api_key)),
                         retry_options)
        self.api_key = api_key

    def classify_status(self, error: HttpStatusError) -> QuoteError:
        if error.status == 429:
            return QuoteError(QuoteErrorType.RATE_LIMIT, self.name,
                              f'Rate limit exceeded. Consider getting an API key at {ONEINCH_PORTAL_URL}', error)

        if error.status == 400:
            detail = error.payload_message('description', 'message', 'error') or 'Bad request'
            return QuoteError(QuoteErrorType.INVALID_TOKEN, self.name, f'Invalid request: {detail}', error)

        return super().classify_status(error)

    async def _fetch_quote(self, request: QuoteRequest) -> Quote:
        params = {
            'src': request.token_in.address,
            'dst': request.token_out.address,
            'amount': str(request.amount_in),
        }

        data = await self._with_retry(lambda: self.client.get('/quote', params=params), "quote")

        estimated_gas = data.get('estimatedGas') or data.get('gas')
        return Quote(
            provider=self.name,
            amount_out=int(data['toAmount']),
            gas_estimate=int(estimated_gas) if estimated_gas else None,
        )
