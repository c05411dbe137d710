# stable_arb/executors/oneinch.py
"""
1inch aggregation swaps: the API returns ready-made calldata which is
checked against the request, signed locally and broadcast.
"""

from decimal import Decimal
from typing import Any, Dict, Optional

from eth_utils import to_checksum_address
from web3 import Web3

from ..models import SwapRequest, SwapResult
from ..quote_sources.oneinch import oneinch_headers
from ..utils.api_client import ApiClient
from ..utils.logger import get_logger
from ..utils.retry import RetryOptions, retry_async
from .base import DEFAULT_GAS_FALLBACK, SwapExecutor, as_hex, is_transient_http_error

logger = get_logger(__name__)

DEFAULT_SLIPPAGE_PERCENT = Decimal('1')


def slippage_percentage(expected_amount_out: Optional[int], min_amount_out: int) -> Decimal:
    """
    Slippage tolerance in percent implied by min_amount_out.

    Falls back to 1% when the expected output is unknown or not above
    the minimum.
    """
    if not expected_amount_out or expected_amount_out <= min_amount_out:
        return DEFAULT_SLIPPAGE_PERCENT
    ratio = Decimal(expected_amount_out - min_amount_out) / Decimal(expected_amount_out)
    return (ratio * 100).quantize(Decimal('0.01'))


class OneInchExecutor(SwapExecutor):
    name = "1Inch"

    def __init__(self, w3: Web3, api_base_url: str, api_key: Optional[str] = None,
                 request_timeout: float = 30.0, retry_options: Optional[RetryOptions] = None,
                 client: Optional[ApiClient] = None):
        super().__init__(w3, retry_options)
        self.client = client or ApiClient(api_base_url, request_timeout, oneinch_headers(api_key))
        # swap endpoint is rate limited harder than quotes
        self.swap_retry_options = RetryOptions(
            max_retries=self.retry_options.max_retries,
            initial_delay=2.0,
            backoff_multiplier=2.0,
            max_delay=self.retry_options.max_delay,
        )

    async def get_spender(self) -> str:
        data = await retry_async(lambda: self.client.get('/approve/spender'), self.retry_options,
                                 f"{self.name} spender address", is_transient_http_error)
        return data['address']

    async def get_swap_data(self, request: SwapRequest) -> Dict[str, Any]:
        params = {
            'src': request.token_in.address,
            'dst': request.token_out.address,
            'amount': str(request.amount_in),
            'from': request.signer.address,
            'slippage': str(slippage_percentage(request.expected_amount_out, request.min_amount_out)),
            'disableEstimate': False,
            'allowPartialFill': False,
        }
        return await retry_async(lambda: self.client.get('/swap', params=params), self.swap_retry_options,
                                 f"{self.name} swap data", is_transient_http_error)

    @staticmethod
    def validate_swap_data(swap_data: Dict[str, Any], request: SwapRequest) -> None:
        """Raise ValueError when the returned transaction does not match the request"""
        tx = swap_data.get('tx') or {}

        sender = str(tx.get('from', ''))
        if sender.lower() != request.signer.address.lower():
            raise ValueError(f"Transaction 'from' address mismatch: expected {request.signer.address}, got {sender}")

        received = int(swap_data.get('toAmount') or 0)
        if received < request.min_amount_out:
            raise ValueError(f"Output amount {received} is less than minimum {request.min_amount_out}")

        if not tx.get('data') or tx.get('data') == '0x':
            raise ValueError("Invalid transaction data received from 1Inch API")

    async def estimate_gas(self, request: SwapRequest) -> int:
        try:
            swap_data = await self.get_swap_data(request)
            estimate = int(swap_data['tx']['gas'])
            logger.debug(f"{self.name} gas estimate: {estimate:,}")
            return estimate
        except Exception as e:
            logger.warning(f"{self.name} gas estimation failed, using {DEFAULT_GAS_FALLBACK}: {e}")
            return DEFAULT_GAS_FALLBACK

    async def _swap(self, request: SwapRequest) -> SwapResult:
        await self.approve_token(request.token_in, request.amount_in, request.signer)

        swap_data = await self.get_swap_data(request)
        self.validate_swap_data(swap_data, request)

        api_tx = swap_data['tx']
        params = await self._tx_params(request.signer, request.chain_id)
        tx = {
            **params,
            'to': to_checksum_address(api_tx['to']),
            'data': api_tx['data'],
            'value': int(api_tx.get('value') or 0),
            'gas': int(api_tx['gas']),
        }
        if api_tx.get('gasPrice'):
            tx['gasPrice'] = int(api_tx['gasPrice'])

        receipt = await self._send_transaction(tx, request.signer)

        return SwapResult(
            success=True,
            provider=self.name,
            transaction_hash=as_hex(receipt['transactionHash']),
            amount_out=int(swap_data['toAmount']),
            gas_used=int(receipt['gasUsed']),
        )
