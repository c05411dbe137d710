# stable_arb/executors/cowswap.py
"""
CoW Protocol execution: sign an EIP-712 sell order, submit it to the
batch auction and poll its status until it settles, dies or times out.
Solvers pay settlement gas, so only the approval costs the signer gas.
"""

import asyncio
import time
from typing import Any, Dict, Optional

from eth_account.messages import encode_typed_data
from eth_utils import to_checksum_address
from web3 import Web3

from config.addresses import COWSWAP_SETTLEMENT, COWSWAP_VAULT_RELAYER, ZERO_HASH
from ..models import SwapRequest, SwapResult
from ..utils.api_client import ApiClient
from ..utils.logger import get_logger
from ..utils.retry import RetryOptions, retry_async
from .base import SwapExecutor, is_transient_http_error

logger = get_logger(__name__)

NOMINAL_GAS_ESTIMATE = 50000

ORDER_TYPES = {
    'EIP712Domain': [
        {'name': 'name', 'type': 'string'},
        {'name': 'version', 'type': 'string'},
        {'name': 'chainId', 'type': 'uint256'},
        {'name': 'verifyingContract', 'type': 'address'},
    ],
    'Order': [
        {'name': 'sellToken', 'type': 'address'},
        {'name': 'buyToken', 'type': 'address'},
        {'name': 'receiver', 'type': 'address'},
        {'name': 'sellAmount', 'type': 'uint256'},
        {'name': 'buyAmount', 'type': 'uint256'},
        {'name': 'validTo', 'type': 'uint32'},
        {'name': 'appData', 'type': 'bytes32'},
        {'name': 'feeAmount', 'type': 'uint256'},
        {'name': 'kind', 'type': 'string'},
        {'name': 'partiallyFillable', 'type': 'bool'},
        {'name': 'sellTokenBalance', 'type': 'string'},
        {'name': 'buyTokenBalance', 'type': 'string'},
    ],
}

FULFILLED = 'fulfilled'
DEAD_STATUSES = ('cancelled', 'expired')


def sign_order(order: Dict[str, Any], signer: Any, chain_id: int,
               settlement_address: str = COWSWAP_SETTLEMENT) -> str:
    """EIP-712 signature of an order against the settlement contract's domain"""
    message = {
        'sellToken': to_checksum_address(order['sellToken']),
        'buyToken': to_checksum_address(order['buyToken']),
        'receiver': to_checksum_address(order['receiver']),
        'sellAmount': int(order['sellAmount']),
        'buyAmount': int(order['buyAmount']),
        'validTo': int(order['validTo']),
        'appData': bytes.fromhex(order['appData'][2:]),
        'feeAmount': int(order['feeAmount']),
        'kind': order['kind'],
        'partiallyFillable': order['partiallyFillable'],
        'sellTokenBalance': order['sellTokenBalance'],
        'buyTokenBalance': order['buyTokenBalance'],
    }
    typed_data = {
        'types': ORDER_TYPES,
        'primaryType': 'Order',
        'domain': {
            'name': 'Gnosis Protocol',
            'version': 'v2',
            'chainId': chain_id,
            'verifyingContract': to_checksum_address(settlement_address),
        },
        'message': message,
    }

    signed = signer.sign_message(encode_typed_data(full_message=typed_data))
    signature = signed.signature
    return signature if isinstance(signature, str) else '0x' + bytes(signature).hex()


def _order_uid(response: Any) -> str:
    # the orderbook answers with the bare uid string; older deployments wrap it
    if isinstance(response, str):
        return response
    if isinstance(response, dict):
        uid = response.get('orderId') or response.get('uid')
        if uid:
            return uid
    raise ValueError(f"Unexpected order creation response: {response!r}")


class CowSwapExecutor(SwapExecutor):
    name = "CowSwap"

    def __init__(self, w3: Web3, api_base_url: str,
                 vault_relayer_address: str = COWSWAP_VAULT_RELAYER,
                 settlement_address: str = COWSWAP_SETTLEMENT,
                 request_timeout: float = 30.0,
                 poll_interval: float = 5.0,
                 order_timeout: float = 300.0,
                 retry_options: Optional[RetryOptions] = None,
                 client: Optional[ApiClient] = None):
        super().__init__(w3, retry_options)
        self.client = client or ApiClient(api_base_url, request_timeout)
        self.vault_relayer_address = vault_relayer_address
        self.settlement_address = settlement_address
        self.poll_interval = poll_interval
        self.order_timeout = order_timeout

    async def get_spender(self) -> str:
        return self.vault_relayer_address

    async def estimate_gas(self, request: SwapRequest) -> int:
        logger.debug(f"{self.name} gas estimate is nominal ({NOMINAL_GAS_ESTIMATE}), solvers pay execution gas")
        return NOMINAL_GAS_ESTIMATE

    async def get_fee_amount(self, request: SwapRequest) -> str:
        body = {
            'sellToken': request.token_in.address,
            'buyToken': request.token_out.address,
            'sellAmountBeforeFee': str(request.amount_in),
            'kind': 'sell',
            'from': request.signer.address,
        }
        try:
            data = await self.client.post('/api/v1/quote', body)
            return str(data['quote']['feeAmount'])
        except Exception as e:
            logger.warning(f"Failed to get {self.name} fee quote, using zero fee: {e}")
            return '0'

    def build_order(self, request: SwapRequest, fee_amount: str) -> Dict[str, Any]:
        return {
            'sellToken': request.token_in.address,
            'buyToken': request.token_out.address,
            'receiver': request.signer.address,
            'sellAmount': str(request.amount_in),
            'buyAmount': str(request.min_amount_out),
            'validTo': request.deadline,
            'appData': ZERO_HASH,
            'feeAmount': fee_amount,
            'kind': 'sell',
            'partiallyFillable': False,
            'sellTokenBalance': 'erc20',
            'buyTokenBalance': 'erc20',
        }

    async def create_order(self, request: SwapRequest) -> str:
        """Sign and submit an order, returning its uid"""
        order = self.build_order(request, await self.get_fee_amount(request))
        signature = sign_order(order, request.signer, request.chain_id, self.settlement_address)

        body = {
            **order,
            'signature': signature,
            'signingScheme': 'eip712',
            'from': request.signer.address,
        }
        response = await retry_async(lambda: self.client.post('/api/v1/orders', body), self.retry_options,
                                     f"{self.name} order creation", is_transient_http_error)
        return _order_uid(response)

    async def get_order_status(self, uid: str) -> Dict[str, Any]:
        return await self.client.get(f'/api/v1/orders/{uid}')

    async def monitor_order(self, uid: str, request: SwapRequest) -> SwapResult:
        """Poll the order until it reaches a terminal state or order_timeout elapses"""
        start_time = time.monotonic()

        while time.monotonic() - start_time < self.order_timeout:
            order = await self.get_order_status(uid)
            status = order.get('status')

            if status == FULFILLED:
                executed = order.get('executedBuyAmount')
                amount_out = int(executed) if executed else request.min_amount_out
                logger.info(f"✅ {self.name} order fulfilled: {uid} (amount out {amount_out})")
                return SwapResult(
                    success=True,
                    provider=self.name,
                    transaction_hash=uid,
                    amount_out=amount_out,
                    gas_used=0,
                )

            if status in DEAD_STATUSES:
                return self.failure(f"Order {status}: {uid}")

            logger.debug(f"{self.name} order {uid} still {status} "
                         f"({time.monotonic() - start_time:.1f}s elapsed)")
            await asyncio.sleep(self.poll_interval)

        return self.failure(f"{self.name} order timeout after {self.order_timeout} seconds: {uid}")

    async def _swap(self, request: SwapRequest) -> SwapResult:
        await self.approve_token(request.token_in, request.amount_in, request.signer)

        uid = await self.create_order(request)
        logger.info(f"📝 {self.name} order created: {uid}")

        return await self.monitor_order(uid, request)
