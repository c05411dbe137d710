# stable_arb/executors/uniswap_v3.py
"""
Uniswap V3 swaps through SwapRouter.exactInputSingle at the default fee tier
"""

from typing import Any, Optional

from eth_utils import to_checksum_address
from web3 import Web3

from config.addresses import DEFAULT_FEE_TIER
from ..abis import UNISWAP_V3_ROUTER_ABI
from ..models import SwapRequest, SwapResult
from ..utils.logger import get_logger
from ..utils.retry import RetryOptions
from .base import DEFAULT_GAS_FALLBACK, SwapExecutor, as_hex, transfer_amount_from_receipt

logger = get_logger(__name__)


class UniswapV3Executor(SwapExecutor):
    """
    Single-transaction swap. The router enforces both the deadline and
    amountOutMinimum, so a late or under-filled swap reverts on chain.
    """

    name = "Uniswap V3"

    def __init__(self, w3: Web3, router_address: str, default_fee_tier: int = DEFAULT_FEE_TIER,
                 retry_options: Optional[RetryOptions] = None):
        super().__init__(w3, retry_options)
        self.router_address = to_checksum_address(router_address)
        self.default_fee_tier = default_fee_tier
        self.router = w3.eth.contract(address=self.router_address, abi=UNISWAP_V3_ROUTER_ABI)

    async def get_spender(self) -> str:
        return self.router_address

    def _swap_call(self, request: SwapRequest) -> Any:
        params = (
            to_checksum_address(request.token_in.address),
            to_checksum_address(request.token_out.address),
            self.default_fee_tier,
            to_checksum_address(request.signer.address),  # recipient
            request.deadline,
            request.amount_in,
            request.min_amount_out,
            0,  # no price limit
        )
        return self.router.functions.exactInputSingle(params)

    async def estimate_gas(self, request: SwapRequest) -> int:
        try:
            sender = to_checksum_address(request.signer.address)
            call = self._swap_call(request)
            estimate = int(await self._run(lambda: call.estimate_gas({'from': sender})))
            logger.debug(f"{self.name} gas estimate: {estimate:,}")
            return estimate
        except Exception as e:
            logger.warning(f"{self.name} gas estimation failed, using {DEFAULT_GAS_FALLBACK}: {e}")
            return DEFAULT_GAS_FALLBACK

    async def _swap(self, request: SwapRequest) -> SwapResult:
        await self.approve_token(request.token_in, request.amount_in, request.signer)

        tx = await self._build(self._swap_call(request), request.signer, request.chain_id)
        receipt = await self._send_transaction(tx, request.signer)

        received = transfer_amount_from_receipt(receipt, request.token_out.address, request.signer.address)

        return SwapResult(
            success=True,
            provider=self.name,
            transaction_hash=as_hex(receipt['transactionHash']),
            amount_out=received if received is not None else request.min_amount_out,
            gas_used=int(receipt['gasUsed']),
        )
