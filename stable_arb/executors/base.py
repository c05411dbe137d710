# stable_arb/executors/base.py
"""
Swap executor contract plus the shared on-chain plumbing: ERC20
allowance checks, transaction signing and receipt handling.

execute() never raises: every failure comes back as
SwapResult(success=False, error=...).
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional, TypeVar

import aiohttp
from eth_utils import to_checksum_address, to_hex
from web3 import Web3

from ..abis import ERC20_ABI
from ..exceptions import HttpStatusError
from ..models import SwapRequest, SwapResult, Token
from ..utils.logger import get_logger
from ..utils.retry import RetryOptions

logger = get_logger(__name__)

T = TypeVar('T')

DEFAULT_GAS_FALLBACK = 300000
GAS_LIMIT_BUFFER = 1.2

# keccak256("Transfer(address,address,uint256)")
TRANSFER_TOPIC = "0xddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef"


def is_transient_http_error(error: BaseException) -> bool:
    """Retry predicate for executor-side API calls"""
    if isinstance(error, (asyncio.TimeoutError, aiohttp.ClientConnectionError)):
        return True
    if isinstance(error, HttpStatusError):
        return error.status == 429 or error.status >= 500
    return False


def as_hex(value: Any) -> str:
    return value if isinstance(value, str) else to_hex(value)


def transfer_amount_from_receipt(receipt: Dict[str, Any], token_address: str, recipient: str) -> Optional[int]:
    """Sum of token Transfer events paid to recipient in a receipt, None if there are none"""
    total = None
    for log in receipt.get('logs') or []:
        topics = log.get('topics') or []
        if len(topics) < 3 or as_hex(topics[0]).lower() != TRANSFER_TOPIC:
            continue
        if str(log.get('address', '')).lower() != token_address.lower():
            continue
        if '0x' + as_hex(topics[2])[-40:].lower() != recipient.lower():
            continue

        data = log.get('data')
        amount = int(as_hex(data), 16) if data else 0
        total = amount if total is None else total + amount

    return total


class SwapExecutor(ABC):
    """Base class for every DEX swap backend"""

    name: str = "Swap Executor"
    # false for backends that can quote but not swap yet
    can_execute: bool = True

    def __init__(self, w3: Optional[Web3] = None, retry_options: Optional[RetryOptions] = None):
        self.w3 = w3
        self.retry_options = retry_options or RetryOptions()

    async def _run(self, fn: Callable[[], T]) -> T:
        # web3 calls block, run them in a worker thread
        return await asyncio.to_thread(fn)

    # ------------------------------------------------------------------
    # Contract
    # ------------------------------------------------------------------

    @abstractmethod
    async def get_spender(self) -> str:
        """Contract that must be allowed to pull the input token"""

    async def approve_token(self, token: Token, amount: int, signer: Any) -> None:
        """
        Make sure the spender may pull amount of token from signer.

        No transaction is sent when the current allowance already covers
        amount. Otherwise an approval is submitted and confirmed before
        returning.
        """
        spender = to_checksum_address(await self.get_spender())
        owner = to_checksum_address(signer.address)
        contract = self.w3.eth.contract(address=to_checksum_address(token.address), abi=ERC20_ABI)

        try:
            allowance = int(await self._run(contract.functions.allowance(owner, spender).call))
            if allowance >= amount:
                logger.debug(f"{token.symbol} already approved for {self.name} (allowance {allowance})")
                return

            logger.info(f"🔓 Approving {amount} {token.symbol} for {self.name} (spender {spender})")
            tx = await self._build(contract.functions.approve(spender, amount), signer, token.chain_id)
            receipt = await self._send_transaction(tx, signer)
            logger.info(f"✅ {token.symbol} approved for {self.name} "
                        f"(tx {as_hex(receipt['transactionHash'])})")

        except Exception as e:
            logger.error(f"❌ Failed to approve {token.symbol} for {self.name}: {e}")
            raise

    @abstractmethod
    async def estimate_gas(self, request: SwapRequest) -> int:
        """Best-effort gas estimate for the swap"""

    async def execute(self, request: SwapRequest) -> SwapResult:
        """Approve and swap; failures are reported in the result"""
        logger.info(
            f"🔄 Executing {self.name} swap: {request.amount_in} {request.token_in.symbol} → "
            f"{request.token_out.symbol} (min out {request.min_amount_out})"
        )

        try:
            result = await self._swap(request)
        except Exception as e:
            logger.error(f"❌ {self.name} swap failed: {e}")
            return self.failure(str(e) or type(e).__name__)

        if result.success:
            logger.info(f"✅ {self.name} swap succeeded: {result.transaction_hash} "
                        f"(amount out {result.amount_out}, gas {result.gas_used})")
        else:
            logger.error(f"❌ {self.name} swap failed: {result.error}")
        return result

    @abstractmethod
    async def _swap(self, request: SwapRequest) -> SwapResult:
        """Backend-specific approval and swap; may raise."""

    def failure(self, error: str) -> SwapResult:
        return SwapResult(success=False, provider=self.name, error=error)

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    async def _tx_params(self, signer: Any, chain_id: int) -> Dict[str, Any]:
        address = to_checksum_address(signer.address)
        nonce = await self._run(lambda: self.w3.eth.get_transaction_count(address))
        gas_price = await self._run(lambda: self.w3.eth.gas_price)
        return {
            'from': address,
            'nonce': nonce,
            'chainId': chain_id,
            'gasPrice': gas_price,
        }

    async def _build(self, contract_call: Any, signer: Any, chain_id: int) -> Dict[str, Any]:
        params = await self._tx_params(signer, chain_id)
        return await self._run(lambda: contract_call.build_transaction(params))

    async def _send_transaction(self, tx: Dict[str, Any], signer: Any, timeout: int = 300) -> Dict[str, Any]:
        """
        Sign, broadcast and wait for a transaction.

        Raises:
            RuntimeError: the transaction was mined but reverted
        """
        tx = dict(tx)
        if 'gas' not in tx:
            estimate = await self._run(lambda: self.w3.eth.estimate_gas(tx))
            tx['gas'] = int(estimate * GAS_LIMIT_BUFFER)
            logger.debug(f"Gas estimate: {estimate:,}")

        # eth_account rejects a sender field that does not match the key
        tx.pop('from', None)

        signed = signer.sign_transaction(tx)
        tx_hash = await self._run(lambda: self.w3.eth.send_raw_transaction(signed.raw_transaction))
        logger.info(f"📤 Transaction sent: {as_hex(tx_hash)}")

        receipt = await self._run(
            lambda: self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=timeout, poll_latency=2)
        )

        if receipt['status'] != 1:
            raise RuntimeError(f"Transaction reverted: {as_hex(tx_hash)}")

        logger.info(f"Transaction confirmed in block {receipt.get('blockNumber')}, "
                    f"gas used {receipt['gasUsed']:,}")
        return receipt
