# stable_arb/balance_inspector.py
"""
Balance Inspector - ERC20 balance reads for the candidate stablecoins
"""

import asyncio
from typing import Dict, Optional, Sequence, Tuple

from eth_utils import to_checksum_address
from web3 import Web3

from .abis import ERC20_ABI
from .models import Token
from .utils.logger import get_logger

logger = get_logger(__name__)


class BalanceInspector:
    """Reads wallet balances of stablecoins through web3"""

    def __init__(self, w3: Web3):
        self.w3 = w3

    async def get_balance(self, wallet: str, token: Token) -> int:
        """Raw balance in the token's smallest unit; RPC errors propagate unchanged"""
        contract = self.w3.eth.contract(address=to_checksum_address(token.address), abi=ERC20_ABI)
        call = contract.functions.balanceOf(to_checksum_address(wallet))
        return int(await asyncio.to_thread(call.call))

    async def get_balances(self, wallet: str, tokens: Sequence[Token]) -> Dict[str, int]:
        """Balances by symbol; a token whose read fails is reported as 0"""
        results = await asyncio.gather(
            *(self.get_balance(wallet, token) for token in tokens),
            return_exceptions=True
        )

        balances = {}
        for token, result in zip(tokens, results):
            if isinstance(result, Exception):
                logger.warning(f"⚠️ Failed to read {token.symbol} balance: {result}")
                balances[token.symbol] = 0
            elif isinstance(result, BaseException):
                raise result
            else:
                balances[token.symbol] = result

        return balances

    async def get_highest_stablecoin_balance(self, wallet: str, tokens: Sequence[Token],
                                             min_threshold: Optional[int] = None) -> Optional[Tuple[Token, int]]:
        """
        Token holding the largest raw balance.

        Raw smallest-unit amounts are compared across tokens without
        decimal normalization, which favours tokens with more decimals.

        Args:
            wallet: Wallet address
            tokens: Candidate stablecoins, in registry order
            min_threshold: Smallest qualifying balance, inclusive

        Returns:
            (token, balance), or None when no token qualifies
        """
        balances = await self.get_balances(wallet, tokens)

        best: Optional[Tuple[Token, int]] = None
        for token in tokens:
            balance = balances.get(token.symbol, 0)
            if balance <= 0:
                continue
            if min_threshold is not None and balance < min_threshold:
                continue
            if best is None or balance > best[1]:
                best = (token, balance)

        if best is None:
            logger.info("No stablecoin balance found above threshold")
        else:
            logger.info(f"💰 Highest stablecoin balance: {best[1]} {best[0].symbol}")
        return best
