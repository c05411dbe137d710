# stable_arb/quote_sources/uniswap_v3.py
"""
Uniswap V3 quotes via the on-chain Quoter, best output across fee tiers
"""

from typing import List, Optional, Sequence

from eth_utils import to_checksum_address
from web3 import Web3

from config.addresses import FeeTier, DEFAULT_FEE_TIER, UNISWAP_FEE_TIERS
from ..abis import UNISWAP_V3_QUOTER_ABI
from ..exceptions import QuoteError, QuoteErrorType
from ..models import Quote, QuoteRequest
from ..utils.logger import get_logger
from ..utils.retry import RetryOptions
from .base import OnChainQuoteSource

logger = get_logger(__name__)


class UniswapV3QuoteSource(OnChainQuoteSource):
    """Quotes exactInputSingle against each configured fee tier"""

    name = "Uniswap V3"

    def __init__(self, w3: Web3, quoter_address: str,
                 fee_tiers: Sequence[FeeTier] = UNISWAP_FEE_TIERS,
                 default_fee_tier: int = DEFAULT_FEE_TIER,
                 retry_options: Optional[RetryOptions] = None):
        super().__init__(w3, retry_options)
        self.quoter_address = quoter_address
        self.fee_tiers = list(fee_tiers)
        self.default_fee_tier = default_fee_tier
        self.quoter = None
        if quoter_address:
            self.quoter = w3.eth.contract(address=to_checksum_address(quoter_address), abi=UNISWAP_V3_QUOTER_ABI)

    def _check_configured(self) -> None:
        if self.quoter is None:
            raise QuoteError(QuoteErrorType.CONFIGURATION_ERROR, self.name,
                             'Uniswap V3 quoter address is not configured (UNISWAP_V3_QUOTER_ADDRESS)')

    def _tier_order(self) -> List[int]:
        """Default tier first, then the remaining tiers in configured order."""
        others = [tier.fee for tier in self.fee_tiers if tier.fee != self.default_fee_tier]
        return [self.default_fee_tier] + others

    async def quote_fee_tier(self, request: QuoteRequest, fee: int) -> Optional[int]:
        """Output amount for one fee tier, or None when that pool reverts."""
        call = self.quoter.functions.quoteExactInputSingle(
            to_checksum_address(request.token_in.address),
            to_checksum_address(request.token_out.address),
            fee,
            request.amount_in,
            0  # no price limit
        )

        async def attempt() -> Optional[int]:
            try:
                return int(await self._call(call.call))
            except Exception as e:
                if self.is_revert(e):
                    logger.debug(f"{self.name}: no liquidity for fee tier {fee} "
                                 f"({request.token_in.symbol} → {request.token_out.symbol})")
                    return None
                raise

        return await self._with_retry(attempt, f"quote (fee tier {fee})")

    async def _fetch_quote(self, request: QuoteRequest) -> Quote:
        best_amount: Optional[int] = None
        best_fee = self.default_fee_tier

        for fee in self._tier_order():
            amount_out = await self.quote_fee_tier(request, fee)
            if amount_out is not None and (best_amount is None or amount_out > best_amount):
                best_amount = amount_out
                best_fee = fee
                logger.debug(f"{self.name}: best so far from fee tier {fee}: {amount_out}")

        if best_amount is None:
            raise QuoteError(QuoteErrorType.INSUFFICIENT_LIQUIDITY, self.name,
                             'No liquidity found in any fee tier for this token pair')

        return Quote(provider=self.name, amount_out=best_amount, route={'fee_tier': best_fee})
