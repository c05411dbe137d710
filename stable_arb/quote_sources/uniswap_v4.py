# stable_arb/quote_sources/uniswap_v4.py
"""
Uniswap V4 quotes via the V4 Quoter.

V4 pools are addressed by a PoolKey whose currencies are sorted by
address; the swap direction is expressed with zero_for_one. The source
is optional: with no quoter configured it reports CONFIGURATION_ERROR
and the aggregator simply drops it.
"""

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from eth_utils import to_checksum_address
from web3 import Web3

from config.addresses import FeeTier, DEFAULT_FEE_TIER, UNISWAP_FEE_TIERS, ZERO_ADDRESS
from ..abis import UNISWAP_V4_QUOTER_ABI
from ..exceptions import QuoteError, QuoteErrorType
from ..models import Quote, QuoteRequest
from ..utils.logger import get_logger
from ..utils.retry import RetryOptions
from .base import OnChainQuoteSource

logger = get_logger(__name__)


@dataclass(frozen=True)
class PoolKey:
    currency0: str
    currency1: str
    fee: int
    tick_spacing: int
    hooks: str

    def as_tuple(self) -> Tuple[str, str, int, int, str]:
        return (
            to_checksum_address(self.currency0),
            to_checksum_address(self.currency1),
            self.fee,
            self.tick_spacing,
            to_checksum_address(self.hooks),
        )


def construct_pool_key(token_in: str, token_out: str, fee: int, tick_spacing: int,
                       hooks: str = ZERO_ADDRESS) -> Tuple[PoolKey, bool]:
    """
    Build a PoolKey with currency0 < currency1.

    Returns:
        (pool_key, zero_for_one) where zero_for_one is True when token_in is currency0
    """
    token_in_first = token_in.lower() < token_out.lower()
    currency0, currency1 = (token_in, token_out) if token_in_first else (token_out, token_in)

    return PoolKey(currency0, currency1, fee, tick_spacing, hooks), token_in_first


class UniswapV4QuoteSource(OnChainQuoteSource):
    name = "Uniswap V4"

    def __init__(self, w3: Web3, quoter_address: Optional[str],
                 fee_tiers: Sequence[FeeTier] = UNISWAP_FEE_TIERS,
                 default_fee_tier: int = DEFAULT_FEE_TIER,
                 default_hooks: str = ZERO_ADDRESS,
                 retry_options: Optional[RetryOptions] = None):
        super().__init__(w3, retry_options)
        self.fee_tiers = list(fee_tiers)
        self.default_fee_tier = default_fee_tier
        self.default_hooks = default_hooks
        self.quoter = None

        if quoter_address:
            self.quoter = w3.eth.contract(address=to_checksum_address(quoter_address), abi=UNISWAP_V4_QUOTER_ABI)
            logger.info(f"{self.name}: initialized with quoter at {quoter_address}")
        else:
            logger.warning(f"{self.name}: no quoter address configured, V4 quotes unavailable")

    def _check_configured(self) -> None:
        if self.quoter is None:
            raise QuoteError(QuoteErrorType.CONFIGURATION_ERROR, self.name,
                             'Uniswap V4 is not configured. Set UNISWAP_V4_QUOTER_ADDRESS to enable it.')

    def _default_tier(self) -> FeeTier:
        for tier in self.fee_tiers:
            if tier.fee == self.default_fee_tier:
                return tier
        raise QuoteError(QuoteErrorType.CONFIGURATION_ERROR, self.name,
                         f'Default fee tier {self.default_fee_tier} not found in configuration')

    async def _fetch_quote(self, request: QuoteRequest) -> Quote:
        tier = self._default_tier()
        pool_key, zero_for_one = construct_pool_key(
            request.token_in.address, request.token_out.address,
            tier.fee, tier.tick_spacing, self.default_hooks
        )
        logger.debug(f"{self.name}: using {pool_key} zero_for_one={zero_for_one}")

        call = self.quoter.functions.quoteExactInputSingle(
            (pool_key.as_tuple(), zero_for_one, request.amount_in, b'')
        )

        async def attempt():
            return await self._call(call.call)

        amount_out, gas_estimate = await self._with_retry(attempt, "quote")

        return Quote(
            provider=self.name,
            amount_out=int(amount_out),
            gas_estimate=int(gas_estimate),
            route={'fee_tier': tier.fee, 'zero_for_one': zero_for_one},
        )
