# stable_arb/quote_sources/__init__.py
"""
Quote sources: one per DEX backend, all sharing the QuoteSource contract.

- uniswap_v3.py: on-chain Quoter, best of several fee tiers
- uniswap_v4.py: PoolKey-based V4 Quoter (optional)
- oneinch.py: 1inch aggregation API
- cowswap.py: CoW Protocol batch-auction API
"""

from .base import HttpQuoteSource, OnChainQuoteSource, QuoteSource
from .cowswap import CowSwapQuoteSource
from .oneinch import OneInchQuoteSource
from .uniswap_v3 import UniswapV3QuoteSource
from .uniswap_v4 import PoolKey, UniswapV4QuoteSource, construct_pool_key

__all__ = [
    "QuoteSource",
    "OnChainQuoteSource",
    "HttpQuoteSource",
    "UniswapV3QuoteSource",
    "UniswapV4QuoteSource",
    "OneInchQuoteSource",
    "CowSwapQuoteSource",
    "PoolKey",
    "construct_pool_key",
]
