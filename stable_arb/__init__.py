# stable_arb/__init__.py
"""
Stablecoin Arbitrage Engine Package

This package contains the core components of the stablecoin arbitrage engine:
- arbitrage_engine.py: Balance check, opportunity search and execution
- quote_aggregator.py: Concurrent quotes from every DEX backend
- balance_inspector.py: ERC20 balance discovery
- quote_sources/: Uniswap V3/V4, 1inch and CoW Protocol quotes
- executors/: Swap execution for the same backends
- profit.py / decimal_utils.py: Integer profit, slippage and amount math
- utils/: Logging, retry, validation and HTTP helpers

Each run swaps the wallet's largest stablecoin balance into another
stablecoin when some DEX quotes a return above the profit threshold.
"""

# Version information
__version__ = "1.0.0"
__author__ = "Stablecoin Arbitrage Team"

# Core components
from .arbitrage_engine import ArbitrageEngine, EngineState
from .quote_aggregator import QuoteAggregator
from .balance_inspector import BalanceInspector
from .models import (
    ArbitrageConfig,
    ArbitrageOpportunity,
    ArbitrageResult,
    Quote,
    QuoteRequest,
    SwapRequest,
    SwapResult,
    Token
)
from .exceptions import QuoteError, QuoteErrorType

# Utilities
from .utils.logger import get_logger
from .profit import calculate_profit_bps, calculate_min_amount_out, calculate_net_profit
from .decimal_utils import normalize_decimals, format_amount, parse_amount

# Available exports
__all__ = [
    # Core Classes
    "ArbitrageEngine",
    "EngineState",
    "QuoteAggregator",
    "BalanceInspector",

    # Data Model
    "ArbitrageConfig",
    "ArbitrageOpportunity",
    "ArbitrageResult",
    "Quote",
    "QuoteRequest",
    "SwapRequest",
    "SwapResult",
    "Token",
    "QuoteError",
    "QuoteErrorType",

    # Utility Functions
    "get_logger",
    "calculate_profit_bps",
    "calculate_min_amount_out",
    "calculate_net_profit",
    "normalize_decimals",
    "format_amount",
    "parse_amount",

    # Package Info
    "__version__",
    "__author__"
]


def get_version():
    """Get the current version of the package."""
    return __version__


def get_components():
    """Get a list of all available engine components."""
    return {
        "core": [
            "ArbitrageEngine",
            "QuoteAggregator",
            "BalanceInspector",
        ],
        "backends": [
            "Uniswap V3",
            "Uniswap V4",
            "1Inch",
            "CowSwap",
        ],
        "utilities": [
            "get_logger",
            "calculate_profit_bps",
            "calculate_min_amount_out",
            "calculate_net_profit",
            "normalize_decimals",
            "format_amount",
            "parse_amount",
        ]
    }
