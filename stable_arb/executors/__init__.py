# stable_arb/executors/__init__.py
"""
Swap executors: one per DEX backend, all sharing the SwapExecutor contract.

- uniswap_v3.py: single on-chain router transaction
- oneinch.py: 1inch API calldata, signed and sent locally
- cowswap.py: signed batch-auction order with status polling
- uniswap_v4.py: placeholder that always reports failure
"""

from .base import DEFAULT_GAS_FALLBACK, SwapExecutor
from .cowswap import CowSwapExecutor
from .oneinch import OneInchExecutor
from .uniswap_v3 import UniswapV3Executor
from .uniswap_v4 import UniswapV4Executor

__all__ = [
    "SwapExecutor",
    "UniswapV3Executor",
    "UniswapV4Executor",
    "OneInchExecutor",
    "CowSwapExecutor",
    "DEFAULT_GAS_FALLBACK",
]
