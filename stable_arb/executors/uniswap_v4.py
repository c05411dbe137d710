# stable_arb/executors/uniswap_v4.py
"""
Uniswap V4 placeholder executor. V4 quotes can be read where a quoter
exists, but swaps are not routed through V4 yet.
"""

from typing import Any

from ..models import SwapRequest, SwapResult, Token
from ..utils.logger import get_logger
from .base import DEFAULT_GAS_FALLBACK, SwapExecutor

logger = get_logger(__name__)

NOT_DEPLOYED = "Uniswap V4 is not yet deployed on this network"


class UniswapV4Executor(SwapExecutor):
    name = "Uniswap V4"
    can_execute = False

    async def get_spender(self) -> str:
        raise RuntimeError(NOT_DEPLOYED)

    async def approve_token(self, token: Token, amount: int, signer: Any) -> None:
        logger.warning("Uniswap V4 not yet deployed")
        raise RuntimeError(NOT_DEPLOYED)

    async def estimate_gas(self, request: SwapRequest) -> int:
        logger.warning(f"⚠️ {NOT_DEPLOYED}, using gas fallback {DEFAULT_GAS_FALLBACK}")
        return DEFAULT_GAS_FALLBACK

    async def _swap(self, request: SwapRequest) -> SwapResult:
        return self.failure(NOT_DEPLOYED)
