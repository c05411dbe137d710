# stable_arb/arbitrage_engine.py
"""
Arbitrage Engine - one balance-check / search / execute cycle per run

The engine picks the wallet's largest stablecoin balance, walks the other
stablecoins in registry order and takes the first quote whose profit
clears min_profit_bps. The search stops at that first match; it does not
look for the globally best trade.
"""

from dataclasses import replace
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Sequence

from .balance_inspector import BalanceInspector
from .executors.base import DEFAULT_GAS_FALLBACK, SwapExecutor
from .models import ArbitrageConfig, ArbitrageOpportunity, ArbitrageResult, QuoteRequest, SwapRequest, Token
from .profit import PriceLike, calculate_min_amount_out, calculate_net_profit, calculate_profit_bps
from .decimal_utils import format_amount, normalize_decimals
from .quote_aggregator import QuoteAggregator
from .utils.helpers import calculate_deadline, normalize_provider_name
from .utils.logger import get_logger

logger = get_logger(__name__)

NO_BALANCE = "No stablecoin balance found above threshold"
NO_OPPORTUNITY = "No profitable opportunity found"
DRY_RUN_REPORT = "Dry-run mode: opportunity identified but not executed"
TRADE_CANCELLED = "Trade cancelled by user"
NO_SIGNER = "No signing credential configured"

GasPriceFetcher = Callable[[], Awaitable[int]]
ConfirmationCallback = Callable[[ArbitrageOpportunity], Awaitable[bool]]


def _format_signed(amount: int, decimals: int) -> str:
    return ('-' if amount < 0 else '') + format_amount(abs(amount), decimals)


class EngineState(Enum):
    IDLE = "idle"
    BALANCE_CHECK = "balance_check"
    SEARCHING = "searching"
    OPPORTUNITY_FOUND = "opportunity_found"
    NO_OPPORTUNITY = "no_opportunity"
    DRY_RUN_REPORT = "dry_run_report"
    EXECUTING = "executing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class ArbitrageEngine:
    """
    Stablecoin arbitrage decision engine

    Features:
    - Highest-balance input selection
    - Sequential target search with concurrent per-pair quoting
    - Stop-on-first-match profit threshold
    - Optional gas-cost annotation and trade confirmation
    - Dry-run reporting without execution
    """

    def __init__(self, aggregator: QuoteAggregator, executors: Mapping[str, SwapExecutor],
                 balance_inspector: BalanceInspector, config: ArbitrageConfig,
                 gas_price_fetcher: Optional[GasPriceFetcher] = None,
                 native_price: Optional[PriceLike] = None,
                 confirmation_callback: Optional[ConfirmationCallback] = None):
        self.aggregator = aggregator
        self.balance_inspector = balance_inspector
        self.config = config
        self.gas_price_fetcher = gas_price_fetcher
        self.native_price = native_price
        self.confirmation_callback = confirmation_callback
        self.executors: Dict[str, SwapExecutor] = {
            normalize_provider_name(name): executor for name, executor in executors.items()
        }
        self.state = EngineState.IDLE

    def _transition(self, state: EngineState) -> None:
        logger.debug(f"Engine state: {self.state.value} → {state.value}")
        self.state = state

    def get_executor(self, provider: str) -> Optional[SwapExecutor]:
        return self.executors.get(normalize_provider_name(provider))

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    async def find_opportunity(self, input_token: Token, amount_in: int,
                               target_tokens: Sequence[Token]) -> Optional[ArbitrageOpportunity]:
        """
        First quote, in target order and then best-first, whose profit
        reaches min_profit_bps; None when every combination falls short.
        Quotes from providers whose executor cannot swap are passed over.
        """
        logger.info(f"🔍 Searching {len(target_tokens)} targets for "
                    f"{format_amount(amount_in, input_token.decimals)} {input_token.symbol}")

        for target in target_tokens:
            if target == input_token:
                continue

            request = QuoteRequest(
                token_in=input_token,
                token_out=target,
                amount_in=amount_in,
                chain_id=input_token.chain_id
            )

            try:
                quotes = await self.aggregator.get_quotes(request)
            except Exception as e:
                logger.warning(f"⚠️ Failed to get quotes for {target.symbol}: {e}")
                continue

            for quote in quotes:
                profit_bps = calculate_profit_bps(amount_in, quote.amount_out, input_token, target)
                logger.debug(f"{quote.provider}: {input_token.symbol} → {target.symbol} "
                             f"out={format_amount(quote.amount_out, target.decimals)} profit={profit_bps} bps")

                if profit_bps >= self.config.min_profit_bps:
                    executor = self.get_executor(quote.provider)
                    if executor is not None and not executor.can_execute:
                        logger.info(f"⏭️ Skipping {quote.provider} quote ({profit_bps} bps): swaps not supported")
                        continue

                    opportunity = ArbitrageOpportunity(
                        provider=quote.provider,
                        input_token=input_token,
                        output_token=target,
                        amount_in=amount_in,
                        expected_amount_out=quote.amount_out,
                        profit_bps=profit_bps,
                        quote=quote,
                        gas_estimate=quote.gas_estimate,
                    )
                    logger.info(f"✅ Opportunity found: {opportunity.pair} via {quote.provider} "
                                f"({profit_bps} bps)")
                    return opportunity

        logger.info(NO_OPPORTUNITY)
        return None

    async def annotate_gas_cost(self, opportunity: ArbitrageOpportunity) -> ArbitrageOpportunity:
        """
        Attach the estimated profit net of gas. Informational only: a
        non-positive result is logged, the opportunity is kept.
        """
        if not self.config.check_gas_cost or self.gas_price_fetcher is None or self.native_price is None:
            return opportunity

        try:
            gas_price = await self.gas_price_fetcher()
            gas_used = opportunity.gas_estimate or DEFAULT_GAS_FALLBACK
            gross_profit = opportunity.expected_amount_out - normalize_decimals(
                opportunity.amount_in, opportunity.input_token.decimals, opportunity.output_token.decimals
            )
            net_profit = calculate_net_profit(gross_profit, gas_used, gas_price,
                                              opportunity.output_token, self.native_price)
        except Exception as e:
            logger.warning(f"⚠️ Gas cost check skipped: {e}")
            return opportunity

        display = _format_signed(net_profit, opportunity.output_token.decimals)
        if net_profit <= 0:
            logger.warning(f"⚠️ Estimated profit after gas is not positive: "
                           f"{display} {opportunity.output_token.symbol}")
        else:
            logger.info(f"Estimated profit after gas: {display} {opportunity.output_token.symbol}")

        return replace(opportunity, gas_estimate=gas_used, net_profit_amount=net_profit)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def execute_opportunity(self, opportunity: ArbitrageOpportunity, signer: Any) -> ArbitrageResult:
        executor = self.get_executor(opportunity.provider)
        if executor is None:
            return ArbitrageResult(
                attempted=False,
                success=False,
                opportunity=opportunity,
                reason=f"No executor found for provider: {opportunity.provider}",
            )

        self._transition(EngineState.EXECUTING)
        logger.info(f"🚀 Executing {opportunity.pair} via {opportunity.provider} ({opportunity.profit_bps} bps)")

        try:
            request = SwapRequest(
                token_in=opportunity.input_token,
                token_out=opportunity.output_token,
                amount_in=opportunity.amount_in,
                min_amount_out=calculate_min_amount_out(opportunity.expected_amount_out,
                                                        self.config.max_slippage_bps),
                deadline=calculate_deadline(self.config.deadline_seconds),
                signer=signer,
                chain_id=opportunity.input_token.chain_id,
                expected_amount_out=opportunity.expected_amount_out,
            )
            swap = await executor.execute(request)
        except Exception as e:
            logger.error(f"❌ Exception during execution: {e}")
            self._transition(EngineState.FAILED)
            return ArbitrageResult(attempted=True, success=False, opportunity=opportunity, error=str(e))

        if swap.success:
            self._transition(EngineState.SUCCEEDED)
            logger.info(f"✅ Arbitrage executed: {swap.transaction_hash}")
        else:
            self._transition(EngineState.FAILED)
            logger.error(f"❌ Arbitrage execution failed: {swap.error}")

        return ArbitrageResult(
            attempted=True,
            success=swap.success,
            opportunity=opportunity,
            transaction_hash=swap.transaction_hash,
            actual_amount_out=swap.amount_out,
            gas_used=swap.gas_used,
            error=swap.error,
        )

    async def run(self, wallet: str, signer: Any, stablecoins: Sequence[Token]) -> ArbitrageResult:
        """
        Run the engine once.

        Args:
            wallet: Address whose balances are inspected
            signer: Signing credential, may be None in dry-run mode
            stablecoins: Candidate tokens in registry order

        Returns:
            The terminal ArbitrageResult; this method does not raise
        """
        logger.info(f"Starting arbitrage run for {wallet} across {len(stablecoins)} stablecoins")

        try:
            return await self._run(wallet, signer, stablecoins)
        except Exception as e:
            logger.error(f"❌ Arbitrage run failed: {e}")
            self._transition(EngineState.FAILED)
            return ArbitrageResult(attempted=False, success=False, error=str(e) or type(e).__name__)
        finally:
            self._transition(EngineState.IDLE)

    async def _run(self, wallet: str, signer: Any, stablecoins: Sequence[Token]) -> ArbitrageResult:
        self._transition(EngineState.BALANCE_CHECK)
        highest = await self.balance_inspector.get_highest_stablecoin_balance(
            wallet, stablecoins, self.config.min_balance_threshold
        )
        if highest is None:
            self._transition(EngineState.NO_OPPORTUNITY)
            return ArbitrageResult(attempted=False, success=False, reason=NO_BALANCE)

        input_token, amount_in = highest
        targets: List[Token] = [token for token in stablecoins if token != input_token]

        self._transition(EngineState.SEARCHING)
        opportunity = await self.find_opportunity(input_token, amount_in, targets)
        if opportunity is None:
            self._transition(EngineState.NO_OPPORTUNITY)
            return ArbitrageResult(attempted=False, success=False, reason=NO_OPPORTUNITY)

        self._transition(EngineState.OPPORTUNITY_FOUND)
        opportunity = await self.annotate_gas_cost(opportunity)

        if self.config.dry_run:
            self._transition(EngineState.DRY_RUN_REPORT)
            logger.info(
                f"💡 DRY-RUN: {opportunity.pair} via {opportunity.provider}, {opportunity.profit_bps} bps, "
                f"in={opportunity.amount_in} expected_out={opportunity.expected_amount_out} "
                f"gas={opportunity.gas_estimate} net={opportunity.net_profit_amount}"
            )
            return ArbitrageResult(attempted=False, success=True, opportunity=opportunity, reason=DRY_RUN_REPORT)

        if signer is None:
            self._transition(EngineState.FAILED)
            return ArbitrageResult(attempted=False, success=False, opportunity=opportunity, reason=NO_SIGNER)

        if self.confirmation_callback is not None and not await self.confirmation_callback(opportunity):
            logger.info(TRADE_CANCELLED)
            return ArbitrageResult(attempted=False, success=False, opportunity=opportunity, reason=TRADE_CANCELLED)

        return await self.execute_opportunity(opportunity, signer)
