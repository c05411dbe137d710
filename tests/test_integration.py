# Integration tests
# tests/test_integration.py
"""
End-to-end Engine Tests
Runs the engine with the real aggregator and balance inspector over
in-process quote sources and a mocked web3 connection
"""

import asyncio
import time
from unittest.mock import AsyncMock, Mock

import pytest

from stable_arb.arbitrage_engine import DRY_RUN_REPORT, NO_BALANCE, ArbitrageEngine
from stable_arb.balance_inspector import BalanceInspector
from stable_arb.exceptions import QuoteError, QuoteErrorType
from stable_arb.models import ArbitrageConfig, Quote, QuoteRequest, SwapResult, Token
from stable_arb.quote_aggregator import QuoteAggregator
from stable_arb.quote_sources.base import QuoteSource
from stable_arb.utils.logger import get_logger

logger = get_logger(__name__)

USDC = Token("0x3c499c542cEF5E3811e1192ce70d8cC03d5c3359", 6, "USDC", 137)
USDT = Token("0xc2132D05D31c914a87C6611C10748AEb04B58e8F", 6, "USDT", 137)
DAI = Token("0x8f3Cf7ad23Cd3CaDbD9735AFf958023239c6A063", 18, "DAI", 137)

WALLET = "0x2222222222222222222222222222222222222222"


class ScriptedQuoteSource(QuoteSource):
    """Quote source answering from a {symbol: amount_out} table"""

    def __init__(self, name, outputs=None, error=None, delay=0.0, before_answer=None):
        super().__init__()
        self.name = name
        self.outputs = outputs or {}
        self.error = error
        self.delay = delay
        self.before_answer = before_answer
        self.requests = []

    async def _fetch_quote(self, request: QuoteRequest) -> Quote:
        self.requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.before_answer is not None:
            await self.before_answer()
        if self.error is not None:
            raise self.error
        if request.token_out.symbol not in self.outputs:
            raise QuoteError(QuoteErrorType.INSUFFICIENT_LIQUIDITY, self.name, "no pool")
        return Quote(provider=self.name, amount_out=self.outputs[request.token_out.symbol])

    def requested_symbols(self):
        return [request.token_out.symbol for request in self.requests]


def mock_web3_with_balances(balances):
    """web3 whose ERC20 balanceOf answers from {address_lower: balance}"""
    w3 = Mock()

    def contract(address, abi):
        token_contract = Mock()
        token_contract.functions.balanceOf.return_value.call.return_value = balances.get(address.lower(), 0)
        return token_contract

    w3.eth.contract.side_effect = contract
    return w3


def make_executor(result):
    executor = Mock()
    executor.execute = AsyncMock(return_value=result)
    return executor


class TestArbitrageScenarios:
    """Complete runs from balance discovery through execution"""

    @pytest.fixture
    def signer(self):
        return Mock(address=WALLET)

    @pytest.mark.asyncio
    async def test_profitable_cross_decimal_swap_is_executed(self, signer):
        """1000 USDT quoted at 1004 DAI is 40 bps, above a 30 bps threshold"""
        w3 = mock_web3_with_balances({USDT.address.lower(): 1000 * 10**6})
        source = ScriptedQuoteSource("1Inch", {"DAI": 1004 * 10**18})
        executor = make_executor(SwapResult(
            success=True, provider="1Inch", transaction_hash="0xfeed",
            amount_out=1003 * 10**18, gas_used=180000
        ))

        engine = ArbitrageEngine(
            QuoteAggregator([source]),
            {"1Inch": executor},
            BalanceInspector(w3),
            ArbitrageConfig(min_profit_bps=30, max_slippage_bps=50, check_gas_cost=False),
        )

        result = await engine.run(WALLET, signer, [USDT, DAI])

        assert result.attempted is True
        assert result.success is True
        assert result.transaction_hash == "0xfeed"
        assert result.actual_amount_out == 1003 * 10**18
        assert result.opportunity.profit_bps == 40
        assert result.opportunity.input_token == USDT
        assert result.opportunity.output_token == DAI

        request = executor.execute.await_args[0][0]
        assert request.amount_in == 1000 * 10**6
        assert request.min_amount_out == 1004 * 10**18 * 9950 // 10000

        logger.info("✅ Profitable swap executed end to end")

    @pytest.mark.asyncio
    async def test_below_threshold_pair_moves_to_next_target(self, signer):
        """15 bps on DAI misses a 200 bps threshold; USDC at 250 bps is taken"""
        w3 = mock_web3_with_balances({USDT.address.lower(): 1000 * 10**6})
        source = ScriptedQuoteSource("Uniswap V3", {
            "DAI": 1_001_500_000_000_000_000_000,
            "USDC": 1_025_000_000,
        })
        executor = make_executor(SwapResult(success=True, provider="Uniswap V3", transaction_hash="0x01"))

        engine = ArbitrageEngine(
            QuoteAggregator([source]),
            {"Uniswap V3": executor},
            BalanceInspector(w3),
            ArbitrageConfig(min_profit_bps=200, check_gas_cost=False),
        )

        result = await engine.run(WALLET, signer, [USDT, DAI, USDC])

        assert source.requested_symbols() == ["DAI", "USDC"]
        assert result.opportunity.output_token == USDC
        assert result.opportunity.profit_bps == 250
        assert result.success is True

    @pytest.mark.asyncio
    async def test_empty_wallet_never_requests_quotes(self, signer):
        w3 = mock_web3_with_balances({})
        source = ScriptedQuoteSource("CowSwap", {"DAI": 2000 * 10**18, "USDC": 2000 * 10**6})

        engine = ArbitrageEngine(
            QuoteAggregator([source]),
            {},
            BalanceInspector(w3),
            ArbitrageConfig(check_gas_cost=False),
        )

        result = await engine.run(WALLET, signer, [USDT, DAI, USDC])

        assert result.attempted is False
        assert result.success is False
        assert result.reason == NO_BALANCE
        assert source.requests == []

        logger.info("✅ Empty wallet short-circuits the search")

    @pytest.mark.asyncio
    async def test_approval_failure_reported_verbatim(self, signer):
        w3 = mock_web3_with_balances({USDT.address.lower(): 1000 * 10**6})
        source = ScriptedQuoteSource("Uniswap V3", {"USDC": 1_010_000_000})
        error = "Failed to approve USDT: insufficient funds for gas * price + value"
        executor = make_executor(SwapResult(success=False, provider="Uniswap V3", error=error))

        engine = ArbitrageEngine(
            QuoteAggregator([source]),
            {"Uniswap V3": executor},
            BalanceInspector(w3),
            ArbitrageConfig(check_gas_cost=False),
        )

        result = await engine.run(WALLET, signer, [USDT, USDC])

        assert result.attempted is True
        assert result.success is False
        assert result.error == error

    @pytest.mark.asyncio
    async def test_first_pair_match_skips_later_pairs(self, signer):
        """Every source answers the first pair; no source sees the second"""
        w3 = mock_web3_with_balances({USDT.address.lower(): 1000 * 10**6})
        first = ScriptedQuoteSource("Uniswap V3", {"DAI": 1005 * 10**18, "USDC": 1_100_000_000})
        second = ScriptedQuoteSource("1Inch", {"DAI": 1003 * 10**18, "USDC": 1_200_000_000})
        executor = make_executor(SwapResult(success=True, provider="Uniswap V3", transaction_hash="0x02"))

        engine = ArbitrageEngine(
            QuoteAggregator([first, second]),
            {"Uniswap V3": executor, "1Inch": make_executor(SwapResult(success=True, provider="1Inch"))},
            BalanceInspector(w3),
            ArbitrageConfig(check_gas_cost=False),
        )

        result = await engine.run(WALLET, signer, [USDT, DAI, USDC])

        assert result.opportunity.provider == "Uniswap V3"
        assert result.opportunity.output_token == DAI
        assert first.requested_symbols() == ["DAI"]
        assert second.requested_symbols() == ["DAI"]

    @pytest.mark.asyncio
    async def test_dry_run_identifies_without_execution(self):
        w3 = mock_web3_with_balances({USDC.address.lower(): 5000 * 10**6})
        source = ScriptedQuoteSource("CowSwap", {"USDT": 5_020_000_000})
        executor = make_executor(SwapResult(success=True, provider="CowSwap"))

        engine = ArbitrageEngine(
            QuoteAggregator([source]),
            {"CowSwap": executor},
            BalanceInspector(w3),
            ArbitrageConfig(dry_run=True, check_gas_cost=False),
        )

        result = await engine.run(WALLET, None, [USDC, USDT])

        assert result.attempted is False
        assert result.success is True
        assert result.reason == DRY_RUN_REPORT
        assert result.opportunity.provider == "CowSwap"
        assert result.opportunity.profit_bps == 40
        executor.execute.assert_not_awaited()


class TestQuoteAggregation:
    """Aggregator behaviour with failing and slow sources"""

    @pytest.fixture
    def request_usdt_usdc(self):
        return QuoteRequest(token_in=USDT, token_out=USDC, amount_in=1000 * 10**6, chain_id=137)

    @pytest.mark.asyncio
    async def test_failing_source_is_excluded(self, request_usdt_usdc):
        aggregator = QuoteAggregator([
            ScriptedQuoteSource("Uniswap V3", {"USDC": 1_001_000_000}),
            ScriptedQuoteSource("1Inch", error=RuntimeError("unexpected payload")),
            ScriptedQuoteSource("CowSwap", {"USDC": 1_002_000_000}),
        ])

        quotes = await aggregator.get_quotes(request_usdt_usdc)

        assert [quote.provider for quote in quotes] == ["CowSwap", "Uniswap V3"]

        logger.info("✅ Failing source excluded")

    @pytest.mark.asyncio
    async def test_sources_are_queried_concurrently(self, request_usdt_usdc):
        """Each source waits for the other to start; run one after another they would time out"""
        uniswap_started = asyncio.Event()
        cowswap_started = asyncio.Event()

        def handshake(own, peer):
            async def wait_for_peer():
                own.set()
                await asyncio.wait_for(peer.wait(), timeout=1.0)
            return wait_for_peer

        aggregator = QuoteAggregator([
            ScriptedQuoteSource("Uniswap V3", {"USDC": 1_001_000_000},
                                before_answer=handshake(uniswap_started, cowswap_started)),
            ScriptedQuoteSource("CowSwap", {"USDC": 1_002_000_000},
                                before_answer=handshake(cowswap_started, uniswap_started)),
        ])

        quotes = await aggregator.get_quotes(request_usdt_usdc)

        assert [quote.provider for quote in quotes] == ["CowSwap", "Uniswap V3"]

        logger.info("✅ Sources quoted concurrently")

    @pytest.mark.asyncio
    async def test_slow_sources_overlap(self, request_usdt_usdc):
        aggregator = QuoteAggregator([
            ScriptedQuoteSource("Uniswap V3", {"USDC": 1_001_000_000}, delay=0.2),
            ScriptedQuoteSource("1Inch", {"USDC": 1_003_000_000}, delay=0.2),
        ])

        started = time.perf_counter()
        quotes = await aggregator.get_quotes(request_usdt_usdc)
        elapsed = time.perf_counter() - started

        assert len(quotes) == 2
        assert elapsed < 0.35

    @pytest.mark.asyncio
    async def test_slow_source_is_ranked_by_output(self, request_usdt_usdc):
        """A source that answers last still sorts by its output"""
        aggregator = QuoteAggregator([
            ScriptedQuoteSource("Uniswap V3", {"USDC": 1_001_000_000}),
            ScriptedQuoteSource("CowSwap", {"USDC": 1_005_000_000}, delay=0.1),
            ScriptedQuoteSource("1Inch", {"USDC": 1_003_000_000}),
        ])

        quotes = await aggregator.get_quotes(request_usdt_usdc)

        assert [quote.provider for quote in quotes] == ["CowSwap", "1Inch", "Uniswap V3"]
        assert quotes[0].amount_out == 1_005_000_000

    @pytest.mark.asyncio
    async def test_equal_outputs_keep_registration_order(self, request_usdt_usdc):
        aggregator = QuoteAggregator([
            ScriptedQuoteSource("Uniswap V3", {"USDC": 1_001_000_000}),
            ScriptedQuoteSource("1Inch", {"USDC": 1_001_000_000}),
        ])

        quotes = await aggregator.get_quotes(request_usdt_usdc)

        assert [quote.provider for quote in quotes] == ["Uniswap V3", "1Inch"]

    @pytest.mark.asyncio
    async def test_all_sources_failing_returns_empty(self, request_usdt_usdc):
        aggregator = QuoteAggregator([
            ScriptedQuoteSource("Uniswap V3"),
            ScriptedQuoteSource("CowSwap", error=ConnectionError("down")),
        ])

        assert await aggregator.get_quotes(request_usdt_usdc) == []

        with pytest.raises(RuntimeError, match="All quote sources failed for USDT → USDC"):
            await aggregator.get_best_quote(request_usdt_usdc)

    @pytest.mark.asyncio
    async def test_invalid_request_rejected_by_every_source(self):
        source = ScriptedQuoteSource("Uniswap V3", {"USDC": 1})
        aggregator = QuoteAggregator([source])

        bad_request = QuoteRequest(token_in=USDT, token_out=USDC, amount_in=0, chain_id=137)

        assert await aggregator.get_quotes(bad_request) == []
        assert source.requests == []

    @pytest.mark.asyncio
    async def test_sources_can_be_added(self, request_usdt_usdc):
        aggregator = QuoteAggregator()
        aggregator.add_provider(ScriptedQuoteSource("CowSwap", {"USDC": 1_003_000_000}))

        assert aggregator.get_provider_names() == ["CowSwap"]
        best = await aggregator.get_best_quote(request_usdt_usdc)
        assert best.amount_out == 1_003_000_000
