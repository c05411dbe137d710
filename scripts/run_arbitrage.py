# Stablecoin arbitrage runner
# scripts/run_arbitrage.py

"""
Run Arbitrage Script
Runs the stablecoin arbitrage engine once against the configured network
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional

# Add project root to path
sys.path.append(str(Path(__file__).parent.parent))

from eth_account import Account
from web3 import Web3

from config.registry import load_stablecoins
from config.settings import Settings, load_settings
from stable_arb.arbitrage_engine import ArbitrageEngine
from stable_arb.balance_inspector import BalanceInspector
from stable_arb.confirmation import confirm_trade
from stable_arb.models import ArbitrageOpportunity, ArbitrageResult
from stable_arb.provider_registry import build_executors, build_quote_sources
from stable_arb.quote_aggregator import QuoteAggregator
from stable_arb.utils.helpers import fetch_native_token_price
from stable_arb.utils.logger import get_logger, set_log_level

logger = get_logger('run_arbitrage')

ENVIRONMENT_HELP = """
Environment Variables:
  PRIVATE_KEY               Wallet private key (required unless --dry-run)
  WALLET_ADDRESS            Wallet to inspect when no private key is set
  NETWORK                   Network name (default: polygon)
  RPC_URL                   RPC endpoint URL (required)
  ONEINCH_API_KEY           1inch API key for higher rate limits
  MIN_PROFIT_BPS            Minimum profit in basis points (default: 30)
  MAX_SLIPPAGE_BPS          Maximum slippage in basis points (default: 50)
  DEADLINE_SECONDS          Swap deadline in seconds (default: 300)
  CHECK_GAS_COST            Estimate profit after gas (default: true)
  REQUIRE_MANUAL_APPROVAL   Prompt before each live trade (default: false)
  MIN_BALANCE_THRESHOLD     Minimum input balance in smallest units
  LOG_LEVEL                 DEBUG, INFO, WARNING or ERROR (default: INFO)

Examples:
  python scripts/run_arbitrage.py                    # Run with real execution
  python scripts/run_arbitrage.py --dry-run          # Simulate without executing
  python scripts/run_arbitrage.py --config ./custom  # Use custom registry directory
"""


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Stablecoin Arbitrage Bot",
        epilog=ENVIRONMENT_HELP,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument('-d', '--dry-run', action='store_true',
                        help='Simulate arbitrage without executing trades')
    parser.add_argument('-c', '--config', metavar='PATH',
                        help='Directory holding stablecoins.json and providers.json (default: ./config)')
    parser.add_argument('-f', '--force', action='store_true',
                        help='Skip the trade confirmation prompt even when REQUIRE_MANUAL_APPROVAL is set')
    parser.add_argument('--log-level', choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help='Override LOG_LEVEL')
    return parser.parse_args(argv)


def log_result(result: ArbitrageResult) -> None:
    opportunity = result.opportunity

    if result.attempted:
        if result.success:
            logger.info(f"✅ Arbitrage executed successfully: {opportunity.pair} via {opportunity.provider}, "
                        f"{opportunity.profit_bps} bps, tx {result.transaction_hash}")
        else:
            logger.error(f"❌ Arbitrage execution failed: {result.error}")
    elif result.success and opportunity is not None:
        logger.info(
            f"💡 DRY-RUN: {opportunity.pair} via {opportunity.provider}, "
            f"{opportunity.profit_bps} bps ({opportunity.profit_bps / 100:.2f}%), "
            f"amount in {opportunity.amount_in}, expected out {opportunity.expected_amount_out}, "
            f"gas {opportunity.gas_estimate or 'N/A'}"
        )
    elif result.error:
        logger.error(f"❌ Arbitrage run failed: {result.error}")
    else:
        logger.info(f"ℹ️ No arbitrage executed: {result.reason}")


def build_engine(settings: Settings, w3: Web3, config_path: Optional[str], force: bool) -> ArbitrageEngine:
    network = settings.network.name

    aggregator = QuoteAggregator(build_quote_sources(network, settings, w3, config_path))
    executors = build_executors(network, settings, w3, config_path)

    native_price = None
    if settings.arbitrage.check_gas_cost:
        native_price = fetch_native_token_price(settings.api.native_token_id,
                                                base_url=settings.api.coingecko_base_url)

    async def gas_price() -> int:
        return await asyncio.to_thread(lambda: w3.eth.gas_price)

    async def confirm(opportunity: ArbitrageOpportunity) -> bool:
        return await confirm_trade(opportunity.quote, opportunity.input_token, opportunity.output_token,
                                   opportunity.amount_in, network, force=force)

    return ArbitrageEngine(
        aggregator,
        executors,
        BalanceInspector(w3),
        settings.arbitrage,
        gas_price_fetcher=gas_price,
        native_price=native_price,
        confirmation_callback=confirm if settings.security.require_manual_approval and not force else None,
    )


async def run(args: argparse.Namespace) -> ArbitrageResult:
    settings = load_settings(dry_run=True if args.dry_run else None)

    if settings.arbitrage.dry_run:
        logger.info("🔍 Starting Stablecoin Arbitrage Bot (DRY-RUN MODE)")
        logger.info("No trades will be executed - this is a simulation only")
    else:
        logger.info("🚀 Starting Stablecoin Arbitrage Bot")

    w3 = Web3(Web3.HTTPProvider(settings.network.rpc_url,
                                request_kwargs={'timeout': settings.api.request_timeout}))
    if not w3.is_connected():
        raise ConnectionError(f"Failed to connect to {settings.network.name} RPC")

    signer = Account.from_key(settings.security.private_key) if settings.security.private_key else None
    wallet = signer.address if signer else settings.security.wallet_address
    if not wallet:
        raise ValueError("Wallet configuration missing. Set PRIVATE_KEY, or WALLET_ADDRESS for a dry run")

    logger.info(f"Wallet: {wallet}")

    stablecoins = load_stablecoins(settings.network.name, settings.network.chain_id, args.config)
    engine = build_engine(settings, w3, args.config, args.force)

    logger.info("🔍 Searching for arbitrage opportunities...")
    return await engine.run(wallet, signer, stablecoins)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    if args.log_level:
        set_log_level(args.log_level)

    try:
        result = asyncio.run(run(args))
    except KeyboardInterrupt:
        logger.info("⏹️ Arbitrage run stopped by user")
        return 1
    except Exception as e:
        logger.error(f"💥 Fatal error in arbitrage bot: {e}")
        return 1

    log_result(result)
    logger.info("🏁 Arbitrage run completed")
    return 0


if __name__ == "__main__":
    sys.exit(main())
