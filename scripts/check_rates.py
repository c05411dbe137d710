# DEX rate comparison
# scripts/check_rates.py

"""
Rate Checker Script
Fetches quotes for one stablecoin pair from every configured provider
and prints them best-first with the best/worst spread
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional

# Add project root to path
sys.path.append(str(Path(__file__).parent.parent))

from web3 import Web3

from config.registry import load_stablecoins
from config.settings import load_settings
from stable_arb.decimal_utils import format_token_amount, parse_amount
from stable_arb.models import Quote, QuoteRequest, Token
from stable_arb.profit import BPS_DENOMINATOR
from stable_arb.provider_registry import build_quote_sources
from stable_arb.quote_aggregator import QuoteAggregator
from stable_arb.utils.logger import get_logger, set_log_level

logger = get_logger('check_rates')


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="DEX Rate Checker")
    parser.add_argument('--from', dest='token_in', default='USDC', help='Input stablecoin symbol (default: USDC)')
    parser.add_argument('--to', dest='token_out', default='USDT', help='Output stablecoin symbol (default: USDT)')
    parser.add_argument('--amount', default='1000', help='Input amount in whole tokens (default: 1000)')
    parser.add_argument('-c', '--config', metavar='PATH',
                        help='Directory holding stablecoins.json and providers.json (default: ./config)')
    parser.add_argument('--log-level', choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help='Override LOG_LEVEL')
    return parser.parse_args(argv)


def find_token(tokens: List[Token], symbol: str) -> Token:
    for token in tokens:
        if token.symbol.lower() == symbol.lower():
            return token
    raise ValueError(f"Unknown stablecoin {symbol}. Available: {', '.join(t.symbol for t in tokens)}")


def print_quotes(quotes: List[Quote], token_in: Token, token_out: Token) -> None:
    print('RESULTS:')
    print('-' * 80)
    print()

    for index, quote in enumerate(quotes):
        rank = '🥇 BEST' if index == 0 else f'   #{index + 1}'
        print(f'{rank} {quote.provider}')
        print(f'     Output: {format_token_amount(quote.amount_out, token_out.decimals)} {token_out.symbol}')
        if quote.gas_estimate:
            print(f'     Estimated Gas: {quote.gas_estimate:,}')
        if quote.fee:
            print(f'     Fee: {format_token_amount(quote.fee, token_in.decimals)} {token_in.symbol}')
        print()

    if len(quotes) > 1:
        best, worst = quotes[0], quotes[-1]
        difference = best.amount_out - worst.amount_out
        spread_bps = difference * BPS_DENOMINATOR // worst.amount_out if worst.amount_out else 0

        print('COMPARISON:')
        print('-' * 80)
        print(f'Best rate ({best.provider}) vs Worst rate ({worst.provider}):')
        print(f'  Spread: {format_token_amount(difference, token_out.decimals)} {token_out.symbol} '
              f'({spread_bps} bps)')
        print()


async def check_rates(args: argparse.Namespace) -> int:
    settings = load_settings(dry_run=True)
    network = settings.network.name

    w3 = Web3(Web3.HTTPProvider(settings.network.rpc_url,
                                request_kwargs={'timeout': settings.api.request_timeout}))

    stablecoins = load_stablecoins(network, settings.network.chain_id, args.config)
    token_in = find_token(stablecoins, args.token_in)
    token_out = find_token(stablecoins, args.token_out)
    amount_in = parse_amount(args.amount, token_in.decimals)

    print(f'Swap: {format_token_amount(amount_in, token_in.decimals)} {token_in.symbol} → {token_out.symbol}')
    print()

    aggregator = QuoteAggregator(build_quote_sources(network, settings, w3, args.config))

    print('Fetching quotes from all providers...')
    print('-' * 80)
    print()

    quotes = await aggregator.get_quotes(QuoteRequest(
        token_in=token_in,
        token_out=token_out,
        amount_in=amount_in,
        chain_id=settings.network.chain_id
    ))

    if not quotes:
        print('❌ All providers failed to return quotes.')
        print('   Check your RPC_URL and API configuration.')
        return 1

    print(f'✓ Received {len(quotes)} quote(s)')
    print()
    print_quotes(quotes, token_in, token_out)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    if args.log_level:
        set_log_level(args.log_level)

    print('=' * 80)
    print('DEX RATE CHECKER')
    print('=' * 80)
    print()

    try:
        exit_code = asyncio.run(check_rates(args))
    except Exception as e:
        logger.error(f"❌ Error fetching quotes: {e}")
        return 1

    if exit_code == 0:
        print('=' * 80)
        print('✓ Rate check complete!')
        print('=' * 80)
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
