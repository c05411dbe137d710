# stable_arb/confirmation.py
"""
Interactive trade confirmation for the command line runner
"""

import asyncio
import sys

from .decimal_utils import calculate_exchange_rate, format_token_amount
from .models import Quote, Token

SEPARATOR = '=' * 77
PROMPT = 'Execute this trade? (y/n): '


def format_quote_display(quote: Quote, token_in: Token, token_out: Token, amount_in: int, network: str) -> str:
    """Boxed, human-readable summary of a quote"""
    rate = calculate_exchange_rate(amount_in, token_in.decimals, quote.amount_out, token_out.decimals)

    lines = [
        SEPARATOR,
        'TRADE QUOTE',
        SEPARATOR,
        '',
        f'Provider: {quote.provider}',
        f'Network:  {network}',
        '',
        f'You Send:    {format_token_amount(amount_in, token_in.decimals)} {token_in.symbol}',
        f'You Receive: ~{format_token_amount(quote.amount_out, token_out.decimals)} {token_out.symbol}',
        f'Rate:        1 {token_in.symbol} = {rate} {token_out.symbol}',
    ]

    if quote.gas_estimate is not None:
        lines += ['', f'Estimated Gas: {quote.gas_estimate:,} gas units']

    if quote.fee is not None:
        # batch-auction fees are charged in the sell token
        lines.append(f'Fee:           {format_token_amount(quote.fee, token_in.decimals)} {token_in.symbol}')

    lines += ['', SEPARATOR]
    return '\n'.join(lines) + '\n'


async def prompt_for_confirmation(message: str = PROMPT) -> bool:
    """
    Ask on stdin; only 'y' and 'yes' confirm.

    Raises:
        RuntimeError: stdin is not interactive
    """
    if not sys.stdin.isatty():
        raise RuntimeError(
            'Cannot prompt for confirmation in non-interactive mode. '
            'Use --force flag to skip confirmation.'
        )

    answer = await asyncio.to_thread(input, message)
    return answer.strip().lower() in ('y', 'yes')


async def confirm_trade(quote: Quote, token_in: Token, token_out: Token, amount_in: int,
                        network: str, force: bool = False) -> bool:
    """Print the quote and ask for confirmation unless force is set"""
    print(format_quote_display(quote, token_in, token_out, amount_in, network))

    if force:
        print('Force mode enabled - skipping confirmation\n')
        return True

    confirmed = await prompt_for_confirmation()
    if not confirmed:
        print('\nTrade cancelled by user.')
    return confirmed
