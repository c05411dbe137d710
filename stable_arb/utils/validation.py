# stable_arb/utils/validation.py
"""
Input validation for quote requests.

Validation failures are raised as INVALID_TOKEN quote errors, which the
retry layer never retries.
"""

import re

from ..exceptions import QuoteError, QuoteErrorType
from ..models import QuoteRequest, Token

ADDRESS_PATTERN = re.compile(r'^0x[a-fA-F0-9]{40}$')
MAX_DECIMALS = 255


def is_address(address) -> bool:
    """Address shape check: 0x followed by 40 hex characters."""
    return isinstance(address, str) and bool(ADDRESS_PATTERN.match(address))


def validate_token(token: Token, provider: str) -> None:
    """
    Check address shape, decimals range, symbol and chain id.

    Raises:
        QuoteError: INVALID_TOKEN describing the first problem found
    """
    if not token.address or not isinstance(token.address, str):
        raise QuoteError(QuoteErrorType.INVALID_TOKEN, provider, f"Invalid token address: {token.address}")

    if not is_address(token.address):
        raise QuoteError(QuoteErrorType.INVALID_TOKEN, provider, f"Token address format invalid: {token.address}")

    if not isinstance(token.decimals, int) or isinstance(token.decimals, bool) \
            or token.decimals < 0 or token.decimals > MAX_DECIMALS:
        raise QuoteError(QuoteErrorType.INVALID_TOKEN, provider, f"Invalid token decimals: {token.decimals}")

    if not token.symbol or not isinstance(token.symbol, str):
        raise QuoteError(QuoteErrorType.INVALID_TOKEN, provider, f"Invalid token symbol: {token.symbol}")

    if not isinstance(token.chain_id, int) or token.chain_id <= 0:
        raise QuoteError(QuoteErrorType.INVALID_TOKEN, provider, f"Invalid token chainId: {token.chain_id}")


def validate_amount(amount: int, provider: str) -> None:
    if not isinstance(amount, int) or amount <= 0:
        raise QuoteError(QuoteErrorType.INVALID_TOKEN, provider, f"Amount must be positive, got: {amount}")


def validate_quote_request(request: QuoteRequest, provider: str) -> None:
    """Validate both tokens, the amount, and that both tokens live on the request's chain."""
    validate_token(request.token_in, provider)
    validate_token(request.token_out, provider)
    validate_amount(request.amount_in, provider)

    for token in (request.token_in, request.token_out):
        if token.chain_id != request.chain_id:
            raise QuoteError(
                QuoteErrorType.INVALID_TOKEN,
                provider,
                f"Token {token.symbol} is on chain {token.chain_id}, request is for chain {request.chain_id}"
            )
