# stable_arb/utils/helpers.py
"""
Helper functions for the stablecoin arbitrage engine.

Provides utility functions for:
- Time and swap deadlines
- Provider name matching
- Address display
- Native token pricing for gas estimates

Usage:
    from stable_arb.utils.helpers import calculate_deadline, normalize_provider_name

    deadline = calculate_deadline(300)
    key = normalize_provider_name("Uniswap V3")  # "uniswapv3"
"""

import re
import time
from decimal import Decimal, InvalidOperation
from typing import Optional

import requests

from .logger import get_logger

logger = get_logger(__name__)

COINGECKO_API_URL = "https://api.coingecko.com/api/v3"

_PROVIDER_NAME_NOISE = re.compile(r'[\s\-_]+')


def get_current_timestamp() -> int:
    """Get current timestamp in seconds"""
    return int(time.time())


def calculate_deadline(deadline_seconds: int, now: Optional[int] = None) -> int:
    """
    Unix timestamp after which a swap must revert.

    Args:
        deadline_seconds: Seconds from now
        now: Reference timestamp, defaults to the current time

    Returns:
        Deadline timestamp in seconds
    """
    return (get_current_timestamp() if now is None else now) + deadline_seconds


def normalize_provider_name(name: str) -> str:
    """Lowercase and drop spaces, hyphens and underscores: 'Uniswap V3' -> 'uniswapv3'"""
    return _PROVIDER_NAME_NOISE.sub('', name.strip().lower())


def truncate_address(address: str, start_chars: int = 6, end_chars: int = 4) -> str:
    """Truncate address for display"""
    if len(address) <= start_chars + end_chars:
        return address
    return f"{address[:start_chars]}...{address[-end_chars:]}"


def fetch_native_token_price(token_id: str, vs_currency: str = "usd",
                             base_url: str = COINGECKO_API_URL, timeout: float = 10.0) -> Optional[Decimal]:
    """
    Price of one native token from CoinGecko.

    Stablecoins trade near 1 USD, so the USD price is used as the price
    in output tokens for gas estimates.

    Returns:
        The price, or None if it could not be fetched
    """
    try:
        response = requests.get(
            f"{base_url.rstrip('/')}/simple/price",
            params={'ids': token_id, 'vs_currencies': vs_currency},
            timeout=timeout
        )
        response.raise_for_status()
        price = Decimal(str(response.json()[token_id][vs_currency]))
        logger.debug(f"{token_id} price: {price} {vs_currency.upper()}")
        return price

    except (requests.RequestException, KeyError, TypeError, ValueError, InvalidOperation) as e:
        logger.warning(f"⚠️ Could not fetch {token_id} price from CoinGecko: {e}")
        return None
