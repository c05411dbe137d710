# stable_arb/decimal_utils.py
"""
Decimal handling utilities for fixed-point token amounts
"""

from decimal import Decimal, ROUND_DOWN

from .utils.logger import get_logger

logger = get_logger(__name__)

# Fixed scale used when comparing tokens with different decimals
RATE_SCALE = 18
RATE_PRECISION = 6


def _check_non_negative(amount: int) -> None:
    if amount < 0:
        raise ValueError(f"Token amounts must be non-negative, got {amount}")


def normalize_decimals(amount: int, from_decimals: int, to_decimals: int) -> int:
    """
    Rescale an integer amount between decimal bases.

    Scaling up is exact; scaling down floors.

    Args:
        amount: Amount in from_decimals smallest units
        from_decimals: Source precision
        to_decimals: Target precision

    Returns:
        Amount in to_decimals smallest units
    """
    _check_non_negative(amount)

    if from_decimals == to_decimals:
        return amount

    if from_decimals > to_decimals:
        return amount // (10 ** (from_decimals - to_decimals))

    return amount * (10 ** (to_decimals - from_decimals))


def format_amount(amount: int, decimals: int, precision: int = 4) -> str:
    """Human-readable amount: at most `precision` fraction digits, trailing zeros trimmed."""
    _check_non_negative(amount)

    whole, remainder = divmod(amount, 10 ** decimals)
    if precision == 0 or decimals == 0:
        return str(whole)

    fraction = str(remainder).rjust(decimals, '0')[:precision].rstrip('0')
    if not fraction:
        return str(whole)

    return f"{whole}.{fraction}"


def parse_amount(amount: str, decimals: int) -> int:
    """
    Parse a decimal string into smallest units.

    The fractional part is padded or truncated to exactly `decimals` digits.
    """
    text = amount.strip()
    if text.startswith('-'):
        raise ValueError(f"Token amounts must be non-negative, got {amount!r}")

    whole_part, _, fraction_part = text.partition('.')
    if not (whole_part or fraction_part):
        raise ValueError(f"Invalid amount: {amount!r}")
    if (whole_part and not whole_part.isdigit()) or (fraction_part and not fraction_part.isdigit()):
        raise ValueError(f"Invalid amount: {amount!r}")

    whole = int(whole_part or '0')
    fraction = int(fraction_part.ljust(decimals, '0')[:decimals] or '0')

    return whole * 10 ** decimals + fraction


def format_token_amount(amount: int, decimals: int, max_decimals: int = 6) -> str:
    """Display amount with thousand separators, e.g. 1,234.5 or 1,000.00"""
    _check_non_negative(amount)

    whole, remainder = divmod(amount, 10 ** decimals)
    whole_str = f"{whole:,}"

    if remainder == 0:
        return f"{whole_str}.00"

    fraction = str(remainder).rjust(decimals, '0')[:max_decimals].rstrip('0')
    if not fraction:
        return f"{whole_str}.00"

    return f"{whole_str}.{fraction}"


def calculate_exchange_rate(amount_in: int, decimals_in: int, amount_out: int, decimals_out: int) -> str:
    """Rate of output per input token as a decimal string with up to 6 places."""
    normalized_in = normalize_decimals(amount_in, decimals_in, RATE_SCALE)
    normalized_out = normalize_decimals(amount_out, decimals_out, RATE_SCALE)

    if normalized_in == 0:
        return '0'

    scaled = (normalized_out * 10 ** RATE_PRECISION) // normalized_in
    rate = (Decimal(scaled) / Decimal(10 ** RATE_PRECISION)).quantize(
        Decimal(1).scaleb(-RATE_PRECISION), rounding=ROUND_DOWN
    )

    text = f"{rate:f}"
    if '.' in text:
        text = text.rstrip('0').rstrip('.')

    logger.debug(f"Exchange rate {amount_in}@{decimals_in} -> {amount_out}@{decimals_out} = {text}")
    return text
