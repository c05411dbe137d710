# stable_arb/profit.py
"""
Profit, slippage and gas-cost arithmetic on integer token amounts.

Basis points are computed with integer math only, so a quote sitting
exactly on the minimum-profit threshold always classifies the same way.
"""

from decimal import Decimal, ROUND_FLOOR, localcontext
from typing import Union

from .decimal_utils import normalize_decimals
from .models import Token

BPS_DENOMINATOR = 10_000
NATIVE_DECIMALS = 18

PriceLike = Union[Decimal, int, str]


def calculate_profit_bps(amount_in: int, amount_out: int, token_in: Token, token_out: Token) -> int:
    """
    Profit of a swap in basis points of the input amount.

    amount_out is first rescaled to token_in's decimals. The result is
    signed and truncated toward zero; a zero input yields 0.
    """
    if amount_in == 0:
        return 0

    normalized_out = normalize_decimals(amount_out, token_out.decimals, token_in.decimals)
    difference = normalized_out - amount_in

    # Multiply before dividing
    magnitude = (abs(difference) * BPS_DENOMINATOR) // amount_in
    return -magnitude if difference < 0 else magnitude


def calculate_min_amount_out(expected_amount_out: int, slippage_bps: int) -> int:
    """Lowest acceptable output for a slippage tolerance (floor division)."""
    if not 0 <= slippage_bps <= BPS_DENOMINATOR:
        raise ValueError(f"Slippage must be between 0 and {BPS_DENOMINATOR} bps, got {slippage_bps}")

    return (expected_amount_out * (BPS_DENOMINATOR - slippage_bps)) // BPS_DENOMINATOR


def gas_cost_in_token(gas_used: int, gas_price: int, output_token: Token, native_price: PriceLike) -> int:
    """
    Convert gas_used * gas_price (native wei) into output_token smallest units.

    Args:
        gas_used: Gas units
        gas_price: Price per gas unit in wei
        output_token: Token to express the cost in
        native_price: Price of one whole native token in whole output tokens

    Returns:
        Cost in output token smallest units, floored
    """
    gas_cost_wei = gas_used * gas_price

    with localcontext() as ctx:
        ctx.prec = 80
        cost = (Decimal(gas_cost_wei) * Decimal(str(native_price)) * Decimal(10 ** output_token.decimals)
                / Decimal(10 ** NATIVE_DECIMALS))
        return int(cost.to_integral_value(rounding=ROUND_FLOOR))


def calculate_net_profit(gross_profit: int, gas_used: int, gas_price: int,
                         output_token: Token, native_price: PriceLike) -> int:
    """Gross profit minus the gas cost, both in output token smallest units."""
    return gross_profit - gas_cost_in_token(gas_used, gas_price, output_token, native_price)


def is_profitable_after_gas(profit_bps: int, amount_in: int, gas_used: int, gas_price: int,
                            output_token: Token, native_price: PriceLike) -> bool:
    gross_profit = (amount_in * profit_bps) // BPS_DENOMINATOR
    return calculate_net_profit(gross_profit, gas_used, gas_price, output_token, native_price) > 0
