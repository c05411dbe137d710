# stable_arb/models.py
"""
Value objects passed between the quote, balance, execution and engine layers.

All token amounts are Python ints in the token's smallest unit.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class Token:
    """ERC20 token identity; equal tokens share address and chain id."""
    address: str
    decimals: int
    symbol: str
    chain_id: int

    def __eq__(self, other):
        if not isinstance(other, Token):
            return NotImplemented
        return self.address.lower() == other.address.lower() and self.chain_id == other.chain_id

    def __hash__(self):
        return hash((self.address.lower(), self.chain_id))


@dataclass(frozen=True)
class QuoteRequest:
    """Input token, output token and input amount for one quote."""
    token_in: Token
    token_out: Token
    amount_in: int
    chain_id: int


@dataclass(frozen=True)
class Quote:
    """Non-binding estimate from a single quote source."""
    provider: str
    amount_out: int
    gas_estimate: Optional[int] = None
    fee: Optional[int] = None
    route: Optional[Dict[str, Any]] = None
    timestamp: float = field(default_factory=time.time)


@dataclass(frozen=True)
class ArbitrageOpportunity:
    """A quote that cleared the profit threshold during the search."""
    provider: str
    input_token: Token
    output_token: Token
    amount_in: int
    expected_amount_out: int
    profit_bps: int
    quote: Quote
    gas_estimate: Optional[int] = None
    net_profit_amount: Optional[int] = None

    @property
    def pair(self) -> str:
        return f"{self.input_token.symbol} → {self.output_token.symbol}"


@dataclass(frozen=True)
class SwapRequest:
    """
    Confirmed trade handed to a swap executor.

    signer is an eth_account LocalAccount (or anything exposing address,
    sign_transaction and sign_message).
    """
    token_in: Token
    token_out: Token
    amount_in: int
    min_amount_out: int
    deadline: int
    signer: Any
    chain_id: int
    expected_amount_out: Optional[int] = None


@dataclass(frozen=True)
class SwapResult:
    success: bool
    provider: str
    transaction_hash: Optional[str] = None
    amount_out: Optional[int] = None
    gas_used: Optional[int] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class ArbitrageConfig:
    """Immutable knobs consumed by the arbitrage engine"""
    min_profit_bps: int = 30
    max_slippage_bps: int = 50
    deadline_seconds: int = 300
    check_gas_cost: bool = True
    min_balance_threshold: Optional[int] = None  # smallest units, None = any non-zero balance
    dry_run: bool = False
    order_poll_interval: float = 5.0  # batch-auction order status polling, seconds
    order_timeout: float = 300.0

    def validate(self) -> 'ArbitrageConfig':
        errors = []
        if self.min_profit_bps < 0:
            errors.append("MIN_PROFIT_BPS must be non-negative")
        if not 0 <= self.max_slippage_bps <= 10000:
            errors.append("MAX_SLIPPAGE_BPS must be between 0 and 10000")
        if self.deadline_seconds <= 0:
            errors.append("DEADLINE_SECONDS must be positive")
        if self.min_balance_threshold is not None and self.min_balance_threshold < 0:
            errors.append("MIN_BALANCE_THRESHOLD must be non-negative")
        if self.order_poll_interval < 0 or self.order_timeout <= 0:
            errors.append("Order polling interval must be non-negative and timeout positive")

        if errors:
            raise ValueError(f"Arbitrage configuration invalid: {', '.join(errors)}")
        return self


@dataclass(frozen=True)
class ArbitrageResult:
    """Terminal outcome of one engine run."""
    attempted: bool
    success: bool
    opportunity: Optional[ArbitrageOpportunity] = None
    transaction_hash: Optional[str] = None
    actual_amount_out: Optional[int] = None
    gas_used: Optional[int] = None
    reason: Optional[str] = None
    error: Optional[str] = None
