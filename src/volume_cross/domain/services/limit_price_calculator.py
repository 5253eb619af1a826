"""
Limit Price Calculator - Pure Business Logic
============================================
Price options and fill-probability heuristics for a LIMIT LONG entry
after a golden cross. The constants are empirical and kept as-is.
"""

import math
from typing import Optional

from ..models.trading import PriceOptions, ExecutionProbability
from ...core.exceptions import ValidationError

CONSERVATIVE_DISCOUNT = 0.998   # current price -0.2%
MODERATE_DISCOUNT = 0.9995      # current price -0.05%
AGGRESSIVE_PREMIUM = 1.0001     # current price +0.01%

MAX_MOMENTUM = 0.8
MIN_CONFIDENCE = 60
MAX_CONFIDENCE = 95


def round_half_up(value: float, decimals: int = 2) -> float:
    """Round to `decimals` places with halves going up (0.125 -> 0.13)."""
    factor = 10 ** decimals
    return math.floor(value * factor + 0.5) / factor


def truncate(value: float, decimals: int = 3) -> float:
    """Drop digits past `decimals` places (3.0009 -> 3.0)."""
    factor = 10 ** decimals
    return math.floor(value * factor) / factor


def cross_strength(fast: float, slow: float) -> float:
    """Relative distance of the fast MA above the slow MA."""
    if slow == 0:
        return math.inf if fast > 0 else 0.0
    return (fast - slow) / slow


def calculate_price_options(current_price: float, ma_slow: float,
                            best_bid: Optional[float]) -> PriceOptions:
    """
    conservative = min(ma_slow, price * 0.998)
    moderate     = max(best_bid, price * 0.9995)
    aggressive   = price * 1.0001

    An empty bid side falls back to the discounted current price.
    """
    conservative = min(ma_slow, current_price * CONSERVATIVE_DISCOUNT)
    moderate = current_price * MODERATE_DISCOUNT
    if best_bid is not None:
        moderate = max(best_bid, moderate)
    aggressive = current_price * AGGRESSIVE_PREMIUM

    return PriceOptions(
        conservative=round_half_up(conservative),
        moderate=round_half_up(moderate),
        aggressive=round_half_up(aggressive),
    )


def estimate_execution_probability(ma_fast: float, ma_slow: float) -> ExecutionProbability:
    """Fill probability per option, boosted by cross momentum (capped at 0.8)."""
    momentum = min(MAX_MOMENTUM, cross_strength(ma_fast, ma_slow) * 100)
    return ExecutionProbability(
        conservative=min(0.9, 0.7 + momentum),
        moderate=min(0.8, 0.5 + momentum),
        aggressive=min(0.95, 0.8 + momentum),
    )


def calculate_confidence(ma_fast: float, ma_slow: float) -> int:
    """50 + strength% * 10, clamped to [60, 95] and rounded."""
    strength_percent = cross_strength(ma_fast, ma_slow) * 100
    confidence = min(MAX_CONFIDENCE, 50 + strength_percent * 10)
    confidence = max(MIN_CONFIDENCE, confidence)
    return int(math.floor(confidence + 0.5))


def calculate_quantity(usd_amount: float, price: float) -> float:
    """Base quantity for the USD amount at price, truncated to 3 decimals."""
    if price <= 0:
        raise ValidationError(f"Price must be positive, got {price}")
    return truncate(usd_amount / price, 3)
