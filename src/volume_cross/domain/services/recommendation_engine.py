"""
Recommendation Engine - Golden cross to LIMIT LONG recommendation
=================================================================
Fetches live market and account data, prices three limit options,
sizes the position and issues a time-boxed Recommendation.
"""

import asyncio
import uuid
from typing import Dict, Optional

from ..interfaces.exchange import IExchangeGateway
from ..models.signals import CrossEvent, CrossType
from ..models.trading import Recommendation, RecommendationStatus, PositionSide
from . import limit_price_calculator as pricing
from ...core import time_manager
from ...core.exceptions import InsufficientBalanceError, ValidationError
from ...core.logger import StructuredLogger, get_logger

DEFAULT_TTL_MS = 10 * time_manager.MINUTE_MS

# Signal symbol -> exchange order symbol
SYMBOL_MAP: Dict[str, str] = {
    'ETH': 'ETHUSDT',
    'BTC': 'BTCUSDT',
    'SOL': 'SOLUSDT',
    'XRP': 'XRPUSDT',
    'ADA': 'ADAUSDT',
    'DOGE': 'DOGEUSDT',
    'ALPACA': 'ALPACAUSDT',
}


def to_order_symbol(symbol: str, quote_coin: str = "USDT") -> str:
    """BTC -> BTCUSDT"""
    if symbol in SYMBOL_MAP:
        return SYMBOL_MAP[symbol]
    return f"{symbol.upper()}{quote_coin}"


class RecommendationConfig:
    """Sizing and validity configuration"""

    def __init__(
        self,
        position_size_percent: float = 1.0,
        min_trade_balance: float = 10.0,
        ttl_ms: int = DEFAULT_TTL_MS,
        quote_coin: str = "USDT"
    ):
        self.position_size_percent = position_size_percent
        self.min_trade_balance = min_trade_balance
        self.ttl_ms = ttl_ms
        self.quote_coin = quote_coin

    @classmethod
    def from_settings(cls, trading_settings, exchange_settings=None) -> "RecommendationConfig":
        return cls(
            position_size_percent=trading_settings.position_size_percent,
            min_trade_balance=trading_settings.min_trade_balance,
            ttl_ms=trading_settings.recommendation_ttl_seconds * time_manager.SECOND_MS,
            quote_coin=exchange_settings.quote_coin if exchange_settings else "USDT",
        )


class RecommendationEngine:
    """
    Turns golden-cross events into recommendations.

    Gateway errors and InsufficientBalanceError propagate to the caller;
    a Recommendation is only returned when every step succeeded.
    """

    def __init__(
        self,
        gateway: IExchangeGateway,
        config: Optional[RecommendationConfig] = None,
        clock: time_manager.Clock = time_manager.now_ms,
        logger: Optional[StructuredLogger] = None
    ):
        self.gateway = gateway
        self.config = config or RecommendationConfig()
        self._clock = clock
        self.logger = logger or get_logger(__name__)

    async def generate(self, event: CrossEvent, now: Optional[int] = None) -> Recommendation:
        """
        Build a recommendation for a golden cross.

        Raises:
            ValidationError: event is not a golden cross
            InsufficientBalanceError: allotted amount below the minimum trade size
            ExchangeApiError, NetworkError: gateway failures
        """
        if event.type != CrossType.GOLDEN:
            raise ValidationError(f"Recommendations are only issued for golden crosses, got {event.type.value}")

        symbol = to_order_symbol(event.symbol, self.config.quote_coin)

        current_price, order_book, balance = await asyncio.gather(
            self.gateway.get_current_price(symbol),
            self.gateway.get_order_book(symbol),
            self.gateway.get_balance(),
        )

        price_options = pricing.calculate_price_options(current_price, event.slow_value, order_book.best_bid)
        probability = pricing.estimate_execution_probability(event.fast_value, event.slow_value)

        usd_amount = balance.available * (self.config.position_size_percent / 100)
        if usd_amount < self.config.min_trade_balance:
            self.logger.warning("recommendation_engine.insufficient_balance", {
                "symbol": symbol,
                "available_balance": balance.available,
                "usd_amount": usd_amount,
                "min_trade_balance": self.config.min_trade_balance
            })
            raise InsufficientBalanceError(
                available=usd_amount,
                required=self.config.min_trade_balance,
                message=f"Insufficient balance: ${usd_amount} < minimum ${self.config.min_trade_balance}"
            )

        quantity = pricing.calculate_quantity(usd_amount, price_options.moderate)
        confidence = pricing.calculate_confidence(event.fast_value, event.slow_value)

        created_at = time_manager.resolve(now, self._clock)
        recommendation = Recommendation(
            id=f"rec_{created_at}_{uuid.uuid4().hex[:8]}",
            symbol=symbol,
            side=PositionSide.LONG,
            trigger_event=event,
            price_options=price_options,
            execution_probability=probability,
            quantity=quantity,
            estimated_cost=usd_amount,
            default_price=price_options.moderate,
            confidence=confidence,
            current_price=current_price,
            spread=order_book.spread,
            created_at=created_at,
            expires_at=created_at + self.config.ttl_ms,
            status=RecommendationStatus.PENDING,
        )

        self.logger.info("recommendation_engine.recommendation_generated", {
            "recommendation_id": recommendation.id,
            "symbol": symbol,
            "current_price": current_price,
            "price_options": price_options.model_dump(),
            "quantity": quantity,
            "estimated_cost": usd_amount,
            "confidence": confidence,
            "expires_at": recommendation.expires_at
        })
        return recommendation
