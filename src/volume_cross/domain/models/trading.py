"""
Trading Models - Recommendations, orders and execution results
==============================================================
Pure data models for turning a golden cross into a live limit order.
"""

from pydantic import BaseModel, Field
from typing import Optional, Dict, Any
from enum import Enum

from .signals import CAMEL_CASE_CONFIG, CrossEvent


class PositionSide(str, Enum):
    """Position direction"""
    LONG = "LONG"


class OrderSide(str, Enum):
    """Exchange order side"""
    BUY = "Buy"
    SELL = "Sell"


class OrderType(str, Enum):
    """Order types"""
    LIMIT = "LIMIT"


class PriceTier(str, Enum):
    """Which priced option to use"""
    CONSERVATIVE = "conservative"
    MODERATE = "moderate"
    AGGRESSIVE = "aggressive"


class RecommendationStatus(str, Enum):
    """Recommendation lifecycle"""
    PENDING = "pending"
    EXECUTED = "executed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class PriceOptions(BaseModel):
    """Limit prices, 2 decimals"""
    model_config = CAMEL_CASE_CONFIG

    conservative: float = Field(..., description="Below market, waits for a dip")
    moderate: float = Field(..., description="Near the best bid")
    aggressive: float = Field(..., description="Just above market, fills fast")

    def for_tier(self, tier: PriceTier) -> float:
        return getattr(self, tier.value)


class ExecutionProbability(BaseModel):
    """Estimated fill probability per price option (0-1)"""
    model_config = CAMEL_CASE_CONFIG

    conservative: float = Field(...)
    moderate: float = Field(...)
    aggressive: float = Field(...)


class Recommendation(BaseModel):
    """Priced, time-boxed LIMIT LONG suggestion derived from a golden cross"""

    model_config = CAMEL_CASE_CONFIG

    id: str = Field(..., description="Unique recommendation ID")
    symbol: str = Field(..., description="Exchange order symbol (e.g., BTCUSDT)")
    side: PositionSide = Field(default=PositionSide.LONG)
    trigger_event: CrossEvent = Field(..., description="Cross that produced this recommendation")

    price_options: PriceOptions = Field(...)
    execution_probability: ExecutionProbability = Field(...)
    quantity: float = Field(..., description="Base quantity, truncated to 3 decimals")
    estimated_cost: float = Field(..., description="USD amount allotted to the trade")
    default_price: float = Field(..., description="Moderate price")
    confidence: int = Field(..., description="Heuristic confidence, 60-95")

    current_price: Optional[float] = Field(None, description="Last price when generated")
    spread: Optional[float] = Field(None, description="Best ask minus best bid when generated")

    created_at: int = Field(..., description="Creation time (epoch ms)")
    expires_at: int = Field(..., description="created_at + TTL (epoch ms)")
    status: RecommendationStatus = Field(default=RecommendationStatus.PENDING)

    def is_expired(self, now: int) -> bool:
        """Executable up to and including expires_at"""
        return now > self.expires_at

    def to_event_data(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "symbol": self.symbol,
            "default_price": self.default_price,
            "quantity": self.quantity,
            "confidence": self.confidence,
            "expires_at": self.expires_at,
        }


class ActiveOrder(BaseModel):
    """Order known to be live at the exchange"""

    model_config = CAMEL_CASE_CONFIG

    order_id: str = Field(..., description="Exchange order ID")
    symbol: str = Field(...)
    side: OrderSide = Field(default=OrderSide.BUY)
    order_type: OrderType = Field(default=OrderType.LIMIT)
    quantity: float = Field(...)
    limit_price: float = Field(...)
    status: str = Field(default="NEW", description="Last exchange-reported status")
    recommendation_id: str = Field(...)
    created_at: int = Field(...)
    last_checked: int = Field(...)


class ExecutionResult(BaseModel):
    """Outcome of an execute() call; gateway failures arrive here, never raised"""

    model_config = CAMEL_CASE_CONFIG

    success: bool = Field(...)
    symbol: str = Field(...)
    recommendation_id: str = Field(...)
    order_id: Optional[str] = Field(None)
    side: Optional[OrderSide] = Field(None)
    order_type: Optional[OrderType] = Field(None)
    quantity: Optional[float] = Field(None)
    limit_price: Optional[float] = Field(None)
    estimated_cost: Optional[float] = Field(None, description="USD amount allotted by the recommendation")
    status: Optional[str] = Field(None, description="PENDING on success")
    error: Optional[str] = Field(None)
    timestamp: int = Field(...)

    def to_event_data(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)
