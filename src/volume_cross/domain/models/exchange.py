"""
Exchange Models - Values returned by the exchange gateway
=========================================================
Decoupled from the wire format; the adapter maps its response DTOs onto these.
"""

from pydantic import BaseModel, Field
from typing import List, Optional


class OrderBookLevel(BaseModel):
    """Single level in order book"""
    price: float = Field(...)
    size: float = Field(...)


class OrderBook(BaseModel):
    """Top-of-book snapshot"""

    symbol: str = Field(...)
    bids: List[OrderBookLevel] = Field(default_factory=list, description="Best first")
    asks: List[OrderBookLevel] = Field(default_factory=list, description="Best first")

    @property
    def best_bid(self) -> Optional[float]:
        return self.bids[0].price if self.bids else None

    @property
    def best_ask(self) -> Optional[float]:
        return self.asks[0].price if self.asks else None

    @property
    def spread(self) -> Optional[float]:
        if self.best_bid is None or self.best_ask is None:
            return None
        return self.best_ask - self.best_bid


class Balance(BaseModel):
    """Available balance of one coin"""
    coin: str = Field(...)
    available: float = Field(..., description="Withdrawable amount")
    wallet_balance: Optional[float] = Field(None)


class PlacedOrder(BaseModel):
    """Order creation acknowledgement"""
    order_id: str = Field(...)
    symbol: str = Field(...)
    side: str = Field(...)
    order_type: str = Field(...)
    quantity: float = Field(...)
    price: float = Field(...)
    created_time: int = Field(..., description="epoch ms")


class OrderSnapshot(BaseModel):
    """Order status as reported by the exchange"""
    order_id: str = Field(...)
    symbol: str = Field(...)
    status: str = Field(..., description="Exchange status, e.g. New, Filled, Cancelled")
    quantity: Optional[float] = Field(None)
    filled_quantity: Optional[float] = Field(None)
    price: Optional[float] = Field(None)
    updated_time: Optional[int] = Field(None)


class TickerVolume(BaseModel):
    """24h quote volume of one instrument"""
    symbol: str = Field(..., description="Exchange symbol (e.g., BTCUSDT)")
    quote_volume: float = Field(..., description="24h turnover in quote currency")
    last_price: Optional[float] = Field(None)
