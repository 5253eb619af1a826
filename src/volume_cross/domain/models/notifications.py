"""
Notification Models - Poll-based cross notifications
====================================================
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from enum import Enum

from .signals import CAMEL_CASE_CONFIG, CrossEvent, CrossType


class NotificationType(str, Enum):
    """Notification kinds delivered to polling clients"""
    GOLDEN_CROSS = "golden_cross"
    DEATH_CROSS = "death_cross"

    @classmethod
    def from_cross(cls, cross_type: CrossType) -> "NotificationType":
        return cls.GOLDEN_CROSS if cross_type == CrossType.GOLDEN else cls.DEATH_CROSS


class Notification(BaseModel):
    """Ledger entry for one cross event"""

    model_config = CAMEL_CASE_CONFIG

    id: str = Field(..., description="exchange-symbol-timestamp")
    type: NotificationType = Field(...)
    symbol: str = Field(...)
    exchange: str = Field(...)
    timestamp: int = Field(..., description="Cross time (epoch ms)")

    ma_fast: float = Field(..., description="Fast MA at the crossing point")
    ma_slow: float = Field(..., description="Slow MA at the crossing point")
    prev_ma_fast: Optional[float] = Field(None)
    prev_ma_slow: Optional[float] = Field(None)

    message: str = Field(..., description="Human readable summary")
    notified: bool = Field(default=False, description="Delivered to a polling client")
    created_at: int = Field(..., description="Ledger insertion time (epoch ms)")

    @staticmethod
    def make_id(exchange: str, symbol: str, timestamp: int) -> str:
        return f"{exchange}-{symbol}-{timestamp}"

    @classmethod
    def from_cross_event(cls, event: CrossEvent, created_at: int) -> "Notification":
        return cls(
            id=cls.make_id(event.exchange, event.symbol, event.timestamp),
            type=NotificationType.from_cross(event.type),
            symbol=event.symbol,
            exchange=event.exchange,
            timestamp=event.timestamp,
            ma_fast=event.fast_value,
            ma_slow=event.slow_value,
            prev_ma_fast=event.prev_fast_value,
            prev_ma_slow=event.prev_slow_value,
            message=f"{event.symbol} ({event.exchange.upper()})",
            created_at=created_at,
        )


class NotificationStats(BaseModel):
    """Ledger counters; serialized with camelCase aliases for polling clients"""

    model_config = ConfigDict(populate_by_name=True)

    total: int = 0
    unnotified: int = 0
    notified: int = 0
    golden_crosses: int = Field(0, alias="goldenCrosses")
    death_crosses: int = Field(0, alias="deathCrosses")
