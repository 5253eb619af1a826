"""
Shared pytest fixtures
======================
Mock logger, event bus, exchange gateway and a controllable clock.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from volume_cross.core.event_bus import EventBus
from volume_cross.core.logger import StructuredLogger
from volume_cross.domain.interfaces.exchange import IExchangeGateway
from volume_cross.domain.models.exchange import (
    Balance, OrderBook, OrderBookLevel, OrderSnapshot, PlacedOrder
)
from volume_cross.domain.models.signals import CrossEvent, CrossType
from volume_cross.domain.models.trading import ExecutionProbability, PriceOptions, Recommendation

T0 = 1_700_000_000_000


class FakeClock:
    """Epoch-ms clock that only moves when told to"""

    def __init__(self, start: int = T0):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> int:
        self.now += ms
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def mock_logger():
    """Create mock logger"""
    return MagicMock(spec=StructuredLogger)


@pytest.fixture
def mock_event_bus():
    """Create mock EventBus for testing"""
    bus = MagicMock(spec=EventBus)
    bus.subscribe = AsyncMock()
    bus.unsubscribe = AsyncMock()
    bus.publish = AsyncMock(return_value=1)
    return bus


@pytest.fixture
def mock_gateway():
    """Gateway returning price 100, best bid 99.95 and 1000 USDT available"""
    gateway = MagicMock(spec=IExchangeGateway)
    gateway.exchange_name = "bybit"
    gateway.get_current_price = AsyncMock(return_value=100.0)
    gateway.get_order_book = AsyncMock(return_value=OrderBook(
        symbol="BTCUSDT",
        bids=[OrderBookLevel(price=99.95, size=1.0)],
        asks=[OrderBookLevel(price=100.05, size=1.0)],
    ))
    gateway.get_balance = AsyncMock(return_value=Balance(coin="USDT", available=1000.0))
    gateway.create_limit_order = AsyncMock(return_value=PlacedOrder(
        order_id="order-1",
        symbol="BTCUSDT",
        side="Buy",
        order_type="Limit",
        quantity=0.1,
        price=99.95,
        created_time=T0,
    ))
    gateway.cancel_order = AsyncMock(return_value=True)
    gateway.get_order_status = AsyncMock(return_value=OrderSnapshot(
        order_id="order-1", symbol="BTCUSDT", status="PartiallyFilled"
    ))
    gateway.get_quote_volumes = AsyncMock(return_value=[])
    gateway.close = AsyncMock()
    return gateway


def make_cross_event(
    cross_type: CrossType = CrossType.GOLDEN,
    symbol: str = "BTC",
    exchange: str = "bybit",
    timestamp: int = T0,
    fast: float = 102.0,
    slow: float = 98.0,
    prev_fast: float = 95.0,
    prev_slow: float = 98.0,
) -> CrossEvent:
    return CrossEvent(
        symbol=symbol,
        exchange=exchange,
        type=cross_type,
        timestamp=timestamp,
        fast_value=fast,
        slow_value=slow,
        prev_fast_value=prev_fast,
        prev_slow_value=prev_slow,
    )


@pytest.fixture
def golden_event():
    return make_cross_event()


@pytest.fixture
def cross_event_factory():
    return make_cross_event


@pytest.fixture
def recommendation_factory(golden_event):
    """Pending BTCUSDT recommendation: qty 0.1, default price 99.95, 10 minute TTL"""

    def build(created_at: int = T0, rec_id: str = "rec_test", quantity: float = 0.1) -> Recommendation:
        return Recommendation(
            id=rec_id,
            symbol="BTCUSDT",
            trigger_event=golden_event,
            price_options=PriceOptions(conservative=98.0, moderate=99.95, aggressive=100.01),
            execution_probability=ExecutionProbability(conservative=0.9, moderate=0.8, aggressive=0.95),
            quantity=quantity,
            estimated_cost=10.0,
            default_price=99.95,
            confidence=91,
            created_at=created_at,
            expires_at=created_at + 600_000,
        )

    return build
