"""
Tests for RecommendationEngine
==============================
Golden cross -> priced, sized, time-boxed LIMIT LONG recommendation.
"""

import pytest
from unittest.mock import AsyncMock

from volume_cross.core.exceptions import InsufficientBalanceError, NetworkError, ValidationError
from volume_cross.domain.models.exchange import Balance, OrderBook
from volume_cross.domain.models.signals import CrossType
from volume_cross.domain.models.trading import PositionSide, RecommendationStatus
from volume_cross.domain.services.recommendation_engine import (
    RecommendationConfig,
    RecommendationEngine,
    to_order_symbol,
)

pytestmark = [pytest.mark.unit, pytest.mark.fast]

T0 = 1_700_000_000_000


@pytest.fixture
def engine(mock_gateway, mock_logger, clock):
    return RecommendationEngine(mock_gateway, RecommendationConfig(), clock=clock, logger=mock_logger)


class TestSymbolMapping:

    @pytest.mark.parametrize("symbol,expected", [
        ("BTC", "BTCUSDT"),
        ("ALPACA", "ALPACAUSDT"),
        ("pepe", "PEPEUSDT"),
    ])
    def test_to_order_symbol(self, symbol, expected):
        assert to_order_symbol(symbol) == expected

    def test_quote_coin_is_configurable(self):
        assert to_order_symbol("ARB", "USDC") == "ARBUSDC"


class TestGenerate:

    @pytest.mark.asyncio
    async def test_reference_recommendation(self, engine, golden_event, mock_gateway):
        rec = await engine.generate(golden_event, now=T0)

        assert rec.symbol == "BTCUSDT"
        assert rec.side == PositionSide.LONG
        assert rec.status == RecommendationStatus.PENDING
        assert rec.price_options.conservative == 98.0
        assert rec.price_options.moderate == 99.95
        assert rec.price_options.aggressive == 100.01
        assert rec.default_price == 99.95
        assert rec.estimated_cost == pytest.approx(10.0)
        assert rec.quantity == 0.1
        assert rec.confidence == 91
        assert rec.created_at == T0
        assert rec.expires_at == T0 + 600_000
        assert rec.trigger_event == golden_event
        assert rec.current_price == 100.0
        assert rec.spread == pytest.approx(0.1)
        mock_gateway.get_current_price.assert_awaited_once_with("BTCUSDT")
        mock_gateway.get_order_book.assert_awaited_once_with("BTCUSDT")

    @pytest.mark.asyncio
    async def test_ids_are_unique(self, engine, golden_event):
        first = await engine.generate(golden_event, now=T0)
        second = await engine.generate(golden_event, now=T0)

        assert first.id != second.id
        assert first.id.startswith(f"rec_{T0}_")

    @pytest.mark.asyncio
    async def test_uses_clock_when_no_time_given(self, engine, golden_event, clock):
        clock.advance(5000)

        rec = await engine.generate(golden_event)

        assert rec.created_at == T0 + 5000

    @pytest.mark.asyncio
    async def test_insufficient_balance_raises(self, engine, golden_event, mock_gateway, mock_logger):
        mock_gateway.get_balance = AsyncMock(return_value=Balance(coin="USDT", available=999.0))

        with pytest.raises(InsufficientBalanceError) as exc_info:
            await engine.generate(golden_event, now=T0)

        assert exc_info.value.required == 10.0
        assert exc_info.value.available == pytest.approx(9.99)
        mock_logger.warning.assert_called_once()

    @pytest.mark.asyncio
    async def test_empty_bid_side_uses_discounted_price(self, engine, golden_event, mock_gateway):
        mock_gateway.get_order_book = AsyncMock(return_value=OrderBook(symbol="BTCUSDT", bids=[], asks=[]))

        rec = await engine.generate(golden_event, now=T0)

        assert rec.price_options.moderate == 99.95
        assert rec.spread is None

    @pytest.mark.asyncio
    async def test_death_cross_is_rejected(self, engine, cross_event_factory, mock_gateway):
        event = cross_event_factory(cross_type=CrossType.DEATH, fast=95.0, slow=98.0, prev_fast=99.0)

        with pytest.raises(ValidationError):
            await engine.generate(event, now=T0)

        mock_gateway.get_current_price.assert_not_called()

    @pytest.mark.asyncio
    async def test_gateway_errors_propagate(self, engine, golden_event, mock_gateway):
        mock_gateway.get_current_price = AsyncMock(side_effect=NetworkError("timeout"))

        with pytest.raises(NetworkError):
            await engine.generate(golden_event, now=T0)

    @pytest.mark.asyncio
    async def test_position_size_percent_scales_quantity(self, mock_gateway, mock_logger, golden_event):
        engine = RecommendationEngine(
            mock_gateway, RecommendationConfig(position_size_percent=5.0), logger=mock_logger
        )

        rec = await engine.generate(golden_event, now=T0)

        assert rec.estimated_cost == pytest.approx(50.0)
        assert rec.quantity == 0.5
