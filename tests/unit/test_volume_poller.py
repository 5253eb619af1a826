"""
Tests for VolumePoller
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from volume_cross.application.orchestrators.cross_pipeline import CrossSignalPipeline
from volume_cross.application.services.volume_poller import VolumePoller
from volume_cross.domain.models.exchange import TickerVolume

pytestmark = [pytest.mark.unit, pytest.mark.fast]

T0 = 1_700_000_000_000


@pytest.fixture
def mock_pipeline():
    pipeline = MagicMock(spec=CrossSignalPipeline)
    pipeline.process_snapshot = AsyncMock(return_value=[])
    return pipeline


@pytest.fixture
def tickers(mock_gateway):
    mock_gateway.get_quote_volumes = AsyncMock(return_value=[
        TickerVolume(symbol="BTCUSDT", quote_volume=1_000_000.0),
        TickerVolume(symbol="ETHUSDT", quote_volume=500_000.0),
        TickerVolume(symbol="ETHBTC", quote_volume=10.0),
    ])
    return mock_gateway


class TestVolumePoller:

    @pytest.mark.parametrize("exchange_symbol,expected", [
        ("BTCUSDT", "BTC"),
        ("1000PEPEUSDT", "1000PEPE"),
        ("ETHBTC", None),
        ("USDT", None),
    ])
    def test_to_signal_symbol(self, mock_gateway, mock_pipeline, mock_logger, exchange_symbol, expected):
        poller = VolumePoller(mock_gateway, mock_pipeline, logger=mock_logger)

        assert poller.to_signal_symbol(exchange_symbol) == expected

    @pytest.mark.asyncio
    async def test_poll_once_feeds_quote_coin_tickers(self, tickers, mock_pipeline, mock_logger, clock):
        poller = VolumePoller(tickers, mock_pipeline, clock=clock, logger=mock_logger)

        await poller.poll_once()

        ticks, now = mock_pipeline.process_snapshot.await_args.args
        assert now == T0
        assert [(t.exchange, t.symbol, t.quote_volume, t.timestamp) for t in ticks] == [
            ("bybit", "BTC", 1_000_000.0, T0),
            ("bybit", "ETH", 500_000.0, T0),
        ]

    @pytest.mark.asyncio
    async def test_symbol_filter(self, tickers, mock_pipeline, mock_logger, clock):
        poller = VolumePoller(tickers, mock_pipeline, symbols=["eth"], clock=clock, logger=mock_logger)

        await poller.poll_once()

        ticks = mock_pipeline.process_snapshot.await_args.args[0]
        assert [t.symbol for t in ticks] == ["ETH"]

    @pytest.mark.asyncio
    async def test_gateway_error_propagates_to_scheduler(self, mock_gateway, mock_pipeline, mock_logger):
        mock_gateway.get_quote_volumes = AsyncMock(side_effect=RuntimeError("down"))
        poller = VolumePoller(mock_gateway, mock_pipeline, logger=mock_logger)

        with pytest.raises(RuntimeError):
            await poller.poll_once()

        mock_pipeline.process_snapshot.assert_not_called()
