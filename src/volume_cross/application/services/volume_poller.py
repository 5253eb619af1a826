"""
Volume Poller
=============
Built-in tick source: one ticker snapshot from the exchange gateway per
run, mapped to signal symbols and handed to the pipeline.
"""

from typing import List, Optional

from ...core import time_manager
from ...core.logger import StructuredLogger, get_logger
from ...domain.interfaces.exchange import IExchangeGateway
from ...domain.models.market import VolumeTick
from ...domain.models.signals import CrossEvent
from ..orchestrators.cross_pipeline import CrossSignalPipeline


class VolumePoller:
    def __init__(
        self,
        gateway: IExchangeGateway,
        pipeline: CrossSignalPipeline,
        quote_coin: str = "USDT",
        symbols: Optional[List[str]] = None,
        clock: time_manager.Clock = time_manager.now_ms,
        logger: Optional[StructuredLogger] = None,
    ):
        self.gateway = gateway
        self.pipeline = pipeline
        self.quote_coin = quote_coin
        self.symbols = {s.upper() for s in symbols} if symbols else None
        self._clock = clock
        self.logger = logger or get_logger(__name__)

    def to_signal_symbol(self, exchange_symbol: str) -> Optional[str]:
        """BTCUSDT -> BTC; None for other quote coins"""
        if not exchange_symbol.endswith(self.quote_coin) or exchange_symbol == self.quote_coin:
            return None
        return exchange_symbol[:-len(self.quote_coin)]

    async def poll_once(self) -> List[CrossEvent]:
        now = self._clock()
        volumes = await self.gateway.get_quote_volumes()

        ticks = []
        for ticker in volumes:
            symbol = self.to_signal_symbol(ticker.symbol)
            if symbol is None or (self.symbols is not None and symbol not in self.symbols):
                continue
            ticks.append(VolumeTick(
                exchange=self.gateway.exchange_name,
                symbol=symbol,
                quote_volume=ticker.quote_volume,
                timestamp=now,
            ))

        events = await self.pipeline.process_snapshot(ticks, now)
        self.logger.info("volume_poller.poll_completed", {
            "exchange": self.gateway.exchange_name,
            "tickers": len(volumes),
            "tracked": len(ticks),
            "crosses": len(events)
        })
        return events
