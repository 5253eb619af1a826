"""
Cross Signal Pipeline
=====================
Wires ticks -> VolumeHistoryStore -> CrossDetector -> {NotificationLedger,
RecommendationEngine} -> OrderExecutor. Designed to be created by the Container.
"""

import asyncio
from typing import Iterable, List, Optional

from ...core import time_manager
from ...core.event_bus import EventBus
from ...core.exceptions import VolumeCrossError
from ...core.logger import StructuredLogger, get_logger
from ...domain.models.market import VolumeTick
from ...domain.models.signals import CrossEvent
from ...domain.models.trading import PriceTier, Recommendation
from ...domain.services.cross_detector import CrossDetector
from ...domain.services.notification_ledger import NotificationLedger
from ...domain.services.order_executor import OrderExecutor
from ...domain.services.recommendation_engine import RecommendationEngine
from ...domain.services.recommendation_store import RecommendationStore
from ...domain.services.volume_history_store import VolumeHistoryStore


class CrossSignalPipeline:
    """
    Every cross goes to the ledger and the cross_detected topic. Golden
    crosses also produce a recommendation which is parked as pending, or
    executed at the conservative price when auto trading is enabled.
    """

    def __init__(
        self,
        store: VolumeHistoryStore,
        detector: CrossDetector,
        ledger: NotificationLedger,
        engine: RecommendationEngine,
        recommendations: RecommendationStore,
        executor: OrderExecutor,
        event_bus: EventBus,
        auto_trade_enabled: bool = False,
        clock: time_manager.Clock = time_manager.now_ms,
        logger: Optional[StructuredLogger] = None,
    ):
        self.store = store
        self.detector = detector
        self.ledger = ledger
        self.engine = engine
        self.recommendations = recommendations
        self.executor = executor
        self.event_bus = event_bus
        self.auto_trade_enabled = auto_trade_enabled
        self._clock = clock
        self.logger = logger or get_logger(__name__)

    async def process_tick(self, exchange: str, symbol: str, quote_volume: float,
                           now: Optional[int] = None) -> List[CrossEvent]:
        """Record one reading and evaluate the detector if it was stored"""
        now = time_manager.resolve(now, self._clock)
        if not self.store.record(exchange, symbol, quote_volume, now):
            return []

        point = self.store.latest_point(exchange, symbol)
        events = self.detector.observe_point(exchange, symbol, point)
        for event in events:
            await self.handle_cross(event, now)
        return events

    async def process_snapshot(self, ticks: Iterable[VolumeTick], now: Optional[int] = None) -> List[CrossEvent]:
        """
        Process many symbols concurrently. A failing symbol is logged and
        does not affect the others.
        """
        now = time_manager.resolve(now, self._clock)
        ticks = list(ticks)
        results = await asyncio.gather(
            *(self.process_tick(t.exchange, t.symbol, t.quote_volume,
                                t.timestamp if t.timestamp is not None else now)
              for t in ticks),
            return_exceptions=True
        )

        events: List[CrossEvent] = []
        for tick, result in zip(ticks, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                self.logger.error("cross_pipeline.tick_failed", {
                    "exchange": tick.exchange,
                    "symbol": tick.symbol,
                    "error": str(result),
                    "error_type": type(result).__name__
                })
                continue
            events.extend(result)

        self.logger.debug("cross_pipeline.snapshot_processed", {"ticks": len(ticks), "crosses": len(events)})
        return events

    async def handle_cross(self, event: CrossEvent, now: Optional[int] = None) -> Optional[Recommendation]:
        now = time_manager.resolve(now, self._clock)
        self.ledger.add(event, now)
        await self.event_bus.publish("cross_detected", event.to_event_data())

        if not event.is_golden:
            return None
        return await self._recommend(event, now)

    async def _recommend(self, event: CrossEvent, now: int) -> Optional[Recommendation]:
        try:
            recommendation = await self.engine.generate(event, now)
        except VolumeCrossError as e:
            self.logger.warning("cross_pipeline.recommendation_skipped", {
                "exchange": event.exchange,
                "symbol": event.symbol,
                "error": str(e),
                "error_type": type(e).__name__
            })
            return None

        self.recommendations.add(recommendation)
        await self.event_bus.publish("recommendation_created", recommendation.to_event_data())

        if self.auto_trade_enabled:
            await self._auto_execute(recommendation, now)
        return recommendation

    async def _auto_execute(self, recommendation: Recommendation, now: int) -> None:
        price = recommendation.price_options.for_tier(PriceTier.CONSERVATIVE)
        try:
            result = await self.executor.execute(recommendation, price, now=now)
        except VolumeCrossError as e:
            self.logger.warning("cross_pipeline.auto_trade_rejected", {
                "recommendation_id": recommendation.id,
                "symbol": recommendation.symbol,
                "error": str(e),
                "error_type": type(e).__name__
            })
            return

        self.logger.info("cross_pipeline.auto_trade_executed", {
            "recommendation_id": recommendation.id,
            "success": result.success,
            "order_id": result.order_id,
            "limit_price": price
        })
