"""
Container - Composition Root
============================
Builds every service exactly once from AppSettings and hands references
to consumers. Nothing else in the package constructs services.
"""

from typing import Any, Callable, Dict, Optional, TypeVar

from ..application.orchestrators.cross_pipeline import CrossSignalPipeline
from ..application.services.scheduler import Scheduler
from ..application.services.volume_poller import VolumePoller
from ..core import time_manager
from ..core.event_bus import EventBus
from ..core.logger import StructuredLogger, get_logger
from ..domain.interfaces.exchange import IExchangeGateway
from ..domain.services.cross_detector import CrossDetector
from ..domain.services.notification_ledger import NotificationLedger
from ..domain.services.order_executor import OrderExecutor
from ..domain.services.recommendation_engine import RecommendationConfig, RecommendationEngine
from ..domain.services.recommendation_store import RecommendationStore
from ..domain.services.volume_history_store import VolumeHistoryConfig, VolumeHistoryStore
from .adapters.bybit_gateway import BybitExchangeGateway
from .config.settings import AppSettings

T = TypeVar('T')


class Container:
    """
    Lazily creates singletons on first access.

    Args:
        settings: Application settings
        gateway: Optional gateway override (tests, other exchanges)
        clock: Epoch-ms clock shared by every time-aware service
    """

    def __init__(
        self,
        settings: AppSettings,
        gateway: Optional[IExchangeGateway] = None,
        clock: time_manager.Clock = time_manager.now_ms,
        logger: Optional[StructuredLogger] = None,
    ):
        self.settings = settings
        self.clock = clock
        self.logger = logger or get_logger(__name__)
        self._singletons: Dict[str, Any] = {}
        if gateway is not None:
            self._singletons['gateway'] = gateway

    def _get_or_create_singleton(self, name: str, factory: Callable[[], T]) -> T:
        if name not in self._singletons:
            self._singletons[name] = factory()
        return self._singletons[name]

    # ========================================================================
    # CORE
    # ========================================================================

    @property
    def event_bus(self) -> EventBus:
        return self._get_or_create_singleton('event_bus', lambda: EventBus(logger=self.logger))

    @property
    def gateway(self) -> IExchangeGateway:
        return self._get_or_create_singleton(
            'gateway', lambda: BybitExchangeGateway(self.settings.exchange, clock=self.clock)
        )

    # ========================================================================
    # DOMAIN
    # ========================================================================

    @property
    def volume_store(self) -> VolumeHistoryStore:
        return self._get_or_create_singleton('volume_store', lambda: VolumeHistoryStore(
            VolumeHistoryConfig.from_settings(self.settings.volume), clock=self.clock
        ))

    @property
    def cross_detector(self) -> CrossDetector:
        return self._get_or_create_singleton('cross_detector', CrossDetector)

    @property
    def notification_ledger(self) -> NotificationLedger:
        notifications = self.settings.notifications
        return self._get_or_create_singleton('notification_ledger', lambda: NotificationLedger(
            retention_ms=notifications.retention_seconds * time_manager.SECOND_MS,
            max_entries=notifications.max_entries,
            clock=self.clock
        ))

    @property
    def recommendation_store(self) -> RecommendationStore:
        return self._get_or_create_singleton('recommendation_store',
                                             lambda: RecommendationStore(clock=self.clock))

    @property
    def recommendation_engine(self) -> RecommendationEngine:
        return self._get_or_create_singleton('recommendation_engine', lambda: RecommendationEngine(
            self.gateway,
            RecommendationConfig.from_settings(self.settings.trading, self.settings.exchange),
            clock=self.clock
        ))

    @property
    def order_executor(self) -> OrderExecutor:
        return self._get_or_create_singleton('order_executor', lambda: OrderExecutor(
            self.gateway, self.recommendation_store, self.event_bus, clock=self.clock
        ))

    # ========================================================================
    # APPLICATION
    # ========================================================================

    @property
    def pipeline(self) -> CrossSignalPipeline:
        return self._get_or_create_singleton('pipeline', lambda: CrossSignalPipeline(
            store=self.volume_store,
            detector=self.cross_detector,
            ledger=self.notification_ledger,
            engine=self.recommendation_engine,
            recommendations=self.recommendation_store,
            executor=self.order_executor,
            event_bus=self.event_bus,
            auto_trade_enabled=self.settings.trading.auto_trade_enabled,
            clock=self.clock
        ))

    @property
    def volume_poller(self) -> VolumePoller:
        return self._get_or_create_singleton('volume_poller', lambda: VolumePoller(
            self.gateway,
            self.pipeline,
            quote_coin=self.settings.exchange.quote_coin,
            symbols=self.settings.volume.symbols,
            clock=self.clock
        ))

    @property
    def scheduler(self) -> Scheduler:
        return self._get_or_create_singleton('scheduler', self._build_scheduler)

    def _build_scheduler(self) -> Scheduler:
        scheduler = Scheduler()
        if self.settings.volume.poll_enabled:
            scheduler.add_job("volume_poll", self.volume_poller.poll_once,
                              self.settings.volume.poll_interval_seconds)
        scheduler.add_job("notification_cleanup", self.notification_ledger.cleanup,
                          self.settings.notifications.cleanup_interval_seconds, run_immediately=False)
        scheduler.add_job("recommendation_sweep", self.recommendation_store.sweep_expired,
                          self.settings.trading.recommendation_sweep_interval_seconds, run_immediately=False)
        return scheduler

    async def shutdown(self) -> None:
        """Stop background jobs and release network resources"""
        scheduler = self._singletons.get('scheduler')
        if scheduler is not None:
            await scheduler.stop()
        gateway = self._singletons.get('gateway')
        if gateway is not None:
            await gateway.close()
        event_bus = self._singletons.get('event_bus')
        if event_bus is not None:
            await event_bus.shutdown()
        self.logger.info("container.shutdown_complete", {})
