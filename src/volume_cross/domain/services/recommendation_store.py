"""
Recommendation Store - Pending recommendation pool
==================================================
Holds recommendations until they are executed or expire. The expiry
check in OrderExecutor.execute() is authoritative; sweep_expired() only
keeps the pool tidy.
"""

import threading
from typing import Dict, List, Optional

from ..models.trading import Recommendation, RecommendationStatus
from ...core import time_manager
from ...core.exceptions import NotFoundError
from ...core.logger import StructuredLogger, get_logger


class RecommendationStore:
    """Thread-safe in-memory pool keyed by recommendation id"""

    def __init__(self, clock: time_manager.Clock = time_manager.now_ms,
                 logger: Optional[StructuredLogger] = None):
        self._items: Dict[str, Recommendation] = {}
        self._clock = clock
        self._lock = threading.Lock()
        self.logger = logger or get_logger(__name__)

    def add(self, recommendation: Recommendation) -> None:
        with self._lock:
            self._items[recommendation.id] = recommendation
        self.logger.debug("recommendation_store.added", {
            "recommendation_id": recommendation.id,
            "symbol": recommendation.symbol,
            "expires_at": recommendation.expires_at
        })

    def get(self, recommendation_id: str) -> Recommendation:
        """
        Raises:
            NotFoundError: unknown, executed or already swept
        """
        with self._lock:
            recommendation = self._items.get(recommendation_id)
        if recommendation is None:
            raise NotFoundError("Recommendation", recommendation_id)
        return recommendation

    def find(self, recommendation_id: str) -> Optional[Recommendation]:
        with self._lock:
            return self._items.get(recommendation_id)

    def remove(self, recommendation_id: str) -> Optional[Recommendation]:
        with self._lock:
            return self._items.pop(recommendation_id, None)

    def list(self, symbol: Optional[str] = None) -> List[Recommendation]:
        """Pending recommendations, newest first"""
        with self._lock:
            items = list(self._items.values())
        if symbol is not None:
            items = [r for r in items if r.symbol == symbol]
        return sorted(items, key=lambda r: r.created_at, reverse=True)

    def sweep_expired(self, now: Optional[int] = None) -> List[str]:
        """Drop recommendations past expires_at, marking them expired"""
        now = time_manager.resolve(now, self._clock)
        with self._lock:
            expired_ids = [rid for rid, r in self._items.items() if r.is_expired(now)]
            for rid in expired_ids:
                self._items.pop(rid).status = RecommendationStatus.EXPIRED

        if expired_ids:
            self.logger.info("recommendation_store.expired_swept", {
                "count": len(expired_ids),
                "recommendation_ids": expired_ids
            })
        return expired_ids

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
