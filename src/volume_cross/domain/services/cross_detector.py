"""
Cross Detector - Pure Business Logic
====================================
Golden/death cross detection on a stream of (fast MA, slow MA) points.
Never raises on bad data; missing or malformed values simply yield no event.
"""

import math
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from ..models.market import MovingAveragePoint
from ..models.signals import CrossEvent, CrossType
from ...core.logger import StructuredLogger, get_logger

DetectorKey = Tuple[str, str]


class DetectorState(str, Enum):
    """Per-key detector state"""
    NO_HISTORY = "no-history"
    HAVE_ONE_POINT = "have-one-point"
    STEADY = "steady"


@dataclass(frozen=True)
class _Observed:
    timestamp: int
    fast: Optional[float]
    slow: Optional[float]


def _as_number(value: Any) -> Optional[float]:
    """float(value) for real numbers, None for anything else (including NaN)"""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number):
        return None
    return number


class CrossDetector:
    """
    Keeps the previous MA point per (exchange, symbol) and compares each
    new point against it:

        golden: prev_fast <= prev_slow and fast > slow
        death:  prev_fast >= prev_slow and fast < slow

    The new point always replaces the previous one, so a transition is
    reported exactly once. Points older than the stored one are ignored.
    """

    def __init__(self, logger: Optional[StructuredLogger] = None):
        self._previous: Dict[DetectorKey, _Observed] = {}
        self._observed_counts: Dict[DetectorKey, int] = {}
        self._lock = threading.Lock()
        self.logger = logger or get_logger(__name__)

    def observe(self, exchange: str, symbol: str, timestamp: int,
                fast: Any, slow: Any) -> List[CrossEvent]:
        """
        Feed one MA pair for a key.

        Returns:
            Cross events triggered by this point (usually empty)
        """
        key = (exchange, symbol)
        point_time = _as_number(timestamp)
        if point_time is None or not math.isfinite(point_time):
            self.logger.warning("cross_detector.invalid_point", {
                "exchange": exchange,
                "symbol": symbol,
                "timestamp": repr(timestamp)
            })
            return []
        current = _Observed(timestamp=int(point_time), fast=_as_number(fast), slow=_as_number(slow))

        with self._lock:
            previous = self._previous.get(key)
            if previous is not None and current.timestamp < previous.timestamp:
                self.logger.debug("cross_detector.stale_point_ignored", {
                    "exchange": exchange,
                    "symbol": symbol,
                    "timestamp": current.timestamp,
                    "previous_timestamp": previous.timestamp
                })
                return []

            self._previous[key] = current
            self._observed_counts[key] = self._observed_counts.get(key, 0) + 1

        if previous is None:
            return []
        if None in (previous.fast, previous.slow, current.fast, current.slow):
            return []

        events = []
        if previous.fast <= previous.slow and current.fast > current.slow:
            events.append(self._build_event(exchange, symbol, CrossType.GOLDEN, previous, current))
        if previous.fast >= previous.slow and current.fast < current.slow:
            events.append(self._build_event(exchange, symbol, CrossType.DEATH, previous, current))

        for event in events:
            self.logger.info("cross_detector.cross_detected", {
                "exchange": exchange,
                "symbol": symbol,
                "type": event.type.value,
                "timestamp": event.timestamp,
                "fast": event.fast_value,
                "slow": event.slow_value
            })
        return events

    def observe_point(self, exchange: str, symbol: str, point: MovingAveragePoint) -> List[CrossEvent]:
        return self.observe(exchange, symbol, point.timestamp, point.ma_fast, point.ma_slow)

    @staticmethod
    def _build_event(exchange: str, symbol: str, cross_type: CrossType,
                     previous: _Observed, current: _Observed) -> CrossEvent:
        return CrossEvent(
            symbol=symbol,
            exchange=exchange,
            type=cross_type,
            timestamp=current.timestamp,
            fast_value=current.fast,
            slow_value=current.slow,
            prev_fast_value=previous.fast,
            prev_slow_value=previous.slow,
        )

    def state(self, exchange: str, symbol: str) -> DetectorState:
        with self._lock:
            count = self._observed_counts.get((exchange, symbol), 0)
        if count == 0:
            return DetectorState.NO_HISTORY
        if count == 1:
            return DetectorState.HAVE_ONE_POINT
        return DetectorState.STEADY

    def clear_history(self, symbol: Optional[str] = None, exchange: Optional[str] = None) -> None:
        """Forget one key when both parts are given, otherwise everything"""
        with self._lock:
            if symbol and exchange:
                self._previous.pop((exchange, symbol), None)
                self._observed_counts.pop((exchange, symbol), None)
            else:
                self._previous.clear()
                self._observed_counts.clear()
        self.logger.info("cross_detector.history_cleared", {"symbol": symbol, "exchange": exchange})

    def monitored_keys(self) -> List[str]:
        with self._lock:
            return [f"{exchange}:{symbol}" for exchange, symbol in self._previous]
