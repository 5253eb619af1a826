"""
Volume History Store - Rolling quote-volume samples
===================================================
Per-(exchange, symbol) time series of quote volume with simple moving
averages on top. Thread-safe; the poller and HTTP handlers may share it.
"""

import math
import threading
from typing import Dict, List, Optional, Tuple

from ..models.market import VolumeSample, MovingAveragePoint
from ...core import time_manager
from ...core.logger import StructuredLogger, get_logger

DEFAULT_MIN_SAMPLE_GAP_MS = 270 * time_manager.SECOND_MS   # 4.5 minutes
DEFAULT_RETENTION_MS = 24 * time_manager.HOUR_MS

SeriesKey = Tuple[str, str]


class VolumeHistoryConfig:
    """Sampling and moving-average configuration"""

    def __init__(
        self,
        min_sample_gap_ms: int = DEFAULT_MIN_SAMPLE_GAP_MS,
        retention_ms: int = DEFAULT_RETENTION_MS,
        max_points: Optional[int] = None,
        fast_window: int = 3,
        slow_window: int = 8
    ):
        self.min_sample_gap_ms = min_sample_gap_ms
        self.retention_ms = retention_ms
        self.max_points = max_points
        self.fast_window = fast_window
        self.slow_window = slow_window

    @classmethod
    def from_settings(cls, settings) -> "VolumeHistoryConfig":
        """Build from VolumeHistorySettings"""
        return cls(
            min_sample_gap_ms=int(settings.min_sample_gap_seconds * time_manager.SECOND_MS),
            retention_ms=int(settings.retention_hours * time_manager.HOUR_MS),
            max_points=settings.max_points,
            fast_window=settings.fast_window,
            slow_window=settings.slow_window,
        )


def _mean_of_last(values: List[float], window: int) -> Optional[float]:
    if window < 1:
        raise ValueError(f"window must be >= 1, got {window}")
    if len(values) < window:
        return None
    return sum(values[-window:]) / window


class VolumeHistoryStore:
    """
    Append-only quote-volume history per (exchange, symbol).

    - a sample is stored only if there is no prior sample or the minimum
      gap has elapsed since the last one; otherwise the call changes nothing
    - every append prunes samples older than the retention horizon
    - moving averages use the last N stored samples, never fewer
    """

    def __init__(
        self,
        config: Optional[VolumeHistoryConfig] = None,
        clock: time_manager.Clock = time_manager.now_ms,
        logger: Optional[StructuredLogger] = None
    ):
        self.config = config or VolumeHistoryConfig()
        self._clock = clock
        self._series: Dict[SeriesKey, List[VolumeSample]] = {}
        self._lock = threading.RLock()
        self.logger = logger or get_logger(__name__)

    # ========================================================================
    # WRITES
    # ========================================================================

    def record(self, exchange: str, symbol: str, quote_volume: float, now: Optional[int] = None) -> bool:
        """
        Offer a sample to the store.

        Returns:
            True if the sample was appended, False if the call was a no-op
        """
        timestamp = time_manager.resolve(now, self._clock)
        try:
            volume = float(quote_volume)
        except (TypeError, ValueError):
            volume = math.nan
        if not math.isfinite(volume):
            self.logger.debug("volume_history.invalid_sample", {
                "exchange": exchange, "symbol": symbol, "quote_volume": repr(quote_volume)
            })
            return False

        key = (exchange, symbol)
        with self._lock:
            samples = self._series.get(key)
            if samples:
                elapsed = timestamp - samples[-1].timestamp
                if elapsed < self.config.min_sample_gap_ms:
                    # Covers both out-of-order (negative) and too-frequent calls
                    return False
            else:
                samples = self._series.setdefault(key, [])

            samples.append(VolumeSample(timestamp=timestamp, quote_volume=volume))
            self._prune(samples, timestamp)
            return True

    def _prune(self, samples: List[VolumeSample], now: int) -> None:
        cutoff = now - self.config.retention_ms
        drop = 0
        while drop < len(samples) and samples[drop].timestamp < cutoff:
            drop += 1
        if self.config.max_points is not None:
            drop = max(drop, len(samples) - self.config.max_points)
        if drop:
            del samples[:drop]

    def clear(self, exchange: Optional[str] = None, symbol: Optional[str] = None) -> int:
        """Drop history for matching keys (all keys by default). Returns keys removed."""
        with self._lock:
            doomed = [
                key for key in self._series
                if (exchange is None or key[0] == exchange) and (symbol is None or key[1] == symbol)
            ]
            for key in doomed:
                del self._series[key]
            return len(doomed)

    # ========================================================================
    # READS
    # ========================================================================

    def history(self, exchange: str, symbol: str) -> List[VolumeSample]:
        """Currently retained samples, oldest first (a copy)"""
        with self._lock:
            return list(self._series.get((exchange, symbol), ()))

    def moving_average(self, exchange: str, symbol: str, window: int) -> Optional[float]:
        with self._lock:
            values = [s.quote_volume for s in self._series.get((exchange, symbol), ())]
        return _mean_of_last(values, window)

    def moving_average_series(
        self,
        exchange: str,
        symbol: str,
        fast_window: Optional[int] = None,
        slow_window: Optional[int] = None
    ) -> List[MovingAveragePoint]:
        """Every retained sample with the fast/slow MA ending at it"""
        fast_window = fast_window or self.config.fast_window
        slow_window = slow_window or self.config.slow_window
        samples = self.history(exchange, symbol)
        values = [s.quote_volume for s in samples]

        points = []
        for i, sample in enumerate(samples):
            prefix = values[:i + 1]
            points.append(MovingAveragePoint(
                timestamp=sample.timestamp,
                value=sample.quote_volume,
                ma_fast=_mean_of_last(prefix, fast_window),
                ma_slow=_mean_of_last(prefix, slow_window),
            ))
        return points

    def latest_point(
        self,
        exchange: str,
        symbol: str,
        fast_window: Optional[int] = None,
        slow_window: Optional[int] = None
    ) -> Optional[MovingAveragePoint]:
        """MA point for the newest sample, None when the key has no history"""
        fast_window = fast_window or self.config.fast_window
        slow_window = slow_window or self.config.slow_window
        samples = self.history(exchange, symbol)
        if not samples:
            return None
        values = [s.quote_volume for s in samples]
        return MovingAveragePoint(
            timestamp=samples[-1].timestamp,
            value=values[-1],
            ma_fast=_mean_of_last(values, fast_window),
            ma_slow=_mean_of_last(values, slow_window),
        )

    def keys(self) -> List[SeriesKey]:
        with self._lock:
            return list(self._series.keys())

    def sample_count(self, exchange: str, symbol: str) -> int:
        with self._lock:
            return len(self._series.get((exchange, symbol), ()))
