"""
Domain Services - Detection, pricing, execution and notification logic
"""

from .volume_history_store import VolumeHistoryStore, VolumeHistoryConfig
from .cross_detector import CrossDetector, DetectorState
from .recommendation_engine import RecommendationEngine, RecommendationConfig
from .recommendation_store import RecommendationStore
from .order_executor import OrderExecutor
from .notification_ledger import NotificationLedger

__all__ = [
    'VolumeHistoryStore', 'VolumeHistoryConfig',
    'CrossDetector', 'DetectorState',
    'RecommendationEngine', 'RecommendationConfig',
    'RecommendationStore',
    'OrderExecutor',
    'NotificationLedger',
]
