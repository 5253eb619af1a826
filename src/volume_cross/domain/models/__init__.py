"""
Domain Models - Core Business Entities
======================================
Pure data models representing business concepts.
"""

from .market import VolumeSample, MovingAveragePoint, VolumeTick
from .signals import CrossType, CrossEvent
from .trading import (
    PositionSide, OrderSide, OrderType, PriceTier, RecommendationStatus,
    PriceOptions, ExecutionProbability, Recommendation, ActiveOrder, ExecutionResult
)
from .exchange import OrderBookLevel, OrderBook, Balance, PlacedOrder, OrderSnapshot, TickerVolume
from .notifications import NotificationType, Notification, NotificationStats

__all__ = [
    # Market data
    'VolumeSample', 'MovingAveragePoint', 'VolumeTick',
    # Signals
    'CrossType', 'CrossEvent',
    # Trading
    'PositionSide', 'OrderSide', 'OrderType', 'PriceTier', 'RecommendationStatus',
    'PriceOptions', 'ExecutionProbability', 'Recommendation', 'ActiveOrder', 'ExecutionResult',
    # Exchange
    'OrderBookLevel', 'OrderBook', 'Balance', 'PlacedOrder', 'OrderSnapshot', 'TickerVolume',
    # Notifications
    'NotificationType', 'Notification', 'NotificationStats',
]
