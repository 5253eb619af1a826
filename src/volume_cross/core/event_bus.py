"""
Event Bus - Typed Topic Pub/Sub
===============================
Central asynchronous event bus connecting detection and execution to
whatever wants to hear about it (dashboards, alerting, audit).

Delivery Guarantee: AT_MOST_ONCE, FIFO per topic (subscription order)
Error Isolation: a failing subscriber is logged and skipped
Durability: none, nothing survives a process restart
"""

import asyncio
from typing import Callable, Any, Dict, List, Optional

from .logger import StructuredLogger, get_logger


# Event Topics - payloads are the dict form of the named model
TOPICS = {
    "cross_detected": {
        "description": "Golden or death cross on a volume MA pair",
        "data_structure": {
            "symbol": "str",
            "exchange": "str",
            "type": "str (golden/death)",
            "timestamp": "int (epoch ms)",
            "fast_value": "float",
            "slow_value": "float",
            "prev_fast_value": "float",
            "prev_slow_value": "float"
        }
    },
    "recommendation_created": {
        "description": "Priced, time-boxed LIMIT LONG recommendation issued",
        "data_structure": {
            "id": "str",
            "symbol": "str",
            "default_price": "float",
            "quantity": "float",
            "confidence": "int",
            "expires_at": "int (epoch ms)"
        }
    },
    "order_placed": {
        "description": "Limit order accepted by the exchange",
        "data_structure": {
            "success": "bool (True)",
            "order_id": "str",
            "symbol": "str",
            "quantity": "float",
            "limit_price": "float",
            "recommendation_id": "str"
        }
    },
    "order_error": {
        "description": "Order placement failed at the exchange",
        "data_structure": {
            "success": "bool (False)",
            "error": "str",
            "symbol": "str",
            "recommendation_id": "str"
        }
    },
    "order_cancelled": {
        "description": "Active order cancelled by the user",
        "data_structure": {
            "order_id": "str",
            "symbol": "str",
            "timestamp": "int (epoch ms)"
        }
    },
}


class EventBus:
    """
    Minimal async EventBus.

    - subscribe/publish/unsubscribe per topic
    - handlers run one after another in subscription order
    - a raising handler is logged; delivery continues with the next one
    """

    def __init__(self, logger: Optional[StructuredLogger] = None, strict_topics: bool = True):
        self._subscribers: Dict[str, List[Callable]] = {}
        self._shutdown_requested = False
        self._strict_topics = strict_topics
        self._lock = asyncio.Lock()
        self.logger = logger or get_logger(__name__)

    def _check_topic(self, topic: str) -> None:
        if not topic or not isinstance(topic, str):
            raise ValueError("Topic must be a non-empty string")
        if self._strict_topics and topic not in TOPICS:
            raise ValueError(f"Unknown topic '{topic}'")

    async def subscribe(self, topic: str, handler: Callable[[Dict[str, Any]], Any]) -> None:
        """
        Subscribe to topic with a sync or async handler.

        Raises:
            ValueError: If topic or handler is invalid
        """
        self._check_topic(topic)
        if not callable(handler):
            raise ValueError("Handler must be callable")

        async with self._lock:
            if topic not in self._subscribers:
                self._subscribers[topic] = []
            self._subscribers[topic].append(handler)
            subscriber_count = len(self._subscribers[topic])

        self.logger.debug("event_bus.subscribed", {"topic": topic, "subscribers": subscriber_count})

    async def publish(self, topic: str, data: Dict[str, Any]) -> int:
        """
        Deliver event to every subscriber of the topic.

        Returns:
            Number of handlers that completed without raising
        """
        self._check_topic(topic)
        if not isinstance(data, dict):
            raise ValueError("Data must be a dictionary")

        if self._shutdown_requested:
            self.logger.warning("event_bus.publish_after_shutdown", {"topic": topic})
            return 0

        # Snapshot so handlers may (un)subscribe while we deliver
        async with self._lock:
            subscribers = list(self._subscribers.get(topic, ()))

        delivered = 0
        for subscriber in subscribers:
            try:
                result = subscriber(data)
                if asyncio.iscoroutine(result):
                    await result
                delivered += 1
            except Exception as e:
                self.logger.error("event_bus.delivery_failed", {
                    "topic": topic,
                    "handler": getattr(subscriber, "__qualname__", repr(subscriber)),
                    "error": str(e),
                    "error_type": type(e).__name__
                })
        return delivered

    async def unsubscribe(self, topic: str, handler: Callable) -> None:
        """Unsubscribe handler from topic, dropping the topic when it empties."""
        async with self._lock:
            if topic in self._subscribers and handler in self._subscribers[topic]:
                self._subscribers[topic].remove(handler)
                if not self._subscribers[topic]:
                    del self._subscribers[topic]

    async def subscriber_count(self, topic: str) -> int:
        async with self._lock:
            return len(self._subscribers.get(topic, ()))

    async def shutdown(self) -> None:
        """Drop all subscriptions and refuse further publishes."""
        self._shutdown_requested = True
        async with self._lock:
            subscriber_count = sum(len(subs) for subs in self._subscribers.values())
            self._subscribers.clear()

        self.logger.info("event_bus.shutdown", {"cleared_subscribers": subscriber_count})
