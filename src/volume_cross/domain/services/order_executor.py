"""
Order Executor - Recommendation to live limit order
===================================================
Places approved recommendations as GTC limit buys, tracks them in an
active-order table and supports user-initiated cancellation.

Pre-checks (status, expiry, price, balance) raise to the caller.
Failures of the exchange calls themselves come back as an
ExecutionResult with success=False so automated callers never crash on
exchange flakiness.
"""

import threading
from typing import Dict, List, Optional, Set

from ..interfaces.exchange import IExchangeGateway
from ..models.trading import (
    ActiveOrder, ExecutionResult, OrderSide, OrderType, Recommendation, RecommendationStatus
)
from .recommendation_store import RecommendationStore
from ...core import time_manager
from ...core.event_bus import EventBus
from ...core.exceptions import (
    ExpiredError, InsufficientBalanceError, NotFoundError, ValidationError
)
from ...core.logger import StructuredLogger, get_logger

PENDING_RESULT_STATUS = "PENDING"
NEW_ORDER_STATUS = "NEW"


class OrderExecutor:
    """Owns the active-order table; one entry per live exchange order id"""

    def __init__(
        self,
        gateway: IExchangeGateway,
        recommendations: RecommendationStore,
        event_bus: Optional[EventBus] = None,
        clock: time_manager.Clock = time_manager.now_ms,
        logger: Optional[StructuredLogger] = None
    ):
        self.gateway = gateway
        self.recommendations = recommendations
        self.event_bus = event_bus
        self._clock = clock
        self.logger = logger or get_logger(__name__)

        self._active_orders: Dict[str, ActiveOrder] = {}
        self._in_flight: Set[str] = set()
        self._cancelling: Set[str] = set()
        self._lock = threading.Lock()

    # ========================================================================
    # EXECUTION
    # ========================================================================

    async def execute_by_id(self, recommendation_id: str, chosen_price: Optional[float] = None,
                            now: Optional[int] = None) -> ExecutionResult:
        """Look up a pending recommendation and execute it (NotFoundError if unknown)"""
        recommendation = self.recommendations.get(recommendation_id)
        return await self.execute(recommendation, chosen_price, now=now)

    async def execute(self, recommendation: Recommendation, chosen_price: Optional[float] = None,
                      now: Optional[int] = None) -> ExecutionResult:
        """
        Place a limit buy for the recommendation.

        Args:
            recommendation: Pending recommendation
            chosen_price: Limit price, defaults to the recommendation's default price
            now: Evaluation time (epoch ms), defaults to the clock

        Returns:
            ExecutionResult, success=False when the exchange rejected or failed the call

        Raises:
            ValidationError: recommendation not pending, already executing, or bad price/quantity
            ExpiredError: now is past expires_at
            InsufficientBalanceError: balance re-check failed
        """
        now = time_manager.resolve(now, self._clock)
        self._check_executable(recommendation, now)

        final_price = chosen_price if chosen_price is not None else recommendation.default_price
        if final_price <= 0:
            raise ValidationError(f"Limit price must be positive, got {final_price}")
        if recommendation.quantity <= 0:
            raise ValidationError(f"Quantity must be positive, got {recommendation.quantity}")

        with self._lock:
            if recommendation.id in self._in_flight:
                raise ValidationError(f"Recommendation {recommendation.id} is already being executed")
            self._in_flight.add(recommendation.id)

        try:
            return await self._place(recommendation, final_price, now)
        finally:
            with self._lock:
                self._in_flight.discard(recommendation.id)

    def _check_executable(self, recommendation: Recommendation, now: int) -> None:
        if recommendation.status == RecommendationStatus.EXPIRED:
            raise ExpiredError(recommendation.id, recommendation.expires_at, now)
        if recommendation.status != RecommendationStatus.PENDING:
            raise ValidationError(
                f"Recommendation {recommendation.id} is {recommendation.status.value}, not pending"
            )
        if recommendation.is_expired(now):
            recommendation.status = RecommendationStatus.EXPIRED
            self.recommendations.remove(recommendation.id)
            self.logger.warning("order_executor.recommendation_expired", {
                "recommendation_id": recommendation.id,
                "expires_at": recommendation.expires_at,
                "now": now
            })
            raise ExpiredError(recommendation.id, recommendation.expires_at, now)

    async def _place(self, recommendation: Recommendation, final_price: float, now: int) -> ExecutionResult:
        symbol = recommendation.symbol
        required = recommendation.quantity * final_price

        try:
            balance = await self.gateway.get_balance()
        except Exception as e:
            return await self._failed(recommendation, e, now, stage="balance_check")

        if balance.available < required:
            self.logger.warning("order_executor.insufficient_balance", {
                "recommendation_id": recommendation.id,
                "symbol": symbol,
                "available": balance.available,
                "required": required
            })
            raise InsufficientBalanceError(available=balance.available, required=required)

        try:
            placed = await self.gateway.create_limit_order(symbol, recommendation.quantity, final_price)
        except Exception as e:
            return await self._failed(recommendation, e, now, stage="order_create")

        order = ActiveOrder(
            order_id=placed.order_id,
            symbol=symbol,
            side=OrderSide.BUY,
            order_type=OrderType.LIMIT,
            quantity=recommendation.quantity,
            limit_price=final_price,
            status=NEW_ORDER_STATUS,
            recommendation_id=recommendation.id,
            created_at=now,
            last_checked=now,
        )
        with self._lock:
            self._active_orders[order.order_id] = order

        recommendation.status = RecommendationStatus.EXECUTED
        self.recommendations.remove(recommendation.id)

        result = ExecutionResult(
            success=True,
            order_id=order.order_id,
            symbol=symbol,
            side=order.side,
            order_type=order.order_type,
            quantity=order.quantity,
            limit_price=final_price,
            estimated_cost=recommendation.estimated_cost,
            status=PENDING_RESULT_STATUS,
            recommendation_id=recommendation.id,
            timestamp=now,
        )
        self.logger.info("order_executor.order_placed", {
            "order_id": order.order_id,
            "symbol": symbol,
            "quantity": order.quantity,
            "limit_price": final_price,
            "recommendation_id": recommendation.id
        })
        await self._publish("order_placed", result.to_event_data())
        return result

    async def _failed(self, recommendation: Recommendation, error: Exception, now: int,
                      stage: str) -> ExecutionResult:
        self.logger.error("order_executor.execution_failed", {
            "recommendation_id": recommendation.id,
            "symbol": recommendation.symbol,
            "stage": stage,
            "error": str(error),
            "error_type": type(error).__name__
        })
        result = ExecutionResult(
            success=False,
            error=str(error),
            symbol=recommendation.symbol,
            recommendation_id=recommendation.id,
            timestamp=now,
        )
        await self._publish("order_error", result.to_event_data())
        return result

    # ========================================================================
    # CANCELLATION / STATUS
    # ========================================================================

    async def cancel(self, order_id: str, now: Optional[int] = None) -> bool:
        """
        Cancel an active order.

        Returns:
            True once cancelled and removed, False if the exchange call failed
            (the entry stays so the caller may retry)

        Raises:
            NotFoundError: order_id is not in the active table, or another
                cancel for it is already in progress
        """
        with self._lock:
            order = self._active_orders.get(order_id)
            if order is None or order_id in self._cancelling:
                raise NotFoundError("Order", order_id)
            self._cancelling.add(order_id)

        try:
            cancelled = await self._cancel_at_exchange(order)
            if cancelled:
                with self._lock:
                    self._active_orders.pop(order_id, None)
        finally:
            with self._lock:
                self._cancelling.discard(order_id)

        if not cancelled:
            return False

        self.logger.info("order_executor.order_cancelled", {"order_id": order_id, "symbol": order.symbol})
        await self._publish("order_cancelled", {
            "order_id": order_id,
            "symbol": order.symbol,
            "timestamp": time_manager.resolve(now, self._clock)
        })
        return True

    async def _cancel_at_exchange(self, order: ActiveOrder) -> bool:
        try:
            cancelled = await self.gateway.cancel_order(order.symbol, order.order_id)
        except Exception as e:
            self.logger.error("order_executor.cancel_failed", {
                "order_id": order.order_id,
                "symbol": order.symbol,
                "error": str(e),
                "error_type": type(e).__name__
            })
            return False

        if not cancelled:
            self.logger.warning("order_executor.cancel_rejected", {
                "order_id": order.order_id,
                "symbol": order.symbol
            })
            return False
        return True

    async def refresh_status(self, order_id: str, now: Optional[int] = None) -> ActiveOrder:
        """
        Ask the exchange for the order's status and record it.

        The entry is never removed here, whatever the exchange reports.
        """
        order = self._get_active(order_id)
        snapshot = await self.gateway.get_order_status(order.symbol, order_id)
        checked_at = time_manager.resolve(now, self._clock)

        with self._lock:
            current = self._active_orders.get(order_id)
            if current is None:
                raise NotFoundError("Order", order_id)
            current.status = snapshot.status
            current.last_checked = checked_at
            return current.model_copy()

    def _get_active(self, order_id: str) -> ActiveOrder:
        with self._lock:
            order = self._active_orders.get(order_id)
        if order is None:
            raise NotFoundError("Order", order_id)
        return order

    # ========================================================================
    # QUERIES
    # ========================================================================

    def list_active(self) -> List[ActiveOrder]:
        with self._lock:
            return [o.model_copy() for o in self._active_orders.values()]

    def list_active_by_symbol(self, symbol: str) -> List[ActiveOrder]:
        with self._lock:
            return [o.model_copy() for o in self._active_orders.values() if o.symbol == symbol]

    async def _publish(self, topic: str, data: dict) -> None:
        if self.event_bus is not None:
            await self.event_bus.publish(topic, data)
