"""
Trade API Routes
================
REST endpoints for executing recommendations and managing live orders.

Endpoints:
- POST /api/trade/execute-limit-long - Execute a pending recommendation
- POST /api/trade/cancel-order - Cancel an active order
- GET /api/trade/active-orders[/{symbol}] - Active order table
- GET /api/trade/recommendations - Pending recommendations
- GET /api/trade/orders/{order_id}/status - Refresh an order's status from the exchange

Domain errors are translated to HTTP by the handlers registered in
unified_server.create_app(), except cancel-order, which answers 500 for
an unknown order.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Path
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from ..core.exceptions import NotFoundError
from ..core.logger import get_logger
from ..domain.services.order_executor import OrderExecutor
from ..domain.services.recommendation_store import RecommendationStore
from .dependencies import get_order_executor, get_recommendation_store

logger = get_logger(__name__)

router = APIRouter(prefix="/api/trade", tags=["trade"])


class ExecuteLimitLongRequest(BaseModel):
    """Execute a pending recommendation, optionally at a chosen limit price."""
    model_config = ConfigDict(populate_by_name=True)

    recommendation_id: str = Field(..., alias="recommendationId", min_length=1)
    limit_price: Optional[float] = Field(None, alias="limitPrice")


class CancelOrderRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    order_id: str = Field(..., alias="orderId", min_length=1)


@router.post("/execute-limit-long")
async def execute_limit_long(
    request: ExecuteLimitLongRequest,
    executor: OrderExecutor = Depends(get_order_executor)
):
    logger.info("trade_api.execute_requested", {
        "recommendation_id": request.recommendation_id,
        "limit_price": request.limit_price
    })

    result = await executor.execute_by_id(request.recommendation_id, request.limit_price)
    if not result.success:
        return JSONResponse(status_code=500, content={"success": False, "error": result.error})

    return {"success": True, "data": result.model_dump(mode="json", by_alias=True)}


@router.post("/cancel-order")
async def cancel_order(
    request: CancelOrderRequest,
    executor: OrderExecutor = Depends(get_order_executor)
):
    logger.info("trade_api.cancel_requested", {"order_id": request.order_id})

    try:
        cancelled = await executor.cancel(request.order_id)
    except NotFoundError as e:
        logger.warning("trade_api.cancel_unknown_order", {"order_id": request.order_id})
        return JSONResponse(status_code=500, content={"success": False, "error": str(e)})

    if not cancelled:
        return JSONResponse(status_code=500, content={"success": False, "error": "Failed to cancel order"})

    return {"success": True, "message": "Order cancelled successfully"}


@router.get("/active-orders", response_model=Dict[str, Any])
async def get_active_orders(executor: OrderExecutor = Depends(get_order_executor)):
    return {"success": True, "data": [o.model_dump(mode="json", by_alias=True) for o in executor.list_active()]}


@router.get("/active-orders/{symbol}", response_model=Dict[str, Any])
async def get_active_orders_by_symbol(
    symbol: str = Path(..., description="Exchange symbol, e.g. BTCUSDT"),
    executor: OrderExecutor = Depends(get_order_executor)
):
    orders = executor.list_active_by_symbol(symbol)
    return {"success": True, "data": [o.model_dump(mode="json", by_alias=True) for o in orders]}


@router.get("/recommendations", response_model=Dict[str, Any])
async def get_recommendations(store: RecommendationStore = Depends(get_recommendation_store)):
    return {"success": True, "data": [r.model_dump(mode="json", by_alias=True) for r in store.list()]}


@router.get("/orders/{order_id}/status", response_model=Dict[str, Any])
async def get_order_status(
    order_id: str = Path(..., description="Exchange order ID"),
    executor: OrderExecutor = Depends(get_order_executor)
):
    order = await executor.refresh_status(order_id)
    return {"success": True, "data": order.model_dump(mode="json", by_alias=True)}
