"""
API Dependencies
================
FastAPI dependency accessors. Services live on the Container stored in
app.state by create_app(); routes never construct services themselves.
"""

from fastapi import HTTPException, Request

from ..domain.services.notification_ledger import NotificationLedger
from ..domain.services.order_executor import OrderExecutor
from ..domain.services.recommendation_store import RecommendationStore
from ..infrastructure.container import Container


def get_container(request: Request) -> Container:
    container = getattr(request.app.state, "container", None)
    if container is None:
        raise HTTPException(status_code=503, detail="Service container not initialized")
    return container


def get_order_executor(request: Request) -> OrderExecutor:
    return get_container(request).order_executor


def get_recommendation_store(request: Request) -> RecommendationStore:
    return get_container(request).recommendation_store


def get_notification_ledger(request: Request) -> NotificationLedger:
    return get_container(request).notification_ledger
