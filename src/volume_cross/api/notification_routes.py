"""
Notification API Routes
=======================
Poll-based delivery of detected crosses.

Endpoints:
- GET /api/notifications/recent-crosses?mark=<bool> - Undelivered crosses
- GET /api/notifications/all - Full ledger with stats
- GET /api/notifications/stats - Ledger counters
- DELETE /api/notifications/clear - Empty the ledger
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Query

from ..core.logger import get_logger
from ..domain.services.notification_ledger import NotificationLedger
from .dependencies import get_notification_ledger

logger = get_logger(__name__)

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("/recent-crosses")
async def get_recent_crosses(
    mark: bool = Query(True, description="Mark returned crosses as notified"),
    ledger: NotificationLedger = Depends(get_notification_ledger)
):
    crosses = ledger.unnotified()
    if mark and crosses:
        ledger.mark_notified([c.id for c in crosses])

    logger.debug("notification_api.recent_crosses", {"count": len(crosses), "marked": mark})
    return {
        "success": True,
        "crosses": [c.model_dump(mode="json", by_alias=True) for c in crosses],
        "count": len(crosses),
        "timestamp": _timestamp()
    }


@router.get("/all")
async def get_all_notifications(ledger: NotificationLedger = Depends(get_notification_ledger)):
    return {
        "success": True,
        "notifications": [n.model_dump(mode="json", by_alias=True) for n in ledger.all()],
        "stats": ledger.stats().model_dump(by_alias=True),
        "timestamp": _timestamp()
    }


@router.get("/stats")
async def get_notification_stats(ledger: NotificationLedger = Depends(get_notification_ledger)):
    return {
        "success": True,
        "stats": ledger.stats().model_dump(by_alias=True),
        "timestamp": _timestamp()
    }


@router.delete("/clear")
async def clear_notifications(ledger: NotificationLedger = Depends(get_notification_ledger)):
    removed = ledger.clear()
    return {
        "success": True,
        "message": "All notifications cleared",
        "removed": removed,
        "timestamp": _timestamp()
    }
