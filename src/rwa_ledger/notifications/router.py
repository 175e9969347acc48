"""In-app notification inbox API router."""

from fastapi import APIRouter, Depends, Query

from rwa_ledger.common.security import require_caller
from rwa_ledger.notifications.schemas import NotificationResponse, UnreadCount

router = APIRouter()


def _get_service():
    from rwa_ledger.deps import get_inbox_service
    return get_inbox_service()


def _get_db():
    from rwa_ledger.deps import get_db
    return get_db()


@router.get("/notifications", response_model=list[NotificationResponse])
async def list_notifications(
    unread_only: bool = Query(False),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    caller_id: str = Depends(require_caller),
):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        rows = await svc.list_notifications(
            session, caller_id, unread_only=unread_only, limit=limit, offset=offset,
        )
        return [NotificationResponse.model_validate(n) for n in rows]


@router.get("/notifications/unread-count", response_model=UnreadCount)
async def unread_count(caller_id: str = Depends(require_caller)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        return UnreadCount(unread=await svc.unread_count(session, caller_id))


@router.post("/notifications/read-all", response_model=UnreadCount)
async def mark_all_read(caller_id: str = Depends(require_caller)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        await svc.mark_all_read(session, caller_id)
        return UnreadCount(unread=0)


@router.post("/notifications/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(notification_id: str, caller_id: str = Depends(require_caller)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        notification = await svc.mark_read(session, notification_id, caller_id)
        return NotificationResponse.model_validate(notification)
