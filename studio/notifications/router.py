from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from studio.database import get_db
from studio.auth.models import User
from studio.auth.dependencies import get_current_active_user
from studio.notifications.schemas import MarkReadRequest, MarkReadResponse, NotificationInbox
from studio.notifications.service import MAX_INBOX_LIMIT, NotificationService

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=NotificationInbox)
async def list_notifications(
    limit: int = Query(20, ge=1, le=MAX_INBOX_LIMIT),
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    service = NotificationService(db)
    notifications, unread = await service.list_notifications(current_user.id, limit)
    return {"notifications": notifications, "unread": unread}


@router.post("/read", response_model=MarkReadResponse)
async def mark_read(
    request: MarkReadRequest,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    service = NotificationService(db)
    updated = await service.mark_read(current_user.id, request.ids)
    return {"updated": updated}
