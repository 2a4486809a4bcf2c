"""
api/routes/notifications.py
---------------------------
Notifications of the signed-in user. A user only ever sees, reads or
deletes their own.
"""

from fastapi import APIRouter, Query, status

from bizdesk.dependencies import DbSession, Tenant
from bizdesk.schemas.common import MessageResponse
from bizdesk.schemas.notification import (
    NotificationCount,
    NotificationCreate,
    NotificationList,
    NotificationRead,
)
from bizdesk.services.notification_service import NotificationService

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", response_model=NotificationList, summary="List my notifications")
async def list_notifications(
    ctx: Tenant,
    db: DbSession,
    unread_only: bool = Query(default=False),
    limit: int = Query(default=50, ge=1, le=200),
    skip: int = Query(default=0, ge=0),
) -> NotificationList:
    total, unread, rows = await NotificationService.list_for_user(
        db, ctx.company_id, ctx.user_id, unread_only=unread_only, limit=limit, skip=skip
    )
    return NotificationList(
        notifications=[NotificationRead.model_validate(n) for n in rows],
        unread_count=unread,
        total=total,
    )


@router.post(
    "",
    response_model=NotificationRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create a notification",
)
async def create_notification(
    body: NotificationCreate, ctx: Tenant, db: DbSession
) -> NotificationRead:
    notification = await NotificationService.create_notification(
        db, ctx.company_id, body, default_user_id=ctx.user_id
    )
    return NotificationRead.model_validate(notification)


@router.put("/read-all", response_model=NotificationCount, summary="Mark all as read")
async def mark_all_read(ctx: Tenant, db: DbSession) -> NotificationCount:
    count = await NotificationService.mark_all_read(db, ctx.company_id, ctx.user_id)
    return NotificationCount(message="All notifications marked as read", count=count)


@router.put("/{notification_id}/read", response_model=NotificationRead, summary="Mark as read")
async def mark_read(notification_id: str, ctx: Tenant, db: DbSession) -> NotificationRead:
    notification = await NotificationService.mark_read(
        db, ctx.company_id, ctx.user_id, notification_id
    )
    return NotificationRead.model_validate(notification)


@router.delete("/clear-read", response_model=NotificationCount, summary="Delete read notifications")
async def clear_read(ctx: Tenant, db: DbSession) -> NotificationCount:
    count = await NotificationService.clear_read(db, ctx.company_id, ctx.user_id)
    return NotificationCount(message="Read notifications cleared", count=count)


@router.delete("/{notification_id}", response_model=MessageResponse, summary="Delete a notification")
async def delete_notification(notification_id: str, ctx: Tenant, db: DbSession) -> MessageResponse:
    await NotificationService.delete_notification(db, ctx.company_id, ctx.user_id, notification_id)
    return MessageResponse(message="Notification deleted")
