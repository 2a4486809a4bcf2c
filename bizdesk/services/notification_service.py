"""
services/notification_service.py
--------------------------------
Per-user notifications. Every query is filtered by company_id (through the
repository) and by the owning user_id.
"""

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from bizdesk.core.exceptions import NotFound
from bizdesk.core.logging import get_logger
from bizdesk.db.base import utcnow
from bizdesk.models import Notification
from bizdesk.repositories import NotificationRepository, UserRepository
from bizdesk.schemas.notification import NotificationCreate

logger = get_logger(__name__)


class NotificationService:

    @staticmethod
    async def notify(
        db: AsyncSession,
        company_id: str,
        user_id: str,
        title: str,
        message: str,
        type: str = "info",
        link: Optional[str] = None,
        priority: str = "normal",
    ) -> Notification:
        return await NotificationRepository(db).create(
            company_id=company_id,
            user_id=user_id,
            title=title,
            message=message,
            type=type,
            link=link,
            priority=priority,
        )

    @staticmethod
    async def create_notification(
        db: AsyncSession, company_id: str, data: NotificationCreate, default_user_id: str
    ) -> Notification:
        recipient = data.user_id or default_user_id
        # Recipient must belong to the caller's company
        await UserRepository(db).get_or_404(recipient, company_id=company_id)
        notification = await NotificationService.notify(
            db,
            company_id,
            recipient,
            data.title,
            data.message,
            type=data.type,
            link=data.link,
            priority=data.priority,
        )
        logger.info("Notification created", notification_id=notification.id, company_id=company_id)
        return notification

    @staticmethod
    async def list_for_user(
        db: AsyncSession,
        company_id: str,
        user_id: str,
        unread_only: bool = False,
        limit: int = 50,
        skip: int = 0,
    ) -> tuple[int, int, list[Notification]]:
        """(total, unread_count, page)"""
        repo = NotificationRepository(db)
        mine = Notification.user_id == user_id
        criteria = [mine, Notification.is_read.is_(False)] if unread_only else [mine]
        total, rows = await repo.page(
            *criteria,
            company_id=company_id,
            order_by=(Notification.created_at.desc(),),
            offset=skip,
            limit=limit,
        )
        unread = await repo.count(mine, Notification.is_read.is_(False), company_id=company_id)
        return total, unread, rows

    @staticmethod
    async def mark_read(
        db: AsyncSession, company_id: str, user_id: str, notification_id: str
    ) -> Notification:
        repo = NotificationRepository(db)
        notification = await repo.first(
            Notification.id == notification_id,
            Notification.user_id == user_id,
            company_id=company_id,
        )
        if notification is None:
            # Same answer whether it is missing or someone else's
            raise NotFound(repo.not_found_message)
        if not notification.is_read:
            notification.is_read = True
            notification.read_at = utcnow()
            await db.flush()
        return notification

    @staticmethod
    async def mark_all_read(db: AsyncSession, company_id: str, user_id: str) -> int:
        return await NotificationRepository(db).update_where(
            Notification.user_id == user_id,
            Notification.is_read.is_(False),
            company_id=company_id,
            values={"is_read": True, "read_at": utcnow()},
        )

    @staticmethod
    async def clear_read(db: AsyncSession, company_id: str, user_id: str) -> int:
        return await NotificationRepository(db).delete_where(
            Notification.user_id == user_id,
            Notification.is_read.is_(True),
            company_id=company_id,
        )

    @staticmethod
    async def delete_notification(
        db: AsyncSession, company_id: str, user_id: str, notification_id: str
    ) -> None:
        repo = NotificationRepository(db)
        deleted = await repo.delete_where(
            Notification.id == notification_id,
            Notification.user_id == user_id,
            company_id=company_id,
        )
        if not deleted:
            raise NotFound(repo.not_found_message)
