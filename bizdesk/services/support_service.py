"""
services/support_service.py
---------------------------
The two channels between companies and platform operators.

AnnouncementService:  super-admins publish, companies read.
SupportTicketService: companies open tickets, super-admins answer.

Tenant-side methods take company_id from the tenant context and go
through tenant repositories. Super-admin methods are the only ones that
query across companies.
"""

import time
from typing import Any, Dict, List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from bizdesk.core.exceptions import NotFound, ValidationFailed
from bizdesk.core.logging import get_logger
from bizdesk.db.base import utcnow
from bizdesk.models import (
    Announcement,
    AnnouncementRead,
    Company,
    SuperAdmin,
    SupportTicket,
    TicketMessage,
    TicketStatus,
    User,
)
from bizdesk.repositories import (
    AnnouncementReadRepository,
    SupportTicketRepository,
    TicketMessageRepository,
)
from bizdesk.schemas.support import AnnouncementCreate, TicketCreate, TicketStatusUpdate

logger = get_logger(__name__)


def _visible_to(company_id: str):
    return or_(
        Announcement.target == "all",
        (Announcement.target == "company") & (Announcement.company_id == company_id),
    )


class AnnouncementService:

    # ── Super-admin side ─────────────────────────────────────────────────────

    @staticmethod
    async def create(db: AsyncSession, data: AnnouncementCreate, admin: SuperAdmin) -> Announcement:
        if data.company_id and await db.get(Company, data.company_id) is None:
            raise NotFound("Company not found")
        announcement = Announcement(
            title=data.title,
            content=data.content,
            type=data.type,
            target=data.target,
            company_id=data.company_id,
            created_by=admin.id,
            created_by_email=admin.email,
        )
        db.add(announcement)
        await db.flush()
        logger.info("Announcement published", announcement_id=announcement.id, target=data.target)
        return announcement

    @staticmethod
    async def list_all(db: AsyncSession, page: int = 1, limit: int = 10) -> tuple[int, List[Announcement]]:
        total = (await db.execute(select(func.count()).select_from(Announcement))).scalar_one()
        result = await db.execute(
            select(Announcement)
            .order_by(Announcement.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return total, list(result.scalars().all())

    @staticmethod
    async def delete(db: AsyncSession, announcement_id: str) -> Announcement:
        announcement = await db.get(Announcement, announcement_id)
        if announcement is None:
            raise NotFound("Announcement not found")
        await db.delete(announcement)
        await db.flush()
        logger.info("Announcement deleted", announcement_id=announcement_id)
        return announcement

    # ── Company side ─────────────────────────────────────────────────────────

    @staticmethod
    async def list_for_user(db: AsyncSession, company_id: str, user_id: str) -> List[Dict[str, Any]]:
        result = await db.execute(
            select(Announcement)
            .where(_visible_to(company_id))
            .order_by(Announcement.created_at.desc())
        )
        announcements = list(result.scalars().all())
        read_ids = set(
            (
                await db.execute(
                    AnnouncementReadRepository(db)
                    .select_columns(AnnouncementRead.announcement_id, company_id=company_id)
                    .where(AnnouncementRead.user_id == user_id)
                )
            ).scalars()
        )
        return [
            {
                "id": a.id,
                "title": a.title,
                "content": a.content,
                "type": a.type,
                "target": a.target,
                "company_id": a.company_id,
                "created_by_email": a.created_by_email,
                "created_at": a.created_at,
                "is_read": a.id in read_ids,
            }
            for a in announcements
        ]

    @staticmethod
    async def mark_read(db: AsyncSession, company_id: str, user_id: str, announcement_id: str) -> None:
        visible = await db.execute(
            select(Announcement.id).where(Announcement.id == announcement_id, _visible_to(company_id))
        )
        if visible.first() is None:
            raise NotFound("Announcement not found")

        reads = AnnouncementReadRepository(db)
        already = await reads.first(
            AnnouncementRead.announcement_id == announcement_id,
            AnnouncementRead.user_id == user_id,
            company_id=company_id,
        )
        if already is None:
            await reads.create(company_id=company_id, announcement_id=announcement_id, user_id=user_id)


def generate_ticket_number() -> str:
    return f"TICKET-{int(time.time() * 1000)}"


class SupportTicketService:

    # ── Company side ─────────────────────────────────────────────────────────

    @staticmethod
    async def create_ticket(
        db: AsyncSession, company_id: str, data: TicketCreate, user: User
    ) -> SupportTicket:
        ticket = await SupportTicketRepository(db).create(
            company_id=company_id,
            ticket_number=generate_ticket_number(),
            subject=data.subject,
            description=data.description,
            priority=data.priority,
            category=data.category,
            status=TicketStatus.open.value,
            created_by_user_id=user.id,
            created_by_name=user.name,
        )
        logger.info("Support ticket opened", ticket_id=ticket.id, company_id=company_id)
        return ticket

    @staticmethod
    async def list_company_tickets(db: AsyncSession, company_id: str) -> List[SupportTicket]:
        return await SupportTicketRepository(db).list(
            company_id=company_id, order_by=(SupportTicket.created_at.desc(),)
        )

    @staticmethod
    async def messages_for(db: AsyncSession, company_id: str, ticket_ids: List[str]) -> Dict[str, List[TicketMessage]]:
        if not ticket_ids:
            return {}
        rows = await TicketMessageRepository(db).list(
            TicketMessage.ticket_id.in_(ticket_ids),
            company_id=company_id,
            order_by=(TicketMessage.created_at,),
        )
        grouped: Dict[str, List[TicketMessage]] = {tid: [] for tid in ticket_ids}
        for row in rows:
            grouped[row.ticket_id].append(row)
        return grouped

    @staticmethod
    async def add_company_message(
        db: AsyncSession, company_id: str, ticket_id: str, message: str, user: User
    ) -> SupportTicket:
        ticket = await SupportTicketRepository(db).get_or_404(ticket_id, company_id=company_id)
        if ticket.status == TicketStatus.closed.value:
            raise ValidationFailed("This ticket is closed")
        await TicketMessageRepository(db).create(
            company_id=company_id,
            ticket_id=ticket.id,
            author_type="company",
            author_id=user.id,
            author_name=user.name,
            message=message,
        )
        ticket.status = TicketStatus.in_progress.value
        await db.flush()
        return ticket

    # ── Super-admin side ─────────────────────────────────────────────────────

    @staticmethod
    async def list_all(
        db: AsyncSession,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
    ) -> tuple[int, List[tuple[SupportTicket, Optional[str]]]]:
        filters = []
        if status:
            filters.append(SupportTicket.status == status)
        if priority:
            filters.append(SupportTicket.priority == priority)
        total = (
            await db.execute(select(func.count()).select_from(SupportTicket).where(*filters))
        ).scalar_one()
        result = await db.execute(
            select(SupportTicket, Company.company_name)
            .join(Company, Company.id == SupportTicket.company_id, isouter=True)
            .where(*filters)
            .order_by(SupportTicket.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return total, [(ticket, name) for ticket, name in result.all()]

    @staticmethod
    async def all_messages_for(db: AsyncSession, ticket_ids: List[str]) -> Dict[str, List[TicketMessage]]:
        grouped: Dict[str, List[TicketMessage]] = {tid: [] for tid in ticket_ids}
        if not ticket_ids:
            return grouped
        result = await db.execute(
            select(TicketMessage)
            .where(TicketMessage.ticket_id.in_(ticket_ids))
            .order_by(TicketMessage.created_at)
        )
        for row in result.scalars():
            grouped[row.ticket_id].append(row)
        return grouped

    @staticmethod
    async def _get_any(db: AsyncSession, ticket_id: str) -> SupportTicket:
        ticket = await db.get(SupportTicket, ticket_id)
        if ticket is None:
            raise NotFound("Support ticket not found")
        return ticket

    @staticmethod
    async def update_status(
        db: AsyncSession, ticket_id: str, data: TicketStatusUpdate
    ) -> SupportTicket:
        ticket = await SupportTicketService._get_any(db, ticket_id)
        changes = data.model_dump(mode="json", exclude_none=True)
        if not changes:
            raise ValidationFailed("No fields to update")

        if "status" in changes:
            ticket.status = changes["status"]
            if ticket.status == TicketStatus.closed.value:
                ticket.closed_at = utcnow()
        if "priority" in changes:
            ticket.priority = changes["priority"]
        if "assigned_to" in changes:
            ticket.assigned_to = changes["assigned_to"]
        if "response" in changes:
            ticket.admin_response = changes["response"]
            ticket.responded_at = utcnow()
        await db.flush()
        logger.info("Support ticket updated", ticket_id=ticket.id, fields=sorted(changes))
        return ticket

    @staticmethod
    async def add_admin_message(
        db: AsyncSession, ticket_id: str, message: str, admin: SuperAdmin
    ) -> SupportTicket:
        ticket = await SupportTicketService._get_any(db, ticket_id)
        # Stored under the ticket's own company
        await TicketMessageRepository(db).create(
            company_id=ticket.company_id,
            ticket_id=ticket.id,
            author_type="superadmin",
            author_id=admin.id,
            author_name=admin.name,
            message=message,
        )
        ticket.admin_response = message
        ticket.responded_at = utcnow()
        if ticket.status == TicketStatus.open.value:
            ticket.status = TicketStatus.in_progress.value
        await db.flush()
        return ticket
