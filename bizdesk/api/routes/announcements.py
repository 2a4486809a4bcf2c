"""
api/routes/announcements.py
---------------------------
Platform announcements.

POST   /announcements             — super-admin publishes to all or one company
GET    /announcements             — super-admin list
DELETE /announcements/{id}        — super-admin
GET    /announcements/company     — announcements visible to the caller's company
POST   /announcements/{id}/read   — mark one as read for the caller
"""

from fastapi import APIRouter, Query, status

from bizdesk.dependencies import CurrentSuperAdmin, DbSession, Meta, Tenant
from bizdesk.schemas.common import MessageResponse, Pagination
from bizdesk.schemas.support import (
    AnnouncementCreate,
    AnnouncementList,
    AnnouncementRead,
    CompanyAnnouncement,
    CompanyAnnouncementList,
)
from bizdesk.services.audit_service import AuditService
from bizdesk.services.support_service import AnnouncementService

router = APIRouter(prefix="/announcements", tags=["Announcements"])


@router.post(
    "",
    response_model=AnnouncementRead,
    status_code=status.HTTP_201_CREATED,
    summary="Super-admin: publish an announcement",
)
async def create_announcement(
    body: AnnouncementCreate, admin: CurrentSuperAdmin, db: DbSession, meta: Meta
) -> AnnouncementRead:
    announcement = await AnnouncementService.create(db, body, admin)
    await AuditService.log(
        db,
        "announcement.create",
        actor=admin,
        company_id=announcement.company_id,
        entity_type="announcement",
        entity_id=announcement.id,
        entity_name=announcement.title,
        details={"target": announcement.target},
        ip_address=meta.ip_address,
        user_agent=meta.user_agent,
    )
    return AnnouncementRead.model_validate(announcement)


@router.get("", response_model=AnnouncementList, summary="Super-admin: list announcements")
async def list_announcements(
    admin: CurrentSuperAdmin,
    db: DbSession,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
) -> AnnouncementList:
    total, announcements = await AnnouncementService.list_all(db, page=page, limit=limit)
    return AnnouncementList(
        announcements=[AnnouncementRead.model_validate(a) for a in announcements],
        pagination=Pagination.build(page, limit, total),
    )


@router.get(
    "/company",
    response_model=CompanyAnnouncementList,
    summary="Announcements for the current company",
)
async def company_announcements(ctx: Tenant, db: DbSession) -> CompanyAnnouncementList:
    rows = await AnnouncementService.list_for_user(db, ctx.company_id, ctx.user_id)
    announcements = [CompanyAnnouncement.model_validate(row) for row in rows]
    return CompanyAnnouncementList(
        announcements=announcements,
        unread_count=sum(1 for a in announcements if not a.is_read),
    )


@router.post(
    "/{announcement_id}/read",
    response_model=MessageResponse,
    summary="Mark an announcement as read",
)
async def mark_announcement_read(
    announcement_id: str, ctx: Tenant, db: DbSession
) -> MessageResponse:
    await AnnouncementService.mark_read(db, ctx.company_id, ctx.user_id, announcement_id)
    return MessageResponse(message="Announcement marked as read")


@router.delete(
    "/{announcement_id}",
    response_model=MessageResponse,
    summary="Super-admin: delete an announcement",
)
async def delete_announcement(
    announcement_id: str, admin: CurrentSuperAdmin, db: DbSession, meta: Meta
) -> MessageResponse:
    announcement = await AnnouncementService.delete(db, announcement_id)
    await AuditService.log(
        db,
        "announcement.delete",
        actor=admin,
        company_id=announcement.company_id,
        entity_type="announcement",
        entity_id=announcement_id,
        entity_name=announcement.title,
        ip_address=meta.ip_address,
        user_agent=meta.user_agent,
    )
    return MessageResponse(message="Announcement deleted successfully")
