"""
api/routes/analytics.py
-----------------------
Anonymous visitor tracking for the marketing site and app.

POST /analytics/track           — Public: record a page view.
POST /analytics/session/update  — Public: close a session.
GET  /analytics/overview        — Super-admin.
GET  /analytics/visitors        — Super-admin, most recent sessions first.
GET  /analytics/pages           — Super-admin, most viewed pages.
GET  /analytics/devices         — Super-admin, device/browser/OS shares.
"""

from fastapi import APIRouter, Query

from bizdesk.dependencies import CurrentSuperAdmin, DbSession, Meta
from bizdesk.schemas.platform import (
    AnalyticsOverview,
    DeviceStats,
    PopularPages,
    SessionResult,
    SessionUpdate,
    TrackResult,
    TrackVisit,
    VisitorList,
    VisitorRead,
)
from bizdesk.services.analytics_service import AnalyticsService

router = APIRouter(prefix="/analytics", tags=["Analytics"])


@router.post("/track", response_model=TrackResult, summary="Record a page view")
async def track(body: TrackVisit, db: DbSession, meta: Meta) -> TrackResult:
    session = await AnalyticsService.track(
        db, body, ip_address=meta.ip_address, header_user_agent=meta.user_agent
    )
    return TrackResult(sessionId=session.session_id)


@router.post("/session/update", response_model=SessionResult, summary="End a visitor session")
async def update_session(body: SessionUpdate, db: DbSession) -> SessionResult:
    session = await AnalyticsService.end_session(db, body)
    return SessionResult(duration=session.duration or 0)


@router.get("/overview", response_model=AnalyticsOverview, summary="Visitor totals")
async def overview(admin: CurrentSuperAdmin, db: DbSession) -> AnalyticsOverview:
    return AnalyticsOverview.model_validate(await AnalyticsService.overview(db))


@router.get("/visitors", response_model=VisitorList, summary="Recent visitor sessions")
async def visitors(
    admin: CurrentSuperAdmin,
    db: DbSession,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=200),
) -> VisitorList:
    total, sessions = await AnalyticsService.recent_visitors(db, page=page, limit=limit)
    return VisitorList(
        visitors=[VisitorRead.model_validate(s) for s in sessions],
        total=total,
        page=page,
        limit=limit,
        totalPages=(total + limit - 1) // limit,
    )


@router.get("/pages", response_model=PopularPages, summary="Most viewed pages")
async def pages(
    admin: CurrentSuperAdmin,
    db: DbSession,
    top: int = Query(default=20, ge=1, le=100),
) -> PopularPages:
    return PopularPages.model_validate({"pages": await AnalyticsService.popular_pages(db, top=top)})


@router.get("/devices", response_model=DeviceStats, summary="Device, browser and OS shares")
async def devices(admin: CurrentSuperAdmin, db: DbSession) -> DeviceStats:
    return DeviceStats.model_validate(await AnalyticsService.device_stats(db))
