"""
services/analytics_service.py
-----------------------------
Anonymous visitor tracking for the public site and the super-admin
reports built on it. Sessions are keyed by a client-generated session id;
each tracked page is appended to the session's page_views list.
"""

import re
from collections import Counter
from datetime import datetime, time
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from bizdesk.core.exceptions import NotFound
from bizdesk.core.logging import get_logger
from bizdesk.db.base import as_utc, utcnow
from bizdesk.models import VisitorSession
from bizdesk.schemas.platform import SessionUpdate, TrackVisit

logger = get_logger(__name__)

# Order matters: Edge and Opera announce Chrome too, Chrome announces Safari
_BROWSERS = (
    ("Edge", re.compile(r"Edg(e|A|iOS)?/")),
    ("Opera", re.compile(r"OPR/|Opera")),
    ("Firefox", re.compile(r"Firefox/|FxiOS/")),
    ("Chrome", re.compile(r"Chrome/|CriOS/")),
    ("Safari", re.compile(r"Safari/")),
)
_SYSTEMS = (
    ("Windows", re.compile(r"Windows")),
    ("Android", re.compile(r"Android")),
    ("iOS", re.compile(r"iPhone|iPad|iPod")),
    ("macOS", re.compile(r"Mac OS X|Macintosh")),
    ("Linux", re.compile(r"Linux")),
)
_TABLET = re.compile(r"iPad|Tablet|PlayBook|Silk|(Android(?!.*Mobile))")
_MOBILE = re.compile(r"Mobi|iPhone|iPod|Android.*Mobile|Windows Phone")
_BOT = re.compile(r"bot|crawl|spider|slurp", re.IGNORECASE)


def parse_user_agent(user_agent: Optional[str]) -> Dict[str, str]:
    """{device_type, browser, os} from a User-Agent header."""
    ua = user_agent or ""
    if not ua:
        return {"device_type": "unknown", "browser": "Unknown", "os": "Unknown"}

    if _BOT.search(ua):
        device = "bot"
    elif _TABLET.search(ua):
        device = "tablet"
    elif _MOBILE.search(ua):
        device = "mobile"
    else:
        device = "desktop"

    browser = next((name for name, pattern in _BROWSERS if pattern.search(ua)), "Other")
    system = next((name for name, pattern in _SYSTEMS if pattern.search(ua)), "Other")
    return {"device_type": device, "browser": browser, "os": system}


def _shares(counts: List[tuple[Optional[str], int]], total: int) -> List[Dict[str, Any]]:
    return [
        {
            "name": name or "Unknown",
            "count": count,
            "percentage": round(count * 100 / total) if total else 0,
        }
        for name, count in counts
    ]


class AnalyticsService:

    @staticmethod
    async def _by_session_id(db: AsyncSession, session_id: str) -> Optional[VisitorSession]:
        result = await db.execute(
            select(VisitorSession).where(VisitorSession.session_id == session_id)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def track(
        db: AsyncSession,
        data: TrackVisit,
        ip_address: Optional[str],
        header_user_agent: Optional[str],
    ) -> VisitorSession:
        now = utcnow()
        session = await AnalyticsService._by_session_id(db, data.session_id)

        if session is None:
            user_agent = data.user_agent or header_user_agent
            session = VisitorSession(
                session_id=data.session_id,
                ip_address=ip_address,
                user_agent=(user_agent or "")[:500] or None,
                referrer=data.referrer,
                page_views=[{"page": data.page, "timestamp": now.isoformat(), "duration": 0}],
                total_page_views=1,
                start_time=now,
                is_authenticated=data.is_authenticated,
                user_id=data.user_id,
                company_id=data.company_id,
                **parse_user_agent(user_agent),
            )
            db.add(session)
        else:
            views = list(session.page_views or [])
            if views:
                # Time spent on the page being left
                views[-1] = {**views[-1], "duration": data.previous_page_duration}
            views.append({"page": data.page, "timestamp": now.isoformat(), "duration": 0})
            session.page_views = views
            session.total_page_views = len(views)
            if data.is_authenticated:
                session.is_authenticated = True
                session.user_id = data.user_id or session.user_id
                session.company_id = data.company_id or session.company_id

        await db.flush()
        return session

    @staticmethod
    async def end_session(db: AsyncSession, data: SessionUpdate) -> VisitorSession:
        session = await AnalyticsService._by_session_id(db, data.session_id)
        if session is None:
            raise NotFound("Session not found")

        end = as_utc(data.end_time) or utcnow()
        start = as_utc(session.start_time)
        session.end_time = end
        session.duration = max(0, int((end - start).total_seconds()))
        if data.final_page_duration and session.page_views:
            views = list(session.page_views)
            views[-1] = {**views[-1], "duration": data.final_page_duration}
            session.page_views = views
        await db.flush()
        return session

    # ── Super-admin reports ──────────────────────────────────────────────────

    @staticmethod
    async def overview(db: AsyncSession) -> Dict[str, int]:
        now = utcnow()
        today = datetime.combine(now.date(), time.min, tzinfo=now.tzinfo)
        totals = (
            await db.execute(
                select(
                    func.count(),
                    func.coalesce(func.sum(VisitorSession.total_page_views), 0),
                ).select_from(VisitorSession)
            )
        ).one()
        average = (
            await db.execute(
                select(func.avg(VisitorSession.duration)).where(VisitorSession.duration > 0)
            )
        ).scalar_one()
        today_totals = (
            await db.execute(
                select(
                    func.count(),
                    func.coalesce(func.sum(VisitorSession.total_page_views), 0),
                ).where(VisitorSession.start_time >= today)
            )
        ).one()
        authenticated = (
            await db.execute(
                select(func.count())
                .select_from(VisitorSession)
                .where(VisitorSession.is_authenticated.is_(True))
            )
        ).scalar_one()
        return {
            "totalVisitors": totals[0],
            "totalSessions": totals[0],
            "totalPageViews": int(totals[1] or 0),
            "averageDuration": int(average or 0),
            "todayVisitors": today_totals[0],
            "todayPageViews": int(today_totals[1] or 0),
            "authenticatedSessions": authenticated,
        }

    @staticmethod
    async def recent_visitors(
        db: AsyncSession, page: int = 1, limit: int = 50
    ) -> tuple[int, List[VisitorSession]]:
        total = (
            await db.execute(select(func.count()).select_from(VisitorSession))
        ).scalar_one()
        result = await db.execute(
            select(VisitorSession)
            .order_by(VisitorSession.start_time.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return total, list(result.scalars().all())

    @staticmethod
    async def popular_pages(db: AsyncSession, top: int = 20) -> List[Dict[str, Any]]:
        counter: Counter = Counter()
        result = await db.execute(select(VisitorSession.page_views))
        for views in result.scalars():
            counter.update(view.get("page") or "unknown" for view in views or [])
        return [{"page": page, "count": count} for page, count in counter.most_common(top)]

    @staticmethod
    async def device_stats(db: AsyncSession) -> Dict[str, List[Dict[str, Any]]]:
        total = (
            await db.execute(select(func.count()).select_from(VisitorSession))
        ).scalar_one()

        async def grouped(column) -> List[tuple[Optional[str], int]]:
            rows = await db.execute(
                select(column, func.count())
                .group_by(column)
                .order_by(func.count().desc())
            )
            return [(name, count) for name, count in rows.all()]

        return {
            "deviceTypes": _shares(await grouped(VisitorSession.device_type), total),
            "browsers": _shares(await grouped(VisitorSession.browser), total),
            "os": _shares(await grouped(VisitorSession.os), total),
        }
