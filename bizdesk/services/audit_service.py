"""
services/audit_service.py
-------------------------
Append-only audit trail.

Entries are written inside the caller's transaction: a rolled-back action
leaves no audit row behind.
"""

from datetime import timedelta
from typing import Any, Dict, Optional, Union

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from bizdesk.core.logging import get_logger
from bizdesk.db.base import utcnow
from bizdesk.models import AuditLog, SuperAdmin, User
from bizdesk.repositories import AuditLogRepository

logger = get_logger(__name__)

Actor = Union[User, SuperAdmin, None]


class AuditService:

    @staticmethod
    async def log(
        db: AsyncSession,
        action: str,
        *,
        actor: Actor = None,
        company_id: Optional[str] = None,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
        entity_name: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        status: str = "success",
    ) -> AuditLog:
        if isinstance(actor, SuperAdmin):
            actor_type = "superadmin"
        elif isinstance(actor, User):
            actor_type = "user"
            company_id = company_id or actor.company_id
        else:
            actor_type = "system"

        entry = AuditLog(
            company_id=company_id,
            actor_type=actor_type,
            actor_id=actor.id if actor is not None else None,
            actor_email=actor.email if actor is not None else None,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            entity_name=entity_name,
            details=details or {},
            ip_address=ip_address,
            user_agent=(user_agent or "")[:500] or None,
            status=status,
        )
        db.add(entry)
        await db.flush()
        logger.info(
            "Audit",
            action=action,
            actor_type=actor_type,
            actor_id=entry.actor_id,
            entity_type=entity_type,
            entity_id=entity_id,
            status=status,
        )
        return entry

    # ── Platform-wide queries (super-admin) ──────────────────────────────────

    @staticmethod
    async def list_logs(
        db: AsyncSession,
        *,
        action: Optional[str] = None,
        entity_type: Optional[str] = None,
        company_id: Optional[str] = None,
        actor_id: Optional[str] = None,
        offset: int = 0,
        limit: int = 50,
    ) -> tuple[int, list[AuditLog]]:
        filters = []
        if action:
            filters.append(AuditLog.action == action)
        if entity_type:
            filters.append(AuditLog.entity_type == entity_type)
        if company_id:
            filters.append(AuditLog.company_id == company_id)
        if actor_id:
            filters.append(AuditLog.actor_id == actor_id)

        total = (
            await db.execute(select(func.count()).select_from(AuditLog).where(*filters))
        ).scalar_one()
        result = await db.execute(
            select(AuditLog)
            .where(*filters)
            .order_by(AuditLog.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        return total, list(result.scalars().all())

    @staticmethod
    async def list_for_target(db: AsyncSession, target_id: str, limit: int = 100) -> list[AuditLog]:
        result = await db.execute(
            select(AuditLog)
            .where(or_(AuditLog.entity_id == target_id, AuditLog.company_id == target_id))
            .order_by(AuditLog.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    @staticmethod
    async def stats(db: AsyncSession) -> Dict[str, Any]:
        total = (await db.execute(select(func.count()).select_from(AuditLog))).scalar_one()
        since = utcnow() - timedelta(hours=24)
        last_24h = (
            await db.execute(
                select(func.count()).select_from(AuditLog).where(AuditLog.created_at >= since)
            )
        ).scalar_one()
        by_action = await db.execute(
            select(AuditLog.action, func.count())
            .group_by(AuditLog.action)
            .order_by(func.count().desc())
        )
        by_status = await db.execute(
            select(AuditLog.status, func.count()).group_by(AuditLog.status)
        )
        return {
            "total": total,
            "last_24_hours": last_24h,
            "by_action": [{"action": a, "count": c} for a, c in by_action.all()],
            "by_status": {s: c for s, c in by_status.all()},
        }

    # ── Tenant view ──────────────────────────────────────────────────────────

    @staticmethod
    async def list_company_logs(
        db: AsyncSession, company_id: str, offset: int = 0, limit: int = 50
    ) -> tuple[int, list[AuditLog]]:
        return await AuditLogRepository(db).page(
            company_id=company_id,
            order_by=(AuditLog.created_at.desc(),),
            offset=offset,
            limit=limit,
        )
