"""
services/superadmin_service.py
------------------------------
Platform operators: their own accounts and the cross-tenant views of the
super-admin console.

Nothing here goes through a TenantRepository. These queries are the ones
that are meant to see every company, and they are reachable only through
routes guarded by get_current_superadmin().
"""

from datetime import timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from bizdesk.core.config import settings
from bizdesk.core.exceptions import (
    AuthenticationFailed,
    Conflict,
    NotFound,
    PermissionDenied,
    ValidationFailed,
)
from bizdesk.core.logging import get_logger
from bizdesk.core.security import create_superadmin_token, hash_password, verify_password
from bizdesk.db.base import utcnow
from bizdesk.models import Company, CompanyStatus, Product, Sale, SaleStatus, SuperAdmin, User
from bizdesk.repositories import AnnouncementReadRepository, NotificationRepository
from bizdesk.schemas.superadmin import SuperAdminCreate, SuperAdminUpdate
from bizdesk.services.audit_service import AuditService

logger = get_logger(__name__)


def issue_superadmin_token(admin: SuperAdmin) -> tuple[str, int]:
    """(token, expires_in_seconds) for a super-admin."""
    expires = timedelta(minutes=settings.SUPERADMIN_TOKEN_EXPIRE_MINUTES)
    return create_superadmin_token(admin.id, admin.email, expires_delta=expires), int(
        expires.total_seconds()
    )


async def _count(db: AsyncSession, model, *criteria) -> int:
    result = await db.execute(select(func.count()).select_from(model).where(*criteria))
    return result.scalar_one()


class SuperAdminService:

    # ── Authentication ───────────────────────────────────────────────────────

    @staticmethod
    async def login(
        db: AsyncSession,
        email: str,
        password: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> SuperAdmin:
        result = await db.execute(
            select(SuperAdmin).where(func.lower(SuperAdmin.email) == email.lower())
        )
        admin = result.scalar_one_or_none()
        if admin is None or not verify_password(password, admin.hashed_password):
            logger.info("Super-admin login failed", email=email.lower())
            raise AuthenticationFailed("Invalid credentials")
        if not admin.is_active:
            raise PermissionDenied("Account is disabled. Contact system administrator.")

        admin.last_login = utcnow()
        await AuditService.log(
            db,
            "superadmin.login",
            actor=admin,
            entity_type="superadmin",
            entity_id=admin.id,
            entity_name=admin.email,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        return admin

    @staticmethod
    async def logout(
        db: AsyncSession,
        admin: SuperAdmin,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> None:
        # Tokens are stateless; the audit entry is the only effect
        await AuditService.log(
            db,
            "superadmin.logout",
            actor=admin,
            entity_type="superadmin",
            entity_id=admin.id,
            entity_name=admin.email,
            ip_address=ip_address,
            user_agent=user_agent,
        )

    # ── Operator accounts ────────────────────────────────────────────────────

    @staticmethod
    async def create_admin(
        db: AsyncSession, data: SuperAdminCreate, created_by: Optional[SuperAdmin] = None
    ) -> SuperAdmin:
        email = data.email.lower()
        existing = await db.execute(
            select(SuperAdmin.id).where(func.lower(SuperAdmin.email) == email)
        )
        if existing.first() is not None:
            raise Conflict("Email already exists")

        admin = SuperAdmin(
            name=data.name,
            email=email,
            hashed_password=hash_password(data.password),
            is_active=True,
            created_by=created_by.id if created_by else None,
        )
        db.add(admin)
        await db.flush()
        if created_by is not None:
            await AuditService.log(
                db,
                "superadmin.create",
                actor=created_by,
                entity_type="superadmin",
                entity_id=admin.id,
                entity_name=admin.email,
            )
        logger.info("Super-admin created", superadmin_id=admin.id)
        return admin

    @staticmethod
    async def list_admins(db: AsyncSession) -> List[SuperAdmin]:
        result = await db.execute(select(SuperAdmin).order_by(SuperAdmin.created_at.desc()))
        return list(result.scalars().all())

    @staticmethod
    async def update_admin(
        db: AsyncSession, admin_id: str, data: SuperAdminUpdate, actor: SuperAdmin
    ) -> SuperAdmin:
        changes = data.model_dump(exclude_none=True)
        if not changes:
            raise ValidationFailed("No fields to update")
        admin = await db.get(SuperAdmin, admin_id)
        if admin is None:
            raise NotFound("Super admin not found")
        if admin.id == actor.id and changes.get("is_active") is False:
            raise ValidationFailed("You cannot deactivate your own account")

        for field, value in changes.items():
            setattr(admin, field, value)
        await db.flush()
        await AuditService.log(
            db,
            "superadmin.update",
            actor=actor,
            entity_type="superadmin",
            entity_id=admin.id,
            entity_name=admin.email,
            details=changes,
        )
        return admin

    # ── Platform-wide views ──────────────────────────────────────────────────

    @staticmethod
    async def statistics(db: AsyncSession) -> Dict[str, Any]:
        by_status = dict(
            (await db.execute(select(Company.status, func.count()).group_by(Company.status))).all()
        )
        revenue = (
            await db.execute(
                select(func.coalesce(func.sum(Sale.total_amount), 0)).where(
                    Sale.status == SaleStatus.completed.value
                )
            )
        ).scalar_one()

        recent_companies = (
            await db.execute(select(Company).order_by(Company.created_at.desc()).limit(5))
        ).scalars().all()
        recent_users = (
            await db.execute(select(User).order_by(User.created_at.desc()).limit(5))
        ).scalars().all()
        business_types = await db.execute(
            select(Company.business_type, func.count())
            .group_by(Company.business_type)
            .order_by(func.count().desc())
        )

        return {
            "statistics": {
                "totalCompanies": sum(by_status.values()),
                "activeCompanies": by_status.get(CompanyStatus.active.value, 0),
                "pendingCompanies": by_status.get(CompanyStatus.pending_approval.value, 0),
                "suspendedCompanies": by_status.get(CompanyStatus.suspended.value, 0),
                "blockedCompanies": by_status.get(CompanyStatus.blocked.value, 0),
                "bannedCompanies": by_status.get(CompanyStatus.banned.value, 0),
                "rejectedCompanies": by_status.get(CompanyStatus.rejected.value, 0),
                "totalUsers": await _count(db, User),
                "totalProducts": await _count(db, Product),
                "totalSales": await _count(db, Sale),
                "totalRevenue": float(revenue or 0),
            },
            "recentActivity": {
                "recentCompanies": [
                    {
                        "id": c.id,
                        "company_name": c.company_name,
                        "status": c.status,
                        "created_at": c.created_at,
                    }
                    for c in recent_companies
                ],
                "recentUsers": [
                    {
                        "id": u.id,
                        "name": u.name,
                        "email": u.email,
                        "company_id": u.company_id,
                        "created_at": u.created_at,
                    }
                    for u in recent_users
                ],
            },
            "businessTypes": [
                {"business_type": bt, "count": n} for bt, n in business_types.all()
            ],
        }

    @staticmethod
    async def list_users(
        db: AsyncSession, page: int = 1, limit: int = 50, search: Optional[str] = None
    ) -> tuple[int, List[tuple[User, Optional[str]]]]:
        filters = []
        if search:
            pattern = f"%{search.lower()}%"
            filters.append(
                or_(func.lower(User.name).like(pattern), func.lower(User.email).like(pattern))
            )
        total = await _count(db, User, *filters)
        result = await db.execute(
            select(User, Company.company_name)
            .join(Company, Company.id == User.company_id, isouter=True)
            .where(*filters)
            .order_by(User.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return total, [(user, name) for user, name in result.all()]

    @staticmethod
    async def delete_user(
        db: AsyncSession,
        user_id: str,
        actor: SuperAdmin,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> User:
        user = await db.get(User, user_id)
        if user is None:
            raise NotFound("User not found")
        if user.is_company_admin:
            raise ValidationFailed(
                "Cannot delete a company's primary admin. Delete the company instead."
            )

        company_id = user.company_id
        # Rows that reference the user by foreign key
        await NotificationRepository(db).delete_where(
            NotificationRepository.model.user_id == user.id, company_id=company_id
        )
        await AnnouncementReadRepository(db).delete_where(
            AnnouncementReadRepository.model.user_id == user.id, company_id=company_id
        )
        await db.delete(user)
        await db.flush()
        await AuditService.log(
            db,
            "superadmin.delete_user",
            actor=actor,
            company_id=company_id,
            entity_type="user",
            entity_id=user_id,
            entity_name=user.email,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        logger.info("User deleted by super-admin", user_id=user_id, company_id=company_id)
        return user
