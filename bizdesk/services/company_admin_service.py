"""
services/company_admin_service.py
---------------------------------
Company lifecycle as driven from the super-admin console.

    pending_approval ──approve──▶ active ──suspend──▶ suspended
            │                       │ ◀──reactivate──┘    │
          reject                  block / ban          block / ban
            ▼                       ▼                     ▼
         rejected               blocked ──ban──▶ banned

Every action is one entry in TRANSITIONS; anything not listed there is
refused with 400. rejected and banned are terminal.
"""

from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Dict, FrozenSet, List, Optional

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from bizdesk.core.exceptions import NotFound, ValidationFailed
from bizdesk.core.logging import get_logger
from bizdesk.db.base import utcnow
from bizdesk.models import Announcement, Company, CompanyStatus, SaleStatus, SuperAdmin, User
from bizdesk.repositories import (
    TENANT_REPOSITORIES,
    CustomerRepository,
    ProductRepository,
    SaleRepository,
    UserRepository,
)
from bizdesk.services.audit_service import AuditService

logger = get_logger(__name__)


@dataclass(frozen=True)
class Transition:
    sources: FrozenSet[str]
    target: str
    message: str
    needs_reason: bool = False


_S = CompanyStatus

TRANSITIONS: Dict[str, Transition] = {
    "approve": Transition(
        frozenset({_S.pending_approval.value}), _S.active.value, "Company approved successfully"
    ),
    "reject": Transition(
        frozenset({_S.pending_approval.value}), _S.rejected.value, "Company rejected", True
    ),
    "suspend": Transition(
        frozenset({_S.active.value}), _S.suspended.value, "Company suspended successfully", True
    ),
    "block": Transition(
        frozenset({_S.active.value, _S.suspended.value}),
        _S.blocked.value,
        "Company blocked successfully",
        True,
    ),
    "ban": Transition(
        frozenset({_S.active.value, _S.suspended.value, _S.blocked.value}),
        _S.banned.value,
        "Company banned successfully",
        True,
    ),
    "reactivate": Transition(
        frozenset({_S.suspended.value, _S.blocked.value}),
        _S.active.value,
        "Company reactivated successfully",
    ),
}


def check_transition(action: str, current: str, reason: Optional[str] = None) -> Transition:
    """The transition for `action` from `current`, or ValidationFailed."""
    transition = TRANSITIONS.get(action)
    if transition is None:
        raise ValidationFailed(f"Unknown company action: {action}")
    if current not in transition.sources:
        raise ValidationFailed(
            f"Cannot {action} a company whose status is '{current}'",
            code="invalid_transition",
        )
    if transition.needs_reason and not (reason or "").strip():
        raise ValidationFailed(f"A reason is required to {action} a company")
    return transition


class CompanyAdminService:

    @staticmethod
    async def get(db: AsyncSession, company_id: str) -> Company:
        company = await db.get(Company, company_id)
        if company is None:
            raise NotFound("Company not found")
        return company

    @staticmethod
    async def list_pending(db: AsyncSession) -> List[Company]:
        result = await db.execute(
            select(Company)
            .where(Company.status == CompanyStatus.pending_approval.value)
            .order_by(Company.approval_requested_at.desc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def list_companies(
        db: AsyncSession,
        status: Optional[str] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 50,
    ) -> tuple[int, List[Company]]:
        filters = []
        if status:
            filters.append(Company.status == status)
        if search:
            pattern = f"%{search.lower()}%"
            filters.append(
                or_(
                    func.lower(Company.company_name).like(pattern),
                    func.lower(Company.email).like(pattern),
                )
            )
        total = (
            await db.execute(select(func.count()).select_from(Company).where(*filters))
        ).scalar_one()
        result = await db.execute(
            select(Company)
            .where(*filters)
            .order_by(Company.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return total, list(result.scalars().all())

    @staticmethod
    async def change_status(
        db: AsyncSession,
        company_id: str,
        action: str,
        admin: SuperAdmin,
        reason: Optional[str] = None,
        duration_days: Optional[int] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> tuple[Company, str]:
        """Apply one lifecycle action. Returns (company, message)."""
        company = await CompanyAdminService.get(db, company_id)
        previous = company.status
        transition = check_transition(action, previous, reason)

        now = utcnow()
        company.status = transition.target
        company.status_changed_at = now
        company.status_changed_by = admin.id
        company.status_reason = reason.strip() if reason else None
        company.suspended_until = None

        if action == "approve":
            company.approved_at = now
            company.approved_by = admin.id
        elif action == "suspend" and duration_days:
            company.suspended_until = now + timedelta(days=duration_days)

        await db.flush()
        details: Dict[str, Any] = {"from": previous, "to": transition.target}
        if reason:
            details["reason"] = reason
        if company.suspended_until is not None:
            details["suspended_until"] = company.suspended_until.isoformat()
        await AuditService.log(
            db,
            f"company.{action}",
            actor=admin,
            company_id=company.id,
            entity_type="company",
            entity_id=company.id,
            entity_name=company.company_name,
            details=details,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        logger.info(
            "Company status changed",
            company_id=company.id,
            action=action,
            old_status=previous,
            new_status=transition.target,
        )
        return company, transition.message

    @staticmethod
    async def delete_company(
        db: AsyncSession,
        company_id: str,
        admin: SuperAdmin,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Dict[str, int]:
        """
        Remove the company and every row it owns. Returns the number of rows
        removed per table. Audit entries about the company are kept.
        """
        company = await CompanyAdminService.get(db, company_id)
        removed: Dict[str, int] = {}
        for repository in TENANT_REPOSITORIES:
            repo = repository(db)
            removed[repo.model.__tablename__] = await repo.delete_where(company_id=company.id)

        result = await db.execute(
            delete(Announcement)
            .where(Announcement.company_id == company.id)
            .execution_options(synchronize_session=False)
        )
        removed["announcements"] = result.rowcount

        name = company.company_name
        await db.delete(company)
        await db.flush()
        await AuditService.log(
            db,
            "company.delete",
            actor=admin,
            company_id=company_id,
            entity_type="company",
            entity_id=company_id,
            entity_name=name,
            details={"removed": removed},
            ip_address=ip_address,
            user_agent=user_agent,
        )
        logger.info("Company deleted", company_id=company_id, removed=removed)
        return removed

    @staticmethod
    async def profile(db: AsyncSession, company_id: str) -> Dict[str, Any]:
        company = await CompanyAdminService.get(db, company_id)
        users = UserRepository(db)
        admin = await users.first(User.is_company_admin.is_(True), company_id=company.id)
        sales = SaleRepository(db)
        revenue = (
            await db.execute(
                sales.select_columns(
                    func.coalesce(func.sum(sales.model.total_amount), 0), company_id=company.id
                ).where(sales.model.status == SaleStatus.completed.value)
            )
        ).scalar_one()
        return {
            "company": company,
            "admin": admin,
            "statistics": {
                "userCount": await users.count(company_id=company.id),
                "productCount": await ProductRepository(db).count(company_id=company.id),
                "customerCount": await CustomerRepository(db).count(company_id=company.id),
                "salesCount": await sales.count(company_id=company.id),
                "totalRevenue": float(revenue or 0),
            },
        }
