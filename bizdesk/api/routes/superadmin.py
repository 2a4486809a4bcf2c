"""
api/routes/superadmin.py
------------------------
Platform operator console. Every route except /login requires a
super-admin token; none of them is scoped to a company.

Accounts:    POST /login, GET /me, POST /logout, /admins (create, list, update)
Companies:   GET /pending-companies, GET /companies, GET /companies/{id}/profile,
             POST /companies/{id}/{approve|reject|block|suspend|ban|reactivate},
             DELETE /companies/{id}
Platform:    GET /statistics, GET /all-users, DELETE /users/{id}
Audit trail: GET /audit-logs, GET /audit-logs/target/{id}, GET /audit-logs/stats
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Query, status

from bizdesk.dependencies import CurrentSuperAdmin, DbSession, Meta
from bizdesk.models import CompanyStatus
from bizdesk.schemas.common import MessageResponse, Pagination
from bizdesk.schemas.company import CompanyRead
from bizdesk.schemas.superadmin import (
    AuditLogList,
    AuditLogRead,
    AuditLogTarget,
    AuditStats,
    CompanyList,
    CompanyProfile,
    CompanyStatusResult,
    PendingCompanyList,
    PlatformStatistics,
    PlatformUser,
    PlatformUserList,
    StatusReason,
    SuperAdminCreate,
    SuperAdminList,
    SuperAdminLogin,
    SuperAdminRead,
    SuperAdminToken,
    SuperAdminUpdate,
    SuspendRequest,
)
from bizdesk.schemas.user import UserRead
from bizdesk.services.audit_service import AuditService
from bizdesk.services.company_admin_service import CompanyAdminService
from bizdesk.services.superadmin_service import SuperAdminService, issue_superadmin_token

router = APIRouter(prefix="/superadmin", tags=["Super Admin"])


# ── Accounts ──────────────────────────────────────────────────────────────────

@router.post("/login", response_model=SuperAdminToken, summary="Super-admin login")
async def login(body: SuperAdminLogin, db: DbSession, meta: Meta) -> SuperAdminToken:
    admin = await SuperAdminService.login(
        db, body.email, body.password, ip_address=meta.ip_address, user_agent=meta.user_agent
    )
    token, expires_in = issue_superadmin_token(admin)
    return SuperAdminToken(
        message="Login successful",
        token=token,
        expires_in=expires_in,
        admin=SuperAdminRead.model_validate(admin),
    )


@router.get("/me", response_model=SuperAdminRead, summary="Current super-admin")
async def me(admin: CurrentSuperAdmin) -> SuperAdminRead:
    return SuperAdminRead.model_validate(admin)


@router.post("/logout", response_model=MessageResponse, summary="Super-admin logout")
async def logout(admin: CurrentSuperAdmin, db: DbSession, meta: Meta) -> MessageResponse:
    await SuperAdminService.logout(
        db, admin, ip_address=meta.ip_address, user_agent=meta.user_agent
    )
    return MessageResponse(message="Logout successful")


@router.post(
    "/admins",
    response_model=SuperAdminRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create another super-admin",
)
async def create_admin(
    body: SuperAdminCreate, admin: CurrentSuperAdmin, db: DbSession
) -> SuperAdminRead:
    created = await SuperAdminService.create_admin(db, body, created_by=admin)
    return SuperAdminRead.model_validate(created)


@router.get("/admins", response_model=SuperAdminList, summary="List super-admins")
async def list_admins(admin: CurrentSuperAdmin, db: DbSession) -> SuperAdminList:
    admins = await SuperAdminService.list_admins(db)
    return SuperAdminList(superAdmins=[SuperAdminRead.model_validate(a) for a in admins])


@router.put("/admins/{admin_id}", response_model=SuperAdminRead, summary="Update a super-admin")
async def update_admin(
    admin_id: str, body: SuperAdminUpdate, admin: CurrentSuperAdmin, db: DbSession
) -> SuperAdminRead:
    updated = await SuperAdminService.update_admin(db, admin_id, body, actor=admin)
    return SuperAdminRead.model_validate(updated)


# ── Company lifecycle ─────────────────────────────────────────────────────────

async def _change_status(
    db: DbSession,
    company_id: str,
    action: str,
    admin: CurrentSuperAdmin,
    meta: Meta,
    reason: Optional[str] = None,
    duration_days: Optional[int] = None,
) -> CompanyStatusResult:
    company, message = await CompanyAdminService.change_status(
        db,
        company_id,
        action,
        admin,
        reason=reason,
        duration_days=duration_days,
        ip_address=meta.ip_address,
        user_agent=meta.user_agent,
    )
    return CompanyStatusResult(message=message, company=CompanyRead.model_validate(company))


@router.get(
    "/pending-companies",
    response_model=PendingCompanyList,
    summary="Companies awaiting approval",
)
async def pending_companies(admin: CurrentSuperAdmin, db: DbSession) -> PendingCompanyList:
    companies = await CompanyAdminService.list_pending(db)
    return PendingCompanyList(
        companies=[CompanyRead.model_validate(c) for c in companies],
        count=len(companies),
    )


@router.get("/companies", response_model=CompanyList, summary="List every company")
async def list_companies(
    admin: CurrentSuperAdmin,
    db: DbSession,
    status_filter: Optional[CompanyStatus] = Query(default=None, alias="status"),
    search: Optional[str] = Query(default=None, max_length=255),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=200),
) -> CompanyList:
    total, companies = await CompanyAdminService.list_companies(
        db,
        status=status_filter.value if status_filter else None,
        search=search,
        page=page,
        limit=limit,
    )
    return CompanyList(
        companies=[CompanyRead.model_validate(c) for c in companies],
        pagination=Pagination.build(page, limit, total),
    )


@router.get(
    "/companies/{company_id}/profile",
    response_model=CompanyProfile,
    summary="Company details with usage statistics",
)
async def company_profile(company_id: str, admin: CurrentSuperAdmin, db: DbSession) -> CompanyProfile:
    profile = await CompanyAdminService.profile(db, company_id)
    return CompanyProfile(
        company=CompanyRead.model_validate(profile["company"]),
        admin=UserRead.model_validate(profile["admin"]) if profile["admin"] else None,
        statistics=profile["statistics"],
    )


@router.post("/companies/{company_id}/approve", response_model=CompanyStatusResult)
async def approve_company(
    company_id: str, admin: CurrentSuperAdmin, db: DbSession, meta: Meta
) -> CompanyStatusResult:
    return await _change_status(db, company_id, "approve", admin, meta)


@router.post("/companies/{company_id}/reject", response_model=CompanyStatusResult)
async def reject_company(
    company_id: str, body: StatusReason, admin: CurrentSuperAdmin, db: DbSession, meta: Meta
) -> CompanyStatusResult:
    return await _change_status(db, company_id, "reject", admin, meta, reason=body.reason)


@router.post("/companies/{company_id}/block", response_model=CompanyStatusResult)
async def block_company(
    company_id: str, body: StatusReason, admin: CurrentSuperAdmin, db: DbSession, meta: Meta
) -> CompanyStatusResult:
    return await _change_status(db, company_id, "block", admin, meta, reason=body.reason)


@router.post("/companies/{company_id}/suspend", response_model=CompanyStatusResult)
async def suspend_company(
    company_id: str, body: SuspendRequest, admin: CurrentSuperAdmin, db: DbSession, meta: Meta
) -> CompanyStatusResult:
    """With duration_days the suspension lapses on its own at the next login."""
    return await _change_status(
        db,
        company_id,
        "suspend",
        admin,
        meta,
        reason=body.reason,
        duration_days=body.duration_days,
    )


@router.post("/companies/{company_id}/ban", response_model=CompanyStatusResult)
async def ban_company(
    company_id: str, body: StatusReason, admin: CurrentSuperAdmin, db: DbSession, meta: Meta
) -> CompanyStatusResult:
    return await _change_status(db, company_id, "ban", admin, meta, reason=body.reason)


@router.post("/companies/{company_id}/reactivate", response_model=CompanyStatusResult)
async def reactivate_company(
    company_id: str, admin: CurrentSuperAdmin, db: DbSession, meta: Meta
) -> CompanyStatusResult:
    return await _change_status(db, company_id, "reactivate", admin, meta)


@router.delete("/companies/{company_id}", summary="Delete a company and all of its data")
async def delete_company(
    company_id: str, admin: CurrentSuperAdmin, db: DbSession, meta: Meta
) -> Dict[str, Any]:
    removed = await CompanyAdminService.delete_company(
        db, company_id, admin, ip_address=meta.ip_address, user_agent=meta.user_agent
    )
    return {"message": "Company and all associated data deleted", "removed": removed}


# ── Platform-wide ─────────────────────────────────────────────────────────────

@router.get("/statistics", response_model=PlatformStatistics, summary="Platform statistics")
async def statistics(admin: CurrentSuperAdmin, db: DbSession) -> PlatformStatistics:
    return PlatformStatistics.model_validate(await SuperAdminService.statistics(db))


@router.get("/all-users", response_model=PlatformUserList, summary="Users of every company")
async def all_users(
    admin: CurrentSuperAdmin,
    db: DbSession,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=200),
    search: Optional[str] = Query(default=None, max_length=255),
) -> PlatformUserList:
    total, rows = await SuperAdminService.list_users(db, page=page, limit=limit, search=search)
    users = []
    for user, company_name in rows:
        entry = PlatformUser.model_validate(user)
        entry.company_name = company_name
        users.append(entry)
    return PlatformUserList(users=users, pagination=Pagination.build(page, limit, total))


@router.delete("/users/{user_id}", response_model=MessageResponse, summary="Delete any user")
async def delete_user(
    user_id: str, admin: CurrentSuperAdmin, db: DbSession, meta: Meta
) -> MessageResponse:
    await SuperAdminService.delete_user(
        db, user_id, admin, ip_address=meta.ip_address, user_agent=meta.user_agent
    )
    return MessageResponse(message="User deleted successfully")


# ── Audit trail ───────────────────────────────────────────────────────────────

@router.get("/audit-logs", response_model=AuditLogList, summary="Search the audit trail")
async def audit_logs(
    admin: CurrentSuperAdmin,
    db: DbSession,
    action: Optional[str] = Query(default=None),
    entity_type: Optional[str] = Query(default=None),
    company_id: Optional[str] = Query(default=None),
    actor_id: Optional[str] = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=200),
) -> AuditLogList:
    total, logs = await AuditService.list_logs(
        db,
        action=action,
        entity_type=entity_type,
        company_id=company_id,
        actor_id=actor_id,
        offset=(page - 1) * limit,
        limit=limit,
    )
    return AuditLogList(
        logs=[AuditLogRead.model_validate(entry) for entry in logs],
        pagination=Pagination.build(page, limit, total),
    )


@router.get("/audit-logs/stats", response_model=AuditStats, summary="Audit trail statistics")
async def audit_stats(admin: CurrentSuperAdmin, db: DbSession) -> AuditStats:
    return AuditStats.model_validate(await AuditService.stats(db))


@router.get(
    "/audit-logs/target/{target_id}",
    response_model=AuditLogTarget,
    summary="Audit entries about one company, user or record",
)
async def audit_logs_for_target(
    target_id: str, admin: CurrentSuperAdmin, db: DbSession
) -> AuditLogTarget:
    logs = await AuditService.list_for_target(db, target_id)
    return AuditLogTarget(logs=[AuditLogRead.model_validate(entry) for entry in logs])
