"""
dependencies.py
---------------
FastAPI dependency injection functions for authentication and authorisation.

Flow for tenant routes:
  1. HTTPBearer extracts the token from the Authorization header
     (download routes also accept ?token=).
  2. The JWT is verified; expiry is reported with code TOKEN_EXPIRED.
  3. authenticate() re-reads the User row and its company. Role, status and
     company_id always come from the database, never from token claims.
  4. tenant_context() publishes the caller's company_id; every service call
     below it receives that value and nothing else.
  5. require(Action.X) consults the policy table in core/permissions.py.

Super-admin routes use get_current_superadmin() instead, which accepts only
tokens of type "superadmin" and re-reads the superadmins table.
"""

from dataclasses import dataclass
from typing import Annotated, Any, Dict, Optional

from fastapi import Depends, Query, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from bizdesk.core.exceptions import AuthenticationFailed, PermissionDenied, ValidationFailed
from bizdesk.core.logging import get_logger
from bizdesk.core.permissions import Action, is_allowed
from bizdesk.core.security import SUPERADMIN_TOKEN, USER_TOKEN, decode_access_token
from bizdesk.db.session import get_db
from bizdesk.models import Company, SuperAdmin, User
from bizdesk.models.user import BLOCKED_USER_STATUSES
from bizdesk.services.auth_service import company_access_error

logger = get_logger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)

DbSession = Annotated[AsyncSession, Depends(get_db)]
BearerCredentials = Annotated[Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)]


@dataclass(frozen=True)
class TenantContext:
    """The authenticated user and the only company it may touch."""

    user: User
    company_id: str

    @property
    def user_id(self) -> str:
        return self.user.id

    @property
    def role(self) -> str:
        return self.user.role


@dataclass(frozen=True)
class RequestMeta:
    ip_address: str
    user_agent: Optional[str]


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip
    return request.client.host if request.client else "unknown"


def request_meta(request: Request) -> RequestMeta:
    return RequestMeta(ip_address=client_ip(request), user_agent=request.headers.get("user-agent"))


# ── Token handling ────────────────────────────────────────────────────────────

def _decode(token: str) -> Dict[str, Any]:
    try:
        return decode_access_token(token)
    except ExpiredSignatureError:
        raise AuthenticationFailed(
            "Session expired. Please log in again.", code="TOKEN_EXPIRED"
        )
    except JWTError as exc:
        logger.warning("JWT decode failed", error=str(exc))
        raise AuthenticationFailed("Invalid token")


async def _load_user(db: AsyncSession, token: str) -> User:
    payload = _decode(token)
    user_id = payload.get("sub")
    if payload.get("type") != USER_TOKEN or not user_id:
        raise AuthenticationFailed("Invalid token")

    # Always re-read: role/status changes apply before the token expires
    user = await db.get(User, user_id, populate_existing=True)
    if user is None:
        logger.warning("User from valid JWT not found in DB", user_id=user_id)
        raise AuthenticationFailed("User not found")
    if user.status in BLOCKED_USER_STATUSES:
        raise PermissionDenied("Your account has been suspended. Please contact support.")

    company = await db.get(Company, user.company_id, populate_existing=True)
    if company is not None:
        error = company_access_error(company)
        if error is not None:
            raise error
    return user


# ── Tenant users ──────────────────────────────────────────────────────────────

async def authenticate(db: DbSession, credentials: BearerCredentials) -> User:
    """Bearer token → current User row. 401/403 on any failure."""
    if credentials is None or not credentials.credentials:
        raise AuthenticationFailed("No token provided")
    return await _load_user(db, credentials.credentials)


async def authenticate_download(
    db: DbSession,
    credentials: BearerCredentials,
    token: Annotated[Optional[str], Query(description="Token for browser downloads")] = None,
) -> User:
    """
    Same as authenticate(), but also accepts ?token= because browser-initiated
    downloads cannot set headers. URL tokens can leak through logs and
    referrers; only download routes use this.
    """
    raw = credentials.credentials if credentials is not None else token
    if not raw:
        raise AuthenticationFailed("No token provided")
    return await _load_user(db, raw)


def _context_for(user: User) -> TenantContext:
    if not user.company_id:
        logger.warning("Tenant context missing", user_id=user.id)
        raise ValidationFailed(
            "Business context not found. Please ensure you are properly authenticated."
        )
    return TenantContext(user=user, company_id=user.company_id)


async def tenant_context(user: Annotated[User, Depends(authenticate)]) -> TenantContext:
    return _context_for(user)


async def download_tenant_context(
    user: Annotated[User, Depends(authenticate_download)],
) -> TenantContext:
    return _context_for(user)


def require(action: Action):
    """
    Authorisation gate. Use as a dependency:

        ctx: Annotated[TenantContext, Depends(require(Action.products_delete))]
    """

    async def _gate(ctx: Annotated[TenantContext, Depends(tenant_context)]) -> TenantContext:
        if not is_allowed(ctx.role, action, ctx.user.permissions):
            logger.warning(
                "Permission denied",
                user_id=ctx.user_id,
                role=ctx.role,
                action=action.value,
            )
            raise PermissionDenied("Unauthorized")
        return ctx

    return _gate


CurrentUser = Annotated[User, Depends(authenticate)]
Tenant = Annotated[TenantContext, Depends(tenant_context)]
DownloadTenant = Annotated[TenantContext, Depends(download_tenant_context)]
Meta = Annotated[RequestMeta, Depends(request_meta)]


# ── Super-admins ──────────────────────────────────────────────────────────────

async def get_current_superadmin(db: DbSession, credentials: BearerCredentials) -> SuperAdmin:
    if credentials is None or not credentials.credentials:
        raise AuthenticationFailed("No authentication token, access denied")
    payload = _decode(credentials.credentials)
    if payload.get("type") != SUPERADMIN_TOKEN or payload.get("role") != "superadmin":
        logger.warning("Non super-admin token on super-admin route", sub=payload.get("sub"))
        raise PermissionDenied("Access denied. Super admin privileges required.")

    admin_id = payload.get("sub")
    admin = await db.get(SuperAdmin, admin_id, populate_existing=True) if admin_id else None
    if admin is None or not admin.is_active:
        raise AuthenticationFailed("Super admin account not found or inactive")
    return admin


CurrentSuperAdmin = Annotated[SuperAdmin, Depends(get_current_superadmin)]
