"""
core/security.py
----------------
Password hashing and JWT token utilities.

Design decisions:
  - bcrypt work factor 12.
  - Two token types share one signing key but never one another's claims:
      user tokens       → type="user",       role in admin|manager|sales
      super-admin token → type="superadmin", role="superadmin"
  - Claims are informational only. Every request re-reads the principal
    row, so role and status changes apply before the token expires.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import jwt
from passlib.context import CryptContext

from bizdesk.core.config import settings

# bcrypt context, rounds=12 is the OWASP recommended minimum
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=12)

COMMON_PASSWORDS = frozenset(
    {"password", "12345678", "qwerty", "abc12345", "password123"}
)

USER_TOKEN = "user"
SUPERADMIN_TOKEN = "superadmin"


# ── Password Utilities ────────────────────────────────────────────────────────

def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the plain-text password."""
    return pwd_context.hash(plain)


def verify_password(plain: str, hashed: str) -> bool:
    """Constant-time comparison of plain password against stored hash."""
    return pwd_context.verify(plain, hashed)


def password_strength_error(password: str) -> Optional[str]:
    """
    Return a human-readable reason the password is too weak,
    or None when it is acceptable.
    """
    if not password:
        return "Password is required"
    if len(password) < 8:
        return "Password must be at least 8 characters long"
    if not any(ch.isdigit() for ch in password):
        return "Password must contain at least one number"
    if not any(ch.isalpha() for ch in password):
        return "Password must contain at least one letter"
    if password.lower() in COMMON_PASSWORDS:
        return "This password is too common. Please choose a stronger password"
    return None


# ── JWT Utilities ─────────────────────────────────────────────────────────────

def _encode(claims: Dict[str, Any], expires_delta: timedelta) -> str:
    now = datetime.now(timezone.utc)
    payload = {**claims, "iat": now, "exp": now + expires_delta}
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def create_access_token(
    subject: str,
    company_id: str,
    role: str,
    is_company_admin: bool = False,
    email: Optional[str] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Mint a tenant user token.

    Args:
        subject: User UUID (stored in 'sub' claim).
        company_id: Tenant UUID the user belongs to.
        role: 'admin' | 'manager' | 'sales'
        expires_delta: Optional custom expiry; defaults to settings value.
    """
    claims = {
        "sub": subject,
        "company_id": company_id,
        "role": role,
        "is_company_admin": is_company_admin,
        "email": email,
        "type": USER_TOKEN,
    }
    return _encode(
        claims,
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    )


def create_superadmin_token(
    subject: str,
    email: str,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Mint a cross-tenant super-admin token."""
    claims = {
        "sub": subject,
        "email": email,
        "role": "superadmin",
        "type": SUPERADMIN_TOKEN,
    }
    return _encode(
        claims,
        expires_delta
        or timedelta(minutes=settings.SUPERADMIN_TOKEN_EXPIRE_MINUTES),
    )


def decode_access_token(token: str) -> Dict[str, Any]:
    """
    Decode and validate a JWT.

    Raises:
        jose.ExpiredSignatureError: If the token has expired.
        jose.JWTError: If the token is otherwise invalid or tampered with.
    """
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
