"""
api/routes/auth.py
------------------
Tenant user authentication.

POST /register  — Join an existing, active company with the 'sales' role.
POST /login     — Exchange credentials for a JWT access token.
                  Accepts BOTH a JSON body and OAuth2 form data (Swagger UI).
GET  /me        — Return the authenticated user's profile.
"""

from typing import Optional

from fastapi import APIRouter, Request, status
from pydantic import ValidationError

from bizdesk.core.exceptions import ValidationFailed
from bizdesk.dependencies import CurrentUser, DbSession, Meta
from bizdesk.schemas.user import (
    CompanySummary,
    LoginRequest,
    TokenResponse,
    UserRead,
    UserRegister,
)
from bizdesk.services.auth_service import AuthService, issue_token

router = APIRouter(prefix="/auth", tags=["Authentication"])


async def _login_payload(request: Request) -> LoginRequest:
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(("application/x-www-form-urlencoded", "multipart/form-data")):
        raw = dict(await request.form())
    else:
        try:
            raw = await request.json()
        except ValueError:
            raise ValidationFailed("Email and password are required")
    try:
        return LoginRequest.model_validate(raw)
    except ValidationError:
        raise ValidationFailed("Email and password are required")


@router.post(
    "/register",
    response_model=TokenResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user account",
)
async def register(body: UserRegister, db: DbSession) -> TokenResponse:
    """
    Create a user inside an existing, active company.
    Self-registered users always start with the 'sales' role.
    """
    user, company = await AuthService.register_user(db, body)
    token, expires_in = issue_token(user)
    return TokenResponse(
        message="User registered successfully",
        token=token,
        expires_in=expires_in,
        user=UserRead.model_validate(user),
        company=CompanySummary.model_validate(company),
    )


@router.post(
    "/login",
    response_model=TokenResponse,
    summary="Login and receive a JWT access token",
)
async def login(request: Request, db: DbSession, meta: Meta) -> TokenResponse:
    """
    Authenticate with email + password and receive a signed JWT.

    `username` carries the email (OAuth2 naming). When the same email is
    registered with several businesses, `companyName` picks one.
    """
    body = await _login_payload(request)
    company_name: Optional[str] = body.companyName
    user, company = await AuthService.login(
        db,
        body.username,
        body.password,
        company_name=company_name,
        ip_address=meta.ip_address,
        user_agent=meta.user_agent,
    )
    token, expires_in = issue_token(user)
    return TokenResponse(
        message="Login successful",
        token=token,
        expires_in=expires_in,
        user=UserRead.model_validate(user),
        company=CompanySummary.model_validate(company),
    )


@router.get(
    "/me",
    response_model=UserRead,
    summary="Get the currently authenticated user",
)
async def get_me(current_user: CurrentUser) -> UserRead:
    return UserRead.model_validate(current_user)
